from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.db_services.database import get_db
from app.routers.export_router import NO_CACHE_HEADERS
from app.schemas.homepage_schema import HomepageConfigIn, HomepageConfigOut
from app.services.homepage_service import get_homepage_config_service, update_homepage_config_service

router = APIRouter()


@router.get("", response_model=HomepageConfigOut, summary="홈 화면 설정 조회")
async def get_homepage_config(response: Response, db: AsyncSession = Depends(get_db)):
    response.headers.update(NO_CACHE_HEADERS)
    return await get_homepage_config_service(db)


@router.put("", response_model=HomepageConfigOut, summary="홈 화면 설정 수정")
async def update_homepage_config(data: HomepageConfigIn, response: Response, db: AsyncSession = Depends(get_db)):
    response.headers.update(NO_CACHE_HEADERS)
    return await update_homepage_config_service(db, data)
