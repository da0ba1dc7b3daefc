# routers/__init__.py
from fastapi import APIRouter, Depends

from app.dependencies.admin_auth import admin_verify_token
from app.routers.survey_router import router as survey_router
from app.routers.response_router import router as response_router
from app.routers.export_router import router as export_router
from app.routers.homepage_router import router as homepage_router
from app.routers.admin import router as admin_router

# 부모 라우터, 공통 경로 접두사
router = APIRouter(
    prefix="/api"
)

# 하위 라우터 등록
router.include_router(survey_router, prefix="/surveys", tags=["설문"])
router.include_router(response_router, prefix="/responses", tags=["응답"])
router.include_router(export_router, prefix="/export", tags=["엑셀 내보내기"])
router.include_router(homepage_router, prefix="/homepage-config", tags=["홈 화면"])
router.include_router(
    admin_router,
    prefix="/admin",
    tags=["관리자"],
    dependencies=[Depends(admin_verify_token)],
)
