# 관리자 화면 인터페이스
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db_services.database import get_db
from app.flows.authoring import SurveyBuilder
from app.schemas.admin_schema import AdminLogin, AdminToken, SurveyListItem, CheckDataOut
from app.schemas.survey_schema import SurveyCreate
from app.services.admin_service import admin_login_service, admin_survey_list_service, check_data_service
from app.services.survey_service import get_survey_service

router = APIRouter()


@router.post("/login", response_model=AdminToken, summary="관리자 로그인")
async def admin_login(login_data: AdminLogin):
    return admin_login_service(login_data)


@router.get("/surveys", response_model=List[SurveyListItem], summary="관리자 설문 목록")
async def admin_surveys(db: AsyncSession = Depends(get_db)):
    return await admin_survey_list_service(db)


@router.get("/surveys/{survey_id}/builder", response_model=SurveyCreate, summary="설문 편집용 데이터")
async def admin_survey_builder(survey_id: int, db: AsyncSession = Depends(get_db)):
    survey = await get_survey_service(db, survey_id)
    return SurveyBuilder.from_survey(survey).to_payload()


@router.get("/check-data", response_model=CheckDataOut, summary="저장 데이터 현황")
async def admin_check_data(db: AsyncSession = Depends(get_db)):
    return await check_data_service(db)
