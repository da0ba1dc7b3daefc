from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db_services.database import get_db
from app.flows.authoring import SurveyBuilder, BuilderValidationError
from app.logger import get_logger
from app.schemas.survey_schema import SurveyCreate, SurveyOut
from app.services.survey_service import (
    list_surveys_service,
    get_survey_service,
    create_survey_service,
    replace_survey_service,
    delete_survey_service,
)

router = APIRouter()
logger = get_logger('survey_router')


def _validated_payload(data: SurveyCreate) -> SurveyCreate:
    """제목/그룹 필수 확인 후 빌더 검증을 거친 저장용 페이로드"""
    if not data.title.strip() or not data.question_groups:
        raise HTTPException(status_code=400, detail="설문 제목과 문항 그룹은 필수입니다.")
    builder = SurveyBuilder.from_payload(data)
    try:
        builder.validate()
    except BuilderValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    return builder.to_payload()


# ———————————————— 설문 목록 (문항이 있는 설문만) ————————————————
@router.get("", response_model=List[SurveyOut], summary="설문 목록")
async def list_surveys(
    include_empty: bool = Query(False, alias="includeEmpty"),
    db: AsyncSession = Depends(get_db),
):
    return await list_surveys_service(db, published_only=not include_empty)


# ———————————————— 설문 생성 ————————————————
@router.post("", response_model=SurveyOut, status_code=status.HTTP_201_CREATED, summary="설문 생성")
async def create_survey(data: SurveyCreate, db: AsyncSession = Depends(get_db)):
    payload = _validated_payload(data)
    return await create_survey_service(db, payload)


# ———————————————— 설문 상세 ————————————————
@router.get("/{survey_id}", response_model=SurveyOut, summary="설문 상세")
async def get_survey(survey_id: int, db: AsyncSession = Depends(get_db)):
    return await get_survey_service(db, survey_id)


# ———————————————— 설문 전체 교체 ————————————————
@router.put("/{survey_id}", response_model=SurveyOut, summary="설문 수정")
async def replace_survey(survey_id: int, data: SurveyCreate, db: AsyncSession = Depends(get_db)):
    payload = _validated_payload(data)
    return await replace_survey_service(db, survey_id, payload)


# ———————————————— 설문 삭제 (응답 포함) ————————————————
@router.delete("/{survey_id}", summary="설문 삭제")
async def delete_survey(survey_id: int, db: AsyncSession = Depends(get_db)):
    await delete_survey_service(db, survey_id)
    return {"success": True}
