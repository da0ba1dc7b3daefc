from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db_services.database import get_db
from app.flows.taking import AnswerSheet, AnswerValidationError
from app.logger import get_logger
from app.schemas.response_schema import (
    ResponseSubmit,
    ResponseOut,
    ResponseDeleteRequest,
    ResponseDeleteResult,
)
from app.services.response_service import (
    create_response_service,
    list_responses_service,
    delete_responses_service,
)
from app.services.survey_service import get_survey_service

router = APIRouter()
logger = get_logger('response_router')


# ———————————————— 응답 목록 (전체 또는 설문별) ————————————————
@router.get("", response_model=List[ResponseOut], summary="응답 목록")
async def list_responses(
    survey_id: Optional[int] = Query(None, alias="surveyId"),
    db: AsyncSession = Depends(get_db),
):
    return await list_responses_service(db, survey_id)


# ———————————————— 응답 제출 ————————————————
@router.post("", response_model=ResponseOut, status_code=status.HTTP_201_CREATED, summary="응답 제출")
async def submit_response(data: ResponseSubmit, db: AsyncSession = Depends(get_db)):
    survey = await get_survey_service(db, data.survey_id)

    sheet = AnswerSheet.from_survey(survey)
    try:
        sheet.fill(data)
        sheet.validate()
    except AnswerValidationError as e:
        logger.info(f"응답 검증 실패: survey_id={survey.id}, {e.message}")
        raise HTTPException(status_code=400, detail=e.message)

    return await create_response_service(
        db,
        survey,
        sheet.to_answers(),
        patient_name=sheet.patient_name,
        patient_type=sheet.patient_type,
        patient_info_answers=sheet.patient_info_answers,
    )


# ———————————————— 응답 일괄 삭제 (기간 지정 가능) ————————————————
@router.delete("", response_model=ResponseDeleteResult, summary="응답 일괄 삭제")
async def delete_responses(data: ResponseDeleteRequest, db: AsyncSession = Depends(get_db)):
    if data.date_from and data.date_to and data.date_from > data.date_to:
        raise HTTPException(status_code=400, detail="시작일이 종료일보다 늦습니다.")
    deleted_count = await delete_responses_service(db, data.survey_id, data.date_from, data.date_to)
    return ResponseDeleteResult(deleted_count=deleted_count)
