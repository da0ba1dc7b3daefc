from datetime import date
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.logger import get_logger
from app.models.survey import SurveyResponse, SurveyAnswer
from app.schemas.response_schema import AnswerIn, ResponseOut
from app.schemas.survey_schema import SurveyOut
from app.utils.timeutil import within_date_range

logger = get_logger('response_service')


def question_snapshot(survey: SurveyOut) -> list:
    """제출 시점의 문항 구조 사본 (JSON)"""
    return [group.model_dump(mode="json", by_alias=True) for group in survey.question_groups]


async def create_response_service(
    session: AsyncSession,
    survey: SurveyOut,
    answers: List[AnswerIn],
    patient_name: Optional[str] = None,
    patient_type: Optional[str] = None,
    patient_info_answers: Optional[dict] = None,
) -> ResponseOut:
    """응답 저장 (답변 포함). 저장 후에는 수정하지 않는다"""
    try:
        response = SurveyResponse(
            survey_id=survey.id,
            patient_name=(patient_name or "").strip() or None,
            patient_type=(patient_type or "").strip() or None,
            patient_info_answers=patient_info_answers or None,
            question_snapshot=question_snapshot(survey),
        )
        for answer in answers:
            response.answers.append(SurveyAnswer(
                question_id=answer.question_id,
                sub_question_id=answer.sub_question_id or None,
                value=answer.value,
                text_value=answer.text_value,
            ))
        session.add(response)
        await session.commit()
        logger.info(f"응답 저장 완료: id={response.id}, survey_id={survey.id}, 답변 {len(answers)}건")
    except Exception as e:
        await session.rollback()
        logger.error(f"응답 저장 실패: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"응답 저장 실패: {str(e)}"
        )
    return ResponseOut.model_validate(response)


async def list_responses_service(session: AsyncSession, survey_id: Optional[int] = None) -> List[ResponseOut]:
    """응답 목록 (제출 시각 오름차순)"""
    try:
        query = select(SurveyResponse).options(selectinload(SurveyResponse.answers))
        if survey_id is not None:
            query = query.where(SurveyResponse.survey_id == survey_id)
        result = await session.execute(query.order_by(SurveyResponse.submitted_at, SurveyResponse.id))
        return [ResponseOut.model_validate(r) for r in result.scalars().all()]
    except Exception as e:
        logger.error(f"응답 목록 조회 실패: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"응답 목록 조회 실패: {str(e)}"
        )


async def delete_responses_service(
    session: AsyncSession,
    survey_id: int,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> int:
    """설문의 응답 일괄 삭제. 기간(현지 날짜, 양 끝 포함)을 주면 해당 기간만"""
    try:
        result = await session.execute(
            select(SurveyResponse.id, SurveyResponse.submitted_at).where(SurveyResponse.survey_id == survey_id)
        )
        target_ids = [
            response_id for response_id, submitted_at in result.all()
            if within_date_range(submitted_at, date_from, date_to)
        ]
        if target_ids:
            await session.execute(
                delete(SurveyAnswer).where(SurveyAnswer.response_id.in_(target_ids))
                .execution_options(synchronize_session=False)
            )
            await session.execute(
                delete(SurveyResponse).where(SurveyResponse.id.in_(target_ids))
                .execution_options(synchronize_session=False)
            )
        await session.commit()
        logger.info(f"응답 삭제 완료: survey_id={survey_id}, 기간={date_from}~{date_to}, {len(target_ids)}건")
        return len(target_ids)
    except Exception as e:
        await session.rollback()
        logger.error(f"응답 삭제 실패: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"응답 삭제 실패: {str(e)}"
        )
