import hmac
from typing import List

from fastapi import HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.logger import get_logger
from app.models.survey import SurveyResponse, SurveyAnswer
from app.schemas.admin_schema import (
    AdminLogin,
    AdminToken,
    SurveyListItem,
    SurveyDataStat,
    CheckDataOut,
    DataSummary,
)
from app.services.survey_service import list_surveys_service
from app.utils.jwt import create_admin_token

logger = get_logger('admin_service')

# 저장 공간 추정치 (바이트)
RESPONSE_BYTES = 200
ANSWER_BYTES = 100
STORAGE_WARNING_BYTES = 400 * 1024 * 1024


def admin_login_service(login_data: AdminLogin) -> AdminToken:
    """공용 관리자 계정 확인 후 토큰 발급"""
    id_ok = hmac.compare_digest(login_data.admin_id.encode(), settings.ADMIN_ID.encode())
    pw_ok = hmac.compare_digest(login_data.password.encode(), settings.ADMIN_PASSWORD.encode())
    if not (id_ok and pw_ok):
        logger.warning(f"관리자 로그인 실패: {login_data.admin_id}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="ID 또는 비밀번호가 올바르지 않습니다."
        )
    logger.info(f"관리자 로그인: {login_data.admin_id}")
    return AdminToken(token=create_admin_token(login_data.admin_id))


async def _response_stats(session: AsyncSession) -> dict:
    """survey_id → (응답 수, 가장 오래된 제출, 가장 최근 제출)"""
    result = await session.execute(
        select(
            SurveyResponse.survey_id,
            func.count(SurveyResponse.id),
            func.min(SurveyResponse.submitted_at),
            func.max(SurveyResponse.submitted_at),
        ).group_by(SurveyResponse.survey_id)
    )
    return {row[0]: row[1:] for row in result.all()}


async def _answer_counts(session: AsyncSession) -> dict:
    result = await session.execute(
        select(SurveyResponse.survey_id, func.count(SurveyAnswer.id))
        .join(SurveyAnswer, SurveyAnswer.response_id == SurveyResponse.id)
        .group_by(SurveyResponse.survey_id)
    )
    return dict(result.all())


async def admin_survey_list_service(session: AsyncSession) -> List[SurveyListItem]:
    """관리자 설문 목록 (문항 없는 설문 포함)"""
    surveys = await list_surveys_service(session)
    try:
        stats = await _response_stats(session)
    except Exception as e:
        logger.error(f"응답 통계 조회 실패: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"응답 통계 조회 실패: {str(e)}"
        )
    return [
        SurveyListItem(
            id=s.id,
            title=s.title,
            description=s.description,
            created_at=s.created_at,
            group_count=len(s.question_groups),
            question_count=sum(len(g.questions) for g in s.question_groups),
            response_count=stats.get(s.id, (0, None, None))[0],
        )
        for s in surveys
    ]


async def check_data_service(session: AsyncSession) -> CheckDataOut:
    """저장 데이터 현황 (설문/응답/답변 수, 추정 용량)"""
    surveys = await list_surveys_service(session)
    try:
        stats = await _response_stats(session)
        answer_counts = await _answer_counts(session)
    except Exception as e:
        logger.error(f"데이터 현황 조회 실패: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"데이터 현황 조회 실패: {str(e)}"
        )

    survey_stats = []
    for s in surveys:
        count, oldest, latest = stats.get(s.id, (0, None, None))
        survey_stats.append(SurveyDataStat(
            survey_id=s.id,
            survey_title=s.title,
            response_count=count,
            answers_count=answer_counts.get(s.id, 0),
            latest_response=latest,
            oldest_response=oldest,
        ))

    total_responses = sum(v[0] for v in stats.values())
    total_answers = sum(answer_counts.values())
    estimated = total_responses * RESPONSE_BYTES + total_answers * ANSWER_BYTES
    estimated_mb = round(estimated / 1024 / 1024, 2)

    return CheckDataOut(
        total_surveys=len(surveys),
        total_responses=total_responses,
        total_answers=total_answers,
        estimated_size_mb=estimated_mb,
        surveys=survey_stats,
        summary=DataSummary(
            message=f"총 {len(surveys)}개의 설문, {total_responses}개의 응답이 있습니다.",
            estimated_usage=f"추정 저장 공간: {estimated_mb:.2f} MB",
            warning="저장 공간이 400MB를 초과했습니다. 백업을 권장합니다." if estimated > STORAGE_WARNING_BYTES else None,
        ),
    )
