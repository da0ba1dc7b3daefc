from datetime import date
from typing import Dict, Iterable, Optional, Set, Tuple

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import settings
from app.export.reconciler import ExportResult, SchemaEntry, current_descriptors, descriptor_key, reconcile
from app.export.workbook import build_workbook
from app.logger import get_logger
from app.models.survey import Question, QuestionGroup
from app.schemas.survey_schema import QuestionOut
from app.services.response_service import list_responses_service
from app.services.survey_service import get_survey_service
from app.utils.consistency import wait_until_visible

logger = get_logger('export_service')


async def _lookup_questions(session: AsyncSession, question_ids: Iterable[str], survey_id: Optional[int]) -> Dict[str, SchemaEntry]:
    ids = list(question_ids)
    if not ids:
        return {}
    query = (
        select(Question, QuestionGroup)
        .join(QuestionGroup, Question.group_id == QuestionGroup.id)
        .where(Question.id.in_(ids))
        .options(selectinload(Question.sub_questions))
    )
    if survey_id is not None:
        query = query.where(QuestionGroup.survey_id == survey_id)
    rows = (await session.execute(query)).all()
    if not rows:
        return {}

    group_positions, question_positions = await _positions(
        session,
        survey_ids={group.survey_id for _, group in rows},
        group_ids={group.id for _, group in rows},
    )
    return {
        question.id: SchemaEntry(
            group_title=group.title,
            group_index=group_positions[group.id],
            question_index=question_positions[question.id],
            question=QuestionOut.model_validate(question),
        )
        for question, group in rows
    }


async def _positions(session: AsyncSession, survey_ids: Set[int], group_ids: Set[str]) -> Tuple[Dict[str, int], Dict[str, int]]:
    """그룹의 설문 내 위치, 문항의 그룹 내 위치 (현재 설문 열과 같은 기준)"""
    group_rows = await session.execute(
        select(QuestionGroup.id, QuestionGroup.survey_id)
        .where(QuestionGroup.survey_id.in_(survey_ids))
        .order_by(QuestionGroup.survey_id, QuestionGroup.order, QuestionGroup.id)
    )
    question_rows = await session.execute(
        select(Question.id, Question.group_id)
        .where(Question.group_id.in_(group_ids))
        .order_by(Question.group_id, Question.order, Question.id)
    )
    return _rank(group_rows.all()), _rank(question_rows.all())


def _rank(rows) -> Dict[str, int]:
    # (id, 부모 id) 가 부모별로 정렬되어 있다고 가정
    positions: Dict[str, int] = {}
    counters: Dict[object, int] = {}
    for item_id, parent_id in rows:
        positions[item_id] = counters.get(parent_id, 0)
        counters[parent_id] = positions[item_id] + 1
    return positions


async def build_schema_lookup(session: AsyncSession, survey_id: int, question_ids: Iterable[str]) -> Dict[str, SchemaEntry]:
    """문항 테이블 조회: 현재 설문에서 먼저 찾고, 남은 id 는 전체 설문에서"""
    remaining = set(question_ids)
    lookup = await _lookup_questions(session, remaining, survey_id)
    remaining -= set(lookup)
    if remaining:
        lookup.update(await _lookup_questions(session, remaining, None))
    return lookup


async def export_survey_service(
    session: AsyncSession,
    survey_id: int,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    latest_response_id: Optional[int] = None,
    expected_count: Optional[int] = None,
) -> Tuple[bytes, ExportResult]:
    """설문 응답을 환자 유형별 시트로 나눈 엑셀 파일 생성"""
    if date_from and date_to and date_from > date_to:
        raise HTTPException(status_code=400, detail="시작일이 종료일보다 늦습니다.")

    survey = await get_survey_service(session, survey_id)

    async def _fetch():
        # 새 트랜잭션에서 읽어야 다른 요청이 커밋한 응답이 보임
        await session.rollback()
        return await list_responses_service(session, survey_id)

    try:
        responses = await wait_until_visible(
            _fetch,
            latest_id=latest_response_id,
            expected_count=expected_count,
            retries=settings.EXPORT_CONSISTENCY_RETRIES,
            delay=settings.EXPORT_CONSISTENCY_DELAY,
        )

        known = current_descriptors(survey.question_groups)
        orphan_ids = {
            answer.question_id
            for response in responses
            for answer in response.answers
            if descriptor_key(answer.question_id, answer.sub_question_id) not in known
        }
        schema_lookup = await build_schema_lookup(session, survey_id, orphan_ids) if orphan_ids else {}

        result = reconcile(survey, responses, schema_lookup, date_from, date_to)
        content = build_workbook(result.sheets)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"엑셀 내보내기 실패: survey_id={survey_id}, {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"엑셀 내보내기 실패: {str(e)}"
        )
    return content, result
