from datetime import datetime, timezone
from typing import List, Optional, Set

from fastapi import HTTPException, status
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.logger import get_logger
from app.models.survey import (
    Survey,
    QuestionGroup,
    Question,
    SubQuestion,
    SurveyResponse,
    SurveyAnswer,
    new_id,
)
from app.schemas.survey_schema import (
    SurveyCreate,
    SurveyOut,
    QuestionGroupIn,
    ClosingMessage,
    PatientInfoConfig,
    MAX_SUB_QUESTIONS,
)

logger = get_logger('survey_service')


def _structure_options():
    return selectinload(Survey.groups).selectinload(QuestionGroup.questions).selectinload(Question.sub_questions)


def survey_to_out(survey: Survey) -> SurveyOut:
    """ORM 설문 → API 형태 (그룹/문항/하위 문항 order 순)"""
    return SurveyOut(
        id=survey.id,
        title=survey.title,
        description=survey.description,
        background_color=survey.background_color,
        created_at=survey.created_at,
        closing_message=ClosingMessage.normalize(survey.closing_message),
        patient_info_config=PatientInfoConfig.model_validate(survey.patient_info_config or {}),
        question_groups=[
            {
                "id": group.id,
                "survey_id": group.survey_id,
                "title": group.title,
                "order": group.order,
                "questions": [
                    {
                        "id": q.id,
                        "group_id": q.group_id,
                        "text": q.text,
                        "order": q.order,
                        "type": q.type,
                        "include_none_option": q.include_none_option,
                        "sub_questions": [
                            {"id": s.id, "question_id": s.question_id, "text": s.text, "order": s.order}
                            for s in sorted(q.sub_questions, key=lambda s: s.order)
                        ],
                    }
                    for q in sorted(group.questions, key=lambda q: q.order)
                ],
            }
            for group in sorted(survey.groups, key=lambda g: g.order)
        ],
    )


def _pick_id(candidate: Optional[str], reusable: Set[str], used: Set[str]) -> str:
    # 이 설문에 원래 있던 id 만 유지, 그 외에는 새로 발급
    if candidate and candidate in reusable and candidate not in used:
        used.add(candidate)
        return candidate
    generated = new_id()
    used.add(generated)
    return generated


def _build_groups(survey_id: int, groups: List[QuestionGroupIn], reusable: Set[str]) -> List[QuestionGroup]:
    used: Set[str] = set()
    rows = []
    for group_index, group_data in enumerate(groups):
        group = QuestionGroup(
            id=_pick_id(group_data.id, reusable, used),
            survey_id=survey_id,
            title=group_data.title,
            order=group_data.order if group_data.order is not None else group_index,
        )
        for question_index, question_data in enumerate(group_data.questions):
            is_scale = question_data.type == "scale"
            question = Question(
                id=_pick_id(question_data.id, reusable, used),
                text=question_data.text,
                order=question_data.order if question_data.order is not None else question_index,
                type=question_data.type,
                include_none_option=bool(question_data.include_none_option) if is_scale else False,
            )
            if is_scale:
                for sub_index, sub_data in enumerate(question_data.sub_questions[:MAX_SUB_QUESTIONS]):
                    question.sub_questions.append(SubQuestion(
                        id=_pick_id(sub_data.id, reusable, used),
                        text=sub_data.text,
                        order=sub_data.order if sub_data.order is not None else sub_index,
                    ))
            group.questions.append(question)
        rows.append(group)
    return rows


async def _structure_ids(session: AsyncSession, survey_id: int) -> Set[str]:
    group_ids = select(QuestionGroup.id).where(QuestionGroup.survey_id == survey_id)
    question_ids = select(Question.id).where(Question.group_id.in_(group_ids))
    ids: Set[str] = set()
    ids.update((await session.execute(group_ids)).scalars().all())
    ids.update((await session.execute(question_ids)).scalars().all())
    ids.update((await session.execute(
        select(SubQuestion.id).where(SubQuestion.question_id.in_(question_ids))
    )).scalars().all())
    return ids


async def _delete_structure(session: AsyncSession, survey_id: int):
    """설문의 그룹/문항/하위 문항 전체 삭제 (커밋하지 않음)"""
    group_ids = select(QuestionGroup.id).where(QuestionGroup.survey_id == survey_id)
    question_ids = select(Question.id).where(Question.group_id.in_(group_ids))
    await session.execute(
        delete(SubQuestion).where(SubQuestion.question_id.in_(question_ids))
        .execution_options(synchronize_session=False)
    )
    await session.execute(
        delete(Question).where(Question.group_id.in_(group_ids))
        .execution_options(synchronize_session=False)
    )
    await session.execute(
        delete(QuestionGroup).where(QuestionGroup.survey_id == survey_id)
        .execution_options(synchronize_session=False)
    )


async def get_survey_entity(session: AsyncSession, survey_id: int) -> Optional[Survey]:
    result = await session.execute(
        select(Survey)
        .where(Survey.id == survey_id)
        .options(_structure_options())
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_survey_service(session: AsyncSession, survey_id: int) -> SurveyOut:
    """설문 조회, 없으면 404"""
    try:
        survey = await get_survey_entity(session, survey_id)
    except Exception as e:
        logger.error(f"설문 조회 실패: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"설문 조회 실패: {str(e)}"
        )
    if not survey:
        raise HTTPException(status_code=404, detail="설문을 찾을 수 없습니다")
    return survey_to_out(survey)


async def list_surveys_service(session: AsyncSession, published_only: bool = False) -> List[SurveyOut]:
    """설문 목록 (생성 순). published_only 면 문항이 없는 설문 제외"""
    try:
        result = await session.execute(select(Survey).options(_structure_options()).order_by(Survey.id))
        surveys = [survey_to_out(s) for s in result.scalars().all()]
    except Exception as e:
        logger.error(f"설문 목록 조회 실패: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"설문 목록 조회 실패: {str(e)}"
        )
    if published_only:
        return [s for s in surveys if s.is_published]
    return surveys


async def create_survey_service(session: AsyncSession, data: SurveyCreate) -> SurveyOut:
    """설문 생성 (그룹/문항/하위 문항 포함)"""
    try:
        survey = Survey(
            title=data.title,
            description=data.description,
            background_color=data.background_color,
            closing_message=ClosingMessage.normalize(data.closing_message).model_dump(),
            patient_info_config=(data.patient_info_config or PatientInfoConfig()).model_dump(),
        )
        session.add(survey)
        await session.flush()  # survey.id 확보

        session.add_all(_build_groups(survey.id, data.question_groups, reusable=set()))
        await session.commit()
        logger.info(f"설문 생성 완료: id={survey.id}, title={survey.title}")
    except Exception as e:
        await session.rollback()
        logger.error(f"설문 생성 실패: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"설문 생성 실패: {str(e)}"
        )
    return await get_survey_service(session, survey.id)


async def replace_survey_service(session: AsyncSession, survey_id: int, data: SurveyCreate) -> SurveyOut:
    """설문 전체 교체: 기존 문항 구조를 지우고 새 구조를 다시 넣는다 (한 트랜잭션)"""
    try:
        result = await session.execute(select(Survey).where(Survey.id == survey_id))
        survey = result.scalar_one_or_none()
        if not survey:
            raise HTTPException(status_code=404, detail="설문을 찾을 수 없습니다")

        survey.title = data.title
        survey.description = data.description
        survey.background_color = data.background_color
        if data.closing_message is not None:
            survey.closing_message = ClosingMessage.normalize(data.closing_message).model_dump()
        if data.patient_info_config is not None:
            survey.patient_info_config = data.patient_info_config.model_dump()
        survey.updated_at = datetime.now(timezone.utc)

        reusable = await _structure_ids(session, survey_id)
        await _delete_structure(session, survey_id)
        await session.flush()
        session.add_all(_build_groups(survey_id, data.question_groups, reusable))
        await session.commit()
        logger.info(f"설문 수정 완료: id={survey_id}")
    except HTTPException:
        await session.rollback()
        raise
    except Exception as e:
        await session.rollback()
        logger.error(f"설문 수정 실패: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"설문 수정 실패: {str(e)}"
        )
    return await get_survey_service(session, survey_id)


async def delete_survey_service(session: AsyncSession, survey_id: int):
    """설문 삭제 (응답/답변/문항 구조까지 함께 삭제)"""
    try:
        result = await session.execute(select(Survey.id).where(Survey.id == survey_id))
        if result.scalar_one_or_none() is None:
            raise HTTPException(status_code=404, detail="설문을 찾을 수 없습니다")

        response_ids = select(SurveyResponse.id).where(SurveyResponse.survey_id == survey_id)
        await session.execute(
            delete(SurveyAnswer).where(SurveyAnswer.response_id.in_(response_ids))
            .execution_options(synchronize_session=False)
        )
        await session.execute(
            delete(SurveyResponse).where(SurveyResponse.survey_id == survey_id)
            .execution_options(synchronize_session=False)
        )
        await _delete_structure(session, survey_id)
        await session.execute(
            delete(Survey).where(Survey.id == survey_id).execution_options(synchronize_session=False)
        )
        await session.commit()
        logger.info(f"설문 삭제 완료: id={survey_id}")
        return True
    except HTTPException:
        await session.rollback()
        raise
    except Exception as e:
        await session.rollback()
        logger.error(f"설문 삭제 실패: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"설문 삭제 실패: {str(e)}"
        )
