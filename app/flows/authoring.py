"""
설문 작성(빌더) 흐름

그룹 → 문항 → 하위 문항(최대 5개) 구조를 편집하고, 저장 전 검증 후
전체 교체용 페이로드(SurveyCreate)를 만든다.
"""
from dataclasses import dataclass, field
from typing import List, Optional
from uuid import uuid4

from app.schemas.survey_schema import (
    SurveyCreate,
    SurveyOut,
    QuestionGroupIn,
    QuestionIn,
    SubQuestionIn,
    ClosingMessage,
    PatientInfoConfig,
    PatientInfoQuestion,
    MAX_SUB_QUESTIONS,
)


class BuilderValidationError(ValueError):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass
class SubQuestionDraft:
    text: str = ""
    id: Optional[str] = None


@dataclass
class QuestionDraft:
    text: str = ""
    type: str = "scale"
    sub_questions: List[SubQuestionDraft] = field(default_factory=list)
    include_none_option: bool = False
    id: Optional[str] = None


@dataclass
class GroupDraft:
    title: str = ""
    questions: List[QuestionDraft] = field(default_factory=lambda: [QuestionDraft()])
    id: Optional[str] = None


class SurveyBuilder:
    def __init__(
        self,
        title: str = "",
        description: Optional[str] = None,
        background_color: Optional[str] = None,
        closing_message: Optional[ClosingMessage] = None,
        patient_info_config: Optional[PatientInfoConfig] = None,
    ):
        self.title = title
        self.description = description
        self.background_color = background_color
        self.closing_message = closing_message or ClosingMessage()
        self.patient_info_config = patient_info_config or PatientInfoConfig()
        self.groups: List[GroupDraft] = [GroupDraft()]

    # ———————————————— 불러오기 ————————————————

    @classmethod
    def from_payload(cls, data: SurveyCreate) -> "SurveyBuilder":
        builder = cls(
            title=data.title,
            description=data.description,
            background_color=data.background_color,
            closing_message=data.closing_message,
            patient_info_config=data.patient_info_config,
        )
        groups = sorted(
            enumerate(data.question_groups),
            key=lambda pair: (pair[1].order if pair[1].order is not None else pair[0], pair[0]),
        )
        builder.groups = [
            GroupDraft(
                id=group.id,
                title=group.title,
                questions=[cls._question_draft(q) for q in cls._ordered(group.questions)],
            )
            for _, group in groups
        ]
        return builder

    @classmethod
    def from_survey(cls, survey: SurveyOut) -> "SurveyBuilder":
        """수정 모드: 저장된 설문을 빌더 상태로"""
        builder = cls(
            title=survey.title,
            description=survey.description,
            background_color=survey.background_color,
            closing_message=survey.closing_message,
            patient_info_config=survey.patient_info_config,
        )
        builder.groups = [
            GroupDraft(
                id=group.id,
                title=group.title,
                questions=[
                    QuestionDraft(
                        id=q.id,
                        text=q.text,
                        type=q.type,
                        include_none_option=q.include_none_option,
                        sub_questions=[SubQuestionDraft(id=s.id, text=s.text) for s in q.sub_questions],
                    )
                    for q in group.questions
                ],
            )
            for group in survey.question_groups
        ]
        return builder

    @staticmethod
    def _ordered(items):
        indexed = list(enumerate(items))
        indexed.sort(key=lambda pair: (pair[1].order if pair[1].order is not None else pair[0], pair[0]))
        return [item for _, item in indexed]

    @classmethod
    def _question_draft(cls, question: QuestionIn) -> QuestionDraft:
        subs = cls._ordered(question.sub_questions) if question.type == "scale" else []
        return QuestionDraft(
            id=question.id,
            text=question.text,
            type=question.type,
            include_none_option=question.include_none_option if question.type == "scale" else False,
            sub_questions=[SubQuestionDraft(id=s.id, text=s.text) for s in subs[:MAX_SUB_QUESTIONS]],
        )

    # ———————————————— 편집 ————————————————

    def add_group(self) -> GroupDraft:
        group = GroupDraft()
        self.groups.append(group)
        return group

    def remove_group(self, index: int):
        del self.groups[index]

    def set_group_title(self, index: int, title: str):
        self.groups[index].title = title

    def add_question(self, group_index: int) -> QuestionDraft:
        question = QuestionDraft()
        self.groups[group_index].questions.append(question)
        return question

    def remove_question(self, group_index: int, question_index: int):
        group = self.groups[group_index]
        del group.questions[question_index]
        # 그룹에는 최소 한 문항이 남아 있어야 함
        if not group.questions:
            group.questions.append(QuestionDraft())

    def set_question_text(self, group_index: int, question_index: int, text: str):
        self.groups[group_index].questions[question_index].text = text

    def set_question_type(self, group_index: int, question_index: int, question_type: str):
        question = self.groups[group_index].questions[question_index]
        question.type = "text" if question_type == "text" else "scale"
        if question.type == "text":
            question.sub_questions = []
            question.include_none_option = False

    def set_include_none_option(self, group_index: int, question_index: int, enabled: bool):
        question = self.groups[group_index].questions[question_index]
        question.include_none_option = enabled and question.type == "scale"

    def add_sub_question(self, group_index: int, question_index: int, text: str = "") -> bool:
        """하위 문항 추가. 5개를 넘으면 아무것도 하지 않고 False"""
        question = self.groups[group_index].questions[question_index]
        if question.type != "scale" or len(question.sub_questions) >= MAX_SUB_QUESTIONS:
            return False
        question.sub_questions.append(SubQuestionDraft(text=text))
        return True

    def remove_sub_question(self, group_index: int, question_index: int, sub_index: int):
        del self.groups[group_index].questions[question_index].sub_questions[sub_index]

    def set_sub_question_text(self, group_index: int, question_index: int, sub_index: int, text: str):
        self.groups[group_index].questions[question_index].sub_questions[sub_index].text = text

    # ———————————————— 검증 / 변환 ————————————————

    def validate(self):
        if not self.title.strip():
            raise BuilderValidationError("설문 제목을 입력해주세요.")
        if not self.groups:
            raise BuilderValidationError("문항 그룹을 하나 이상 추가해주세요.")
        for group in self.groups:
            if not group.title.strip():
                raise BuilderValidationError("모든 그룹에 제목을 입력해주세요.")
            for question in group.questions:
                if not question.text.strip():
                    raise BuilderValidationError("모든 문항에 내용을 입력해주세요.")
                if len(question.sub_questions) > MAX_SUB_QUESTIONS:
                    raise BuilderValidationError("추가 문항은 최대 5개까지 가능합니다.")
                for sub in question.sub_questions:
                    if not sub.text.strip():
                        raise BuilderValidationError("추가 문항의 내용을 입력해주세요.")
        if not self.closing_message.text.strip():
            raise BuilderValidationError("마무리 문구를 입력해주세요.")

    def _sanitized_patient_info(self) -> PatientInfoConfig:
        questions = []
        for extra in self.patient_info_config.additional_questions:
            options = [o.strip() for o in extra.options if o.strip()]
            if not extra.text.strip() or not options:
                continue
            questions.append(PatientInfoQuestion(
                id=extra.id or f"patient-info-{uuid4().hex[:8]}",
                text=extra.text.strip(),
                options=options,
                required=extra.required,
            ))
        return self.patient_info_config.model_copy(update={"additional_questions": questions})

    def to_payload(self) -> SurveyCreate:
        return SurveyCreate(
            title=self.title.strip(),
            description=self.description,
            background_color=self.background_color,
            closing_message=self.closing_message,
            patient_info_config=self._sanitized_patient_info(),
            question_groups=[
                QuestionGroupIn(
                    id=group.id,
                    title=group.title,
                    order=group_index,
                    questions=[
                        QuestionIn(
                            id=question.id,
                            text=question.text,
                            order=question_index,
                            type=question.type,
                            include_none_option=question.include_none_option,
                            sub_questions=[
                                SubQuestionIn(id=sub.id, text=sub.text, order=sub_index)
                                for sub_index, sub in enumerate(question.sub_questions)
                            ],
                        )
                        for question_index, question in enumerate(group.questions)
                    ],
                )
                for group_index, group in enumerate(self.groups)
            ],
        )
