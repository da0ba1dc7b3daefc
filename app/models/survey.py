from datetime import datetime, timezone
from typing import Optional, List
from uuid import uuid4

from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, JSON, Text


def new_id() -> str:
    return uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ————————————————————————
# 1. 설문 (Survey)
# ————————————————————————

class Survey(SQLModel, table=True):
    __tablename__ = "surveys"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=255)
    description: Optional[str] = Field(default=None, sa_type=Text)
    background_color: Optional[str] = Field(default=None, max_length=20)
    # 마무리 문구와 스타일 (ClosingMessage)
    closing_message: dict = Field(default_factory=dict, sa_column=Column(JSON))
    # 환자 정보 입력 설정 (PatientInfoConfig)
    patient_info_config: dict = Field(default_factory=dict, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    groups: List["QuestionGroup"] = Relationship(
        back_populates="survey",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "QuestionGroup.order"}
    )
    responses: List["SurveyResponse"] = Relationship(
        back_populates="survey",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )


# ————————————————————————
# 2. 문항 그룹 (QuestionGroup)
# ————————————————————————

class QuestionGroup(SQLModel, table=True):
    __tablename__ = "question_groups"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    survey_id: int = Field(foreign_key="surveys.id", index=True)
    title: str = Field(max_length=255)
    order: int = Field(default=0)

    survey: "Survey" = Relationship(back_populates="groups")
    questions: List["Question"] = Relationship(
        back_populates="group",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "Question.order"}
    )


# ————————————————————————
# 3. 문항 (Question)
# ————————————————————————

class Question(SQLModel, table=True):
    __tablename__ = "questions"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    group_id: str = Field(foreign_key="question_groups.id", index=True, max_length=64)
    text: str = Field(sa_type=Text)
    order: int = Field(default=0)
    type: str = Field(default="scale", max_length=10)  # scale, text
    include_none_option: bool = Field(default=False)

    group: "QuestionGroup" = Relationship(back_populates="questions")
    sub_questions: List["SubQuestion"] = Relationship(
        back_populates="question",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "SubQuestion.order"}
    )


# ————————————————————————
# 4. 하위 문항 (SubQuestion)
# ————————————————————————

class SubQuestion(SQLModel, table=True):
    __tablename__ = "sub_questions"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    question_id: str = Field(foreign_key="questions.id", index=True, max_length=64)
    text: str = Field(sa_type=Text)
    order: int = Field(default=0)

    question: "Question" = Relationship(back_populates="sub_questions")


# ————————————————————————
# 5. 응답 (Response)
# ————————————————————————

class SurveyResponse(SQLModel, table=True):
    __tablename__ = "responses"

    id: Optional[int] = Field(default=None, primary_key=True)
    survey_id: int = Field(foreign_key="surveys.id", index=True)
    patient_name: Optional[str] = Field(default=None, max_length=100)
    patient_type: Optional[str] = Field(default=None, max_length=50)
    patient_info_answers: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    # 제출 시점의 문항 구조 사본
    question_snapshot: Optional[list] = Field(default=None, sa_column=Column(JSON))

    submitted_at: datetime = Field(default_factory=utc_now, index=True)

    survey: "Survey" = Relationship(back_populates="responses")
    answers: List["SurveyAnswer"] = Relationship(
        back_populates="response",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "SurveyAnswer.id"}
    )


# ————————————————————————
# 6. 답변 (Answer)
# ————————————————————————

class SurveyAnswer(SQLModel, table=True):
    __tablename__ = "answers"

    id: Optional[int] = Field(default=None, primary_key=True)
    response_id: int = Field(foreign_key="responses.id", index=True)
    # 문항 삭제 후에도 남아야 하므로 외래키를 두지 않음
    question_id: str = Field(max_length=64, index=True)
    sub_question_id: Optional[str] = Field(default=None, max_length=64)

    value: Optional[int] = None  # 1~5, NULL 이면 "해당없음"
    text_value: Optional[str] = Field(default=None, sa_type=Text)

    response: "SurveyResponse" = Relationship(back_populates="answers")
