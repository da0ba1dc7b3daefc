from datetime import datetime, date
from typing import Optional, List, Dict
from pydantic import Field

from app.schemas.survey_schema import CamelModel


class AnswerIn(CamelModel):
    question_id: str
    sub_question_id: Optional[str] = None
    # 범위(1~5)와 value/textValue 배타 검사는 AnswerSheet.fill
    value: Optional[int] = None  # 척도형, null 이면 "해당없음"
    text_value: Optional[str] = None  # 주관식

    @property
    def key(self) -> tuple:
        return self.question_id, self.sub_question_id or None


class ResponseSubmit(CamelModel):
    survey_id: int
    answers: List[AnswerIn]
    patient_name: Optional[str] = None
    patient_type: Optional[str] = None
    patient_info_answers: Optional[Dict[str, List[str]]] = None


class AnswerOut(CamelModel):
    question_id: str
    sub_question_id: Optional[str] = None
    value: Optional[int] = None
    text_value: Optional[str] = None


class ResponseOut(CamelModel):
    id: int
    survey_id: int
    patient_name: Optional[str] = None
    patient_type: Optional[str] = None
    patient_info_answers: Optional[Dict[str, List[str]]] = None
    question_snapshot: Optional[list] = None
    submitted_at: datetime
    answers: List[AnswerOut] = []


class ResponseDeleteRequest(CamelModel):
    survey_id: int
    date_from: Optional[date] = Field(default=None, alias="from")
    date_to: Optional[date] = Field(default=None, alias="to")


class ResponseDeleteResult(CamelModel):
    deleted_count: int
