from datetime import datetime
from typing import Optional, List, Literal
from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


QuestionType = Literal["scale", "text"]

# 환자 유형 (고정 목록, 시트 순서 기준)
PATIENT_TYPES = ["outpatient", "ward-3", "ward-6", "checkup"]
MAX_SUB_QUESTIONS = 5

DEFAULT_CLOSING_TEXT = (
    '설문에 응해주셔서 감사합니다. 귀하의 의견으로 더욱 발전하는 '
    '"의료법인 구암의료재단 포항시티병원"이 되겠습니다.'
)


class CamelModel(BaseModel):
    """API 는 camelCase, 내부는 snake_case"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ———————————————— 마무리 문구 ————————————————

class ClosingMessage(CamelModel):
    text: str = DEFAULT_CLOSING_TEXT
    color: str = "#1f2937"
    font_size: int = 18
    font_weight: str = "600"
    font_style: Literal["normal", "italic"] = "normal"
    text_align: Literal["left", "center", "right"] = "center"
    font_family: str = "inherit"

    @classmethod
    def normalize(cls, raw) -> "ClosingMessage":
        """저장된 값/요청 값을 기본값으로 채워 정규화"""
        if isinstance(raw, ClosingMessage):
            raw = raw.model_dump()
        if not isinstance(raw, dict):
            return cls()
        default = cls()
        data = default.model_dump()
        text = raw.get("text")
        if isinstance(text, str) and text.strip():
            data["text"] = text
        for key, alias in (("color", "color"), ("font_weight", "fontWeight"), ("font_family", "fontFamily")):
            value = raw.get(key, raw.get(alias))
            if isinstance(value, str):
                data[key] = value
        font_size = raw.get("font_size", raw.get("fontSize"))
        if isinstance(font_size, int) and not isinstance(font_size, bool):
            data["font_size"] = font_size
        if raw.get("font_style", raw.get("fontStyle")) == "italic":
            data["font_style"] = "italic"
        text_align = raw.get("text_align", raw.get("textAlign"))
        if text_align in ("left", "center", "right"):
            data["text_align"] = text_align
        return cls(**data)


# ———————————————— 환자 정보 설정 ————————————————

class PatientInfoQuestion(CamelModel):
    id: Optional[str] = None
    text: str
    options: List[str] = []
    required: bool = False


class PatientInfoConfig(CamelModel):
    patient_type_label: str = "환자 유형"
    patient_name_label: str = "환자 성함"
    patient_name_required: bool = False
    additional_questions: List[PatientInfoQuestion] = []


# ———————————————— 문항 구조 (요청) ————————————————

class SubQuestionIn(CamelModel):
    id: Optional[str] = None
    text: str = ""
    order: Optional[int] = None


class QuestionIn(CamelModel):
    id: Optional[str] = None
    text: str = ""
    order: Optional[int] = None
    type: QuestionType = "scale"
    sub_questions: List[SubQuestionIn] = []
    include_none_option: bool = False

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value):
        # text 가 아니면 모두 척도형으로 취급
        return "text" if value == "text" else "scale"


class QuestionGroupIn(CamelModel):
    id: Optional[str] = None
    title: str = ""
    order: Optional[int] = None
    questions: List[QuestionIn] = []


class SurveyCreate(CamelModel):
    title: str = Field(default="", max_length=255)
    description: Optional[str] = None
    background_color: Optional[str] = None
    question_groups: List[QuestionGroupIn] = []
    closing_message: Optional[ClosingMessage] = None
    patient_info_config: Optional[PatientInfoConfig] = None


# ———————————————— 문항 구조 (응답) ————————————————

class SubQuestionOut(CamelModel):
    id: str
    question_id: Optional[str] = None
    text: str
    order: int = 0


class QuestionOut(CamelModel):
    id: str
    group_id: Optional[str] = None
    text: str
    order: int = 0
    type: QuestionType = "scale"
    sub_questions: List[SubQuestionOut] = []
    include_none_option: bool = False


class QuestionGroupOut(CamelModel):
    id: str
    survey_id: Optional[int] = None
    title: str
    order: int = 0
    questions: List[QuestionOut] = []


class SurveyOut(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    background_color: Optional[str] = None
    created_at: datetime
    question_groups: List[QuestionGroupOut] = []
    closing_message: ClosingMessage = ClosingMessage()
    patient_info_config: PatientInfoConfig = PatientInfoConfig()

    @property
    def is_published(self) -> bool:
        return any(group.questions for group in self.question_groups)
