from datetime import datetime
from typing import Optional, List

from app.schemas.survey_schema import CamelModel


class AdminLogin(CamelModel):
    admin_id: str
    password: str


class AdminToken(CamelModel):
    token: str
    token_type: str = "bearer"


class SurveyListItem(CamelModel):
    """관리자 설문 목록 항목"""
    id: int
    title: str
    description: Optional[str] = None
    created_at: datetime
    group_count: int
    question_count: int
    response_count: int


class SurveyDataStat(CamelModel):
    survey_id: int
    survey_title: str
    response_count: int
    answers_count: int
    latest_response: Optional[datetime] = None
    oldest_response: Optional[datetime] = None


class DataSummary(CamelModel):
    message: str
    estimated_usage: str
    warning: Optional[str] = None


class CheckDataOut(CamelModel):
    total_surveys: int
    total_responses: int
    total_answers: int
    estimated_size_mb: float
    surveys: List[SurveyDataStat]
    summary: DataSummary
