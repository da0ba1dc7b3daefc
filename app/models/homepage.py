from datetime import datetime, timezone
from typing import Optional

from sqlmodel import SQLModel, Field
from sqlalchemy import Text


DEFAULT_HOMEPAGE_TITLE = "포항시티병원 고객 만족도 설문"
DEFAULT_HOMEPAGE_DESCRIPTION = "더 나은 의료 서비스를 위해 소중한 의견을 들려주세요."


class HomepageConfig(SQLModel, table=True):
    """홈 화면 제목/설명 (단일 행)"""
    __tablename__ = "homepage_config"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=255, default=DEFAULT_HOMEPAGE_TITLE)
    description: str = Field(sa_type=Text, default=DEFAULT_HOMEPAGE_DESCRIPTION)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
