from datetime import datetime
from typing import Optional

from app.schemas.survey_schema import CamelModel


class HomepageConfigIn(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None


class HomepageConfigOut(CamelModel):
    title: str
    description: str
    updated_at: Optional[datetime] = None
