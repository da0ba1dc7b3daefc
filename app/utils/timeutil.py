from datetime import datetime, date, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from app.config import settings


def local_tz() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def to_local(value: datetime) -> datetime:
    """DB 에서 읽은 naive 시각은 UTC 로 간주"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(local_tz())


def format_local(value: datetime) -> str:
    return to_local(value).strftime("%Y-%m-%d %H:%M:%S")


def within_date_range(value: datetime, date_from: Optional[date] = None, date_to: Optional[date] = None) -> bool:
    """제출일(현지 날짜 기준)이 [date_from, date_to] 에 포함되는지"""
    day = to_local(value).date()
    if date_from and day < date_from:
        return False
    if date_to and day > date_to:
        return False
    return True
