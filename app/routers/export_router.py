from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.db_services.database import get_db
from app.export.workbook import XLSX_MEDIA_TYPE
from app.logger import get_logger
from app.services.export_service import export_survey_service
from app.utils.timeutil import format_local, local_tz

router = APIRouter()
logger = get_logger('export_router')

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}


# ———————————————— 설문 응답 엑셀 다운로드 ————————————————
@router.get("", summary="응답 엑셀 내보내기")
async def export_responses(
    survey_id: Optional[int] = Query(None, alias="surveyId"),
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    latest_response_id: Optional[int] = Query(None, alias="latestResponseId"),
    expected_count: Optional[int] = Query(None, alias="expectedCount"),
    db: AsyncSession = Depends(get_db),
):
    if survey_id is None:
        raise HTTPException(status_code=400, detail="surveyId 가 필요합니다.")

    content, result = await export_survey_service(
        db,
        survey_id,
        date_from=date_from,
        date_to=date_to,
        latest_response_id=latest_response_id,
        expected_count=expected_count,
    )

    stamp = datetime.now(local_tz()).strftime("%Y%m%d%H%M%S")
    latest = result.latest_submitted_at
    oldest = result.oldest_submitted_at
    headers = {
        "Content-Disposition": f'attachment; filename="survey-{survey_id}-{stamp}.xlsx"',
        "X-Latest-Response-Date": format_local(latest) if latest else "",
        "X-Oldest-Response-Date": format_local(oldest) if oldest else "",
        "X-Total-Responses": str(result.total),
        **NO_CACHE_HEADERS,
    }
    logger.info(f"엑셀 내보내기: survey_id={survey_id}, 응답 {result.total}건, {len(content)} bytes")
    return Response(content=content, media_type=XLSX_MEDIA_TYPE, headers=headers)
