import asyncio
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from app.logger import get_logger

logger = get_logger('consistency')

T = TypeVar("T")


def _is_visible(items: Sequence, latest_id: Optional[int], expected_count: Optional[int]) -> bool:
    if latest_id is not None and not any(getattr(item, "id", None) == latest_id for item in items):
        return False
    if expected_count is not None and len(items) < expected_count:
        return False
    return True


async def wait_until_visible(
    fetch: Callable[[], Awaitable[Sequence[T]]],
    latest_id: Optional[int] = None,
    expected_count: Optional[int] = None,
    retries: int = 3,
    delay: float = 1.0,
) -> Sequence[T]:
    """
    최근 쓰기가 조회 결과에 보일 때까지 제한된 횟수만큼 다시 읽는다.

    Args:
        fetch: 목록을 읽어오는 코루틴 함수
        latest_id: 결과에 포함되어야 하는 마지막 응답 ID
        expected_count: 최소 개수
        retries: 재시도 횟수 (첫 조회 제외)
        delay: 재시도 간격 (초, 회차마다 선형 증가)

    Returns:
        마지막으로 읽은 목록. 끝내 보이지 않아도 그대로 반환
    """
    items = await fetch()
    if latest_id is None and expected_count is None:
        return items

    for attempt in range(1, retries + 1):
        if _is_visible(items, latest_id, expected_count):
            return items
        logger.info(f"최신 응답 대기 중 ({attempt}/{retries}): 현재 {len(items)}건")
        await asyncio.sleep(delay * attempt)
        items = await fetch()

    if not _is_visible(items, latest_id, expected_count):
        logger.warning(
            f"최신 응답이 아직 조회되지 않음: latest_id={latest_id}, expected={expected_count}, 현재 {len(items)}건"
        )
    return items
