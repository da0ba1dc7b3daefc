from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from typing import AsyncGenerator

from app.config import settings


def _engine_options(url: str) -> dict:
    # sqlite 는 커넥션 풀 옵션을 받지 않음
    if url.startswith("sqlite"):
        return {"echo": False}
    return {
        "pool_size": settings.POOL_SIZE,
        "max_overflow": settings.MAX_OVERFLOW,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
        "echo": False,  # True 로 두면 실행되는 SQL 을 콘솔에 출력
    }


# 비동기 엔진
engine = create_async_engine(settings.DB_ASYNC_URL, **_engine_options(settings.DB_ASYNC_URL))

# 비동기 세션 팩토리
async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,  # 커밋 후에도 세션 객체를 만료시키지 않음
    autoflush=False  # flush() 는 직접 호출
)

# 데이터베이스 세션 의존성
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """데이터베이스 세션 획득"""
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
