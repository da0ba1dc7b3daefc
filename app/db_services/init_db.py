"""
테이블 생성 (최초 배포 시 / 개발 DB 초기화 시)
운영 환경에서는 Alembic 마이그레이션으로 대체할 것
"""
import asyncio

from sqlmodel import SQLModel

from app.db_services.database import engine
import app.models  # noqa: F401  테이블 메타데이터 등록


async def create_db_and_tables(bind=engine):
    async with bind.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


if __name__ == "__main__":
    asyncio.run(create_db_and_tables())
