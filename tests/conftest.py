import os

# 앱 모듈 임포트 전에 설정
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["EXPORT_CONSISTENCY_DELAY"] = "0"
os.environ["ADMIN_ID"] = "admin"
os.environ["ADMIN_PASSWORD"] = "secret"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.db_services.database import get_db
from app.db_services.init_db import create_db_and_tables
from main import app


@pytest.fixture
async def engine():
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_db_and_tables(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def admin_headers(client):
    resp = await client.post("/api/admin/login", json={"adminId": "admin", "password": "secret"})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture
def survey_payload():
    """그룹 "Service": 척도형 Friendliness(해당없음 허용) + 주관식 Comments"""
    return {
        "title": "Satisfaction",
        "description": "Ward survey",
        "questionGroups": [
            {
                "title": "Service",
                "order": 0,
                "questions": [
                    {"text": "Friendliness", "order": 0, "type": "scale", "includeNoneOption": True},
                    {"text": "Comments", "order": 1, "type": "text"},
                ],
            }
        ],
    }
