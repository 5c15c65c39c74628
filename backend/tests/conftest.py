import asyncio
import os

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

os.environ.setdefault("ASYNC_DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("KAFKA_BOOTSTRAP", "")

from helpbuddy import models  # noqa: E402,F401
from helpbuddy.client.api import HelpBuddyApi  # noqa: E402
from helpbuddy.db import Base, get_db  # noqa: E402
from helpbuddy.main import app  # noqa: E402


@pytest.fixture
def session_maker(tmp_path):
    db_path = tmp_path / "helpbuddy_test.db"

    sync_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(bind=sync_engine)
    sync_engine.dispose()

    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    async def _get_test_db():
        async with maker() as session:
            yield session

    app.dependency_overrides[get_db] = _get_test_db
    yield maker
    app.dependency_overrides.clear()


@pytest.fixture
def client(session_maker):
    return TestClient(app)


@pytest.fixture
def run_db(session_maker):
    """Executa fn(session) num loop próprio, para preparar ou conferir o banco."""
    def _run(fn):
        async def main():
            async with session_maker() as session:
                return await fn(session)
        return asyncio.run(main())
    return _run


@pytest.fixture
def make_user(client):
    def _make(username, role="student", password="senha123"):
        resp = client.post(
            "/rpc/register_user",
            json={"p_username": username, "p_role": role, "p_password": password},
        )
        assert resp.status_code == 200, resp.text
        row = resp.json()[0]
        return row["user_data"], row["session_token"]
    return _make


@pytest.fixture
def bearer():
    def _headers(token):
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def with_api(session_maker):
    """Roda scenario(api) com o cliente async falando direto com o app (ASGI)."""
    def _run(scenario, transport=None):
        async def main():
            async with httpx.AsyncClient(
                transport=transport or httpx.ASGITransport(app=app), base_url="http://test"
            ) as http:
                return await scenario(HelpBuddyApi(client=http))
        return asyncio.run(main())
    return _run
