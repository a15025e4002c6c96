from __future__ import annotations

import os
from collections.abc import AsyncIterator
from typing import Final

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

_TEST_ENV_VARS: Final[dict[str, str]] = {
    "APP_ENV": "test",
    "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
}

for key, value in _TEST_ENV_VARS.items():
    os.environ.setdefault(key, value)

from blogapi.core.db import get_session  # noqa: E402
from blogapi.core.logging import AppLogger  # noqa: E402
from blogapi.main import create_app  # noqa: E402
from blogapi.models import Base  # noqa: E402
from tests.helpers import RecordingHandler, make_settings, recording_app_logger  # noqa: E402


@pytest_asyncio.fixture()
async def db_session() -> AsyncIterator[AsyncSession]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    Session = async_sessionmaker(engine, expire_on_commit=False)

    async with Session() as session:
        yield session

    await engine.dispose()


@pytest.fixture()
def recorder() -> tuple[AppLogger, RecordingHandler]:
    return recording_app_logger()


@pytest_asyncio.fixture()
async def api_client(
    db_session: AsyncSession,
    recorder: tuple[AppLogger, RecordingHandler],
) -> AsyncIterator[AsyncClient]:
    app_logger, _ = recorder
    application = create_app(make_settings(), app_logger=app_logger)

    async def _session_override() -> AsyncIterator[AsyncSession]:
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    application.dependency_overrides[get_session] = _session_override

    transport = ASGITransport(app=application, raise_app_exceptions=False)  # type: ignore[arg-type]
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
