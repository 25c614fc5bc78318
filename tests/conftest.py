"""Shared fixtures: a temporary SQLite database, the app and a fake Telegram"""
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import List

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from todo_tracker.config import Settings
from todo_tracker.db import create_engine, create_session_factory, init_db
from todo_tracker.telegram import DeliveryResult

SERVICE_KEY = "service-key-for-tests"
DIGEST_CHAT = "4242"


class FakeTelegram:
    """Records outgoing messages instead of calling the Bot API"""

    def __init__(self, ok: bool = True):
        self.ok = ok
        self.sent: List[dict] = []

    async def send_message(self, chat_id, text, parse_mode=None):
        self.sent.append({"chat_id": chat_id, "text": text, "parse_mode": parse_mode})
        if self.ok:
            return DeliveryResult(ok=True)
        return DeliveryResult(ok=False, error="HTTP 500")


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        telegram_bot_token="123:abc",
        telegram_chat_id=DIGEST_CHAT,
        service_role_key=SERVICE_KEY,
    )


@pytest_asyncio.fixture
async def session_factory(settings: Settings):
    engine = create_engine(settings)
    await init_db(engine, max_retries=1)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def telegram() -> FakeTelegram:
    return FakeTelegram()


@pytest_asyncio.fixture
async def app(settings: Settings, session_factory, telegram: FakeTelegram):
    from todo_tracker.main import create_app

    app = create_app(settings)
    app.state.session_factory = session_factory
    app.state.telegram = telegram
    return app


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
