"""Shared test fixtures.

Every test gets its own SQLite database file, created from the ORM metadata.
Redis is not initialized, so rate limiting is bypassed.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable, Coroutine
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from napft.config import Settings, get_settings
from napft.database import close_db, create_schema, get_session_factory, init_db
from napft.dependencies import get_email_service
from napft.email.service import BaseEmailProvider, EmailService
from napft.main import create_app
from napft.transitions import MintDetails, TransitionEngine, TransitionKind, TransitionParams

ALICE = "0xAAA"


class RecordingProvider(BaseEmailProvider):
    """Email provider that keeps messages in memory."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: list[dict[str, Any]] = []
        self.fail = fail

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
        reply_to: str | None = None,
    ) -> bool:
        if self.fail:
            return False
        self.sent.append({"to": to_email, "subject": subject, "text": text_body, "reply_to": reply_to})
        return True


@pytest.fixture
def settings(tmp_path, monkeypatch) -> Settings:
    monkeypatch.setenv("NAPFT_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'napft_test.db'}")
    monkeypatch.setenv("NAPFT_LOG_FORMAT", "console")
    monkeypatch.setenv("NAPFT_LOG_LEVEL", "WARNING")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def database(settings: Settings) -> AsyncGenerator[None, None]:
    await init_db(settings.database_url)
    await create_schema()
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for engine tests and assertions."""
    async with get_session_factory()() as session:
        yield session


@pytest.fixture
def email_provider() -> RecordingProvider:
    return RecordingProvider()


@pytest_asyncio.fixture
async def client(
    database: None, settings: Settings, email_provider: RecordingProvider
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client over the ASGI app, with email captured in memory."""
    app = create_app()
    app.dependency_overrides[get_email_service] = lambda: EmailService(settings, provider=email_provider)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


MintFn = Callable[..., Coroutine[Any, Any, Any]]


@pytest.fixture
def mint(database: None, settings: Settings) -> MintFn:
    """Mint an NFT through the engine on a fresh session. Returns the NFT."""

    async def _mint(token_id: int, creator: str = ALICE, **fields: Any) -> Any:
        details = MintDetails(
            creator=creator,
            title=fields.pop("title", f"Token {token_id}"),
            ipfs_hash=fields.pop("ipfs_hash", f"Qm{token_id:044d}"),
            **fields,
        )
        async with get_session_factory()() as session:
            nft, _tx = await TransitionEngine(session, settings).apply_transition(
                TransitionKind.MINT, token_id, TransitionParams(mint=details)
            )
            return nft

    return _mint


@pytest.fixture
def apply(database: None, settings: Settings) -> MintFn:
    """Apply one transition on a fresh session. Returns ``(nft, tx)``."""

    async def _apply(kind: TransitionKind | str, token_id: int, **params: Any) -> Any:
        async with get_session_factory()() as session:
            return await TransitionEngine(session, settings).apply_transition(
                kind, token_id, TransitionParams(**params)
            )

    return _apply
