"""Shared fixtures for helpdesk HTTP tests."""

from __future__ import annotations

import time
from collections.abc import AsyncIterator, Callable

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt

from kioskdesk.helpdesk.app import app
from kioskdesk.helpdesk.identity import Identity
from kioskdesk.helpdesk.settings import KioskSettings, get_settings
from kioskdesk.helpdesk.store.memory import MemoryDocumentStore

JWT_SECRET = "test-secret"


@pytest.fixture
def settings() -> KioskSettings:
    return KioskSettings(document_store="memory", jwt_secret=JWT_SECRET, timezone="UTC")


@pytest.fixture
async def client(store: MemoryDocumentStore, settings: KioskSettings) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the app with the in-memory test store.

    The app lifespan does NOT run under ``ASGITransport``, so state fields
    are pre-set here and ``get_settings`` is overridden.
    """
    app.dependency_overrides[get_settings] = lambda: settings

    # Pre-set state fields (lifespan does not run under ASGITransport).
    app.state.db_engine = None
    app.state.store = store
    app.state.objects = None

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth() -> Callable[[Identity], dict[str, str]]:
    """Build an Authorization header carrying a token for ``identity``."""

    def _headers(identity: Identity) -> dict[str, str]:
        token = jwt.encode(
            {"sub": identity.cognito_id, "exp": int(time.time()) + 300},
            JWT_SECRET,
            algorithm="HS256",
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers
