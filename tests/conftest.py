"""Shared test fixtures: in-memory store, seed data and a PostgreSQL container.

Unit tests run the managers against ``MemoryDocumentStore`` and need no
external services.  Integration tests use a real PostgreSQL container
managed by testcontainers-python; the container is session-scoped (started
once per test run) and each test gets an isolated store whose commits only
release savepoints inside an outer transaction rolled back at teardown.

Requires Docker for tests marked with ``@pytest.mark.integration``.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Iterator
from datetime import UTC, datetime
from itertools import count
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from testcontainers.postgres import PostgresContainer

from kioskdesk.helpdesk.identity import Identity
from kioskdesk.helpdesk.models.enums import TicketStatus, WorkspaceRole
from kioskdesk.helpdesk.models.records import (
    KioskRecord,
    MembershipRecord,
    TicketRecord,
    UserRecord,
    WorkspaceRecord,
)
from kioskdesk.helpdesk.settings import _get_settings_cached
from kioskdesk.helpdesk.store.base import DocumentStore
from kioskdesk.helpdesk.store.memory import MemoryDocumentStore
from kioskdesk.helpdesk.store.sql import SqlDocumentStore


def _set_env(key: str, value: str) -> None:
    """Set an env var and invalidate the settings cache."""
    os.environ[key] = value
    _get_settings_cached.cache_clear()


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------


class Seeder:
    """Writes records straight into a store, bypassing the managers."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store
        self._seq = count(1)

    async def user(self, name: str) -> Identity:
        slug = name.lower().replace(" ", "-")
        user = await self.store.create(
            UserRecord(
                id=f"rec-user-{slug}",
                user_id=f"user-{slug}",
                email=f"{slug}@example.com",
                username=slug,
                name=name,
                cognito_id=f"cognito-{slug}",
            )
        )
        return Identity.from_user(user)

    async def workspace(self, name: str = "Downtown", *, record_id: str | None = None) -> WorkspaceRecord:
        n = next(self._seq)
        return await self.store.create(
            WorkspaceRecord(
                id=record_id or f"ws-{n}",
                workspace_id=f"workspace-{n}",
                name=name,
                created_by="seed",
            )
        )

    async def member(
        self,
        workspace: WorkspaceRecord,
        identity: Identity,
        role: WorkspaceRole | None = WorkspaceRole.MEMBER,
        *,
        joined_at: datetime | None = None,
    ) -> MembershipRecord:
        n = next(self._seq)
        return await self.store.create(
            MembershipRecord(
                id=f"mem-{n}",
                workspace_id=workspace.id,
                user_id=identity.user_id,
                role=role,
                joined_at=joined_at or datetime(2024, 1, 1, tzinfo=UTC).replace(minute=n % 60),
            )
        )

    async def kiosk(
        self,
        workspace: WorkspaceRecord,
        address: str = "1 Main St",
        *,
        workspace_key: str | None = None,
        **fields: object,
    ) -> KioskRecord:
        n = next(self._seq)
        return await self.store.create(
            KioskRecord(
                id=f"kiosk-rec-{n}",
                kiosk_id=f"kiosk-{n}",
                workspace_id=workspace_key or workspace.id,
                address=address,
                **fields,
            )
        )

    async def ticket(
        self,
        workspace: WorkspaceRecord,
        kiosk: KioskRecord,
        reporter: Identity,
        title: str = "Screen flickers",
        *,
        description: str = "",
        status: TicketStatus = TicketStatus.OPEN,
        reported_date: datetime | None = None,
        workspace_key: str | None = None,
        **fields: object,
    ) -> TicketRecord:
        n = next(self._seq)
        return await self.store.create(
            TicketRecord(
                id=f"ticket-rec-{n}",
                ticket_id=f"ticket-{n}",
                workspace_id=workspace_key or workspace.id,
                kiosk_id=kiosk.id,
                reporter_id=reporter.user_id,
                status=status,
                title=title,
                description=description,
                reported_date=reported_date or datetime(2024, 3, 10, 12, 0, tzinfo=UTC),
                **fields,
            )
        )


@pytest.fixture
def store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def seed(store: MemoryDocumentStore) -> Seeder:
    return Seeder(store)


# ---------------------------------------------------------------------------
# Session-scoped: container, URL with migrations applied, engine
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def pg_container() -> Iterator[PostgresContainer]:
    """Start a PostgreSQL 17 container for the test session."""
    with PostgresContainer(
        image="postgres:17",
        username="test",
        password="test",
        dbname="kioskdesk_test",
        driver="psycopg",
    ) as pg:
        yield pg


@pytest.fixture(scope="session")
def pg_url(pg_container: PostgresContainer) -> str:
    """PostgreSQL URL (psycopg3 dialect) with Alembic migrations applied."""
    url = pg_container.get_connection_url()
    _set_env("KIOSK_DATABASE_URL", url)

    # Apply all migrations using the packaged alembic.ini (same config as CLI).
    from alembic import command
    from alembic.config import Config

    ini_path = Path(__file__).parent.parent / "kioskdesk" / "helpdesk" / "alembic.ini"
    cfg = Config(str(ini_path))
    command.upgrade(cfg, "head")

    return url


@pytest.fixture(scope="session")
def async_engine(pg_url: str) -> Iterator[AsyncEngine]:
    """Session-scoped async SQLAlchemy engine."""
    engine = create_async_engine(pg_url)
    yield engine
    engine.sync_engine.dispose()


# ---------------------------------------------------------------------------
# Function-scoped: SQL store with savepoint rollback for test isolation
# ---------------------------------------------------------------------------


@pytest.fixture
async def sql_store(async_engine: AsyncEngine) -> AsyncIterator[SqlDocumentStore]:
    """SQL document store; all changes rolled back after the test.

    Sessions are bound to one connection with
    ``join_transaction_mode="create_savepoint"`` so the store's commits only
    commit savepoints, while the outer transaction is rolled back at
    teardown.
    """
    async with async_engine.connect() as conn:
        await conn.begin()
        factory = async_sessionmaker(bind=conn, expire_on_commit=False, join_transaction_mode="create_savepoint")
        yield SqlDocumentStore(factory)
        await conn.rollback()
