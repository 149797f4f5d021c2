"""Alembic environment for the helpdesk schema.

Uses the same ``KIOSK_DATABASE_URL`` as the app, driven through the async
engine (asyncpg or psycopg) with ``run_sync``.  Migration logs go through
loguru like the rest of the service.
"""

from __future__ import annotations

import asyncio
from typing import Any

from alembic import context
from loguru import logger
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from kioskdesk.helpdesk.db.tables import Base
from kioskdesk.helpdesk.log import setup_logging
from kioskdesk.helpdesk.settings import get_settings

settings = get_settings()
setup_logging(settings.log_level, json_logs=settings.log_json)

if not settings.database_url:
    msg = "KIOSK_DATABASE_URL is not set; nothing to migrate."
    raise RuntimeError(msg)
DATABASE_URL: str = settings.database_url


def _skip_unmanaged_tables(obj: Any, name: str | None, type_: str, reflected: bool, compare_to: Any) -> bool:
    return not (type_ == "table" and reflected and compare_to is None)


def _drop_empty_revision(ctx: Any, revision: Any, directives: list[Any]) -> None:
    """Do not write an autogenerated revision when the tables did not change."""
    autogenerate = ctx.config.attributes.get("autogenerate") or getattr(ctx.config.cmd_opts, "autogenerate", False)
    if autogenerate and directives[0].upgrade_ops.is_empty():
        directives[:] = []
        logger.info("No schema changes detected; no revision written")


_OPTIONS: dict[str, Any] = {
    "target_metadata": Base.metadata,
    "include_object": _skip_unmanaged_tables,
    "process_revision_directives": _drop_empty_revision,
    "compare_type": True,
    "compare_server_default": True,
}


def run_migrations_offline() -> None:
    """Print the migration SQL instead of executing it (``--sql``)."""
    context.configure(url=DATABASE_URL, literal_binds=True, dialect_opts={"paramstyle": "named"}, **_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection: Connection) -> None:
    context.configure(connection=connection, **_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(DATABASE_URL, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
