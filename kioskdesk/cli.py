"""``kioskdesk`` command line: API server, schema migrations and user provisioning."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

import click

if TYPE_CHECKING:
    from alembic.config import Config

    from kioskdesk.helpdesk.store.base import DocumentStore

T = TypeVar("T")

_HELPDESK_DIR = Path(__file__).parent / "helpdesk"


@click.group()
def main() -> None:
    """Kioskdesk - multi-tenant kiosk maintenance helpdesk."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: KIOSK_HOST).")
@click.option("--port", default=None, type=int, help="Bind port (default: KIOSK_PORT).")
@click.option("--reload", is_flag=True, default=False, help="Restart on code changes.")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Run the helpdesk API with uvicorn."""
    import uvicorn

    from kioskdesk.helpdesk.settings import get_settings

    settings = get_settings()
    uvicorn.run(
        "kioskdesk.helpdesk.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        # Requests are logged by RequestIdMiddleware.
        access_log=False,
        log_level="warning",
    )


# ---------------------------------------------------------------------------
# kioskdesk db
# ---------------------------------------------------------------------------


def _alembic_config() -> Config:
    """Alembic config for the migrations shipped inside the package."""
    from alembic.config import Config

    cfg = Config(str(_HELPDESK_DIR / "alembic.ini"))
    cfg.set_main_option("script_location", str(_HELPDESK_DIR / "alembic"))
    return cfg


@main.group()
def db() -> None:
    """Apply and inspect schema migrations."""


@db.command()
@click.option("--revision", default="head", show_default=True, help="Target revision.")
def upgrade(revision: str) -> None:
    """Migrate the schema forward."""
    from alembic import command

    command.upgrade(_alembic_config(), revision)
    click.echo(f"Schema at {revision}.")


@db.command()
@click.option("--revision", default="-1", show_default=True, help="Target revision.")
def downgrade(revision: str) -> None:
    """Migrate the schema back."""
    from alembic import command

    command.downgrade(_alembic_config(), revision)
    click.echo(f"Schema at {revision}.")


@db.command()
@click.argument("message")
def migrate(message: str) -> None:
    """Autogenerate a revision from changes in ``db/tables.py``."""
    from alembic import command

    cfg = _alembic_config()
    cfg.attributes["autogenerate"] = True
    if command.revision(cfg, message=message, autogenerate=True):
        click.echo(f"Revision written: {message}")
    else:
        click.echo("No schema changes detected.")


@db.command()
def current() -> None:
    """Print the applied revision."""
    from alembic import command

    command.current(_alembic_config(), verbose=True)


@db.command()
def history() -> None:
    """Print all revisions."""
    from alembic import command

    command.history(_alembic_config(), verbose=True)


# ---------------------------------------------------------------------------
# kioskdesk user
# ---------------------------------------------------------------------------


def _run_with_store(action: Callable[[DocumentStore], Awaitable[T]]) -> T:
    """Open the configured PostgreSQL store, run *action*, dispose the engine."""
    from kioskdesk.helpdesk.db.engine import create_engine, create_session_factory
    from kioskdesk.helpdesk.settings import get_settings
    from kioskdesk.helpdesk.store.sql import SqlDocumentStore

    settings = get_settings()
    if not settings.database_url:
        msg = "KIOSK_DATABASE_URL is not set"
        raise click.UsageError(msg)

    async def _main() -> T:
        engine = create_engine(settings.database_url, pool_size=1, max_overflow=0)
        try:
            return await action(SqlDocumentStore(create_session_factory(engine)))
        finally:
            await engine.dispose()

    return asyncio.run(_main())


@main.group()
def user() -> None:
    """Provision users for sign-in."""


@user.command("create")
@click.option("--email", required=True)
@click.option("--name", required=True, help="Display name.")
@click.option("--cognito-id", required=True, help="Token subject issued by the identity provider.")
@click.option("--username", default=None, help="Defaults to the local part of the email.")
def create_user(email: str, name: str, cognito_id: str, username: str | None) -> None:
    """Create a user record."""
    from kioskdesk.helpdesk.errors import HelpdeskError
    from kioskdesk.helpdesk.managers import users

    try:
        record = _run_with_store(
            lambda store: users.create_user(store, email=email, name=name, cognito_id=cognito_id, username=username)
        )
    except HelpdeskError as exc:
        raise click.ClickException(exc.message) from exc
    click.echo(f"Created user {record.user_id} <{record.email}>")


@user.command("list")
def list_users() -> None:
    """Print every user as ``user_id  email  name``."""
    from kioskdesk.helpdesk.managers import users

    for record in _run_with_store(users.list_users):
        click.echo(f"{record.user_id}\t{record.email}\t{record.name}")


if __name__ == "__main__":
    main()
