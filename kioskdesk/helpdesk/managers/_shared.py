"""Helpers shared by several managers."""

from __future__ import annotations

import secrets
import string
import time
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime

from loguru import logger

from kioskdesk.helpdesk.errors import StorageError
from kioskdesk.helpdesk.models.records import UserRecord
from kioskdesk.helpdesk.store.base import DocumentStore

_ALPHABET = string.ascii_lowercase + string.digits


def utcnow() -> datetime:
    return datetime.now(UTC)


def new_record_id() -> str:
    return str(uuid.uuid4())


def new_external_id(prefix: str) -> str:
    """Human-scannable id such as ``ticket-1718000000000-k3j9x0q2a``."""
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(9))
    return f"{prefix}-{time.time_ns() // 1_000_000}-{suffix}"


async def load_user_names(store: DocumentStore, user_ids: Iterable[str | None]) -> dict[str, str]:
    """Bulk-fetch display names keyed by ``user_id``.

    Names are decoration: if the lookup fails, every name degrades to
    missing instead of failing the caller's request.
    """
    wanted = sorted({uid for uid in user_ids if uid})
    if not wanted:
        return {}
    try:
        users = await store.list(UserRecord, {"user_id": wanted})
    except StorageError as exc:
        logger.warning("User name lookup failed, names omitted: {}", exc.detail)
        return {}
    return {user.user_id: user.name for user in users}
