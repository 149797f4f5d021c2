"""User provisioning.

Users sign in through the external identity provider; a record here links
the token subject (``cognito_id``) to the ``user_id`` that memberships,
tickets and comments reference.  Provisioning is an operator task exposed
through ``kioskdesk user``, not an HTTP endpoint.
"""

from __future__ import annotations

import re

from loguru import logger

from kioskdesk.helpdesk.errors import InvalidInputError
from kioskdesk.helpdesk.managers._shared import new_record_id, utcnow
from kioskdesk.helpdesk.models.records import UserRecord
from kioskdesk.helpdesk.store.base import DocumentStore

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


async def create_user(
    store: DocumentStore,
    *,
    email: str,
    name: str,
    cognito_id: str,
    username: str | None = None,
) -> UserRecord:
    """Create a user record; email and ``cognito_id`` must be unused."""
    email = email.strip().lower()
    name = name.strip()
    cognito_id = cognito_id.strip()
    if not _EMAIL_RE.match(email):
        msg = f"Invalid email address: {email!r}"
        raise InvalidInputError(msg)
    if not name or not cognito_id:
        msg = "Name and identity provider id are required"
        raise InvalidInputError(msg)

    for user in await store.list(UserRecord):
        if user.email.lower() == email:
            msg = f"A user with email {email} already exists"
            raise InvalidInputError(msg)
        if user.cognito_id == cognito_id:
            msg = f"A user with identity provider id {cognito_id} already exists"
            raise InvalidInputError(msg)

    now = utcnow()
    user = await store.create(
        UserRecord(
            id=new_record_id(),
            user_id=cognito_id,
            email=email,
            username=(username or email.split("@")[0]).strip(),
            name=name,
            cognito_id=cognito_id,
            created_at=now,
            updated_at=now,
        )
    )
    logger.info("User {} created ({})", user.user_id, email)
    return user


async def list_users(store: DocumentStore) -> list[UserRecord]:
    """All users, sorted by name."""
    users = await store.list(UserRecord)
    return sorted(users, key=lambda u: u.name.lower())
