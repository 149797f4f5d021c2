"""Caller identity.

The identity provider issues bearer JWTs whose ``sub`` claim is the external
identity (``cognito_id``).  Verification here only checks signature, expiry
and audience; everything the helpdesk knows about the caller comes from the
matching ``User`` record.

The resolved :class:`Identity` is passed explicitly into every manager call.
Nothing reads it from ambient request state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from jose import JWTError, jwt
from loguru import logger

from kioskdesk.helpdesk.errors import UnauthenticatedError
from kioskdesk.helpdesk.models.records import UserRecord
from kioskdesk.helpdesk.store.base import DocumentStore


@dataclass(frozen=True)
class Identity:
    """The authenticated caller."""

    user_id: str
    cognito_id: str
    email: str
    username: str
    name: str
    provisional: bool = False
    """True when the token is valid but no User record exists yet."""

    @classmethod
    def from_user(cls, user: UserRecord) -> Identity:
        return cls(
            user_id=user.user_id,
            cognito_id=user.cognito_id,
            email=user.email,
            username=user.username,
            name=user.name,
        )


def decode_token(token: str, key: str, *, algorithm: str = "HS256", audience: str | None = None) -> dict[str, Any]:
    """Verify a bearer token and return its claims.

    Raises ``UnauthenticatedError`` on any verification failure.
    """
    options = {"verify_aud": audience is not None}
    try:
        claims = jwt.decode(token, key, algorithms=[algorithm], audience=audience, options=options)
    except JWTError as exc:
        msg = f"Invalid or expired token: {exc}"
        raise UnauthenticatedError(msg) from None
    if not claims.get("sub"):
        msg = "Token has no subject"
        raise UnauthenticatedError(msg)
    return claims


async def resolve_identity(store: DocumentStore, claims: dict[str, Any]) -> Identity:
    """Map verified token claims to an :class:`Identity`.

    Invited users may authenticate before their User record is synced; they
    get a provisional identity keyed by the external id, which grants no
    workspace access until a membership references it.
    """
    cognito_id = claims["sub"]
    users = await store.list(UserRecord, {"cognito_id": cognito_id})
    if users:
        return Identity.from_user(users[0])

    logger.warning("User {} authenticated but has no user record", cognito_id)
    email = claims.get("email", "")
    return Identity(
        user_id=cognito_id,
        cognito_id=cognito_id,
        email=email,
        username=claims.get("username", email),
        name=claims.get("name", "User"),
        provisional=True,
    )
