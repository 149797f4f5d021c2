"""FastAPI dependency injection for stores, settings and the caller identity.

Usage in route handlers::

    @router.get("/{workspace_id}/tickets/list")
    async def list_tickets(workspace_id: str, store: Store, identity: CurrentIdentity) -> TicketListResult:
        ...

Store dependencies raise HTTP 503 if the backing service was not configured
(S3 settings unset).  Identity resolution raises ``UnauthenticatedError``,
answered with 401 by the app exception handler.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from kioskdesk.helpdesk.errors import UnauthenticatedError
from kioskdesk.helpdesk.identity import Identity, decode_token, resolve_identity
from kioskdesk.helpdesk.settings import KioskSettings, get_settings
from kioskdesk.helpdesk.store.base import DocumentStore
from kioskdesk.helpdesk.store.objects import ObjectStore

_bearer = HTTPBearer(auto_error=False)


async def get_store(request: Request) -> DocumentStore:
    """Return the document store created during lifespan."""
    store: DocumentStore | None = request.app.state.store
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Document store not configured (KIOSK_DATABASE_URL is unset).",
        )
    return store


async def get_object_store(request: Request) -> ObjectStore:
    """Return the shared S3 object store."""
    objects: ObjectStore | None = request.app.state.objects
    if objects is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Attachment storage not configured (KIOSK_S3_* settings are unset).",
        )
    return objects


Settings = Annotated[KioskSettings, Depends(get_settings)]
"""Annotated dependency: cached service settings."""

Store = Annotated[DocumentStore, Depends(get_store)]
"""Annotated dependency: shared document store."""

Objects = Annotated[ObjectStore, Depends(get_object_store)]
"""Annotated dependency: shared S3 object store."""


async def get_identity(
    store: Store,
    settings: Settings,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
) -> Identity:
    """Verify the bearer token and resolve the caller."""
    if credentials is None:
        msg = "Authentication required"
        raise UnauthenticatedError(msg)
    if settings.jwt_secret is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Token verification not configured (KIOSK_JWT_SECRET is unset).",
        )

    claims = decode_token(
        credentials.credentials,
        settings.jwt_secret.get_secret_value(),
        algorithm=settings.jwt_algorithm,
        audience=settings.jwt_audience,
    )
    return await resolve_identity(store, claims)


CurrentIdentity = Annotated[Identity, Depends(get_identity)]
"""Annotated dependency: the authenticated caller."""
