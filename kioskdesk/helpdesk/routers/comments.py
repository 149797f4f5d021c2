"""Ticket comment endpoints (RPC-style)."""

from __future__ import annotations

from fastapi import APIRouter, status

from kioskdesk.helpdesk.deps import CurrentIdentity, Store
from kioskdesk.helpdesk.managers import comments
from kioskdesk.helpdesk.models.api import CommentCreate
from kioskdesk.helpdesk.models.records import TicketComment

router = APIRouter(prefix="/workspaces/{workspace_id}/tickets/{ticket_id}/comments", tags=["comments"])


@router.get("/list", response_model=list[TicketComment])
async def list_comments(
    workspace_id: str,
    ticket_id: str,
    store: Store,
    identity: CurrentIdentity,
) -> list[TicketComment]:
    """Comments on a ticket, newest first."""
    return await comments.list_comments(store, identity, workspace_id, ticket_id)


@router.post("/create", response_model=TicketComment, status_code=status.HTTP_201_CREATED)
async def add_comment(
    workspace_id: str,
    ticket_id: str,
    body: CommentCreate,
    store: Store,
    identity: CurrentIdentity,
) -> TicketComment:
    return await comments.add_comment(store, identity, workspace_id, ticket_id, body.content)
