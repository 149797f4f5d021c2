"""Ticket comment thread.

Comments live inline on the ticket as an ordered list.  Any member may
comment, viewers included; the author's display name and role are frozen
onto the comment when it is written.
"""

from __future__ import annotations

from loguru import logger

from kioskdesk.helpdesk.errors import InvalidInputError
from kioskdesk.helpdesk.identity import Identity
from kioskdesk.helpdesk.managers._shared import new_record_id, utcnow
from kioskdesk.helpdesk.managers.access import validate_workspace_access
from kioskdesk.helpdesk.managers.tickets import get_scoped_ticket
from kioskdesk.helpdesk.models.records import TicketComment, TicketRecord
from kioskdesk.helpdesk.store.base import DocumentStore

MAX_COMMENT_LENGTH = 2000


async def list_comments(
    store: DocumentStore,
    identity: Identity,
    workspace_id: str,
    ticket_id: str,
) -> list[TicketComment]:
    """Comments on a ticket, newest first."""
    access = await validate_workspace_access(store, identity, workspace_id)
    ticket = await get_scoped_ticket(store, access, ticket_id)
    return sorted(ticket.comments, key=lambda c: c.created_at, reverse=True)


async def add_comment(
    store: DocumentStore,
    identity: Identity,
    workspace_id: str,
    ticket_id: str,
    content: str,
) -> TicketComment:
    """Append a comment.  Content is trimmed and must be 1..2000 characters."""
    content = content.strip()
    if not content:
        msg = "Comment content is required"
        raise InvalidInputError(msg)
    if len(content) > MAX_COMMENT_LENGTH:
        msg = f"Comment exceeds {MAX_COMMENT_LENGTH} characters"
        raise InvalidInputError(msg)

    access = await validate_workspace_access(store, identity, workspace_id)
    ticket = await get_scoped_ticket(store, access, ticket_id)

    now = utcnow()
    comment = TicketComment(
        id=new_record_id(),
        user_id=identity.user_id,
        user_name=identity.name,
        user_role=access.role,
        content=content,
        created_at=now,
    )
    await store.append(TicketRecord, ticket.id, "comments", comment, {"updated_date": now})
    logger.debug("Comment added to ticket {} by {}", ticket.ticket_id, identity.user_id)
    return comment
