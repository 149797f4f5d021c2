"""Ticket operations.

Tickets are soft-deleted: ``soft_delete_ticket`` flags the row and every
read here skips flagged rows, except ``restore_ticket``.  A ticket fetched
under one workspace but owned by another is reported as
``TicketNotFoundError``.

Listing is a query pipeline: workspace guard, date normalization, store
fetch with equality filters pushed down, then in-memory date and text
filters, then display-name enrichment.
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime, tzinfo
from typing import Any

from loguru import logger

from kioskdesk.helpdesk.dates import (
    DateRange,
    current_month_range,
    is_ticket_in_date_range,
    localize,
    normalize_date_range,
    today_local,
)
from kioskdesk.helpdesk.errors import InvalidInputError, TicketNotFoundError, TicketStateError
from kioskdesk.helpdesk.identity import Identity
from kioskdesk.helpdesk.managers._shared import load_user_names, new_external_id, new_record_id, utcnow
from kioskdesk.helpdesk.managers.access import (
    WorkspaceAccess,
    find_workspace,
    validate_workspace_access,
)
from kioskdesk.helpdesk.managers.kiosks import get_scoped_kiosk, workspace_keys
from kioskdesk.helpdesk.models.api import (
    TicketCreate,
    TicketDetail,
    TicketFilters,
    TicketListResult,
    TicketUpdate,
    TicketView,
    UserTicketFilters,
    UserTicketsResult,
    UserTicketView,
)
from kioskdesk.helpdesk.models.enums import WorkspaceRole
from kioskdesk.helpdesk.models.records import KioskRecord, MembershipRecord, TicketRecord, WorkspaceRecord
from kioskdesk.helpdesk.store.base import DocumentStore

_LOCAL_MINUTE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}$")
UNKNOWN_KIOSK = "Unknown kiosk"


async def get_scoped_ticket(
    store: DocumentStore,
    access: WorkspaceAccess,
    ticket_id: str,
    *,
    include_deleted: bool = False,
) -> TicketRecord:
    """Fetch a ticket and check it belongs to the accessed workspace."""
    ticket = await store.get(TicketRecord, ticket_id)
    if ticket is None or ticket.workspace_id not in workspace_keys(access):
        raise TicketNotFoundError(ticket_id)
    if ticket.is_deleted and not include_deleted:
        raise TicketNotFoundError(ticket_id)
    return ticket


async def _require_member(store: DocumentStore, access: WorkspaceAccess, user_id: str) -> None:
    rows = await store.list(MembershipRecord, {"workspace_id": workspace_keys(access), "user_id": user_id})
    if not rows:
        msg = f"User {user_id} is not a member of workspace {access.workspace.workspace_id}"
        raise InvalidInputError(msg)


async def _enrich(store: DocumentStore, tickets: list[TicketRecord]) -> list[TicketView]:
    names = await load_user_names(store, [uid for t in tickets for uid in (t.reporter_id, t.assignee_id)])
    return [
        TicketView.model_validate({
            **t.model_dump(),
            "reporter_name": names.get(t.reporter_id),
            "assignee_name": names.get(t.assignee_id) if t.assignee_id else None,
        })
        for t in tickets
    ]


def _matches_term(ticket: TicketRecord, term: str) -> bool:
    return term in ticket.title.lower() or term in ticket.description.lower()


def _store_filter(keys: list[str], filters: TicketFilters) -> dict[str, Any]:
    where: dict[str, Any] = {"workspace_id": keys, "is_deleted": False}
    if filters.status is not None:
        where["status"] = filters.status
    if filters.assignee_id:
        where["assignee_id"] = filters.assignee_id
    if filters.kiosk_id:
        where["kiosk_id"] = filters.kiosk_id
    return where


def _date_bounds(filters: TicketFilters, *, today: date | None, tz: tzinfo | None) -> DateRange:
    date_from, date_to = filters.date_from, filters.date_to
    if filters.use_current_month_default and not date_from and not date_to:
        date_from, date_to = current_month_range(today or today_local(tz))
    return normalize_date_range(date_from, date_to, tz=tz)


def _apply_filters(
    tickets: list[TicketRecord],
    filters: TicketFilters,
    bounds: DateRange,
    *,
    tz: tzinfo | None,
) -> list[TicketRecord]:
    if not bounds.is_open:
        tickets = [t for t in tickets if is_ticket_in_date_range(t, bounds.start, bounds.end, tz=tz)]
    if filters.search_term and filters.search_term.strip():
        term = filters.search_term.strip().lower()
        tickets = [t for t in tickets if _matches_term(t, term)]
    return tickets


# -- Queries -------------------------------------------------------------------


async def list_tickets(
    store: DocumentStore,
    identity: Identity,
    workspace_id: str,
    filters: TicketFilters | None = None,
    *,
    today: date | None = None,
    tz: tzinfo | None = None,
) -> TicketListResult:
    """List a workspace's live tickets in store order.

    Status, assignee and kiosk are exact matches; ``search_term`` matches
    title or description case-insensitively; the date bounds are inclusive
    calendar days applied to each ticket's effective date.  When
    ``use_current_month_default`` is set and no bounds are given, the
    current month (relative to ``today``) is used.

    Raises ``InvalidInputError`` for malformed date bounds, before the
    store is queried.
    """
    filters = filters or TicketFilters()
    access = await validate_workspace_access(store, identity, workspace_id)

    bounds = _date_bounds(filters, today=today, tz=tz)

    tickets = await store.list(TicketRecord, _store_filter(workspace_keys(access), filters))
    tickets = _apply_filters(tickets, filters, bounds, tz=tz)
    return TicketListResult(tickets=await _enrich(store, tickets), workspace=access.workspace, role=access.role)


async def get_ticket(store: DocumentStore, identity: Identity, workspace_id: str, ticket_id: str) -> TicketDetail:
    access = await validate_workspace_access(store, identity, workspace_id)
    ticket = await get_scoped_ticket(store, access, ticket_id)
    [view] = await _enrich(store, [ticket])
    return TicketDetail(ticket=view, workspace=access.workspace, role=access.role)


async def list_user_tickets(
    store: DocumentStore,
    identity: Identity,
    filters: UserTicketFilters | None = None,
    *,
    today: date | None = None,
    tz: tzinfo | None = None,
) -> UserTicketsResult:
    """Tickets across every workspace the caller belongs to, newest report first.

    Accepts the ``list_tickets`` filters plus ``workspace_id`` (one workspace
    only) and ``only_my_tickets`` (assigned to the caller).  Rows carry the
    workspace name and kiosk address for display.  A failure in any one
    workspace fails the whole call.
    """
    filters = filters or UserTicketFilters()
    if filters.only_my_tickets:
        filters = filters.model_copy(update={"assignee_id": identity.user_id})
    bounds = _date_bounds(filters, today=today, tz=tz)
    memberships = await store.list(MembershipRecord, {"user_id": identity.user_id})

    workspaces: list[WorkspaceRecord] = []
    for membership in memberships:
        if membership.role is None:
            continue
        workspace = await find_workspace(store, membership.workspace_id)
        if workspace is None:
            logger.warning("Membership {} points at missing workspace {}", membership.id, membership.workspace_id)
            continue
        if filters.workspace_id and filters.workspace_id not in (workspace.id, workspace.workspace_id):
            continue
        if all(w.id != workspace.id for w in workspaces):
            workspaces.append(workspace)

    rows: list[tuple[WorkspaceRecord, TicketRecord]] = []
    for workspace in workspaces:
        keys = sorted({workspace.id, workspace.workspace_id})
        tickets = await store.list(TicketRecord, _store_filter(keys, filters))
        rows.extend((workspace, t) for t in _apply_filters(tickets, filters, bounds, tz=tz))

    kiosk_ids = sorted({t.kiosk_id for _, t in rows})
    kiosks = {k.id: k for k in await store.list(KioskRecord, {"id": kiosk_ids})} if kiosk_ids else {}
    views = await _enrich(store, [t for _, t in rows])

    tickets: list[UserTicketView] = []
    for (workspace, ticket), view in zip(rows, views, strict=True):
        kiosk = kiosks.get(ticket.kiosk_id)
        tickets.append(
            UserTicketView.model_validate({
                **view.model_dump(),
                "workspace_name": workspace.name,
                "kiosk_address": kiosk.address if kiosk else UNKNOWN_KIOSK,
                "kiosk_description": (kiosk.description or "") if kiosk else "",
            })
        )
    tickets.sort(key=lambda t: localize(t.reported_date, tz), reverse=True)
    return UserTicketsResult(tickets=tickets, workspaces=workspaces, total_count=len(tickets))


# -- Mutations -----------------------------------------------------------------


async def create_ticket(store: DocumentStore, identity: Identity, workspace_id: str, body: TicketCreate) -> TicketView:
    """Create a ticket against a kiosk in the workspace (MEMBER or higher)."""
    access = await validate_workspace_access(store, identity, workspace_id, WorkspaceRole.MEMBER)
    kiosk = await get_scoped_kiosk(store, access, body.kiosk_id)
    if body.assignee_id:
        await _require_member(store, access, body.assignee_id)

    now = utcnow()
    ticket = await store.create(
        TicketRecord(
            id=new_record_id(),
            ticket_id=new_external_id("ticket"),
            workspace_id=access.workspace.id,
            kiosk_id=kiosk.id,
            reporter_id=body.reporter_id or identity.user_id,
            assignee_id=body.assignee_id or None,
            status=body.status,
            title=body.title,
            description=body.description,
            reported_date=now,
            updated_date=now,
            maintenance_time=body.maintenance_time,
        )
    )
    logger.info("Ticket created: {} (kiosk={}, by={})", ticket.ticket_id, kiosk.kiosk_id, identity.user_id)
    [view] = await _enrich(store, [ticket])
    return view


async def _update(store: DocumentStore, ticket: TicketRecord, changes: dict[str, Any]) -> TicketRecord:
    changes["updated_date"] = utcnow()
    return await store.update(TicketRecord, ticket.id, changes)


async def update_ticket(
    store: DocumentStore,
    identity: Identity,
    workspace_id: str,
    ticket_id: str,
    body: TicketUpdate,
) -> TicketRecord:
    """Partially update a ticket (MEMBER or higher)."""
    access = await validate_workspace_access(store, identity, workspace_id, WorkspaceRole.MEMBER)
    ticket = await get_scoped_ticket(store, access, ticket_id)

    changes = body.model_dump(exclude_unset=True)
    if not changes:
        return ticket
    if changes.get("assignee_id"):
        await _require_member(store, access, changes["assignee_id"])
    return await _update(store, ticket, changes)


def parse_local_minute(value: str, tz: tzinfo | None = None) -> datetime:
    """Parse ``YYYY-MM-DDTHH:MM`` in local time and return it in UTC."""
    if not _LOCAL_MINUTE_RE.match(value):
        msg = f"Invalid maintenance time: {value!r} (expected YYYY-MM-DDTHH:MM)"
        raise InvalidInputError(msg)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        msg = f"Invalid maintenance time: {value!r}"
        raise InvalidInputError(msg) from None
    return localize(parsed, tz).astimezone(UTC)


async def update_ticket_maintenance_time(
    store: DocumentStore,
    identity: Identity,
    workspace_id: str,
    ticket_id: str,
    maintenance_time: str | None,
    *,
    tz: tzinfo | None = None,
) -> TicketRecord:
    """Schedule (or with an empty value, clear) the maintenance visit."""
    access = await validate_workspace_access(store, identity, workspace_id, WorkspaceRole.MEMBER)
    ticket = await get_scoped_ticket(store, access, ticket_id)

    value = (maintenance_time or "").strip()
    scheduled = parse_local_minute(value, tz) if value else None
    return await _update(store, ticket, {"maintenance_time": scheduled})


async def update_ticket_kiosk(
    store: DocumentStore,
    identity: Identity,
    workspace_id: str,
    ticket_id: str,
    kiosk_id: str,
) -> TicketRecord:
    """Move a ticket to another kiosk of the same workspace."""
    access = await validate_workspace_access(store, identity, workspace_id, WorkspaceRole.MEMBER)
    ticket = await get_scoped_ticket(store, access, ticket_id)
    kiosk = await get_scoped_kiosk(store, access, kiosk_id)
    return await _update(store, ticket, {"kiosk_id": kiosk.id})


async def update_ticket_assignee(
    store: DocumentStore,
    identity: Identity,
    workspace_id: str,
    ticket_id: str,
    assignee_id: str | None,
) -> TicketRecord:
    """Assign a ticket to a workspace member, or unassign it with None."""
    access = await validate_workspace_access(store, identity, workspace_id, WorkspaceRole.MEMBER)
    ticket = await get_scoped_ticket(store, access, ticket_id)
    if assignee_id:
        await _require_member(store, access, assignee_id)
    return await _update(store, ticket, {"assignee_id": assignee_id or None})


async def soft_delete_ticket(
    store: DocumentStore,
    identity: Identity,
    workspace_id: str,
    ticket_id: str,
) -> TicketRecord:
    """Hide a ticket from every listing (ADMIN only)."""
    access = await validate_workspace_access(store, identity, workspace_id, WorkspaceRole.ADMIN)
    ticket = await get_scoped_ticket(store, access, ticket_id, include_deleted=True)
    if ticket.is_deleted:
        msg = f"Ticket already deleted: {ticket_id}"
        raise TicketStateError(msg)

    now = utcnow()
    deleted = await store.update(
        TicketRecord,
        ticket.id,
        {"is_deleted": True, "deleted_at": now, "deleted_by": identity.user_id, "updated_date": now},
    )
    logger.info("Ticket soft-deleted: {} (by={})", ticket.ticket_id, identity.user_id)
    return deleted


async def restore_ticket(store: DocumentStore, identity: Identity, workspace_id: str, ticket_id: str) -> TicketRecord:
    """Undo a soft delete (ADMIN only)."""
    access = await validate_workspace_access(store, identity, workspace_id, WorkspaceRole.ADMIN)
    ticket = await get_scoped_ticket(store, access, ticket_id, include_deleted=True)
    if not ticket.is_deleted:
        msg = f"Ticket is not deleted: {ticket_id}"
        raise TicketStateError(msg)

    restored = await _update(store, ticket, {"is_deleted": False, "deleted_at": None, "deleted_by": None})
    logger.info("Ticket restored: {} (by={})", ticket.ticket_id, identity.user_id)
    return restored
