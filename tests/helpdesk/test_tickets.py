"""Tests for the ticket manager."""

from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from kioskdesk.helpdesk.errors import (
    AccessDeniedError,
    InsufficientPermissionsError,
    InvalidInputError,
    KioskNotFoundError,
    StorageError,
    TicketNotFoundError,
    TicketStateError,
)
from kioskdesk.helpdesk.managers import tickets
from kioskdesk.helpdesk.models.api import TicketCreate, TicketFilters, TicketUpdate, UserTicketFilters
from kioskdesk.helpdesk.models.enums import TicketStatus, WorkspaceRole
from kioskdesk.helpdesk.models.records import TicketRecord, UserRecord

if TYPE_CHECKING:
    from conftest import Seeder

    from kioskdesk.helpdesk.store.memory import MemoryDocumentStore


@pytest.fixture
async def world(seed: Seeder) -> dict:
    """One workspace with an admin, a member, a viewer and a kiosk."""
    admin = await seed.user("Ada")
    member = await seed.user("Max")
    viewer = await seed.user("Vic")
    ws = await seed.workspace("Downtown")
    await seed.member(ws, admin, WorkspaceRole.ADMIN)
    await seed.member(ws, member, WorkspaceRole.MEMBER)
    await seed.member(ws, viewer, WorkspaceRole.VIEWER)
    kiosk = await seed.kiosk(ws, "1 Main St", description="Lobby")
    return {"admin": admin, "member": member, "viewer": viewer, "ws": ws, "kiosk": kiosk}


# ---------------------------------------------------------------------------
# list_tickets
# ---------------------------------------------------------------------------


async def test_status_and_search_filter(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    ws, kiosk, member = world["ws"], world["kiosk"], world["member"]
    wanted = await seed.ticket(ws, kiosk, member, "Screen not responding")
    await seed.ticket(ws, kiosk, member, "Card reader jammed")
    await seed.ticket(ws, kiosk, member, "Screen cracked", status=TicketStatus.RESOLVED)

    result = await tickets.list_tickets(
        store, member, ws.id, TicketFilters(status=TicketStatus.OPEN, search_term="screen")
    )

    assert [t.id for t in result.tickets] == [wanted.id]
    assert result.workspace.id == ws.id
    assert result.role == WorkspaceRole.MEMBER


async def test_search_matches_description(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    ws, kiosk, member = world["ws"], world["kiosk"], world["member"]
    hit = await seed.ticket(ws, kiosk, member, "Broken", description="Touch SCREEN dead")
    await seed.ticket(ws, kiosk, member, "Broken", description="Printer out of paper")

    result = await tickets.list_tickets(store, member, ws.id, TicketFilters(search_term="  screen "))
    assert [t.id for t in result.tickets] == [hit.id]


async def test_current_month_default(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    ws, kiosk, member = world["ws"], world["kiosk"], world["member"]
    march = await seed.ticket(ws, kiosk, member, "March", reported_date=datetime(2024, 3, 2, tzinfo=UTC))
    moved_in = await seed.ticket(
        ws,
        kiosk,
        member,
        "Scheduled",
        reported_date=datetime(2024, 1, 1, tzinfo=UTC),
        maintenance_time=datetime(2024, 3, 31, 22, 0, tzinfo=UTC),
    )
    await seed.ticket(ws, kiosk, member, "February", reported_date=datetime(2024, 2, 29, 23, 0, tzinfo=UTC))
    await seed.ticket(
        ws,
        kiosk,
        member,
        "Moved out",
        reported_date=datetime(2024, 3, 5, tzinfo=UTC),
        maintenance_time=datetime(2024, 4, 1, 0, 0, tzinfo=UTC),
    )

    result = await tickets.list_tickets(
        store,
        member,
        ws.id,
        TicketFilters(use_current_month_default=True),
        today=date(2024, 3, 15),
        tz=UTC,
    )

    assert {t.id for t in result.tickets} == {march.id, moved_in.id}


async def test_explicit_dates_override_month_default(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    ws, kiosk, member = world["ws"], world["kiosk"], world["member"]
    feb = await seed.ticket(ws, kiosk, member, "February", reported_date=datetime(2024, 2, 10, tzinfo=UTC))

    result = await tickets.list_tickets(
        store,
        member,
        ws.id,
        TicketFilters(date_from="2024-02-01", date_to="2024-02-29", use_current_month_default=True),
        today=date(2024, 3, 15),
        tz=UTC,
    )
    assert [t.id for t in result.tickets] == [feb.id]


async def test_list_is_idempotent(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    ws, kiosk, member = world["ws"], world["kiosk"], world["member"]
    for n in range(3):
        await seed.ticket(ws, kiosk, member, f"T{n}", reported_date=datetime(2024, 3, n + 1, tzinfo=UTC))

    filters = TicketFilters(date_from="2024-03-01", date_to="2024-03-31")
    first = await tickets.list_tickets(store, member, ws.id, filters, tz=UTC)
    second = await tickets.list_tickets(store, member, ws.id, filters, tz=UTC)

    assert first == second
    assert sorted(t.title for t in first.tickets) == ["T0", "T1", "T2"]


async def test_list_enriches_names(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    ws, kiosk, member, admin = world["ws"], world["kiosk"], world["member"], world["admin"]
    await seed.ticket(ws, kiosk, member, assignee_id=admin.user_id)

    [view] = (await tickets.list_tickets(store, member, ws.id)).tickets
    assert view.reporter_name == "Max"
    assert view.assignee_name == "Ada"


def _failing_list(store: MemoryDocumentStore, failing: type) -> AbstractContextManager:
    """Make ``store.list`` raise StorageError for one record type."""
    original = store.list

    async def list_(model, where=None):
        if model is failing:
            raise StorageError(f"list {model.__name__}", "connection reset")
        return await original(model, where)

    return patch.object(store, "list", new=list_)


async def test_ticket_fetch_failure_propagates(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    await seed.ticket(world["ws"], world["kiosk"], world["member"])

    with _failing_list(store, TicketRecord), pytest.raises(StorageError, match="connection reset"):
        await tickets.list_tickets(store, world["member"], world["ws"].id)


async def test_user_lookup_failure_degrades_names(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    ws, kiosk, member, admin = world["ws"], world["kiosk"], world["member"], world["admin"]
    ticket = await seed.ticket(ws, kiosk, member, assignee_id=admin.user_id)

    with _failing_list(store, UserRecord):
        result = await tickets.list_tickets(store, member, ws.id)

    [view] = result.tickets
    assert view.id == ticket.id
    assert view.reporter_name is None
    assert view.assignee_name is None


async def test_list_skips_deleted_and_foreign(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    ws, kiosk, member = world["ws"], world["kiosk"], world["member"]
    other = await seed.workspace("Uptown")
    other_kiosk = await seed.kiosk(other)
    live = await seed.ticket(ws, kiosk, member)
    await seed.ticket(ws, kiosk, member, is_deleted=True)
    await seed.ticket(other, other_kiosk, member)

    result = await tickets.list_tickets(store, member, ws.id)
    assert [t.id for t in result.tickets] == [live.id]


async def test_list_includes_tickets_keyed_by_external_id(
    seed: Seeder, store: MemoryDocumentStore, world: dict
) -> None:
    ws, kiosk, member = world["ws"], world["kiosk"], world["member"]
    legacy = await seed.ticket(ws, kiosk, member, workspace_key=ws.workspace_id)

    result = await tickets.list_tickets(store, member, ws.id)
    assert [t.id for t in result.tickets] == [legacy.id]


async def test_bad_date_fails_before_store(store: MemoryDocumentStore, world: dict) -> None:
    # A ticket fetch would raise StorageError instead.
    with _failing_list(store, TicketRecord), pytest.raises(InvalidInputError):
        await tickets.list_tickets(store, world["member"], world["ws"].id, TicketFilters(date_from="03/01/2024"))

    with _failing_list(store, TicketRecord), pytest.raises(InvalidInputError):
        await tickets.list_user_tickets(
            store, world["member"], UserTicketFilters(date_from="2024-03-31", date_to="2024-03-01")
        )


async def test_list_requires_membership(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    outsider = await seed.user("Olga")
    with pytest.raises(AccessDeniedError):
        await tickets.list_tickets(store, outsider, world["ws"].id)


# ---------------------------------------------------------------------------
# get_ticket
# ---------------------------------------------------------------------------


async def test_get_ticket(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    ticket = await seed.ticket(world["ws"], world["kiosk"], world["member"])
    detail = await tickets.get_ticket(store, world["viewer"], world["ws"].id, ticket.id)
    assert detail.ticket.id == ticket.id
    assert detail.ticket.reporter_name == "Max"
    assert detail.role == WorkspaceRole.VIEWER


async def test_cross_tenant_ticket_is_not_found(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    other = await seed.workspace("Uptown")
    foreign = await seed.ticket(other, await seed.kiosk(other), world["member"])

    with pytest.raises(TicketNotFoundError):
        await tickets.get_ticket(store, world["member"], world["ws"].id, foreign.id)


async def test_deleted_ticket_is_not_found(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    ticket = await seed.ticket(world["ws"], world["kiosk"], world["member"], is_deleted=True)
    with pytest.raises(TicketNotFoundError):
        await tickets.get_ticket(store, world["admin"], world["ws"].id, ticket.id)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


async def test_create_ticket_defaults(store: MemoryDocumentStore, world: dict) -> None:
    body = TicketCreate(kiosk_id=world["kiosk"].id, title="No power", description="Dead")
    view = await tickets.create_ticket(store, world["member"], world["ws"].id, body)

    assert view.ticket_id.startswith("ticket-")
    assert view.status == TicketStatus.OPEN
    assert view.reporter_id == world["member"].user_id
    assert view.reporter_name == "Max"
    assert view.workspace_id == world["ws"].id
    assert view.reported_date.tzinfo is not None
    assert await store.get(TicketRecord, view.id) is not None


async def test_viewer_cannot_create(store: MemoryDocumentStore, world: dict) -> None:
    body = TicketCreate(kiosk_id=world["kiosk"].id, title="No power", description="")
    with pytest.raises(InsufficientPermissionsError) as exc_info:
        await tickets.create_ticket(store, world["viewer"], world["ws"].id, body)
    assert (exc_info.value.required, exc_info.value.actual) == ("MEMBER", "VIEWER")


async def test_create_rejects_foreign_kiosk(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    other = await seed.workspace("Uptown")
    foreign = await seed.kiosk(other)
    body = TicketCreate(kiosk_id=foreign.id, title="x", description="")
    with pytest.raises(KioskNotFoundError):
        await tickets.create_ticket(store, world["member"], world["ws"].id, body)


async def test_update_ticket_partial(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    ticket = await seed.ticket(world["ws"], world["kiosk"], world["member"], "Old")
    updated = await tickets.update_ticket(
        store, world["member"], world["ws"].id, ticket.id, TicketUpdate(status=TicketStatus.IN_PROGRESS)
    )
    assert updated.status == TicketStatus.IN_PROGRESS
    assert updated.title == "Old"
    assert updated.updated_date is not None


@pytest.mark.parametrize("field", ["status", "title", "description"])
def test_update_rejects_null_required_field(field: str) -> None:
    with pytest.raises(ValidationError, match="cannot be null"):
        TicketUpdate.model_validate({field: None})


async def test_update_can_clear_assignee(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    ticket = await seed.ticket(world["ws"], world["kiosk"], world["member"], assignee_id=world["member"].user_id)
    updated = await tickets.update_ticket(
        store, world["member"], world["ws"].id, ticket.id, TicketUpdate(assignee_id=None)
    )
    assert updated.assignee_id is None
    assert updated.status == TicketStatus.OPEN


async def test_assignee_must_be_member(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    ticket = await seed.ticket(world["ws"], world["kiosk"], world["member"])
    outsider = await seed.user("Olga")

    with pytest.raises(InvalidInputError):
        await tickets.update_ticket_assignee(store, world["member"], world["ws"].id, ticket.id, outsider.user_id)

    assigned = await tickets.update_ticket_assignee(
        store, world["member"], world["ws"].id, ticket.id, world["admin"].user_id
    )
    assert assigned.assignee_id == world["admin"].user_id

    cleared = await tickets.update_ticket_assignee(store, world["member"], world["ws"].id, ticket.id, None)
    assert cleared.assignee_id is None


async def test_maintenance_time_set_and_clear(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    ticket = await seed.ticket(world["ws"], world["kiosk"], world["member"])

    scheduled = await tickets.update_ticket_maintenance_time(
        store, world["member"], world["ws"].id, ticket.id, "2024-03-20T14:30", tz=UTC
    )
    assert scheduled.maintenance_time == datetime(2024, 3, 20, 14, 30, tzinfo=UTC)

    cleared = await tickets.update_ticket_maintenance_time(store, world["member"], world["ws"].id, ticket.id, "")
    assert cleared.maintenance_time is None


@pytest.mark.parametrize("bad", ["2024-03-20 14:30", "2024-03-20", "2024-13-20T14:30", "soon"])
async def test_maintenance_time_rejects_bad_format(
    seed: Seeder, store: MemoryDocumentStore, world: dict, bad: str
) -> None:
    ticket = await seed.ticket(world["ws"], world["kiosk"], world["member"])
    with pytest.raises(InvalidInputError):
        await tickets.update_ticket_maintenance_time(store, world["member"], world["ws"].id, ticket.id, bad)


async def test_move_ticket_to_other_kiosk(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    ticket = await seed.ticket(world["ws"], world["kiosk"], world["member"])
    second = await seed.kiosk(world["ws"], "2 Side St")

    moved = await tickets.update_ticket_kiosk(store, world["member"], world["ws"].id, ticket.id, second.id)
    assert moved.kiosk_id == second.id


async def test_soft_delete_and_restore(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    ws, admin = world["ws"], world["admin"]
    ticket = await seed.ticket(ws, world["kiosk"], world["member"])

    with pytest.raises(InsufficientPermissionsError):
        await tickets.soft_delete_ticket(store, world["member"], ws.id, ticket.id)

    deleted = await tickets.soft_delete_ticket(store, admin, ws.id, ticket.id)
    assert deleted.is_deleted
    assert deleted.deleted_by == admin.user_id
    assert (await tickets.list_tickets(store, admin, ws.id)).tickets == []

    with pytest.raises(TicketStateError):
        await tickets.soft_delete_ticket(store, admin, ws.id, ticket.id)

    restored = await tickets.restore_ticket(store, admin, ws.id, ticket.id)
    assert not restored.is_deleted
    assert restored.deleted_at is None

    with pytest.raises(TicketStateError):
        await tickets.restore_ticket(store, admin, ws.id, ticket.id)


# ---------------------------------------------------------------------------
# list_user_tickets
# ---------------------------------------------------------------------------


async def test_user_tickets_span_workspaces(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    member = world["member"]
    uptown = await seed.workspace("Uptown")
    await seed.member(uptown, member, WorkspaceRole.VIEWER)
    uptown_kiosk = await seed.kiosk(uptown, "9 High St")
    hidden = await seed.workspace("Hidden")

    older = await seed.ticket(world["ws"], world["kiosk"], member, reported_date=datetime(2024, 3, 1, tzinfo=UTC))
    newer = await seed.ticket(uptown, uptown_kiosk, member, reported_date=datetime(2024, 3, 9, tzinfo=UTC))
    await seed.ticket(hidden, await seed.kiosk(hidden), member)

    result = await tickets.list_user_tickets(store, member)

    assert [t.id for t in result.tickets] == [newer.id, older.id]
    assert result.total_count == 2
    assert {w.name for w in result.workspaces} == {"Downtown", "Uptown"}
    assert result.tickets[0].workspace_name == "Uptown"
    assert result.tickets[0].kiosk_address == "9 High St"
    assert result.tickets[1].kiosk_description == "Lobby"


async def test_user_tickets_unknown_kiosk(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    ticket = await seed.ticket(world["ws"], world["kiosk"], world["member"])
    await store.update(TicketRecord, ticket.id, {"kiosk_id": "gone"})

    result = await tickets.list_user_tickets(store, world["member"])
    assert result.tickets[0].kiosk_address == tickets.UNKNOWN_KIOSK


async def test_user_tickets_filters(seed: Seeder, store: MemoryDocumentStore, world: dict) -> None:
    member, admin = world["member"], world["admin"]
    uptown = await seed.workspace("Uptown")
    await seed.member(uptown, member, WorkspaceRole.MEMBER)
    uptown_ticket = await seed.ticket(uptown, await seed.kiosk(uptown), admin)
    mine = await seed.ticket(world["ws"], world["kiosk"], admin, assignee_id=member.user_id)
    await seed.ticket(world["ws"], world["kiosk"], admin, assignee_id=admin.user_id)

    only_mine = await tickets.list_user_tickets(store, member, UserTicketFilters(only_my_tickets=True))
    assert [t.id for t in only_mine.tickets] == [mine.id]

    one_workspace = await tickets.list_user_tickets(store, member, UserTicketFilters(workspace_id=uptown.id))
    assert [t.id for t in one_workspace.tickets] == [uptown_ticket.id]
    assert [w.id for w in one_workspace.workspaces] == [uptown.id]
