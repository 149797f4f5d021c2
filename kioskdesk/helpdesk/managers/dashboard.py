"""Workspace dashboard counters."""

from __future__ import annotations

from kioskdesk.helpdesk.identity import Identity
from kioskdesk.helpdesk.managers.access import validate_workspace_access
from kioskdesk.helpdesk.managers.kiosks import workspace_keys
from kioskdesk.helpdesk.models.api import WorkspaceStats
from kioskdesk.helpdesk.models.enums import OPEN_TICKET_STATUSES
from kioskdesk.helpdesk.models.records import KioskRecord, MembershipRecord, TicketRecord
from kioskdesk.helpdesk.store.base import DocumentStore


async def get_workspace_stats(store: DocumentStore, identity: Identity, workspace_id: str) -> WorkspaceStats:
    """Kiosk count, open ticket count (OPEN or IN_PROGRESS) and team size."""
    access = await validate_workspace_access(store, identity, workspace_id)
    keys = workspace_keys(access)

    kiosks = await store.list(KioskRecord, {"workspace_id": keys})
    open_tickets = await store.list(
        TicketRecord,
        {"workspace_id": keys, "is_deleted": False, "status": sorted(OPEN_TICKET_STATUSES)},
    )
    members = await store.list(MembershipRecord, {"workspace_id": keys})

    return WorkspaceStats(
        total_kiosks=len(kiosks),
        open_tickets=len(open_tickets),
        team_members=len(members),
    )
