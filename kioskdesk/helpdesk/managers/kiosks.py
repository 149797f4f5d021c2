"""Kiosk operations.

Reads require VIEWER, create/update require MEMBER, delete requires ADMIN.
A kiosk fetched under one workspace but owned by another is reported as
``KioskNotFoundError``.
"""

from __future__ import annotations

from loguru import logger

from kioskdesk.helpdesk.errors import KioskNotFoundError
from kioskdesk.helpdesk.identity import Identity
from kioskdesk.helpdesk.managers._shared import new_external_id, new_record_id, utcnow
from kioskdesk.helpdesk.managers.access import WorkspaceAccess, validate_workspace_access
from kioskdesk.helpdesk.models.api import (
    KioskCreate,
    KioskListResult,
    KioskUpdate,
    MaintenanceRecord,
    MaintenanceSummary,
)
from kioskdesk.helpdesk.models.enums import KioskStatus, TicketStatus, WorkspaceRole
from kioskdesk.helpdesk.models.records import KioskRecord, TicketRecord
from kioskdesk.helpdesk.store.base import DocumentStore


def workspace_keys(access: WorkspaceAccess) -> list[str]:
    """Both identifiers a child record may use to reference the workspace."""
    return sorted({access.workspace.id, access.workspace.workspace_id})


async def get_scoped_kiosk(store: DocumentStore, access: WorkspaceAccess, kiosk_id: str) -> KioskRecord:
    """Fetch a kiosk and check it belongs to the accessed workspace."""
    kiosk = await store.get(KioskRecord, kiosk_id)
    if kiosk is None or kiosk.workspace_id not in workspace_keys(access):
        raise KioskNotFoundError(kiosk_id)
    return kiosk


async def list_kiosks(store: DocumentStore, identity: Identity, workspace_id: str) -> KioskListResult:
    access = await validate_workspace_access(store, identity, workspace_id)
    kiosks = await store.list(KioskRecord, {"workspace_id": workspace_keys(access)})
    return KioskListResult(kiosks=kiosks, workspace=access.workspace, role=access.role)


def _kiosk_matches(kiosk: KioskRecord, term: str) -> bool:
    fields = (kiosk.address, kiosk.location_description, kiosk.description, kiosk.kiosk_id)
    return any(term in (field or "").lower() for field in fields)


async def search_kiosks(
    store: DocumentStore,
    identity: Identity,
    workspace_id: str,
    search_term: str | None = None,
    status: KioskStatus | None = None,
) -> KioskListResult:
    """Filter kiosks by a case-insensitive term and/or status.

    The term matches address, location description, description or kiosk id.
    """
    result = await list_kiosks(store, identity, workspace_id)
    kiosks = result.kiosks

    if search_term:
        term = search_term.lower()
        kiosks = [k for k in kiosks if _kiosk_matches(k, term)]
    if status is not None:
        kiosks = [k for k in kiosks if k.status == status]

    return result.model_copy(update={"kiosks": kiosks})


async def get_kiosk(store: DocumentStore, identity: Identity, workspace_id: str, kiosk_id: str) -> KioskRecord:
    access = await validate_workspace_access(store, identity, workspace_id)
    return await get_scoped_kiosk(store, access, kiosk_id)


async def create_kiosk(store: DocumentStore, identity: Identity, workspace_id: str, body: KioskCreate) -> KioskRecord:
    """Create a kiosk (MEMBER or higher)."""
    access = await validate_workspace_access(store, identity, workspace_id, WorkspaceRole.MEMBER)

    now = utcnow()
    kiosk = await store.create(
        KioskRecord(
            id=new_record_id(),
            kiosk_id=new_external_id("kiosk"),
            workspace_id=access.workspace.id,
            address=body.address,
            location_description=body.location_description or None,
            description=body.description or None,
            remark=body.remark or None,
            status=body.status,
            created_at=now,
            updated_at=now,
        )
    )
    logger.info("Kiosk created: {} (workspace={}, by={})", kiosk.kiosk_id, workspace_id, identity.user_id)
    return kiosk


async def update_kiosk(
    store: DocumentStore,
    identity: Identity,
    workspace_id: str,
    kiosk_id: str,
    body: KioskUpdate,
) -> KioskRecord:
    """Partially update a kiosk (MEMBER or higher)."""
    access = await validate_workspace_access(store, identity, workspace_id, WorkspaceRole.MEMBER)
    existing = await get_scoped_kiosk(store, access, kiosk_id)

    changes = body.model_dump(exclude_unset=True)
    if not changes:
        return existing

    changes["updated_at"] = utcnow()
    return await store.update(KioskRecord, existing.id, changes)


async def delete_kiosk(store: DocumentStore, identity: Identity, workspace_id: str, kiosk_id: str) -> None:
    """Delete a kiosk (ADMIN only)."""
    access = await validate_workspace_access(store, identity, workspace_id, WorkspaceRole.ADMIN)
    existing = await get_scoped_kiosk(store, access, kiosk_id)
    await store.delete(KioskRecord, existing.id)
    logger.info("Kiosk deleted: {} (workspace={}, by={})", existing.kiosk_id, workspace_id, identity.user_id)


# -- Maintenance history -------------------------------------------------------


async def get_kiosk_maintenance_records(
    store: DocumentStore,
    identity: Identity,
    workspace_id: str,
    kiosk_id: str,
) -> list[MaintenanceRecord]:
    """Tickets filed against a kiosk, most recently reported first."""
    access = await validate_workspace_access(store, identity, workspace_id)
    kiosk = await get_scoped_kiosk(store, access, kiosk_id)

    tickets = await store.list(
        TicketRecord,
        {"workspace_id": workspace_keys(access), "kiosk_id": kiosk.id, "is_deleted": False},
    )
    tickets.sort(key=lambda t: t.reported_date, reverse=True)
    return [MaintenanceRecord.model_validate(t.model_dump()) for t in tickets]


async def get_kiosk_maintenance_summary(
    store: DocumentStore,
    identity: Identity,
    workspace_id: str,
    kiosk_id: str,
) -> MaintenanceSummary:
    records = await get_kiosk_maintenance_records(store, identity, workspace_id, kiosk_id)

    def count(status: TicketStatus) -> int:
        return sum(1 for r in records if r.status == status)

    return MaintenanceSummary(
        total_records=len(records),
        open_records=count(TicketStatus.OPEN),
        in_progress_records=count(TicketStatus.IN_PROGRESS),
        resolved_records=count(TicketStatus.RESOLVED),
        closed_records=count(TicketStatus.CLOSED),
        last_maintenance_date=records[0].reported_date if records else None,
    )
