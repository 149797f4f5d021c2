"""Kiosk endpoints (RPC-style)."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status

from kioskdesk.helpdesk.deps import CurrentIdentity, Objects, Settings, Store
from kioskdesk.helpdesk.managers import attachments, kiosks
from kioskdesk.helpdesk.models.api import (
    AttachmentUpload,
    AttachmentUploadRequest,
    AttachmentUrl,
    KioskCreate,
    KioskListResult,
    KioskUpdate,
    MaintenanceRecord,
    MaintenanceSummary,
)
from kioskdesk.helpdesk.models.enums import KioskStatus
from kioskdesk.helpdesk.models.records import Attachment, KioskRecord

router = APIRouter(prefix="/workspaces/{workspace_id}/kiosks", tags=["kiosks"])


@router.get("/list", response_model=KioskListResult)
async def list_kiosks(
    workspace_id: str,
    store: Store,
    identity: CurrentIdentity,
    search: str | None = None,
    kiosk_status: Annotated[KioskStatus | None, Query(alias="status")] = None,
) -> KioskListResult:
    """List kiosks, optionally filtered by a search term and status."""
    if search or kiosk_status is not None:
        return await kiosks.search_kiosks(store, identity, workspace_id, search, kiosk_status)
    return await kiosks.list_kiosks(store, identity, workspace_id)


@router.post("/create", response_model=KioskRecord, status_code=status.HTTP_201_CREATED)
async def create_kiosk(workspace_id: str, body: KioskCreate, store: Store, identity: CurrentIdentity) -> KioskRecord:
    return await kiosks.create_kiosk(store, identity, workspace_id, body)


@router.get("/{kiosk_id}/get", response_model=KioskRecord)
async def get_kiosk(workspace_id: str, kiosk_id: str, store: Store, identity: CurrentIdentity) -> KioskRecord:
    return await kiosks.get_kiosk(store, identity, workspace_id, kiosk_id)


@router.post("/{kiosk_id}/update", response_model=KioskRecord)
async def update_kiosk(
    workspace_id: str,
    kiosk_id: str,
    body: KioskUpdate,
    store: Store,
    identity: CurrentIdentity,
) -> KioskRecord:
    """Partially update a kiosk."""
    return await kiosks.update_kiosk(store, identity, workspace_id, kiosk_id, body)


@router.post("/{kiosk_id}/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_kiosk(workspace_id: str, kiosk_id: str, store: Store, identity: CurrentIdentity) -> None:
    await kiosks.delete_kiosk(store, identity, workspace_id, kiosk_id)


@router.get("/{kiosk_id}/maintenance", response_model=list[MaintenanceRecord])
async def get_maintenance_records(
    workspace_id: str,
    kiosk_id: str,
    store: Store,
    identity: CurrentIdentity,
) -> list[MaintenanceRecord]:
    return await kiosks.get_kiosk_maintenance_records(store, identity, workspace_id, kiosk_id)


@router.get("/{kiosk_id}/maintenance/summary", response_model=MaintenanceSummary)
async def get_maintenance_summary(
    workspace_id: str,
    kiosk_id: str,
    store: Store,
    identity: CurrentIdentity,
) -> MaintenanceSummary:
    return await kiosks.get_kiosk_maintenance_summary(store, identity, workspace_id, kiosk_id)


# -- Location attachments ------------------------------------------------------


@router.post("/{kiosk_id}/attachments/upload", response_model=AttachmentUpload)
async def request_upload(
    workspace_id: str,
    kiosk_id: str,
    body: AttachmentUploadRequest,
    store: Store,
    objects: Objects,
    identity: CurrentIdentity,
    settings: Settings,
) -> AttachmentUpload:
    """Validate a file and return a presigned upload URL."""
    return await attachments.request_kiosk_upload(
        store, objects, identity, workspace_id, kiosk_id, body, expires_in=settings.presigned_url_expires
    )


@router.post("/{kiosk_id}/attachments/add", response_model=KioskRecord)
async def add_attachment(
    workspace_id: str,
    kiosk_id: str,
    body: Attachment,
    store: Store,
    identity: CurrentIdentity,
) -> KioskRecord:
    """Record an uploaded attachment on the kiosk."""
    return await attachments.add_kiosk_attachment(store, identity, workspace_id, kiosk_id, body)


@router.post("/{kiosk_id}/attachments/{attachment_id}/delete", response_model=KioskRecord)
async def remove_attachment(
    workspace_id: str,
    kiosk_id: str,
    attachment_id: str,
    store: Store,
    objects: Objects,
    identity: CurrentIdentity,
) -> KioskRecord:
    return await attachments.remove_kiosk_attachment(store, objects, identity, workspace_id, kiosk_id, attachment_id)


@router.get("/{kiosk_id}/attachments/{attachment_id}/url", response_model=AttachmentUrl)
async def get_attachment_url(
    workspace_id: str,
    kiosk_id: str,
    attachment_id: str,
    store: Store,
    objects: Objects,
    identity: CurrentIdentity,
    settings: Settings,
) -> AttachmentUrl:
    return await attachments.get_kiosk_attachment_url(
        store, objects, identity, workspace_id, kiosk_id, attachment_id, expires_in=settings.presigned_url_expires
    )
