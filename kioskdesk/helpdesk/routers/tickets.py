"""Ticket endpoints (RPC-style).

Workspace-scoped routes live under ``/workspaces/{workspace_id}/tickets``;
the cross-workspace "my tickets" view is ``/tickets/mine``.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status

from kioskdesk.helpdesk.deps import CurrentIdentity, Objects, Settings, Store
from kioskdesk.helpdesk.managers import attachments, tickets
from kioskdesk.helpdesk.models.api import (
    AttachmentUpload,
    AttachmentUploadRequest,
    AttachmentUrl,
    MaintenanceTimeUpdate,
    TicketAssigneeUpdate,
    TicketCreate,
    TicketDetail,
    TicketFilters,
    TicketKioskUpdate,
    TicketListResult,
    TicketUpdate,
    TicketView,
    UserTicketFilters,
    UserTicketsResult,
)
from kioskdesk.helpdesk.models.records import Attachment, TicketRecord

router = APIRouter(prefix="/workspaces/{workspace_id}/tickets", tags=["tickets"])
user_router = APIRouter(prefix="/tickets", tags=["tickets"])


@user_router.get("/mine", response_model=UserTicketsResult)
async def list_my_tickets(
    filters: Annotated[UserTicketFilters, Query()],
    store: Store,
    identity: CurrentIdentity,
    settings: Settings,
) -> UserTicketsResult:
    """Tickets across all of the caller's workspaces, newest first."""
    return await tickets.list_user_tickets(store, identity, filters, tz=settings.resolve_timezone())


@router.get("/list", response_model=TicketListResult)
async def list_tickets(
    workspace_id: str,
    filters: Annotated[TicketFilters, Query()],
    store: Store,
    identity: CurrentIdentity,
    settings: Settings,
) -> TicketListResult:
    """List tickets with optional status, assignee, kiosk, text and date filters."""
    return await tickets.list_tickets(store, identity, workspace_id, filters, tz=settings.resolve_timezone())


@router.post("/create", response_model=TicketView, status_code=status.HTTP_201_CREATED)
async def create_ticket(workspace_id: str, body: TicketCreate, store: Store, identity: CurrentIdentity) -> TicketView:
    return await tickets.create_ticket(store, identity, workspace_id, body)


@router.get("/{ticket_id}/get", response_model=TicketDetail)
async def get_ticket(workspace_id: str, ticket_id: str, store: Store, identity: CurrentIdentity) -> TicketDetail:
    return await tickets.get_ticket(store, identity, workspace_id, ticket_id)


@router.post("/{ticket_id}/update", response_model=TicketRecord)
async def update_ticket(
    workspace_id: str,
    ticket_id: str,
    body: TicketUpdate,
    store: Store,
    identity: CurrentIdentity,
) -> TicketRecord:
    """Partially update a ticket."""
    return await tickets.update_ticket(store, identity, workspace_id, ticket_id, body)


@router.post("/{ticket_id}/maintenance-time", response_model=TicketRecord)
async def update_maintenance_time(
    workspace_id: str,
    ticket_id: str,
    body: MaintenanceTimeUpdate,
    store: Store,
    identity: CurrentIdentity,
    settings: Settings,
) -> TicketRecord:
    return await tickets.update_ticket_maintenance_time(
        store, identity, workspace_id, ticket_id, body.maintenance_time, tz=settings.resolve_timezone()
    )


@router.post("/{ticket_id}/kiosk", response_model=TicketRecord)
async def update_kiosk(
    workspace_id: str,
    ticket_id: str,
    body: TicketKioskUpdate,
    store: Store,
    identity: CurrentIdentity,
) -> TicketRecord:
    return await tickets.update_ticket_kiosk(store, identity, workspace_id, ticket_id, body.kiosk_id)


@router.post("/{ticket_id}/assignee", response_model=TicketRecord)
async def update_assignee(
    workspace_id: str,
    ticket_id: str,
    body: TicketAssigneeUpdate,
    store: Store,
    identity: CurrentIdentity,
) -> TicketRecord:
    return await tickets.update_ticket_assignee(store, identity, workspace_id, ticket_id, body.assignee_id)


@router.post("/{ticket_id}/delete", response_model=TicketRecord)
async def delete_ticket(workspace_id: str, ticket_id: str, store: Store, identity: CurrentIdentity) -> TicketRecord:
    """Soft-delete a ticket."""
    return await tickets.soft_delete_ticket(store, identity, workspace_id, ticket_id)


@router.post("/{ticket_id}/restore", response_model=TicketRecord)
async def restore_ticket(workspace_id: str, ticket_id: str, store: Store, identity: CurrentIdentity) -> TicketRecord:
    return await tickets.restore_ticket(store, identity, workspace_id, ticket_id)


# -- Attachments ---------------------------------------------------------------


@router.post("/{ticket_id}/attachments/upload", response_model=AttachmentUpload)
async def request_upload(
    workspace_id: str,
    ticket_id: str,
    body: AttachmentUploadRequest,
    store: Store,
    objects: Objects,
    identity: CurrentIdentity,
    settings: Settings,
) -> AttachmentUpload:
    """Validate a file and return a presigned upload URL."""
    return await attachments.request_ticket_upload(
        store, objects, identity, workspace_id, ticket_id, body, expires_in=settings.presigned_url_expires
    )


@router.post("/{ticket_id}/attachments/add", response_model=TicketRecord)
async def add_attachment(
    workspace_id: str,
    ticket_id: str,
    body: Attachment,
    store: Store,
    identity: CurrentIdentity,
) -> TicketRecord:
    """Record an uploaded attachment on the ticket."""
    return await attachments.add_ticket_attachment(store, identity, workspace_id, ticket_id, body)


@router.post("/{ticket_id}/attachments/{attachment_id}/delete", response_model=TicketRecord)
async def remove_attachment(
    workspace_id: str,
    ticket_id: str,
    attachment_id: str,
    store: Store,
    objects: Objects,
    identity: CurrentIdentity,
) -> TicketRecord:
    return await attachments.remove_ticket_attachment(store, objects, identity, workspace_id, ticket_id, attachment_id)


@router.get("/{ticket_id}/attachments/{attachment_id}/url", response_model=AttachmentUrl)
async def get_attachment_url(
    workspace_id: str,
    ticket_id: str,
    attachment_id: str,
    store: Store,
    objects: Objects,
    identity: CurrentIdentity,
    settings: Settings,
) -> AttachmentUrl:
    return await attachments.get_attachment_url(
        store, objects, identity, workspace_id, ticket_id, attachment_id, expires_in=settings.presigned_url_expires
    )
