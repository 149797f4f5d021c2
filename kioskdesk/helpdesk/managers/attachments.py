"""Ticket and kiosk attachments.

Uploading is a two-step handshake.  ``request_*_upload`` validates the file
and returns the attachment metadata together with a presigned PUT URL; the
client uploads the bytes, then hands the metadata back to
``add_*_attachment`` which records it on the ticket or kiosk.  Removing an
attachment deletes both the metadata and the blob.
"""

from __future__ import annotations

import re
import secrets
import time
from collections.abc import Sequence

from loguru import logger

from kioskdesk.helpdesk.errors import AttachmentNotFoundError, InvalidInputError
from kioskdesk.helpdesk.identity import Identity
from kioskdesk.helpdesk.managers._shared import utcnow
from kioskdesk.helpdesk.managers.access import WorkspaceAccess, validate_workspace_access
from kioskdesk.helpdesk.managers.kiosks import get_scoped_kiosk
from kioskdesk.helpdesk.managers.tickets import get_scoped_ticket
from kioskdesk.helpdesk.models.api import AttachmentUpload, AttachmentUploadRequest, AttachmentUrl
from kioskdesk.helpdesk.models.enums import WorkspaceRole
from kioskdesk.helpdesk.models.records import Attachment, KioskRecord, TicketRecord
from kioskdesk.helpdesk.store.base import DocumentStore
from kioskdesk.helpdesk.store.objects import ObjectStore

IMAGE_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"})
DOCUMENT_TYPES = frozenset({
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
    "text/csv",
})
MAX_IMAGE_SIZE = 5 * 1024 * 1024
MAX_DOCUMENT_SIZE = 10 * 1024 * 1024

DEFAULT_URL_EXPIRES = 900

_UNSAFE_CHARS_RE = re.compile(r"[^a-zA-Z0-9.-]")


def sanitize_filename(filename: str) -> str:
    return _UNSAFE_CHARS_RE.sub("_", filename)


def validate_file(file_type: str, file_size: int) -> bool:
    """Check type and size limits.  Returns whether the file is an image."""
    if file_type in IMAGE_TYPES:
        limit, is_image = MAX_IMAGE_SIZE, True
    elif file_type in DOCUMENT_TYPES:
        limit, is_image = MAX_DOCUMENT_SIZE, False
    else:
        msg = f"Unsupported file type: {file_type}"
        raise InvalidInputError(msg)

    if file_size > limit:
        msg = f"File too large: {file_size} bytes (limit {limit // (1024 * 1024)} MB for {file_type})"
        raise InvalidInputError(msg)
    return is_image


def attachment_prefix(entity: str, workspace_id: str, owner_id: str) -> str:
    """Key prefix for an entity's blobs, e.g. ``tickets/workspace/{ws}/{ticket}/``."""
    return f"{entity}/workspace/{workspace_id}/{owner_id}/"


def _build_attachment(
    identity: Identity,
    prefix: str,
    body: AttachmentUploadRequest,
) -> Attachment:
    is_image = validate_file(body.file_type, body.file_size)
    millis = time.time_ns() // 1_000_000
    filename = f"{millis}_{sanitize_filename(body.filename)}"
    return Attachment(
        id=f"att_{millis}_{secrets.token_hex(4)}",
        filename=filename,
        original_name=body.filename,
        file_type=body.file_type,
        file_size=body.file_size,
        s3_key=prefix + filename,
        uploaded_by=identity.user_id,
        uploaded_at=utcnow(),
        is_image=is_image,
    )


def _find(attachments: Sequence[Attachment], attachment_id: str) -> Attachment:
    for attachment in attachments:
        if attachment.id == attachment_id:
            return attachment
    msg = f"Attachment not found: {attachment_id}"
    raise AttachmentNotFoundError(msg)


def _check_owned(attachment: Attachment, prefix: str) -> None:
    if not attachment.s3_key.startswith(prefix):
        msg = f"Attachment key {attachment.s3_key!r} does not belong here"
        raise InvalidInputError(msg)
    validate_file(attachment.file_type, attachment.file_size)


# -- Ticket attachments --------------------------------------------------------


def _ticket_prefix(access: WorkspaceAccess, ticket: TicketRecord) -> str:
    return attachment_prefix("tickets", access.workspace.workspace_id, ticket.ticket_id)


async def request_ticket_upload(
    store: DocumentStore,
    objects: ObjectStore,
    identity: Identity,
    workspace_id: str,
    ticket_id: str,
    body: AttachmentUploadRequest,
    *,
    expires_in: int = DEFAULT_URL_EXPIRES,
) -> AttachmentUpload:
    access = await validate_workspace_access(store, identity, workspace_id, WorkspaceRole.MEMBER)
    ticket = await get_scoped_ticket(store, access, ticket_id)

    attachment = _build_attachment(identity, _ticket_prefix(access, ticket), body)
    url = await objects.presign_upload(attachment.s3_key, attachment.file_type, expires_in)
    return AttachmentUpload(attachment=attachment, upload_url=url, expires_in=expires_in)


async def add_ticket_attachment(
    store: DocumentStore,
    identity: Identity,
    workspace_id: str,
    ticket_id: str,
    attachment: Attachment,
) -> TicketRecord:
    """Record an uploaded attachment on the ticket."""
    access = await validate_workspace_access(store, identity, workspace_id, WorkspaceRole.MEMBER)
    ticket = await get_scoped_ticket(store, access, ticket_id)
    _check_owned(attachment, _ticket_prefix(access, ticket))

    if any(a.id == attachment.id for a in ticket.attachments):
        return ticket
    updated = await store.append(TicketRecord, ticket.id, "attachments", attachment, {"updated_date": utcnow()})
    logger.info("Attachment {} added to ticket {}", attachment.id, ticket.ticket_id)
    return updated


async def remove_ticket_attachment(
    store: DocumentStore,
    objects: ObjectStore,
    identity: Identity,
    workspace_id: str,
    ticket_id: str,
    attachment_id: str,
) -> TicketRecord:
    access = await validate_workspace_access(store, identity, workspace_id, WorkspaceRole.MEMBER)
    ticket = await get_scoped_ticket(store, access, ticket_id)
    attachment = _find(ticket.attachments, attachment_id)

    updated = await store.update(
        TicketRecord,
        ticket.id,
        {"attachments": [a for a in ticket.attachments if a.id != attachment_id], "updated_date": utcnow()},
    )
    await objects.delete(attachment.s3_key)
    logger.info("Attachment {} removed from ticket {}", attachment_id, ticket.ticket_id)
    return updated


async def get_attachment_url(
    store: DocumentStore,
    objects: ObjectStore,
    identity: Identity,
    workspace_id: str,
    ticket_id: str,
    attachment_id: str,
    *,
    expires_in: int = DEFAULT_URL_EXPIRES,
) -> AttachmentUrl:
    """Presigned download URL for a ticket attachment (VIEWER or higher)."""
    access = await validate_workspace_access(store, identity, workspace_id)
    ticket = await get_scoped_ticket(store, access, ticket_id)
    attachment = _find(ticket.attachments, attachment_id)
    url = await objects.presign_download(attachment.s3_key, expires_in)
    return AttachmentUrl(url=url, expires_in=expires_in)


# -- Kiosk location attachments ------------------------------------------------


def _kiosk_prefix(access: WorkspaceAccess, kiosk: KioskRecord) -> str:
    return attachment_prefix("kiosks", access.workspace.workspace_id, kiosk.kiosk_id)


async def request_kiosk_upload(
    store: DocumentStore,
    objects: ObjectStore,
    identity: Identity,
    workspace_id: str,
    kiosk_id: str,
    body: AttachmentUploadRequest,
    *,
    expires_in: int = DEFAULT_URL_EXPIRES,
) -> AttachmentUpload:
    access = await validate_workspace_access(store, identity, workspace_id, WorkspaceRole.MEMBER)
    kiosk = await get_scoped_kiosk(store, access, kiosk_id)

    attachment = _build_attachment(identity, _kiosk_prefix(access, kiosk), body)
    url = await objects.presign_upload(attachment.s3_key, attachment.file_type, expires_in)
    return AttachmentUpload(attachment=attachment, upload_url=url, expires_in=expires_in)


async def add_kiosk_attachment(
    store: DocumentStore,
    identity: Identity,
    workspace_id: str,
    kiosk_id: str,
    attachment: Attachment,
) -> KioskRecord:
    access = await validate_workspace_access(store, identity, workspace_id, WorkspaceRole.MEMBER)
    kiosk = await get_scoped_kiosk(store, access, kiosk_id)
    _check_owned(attachment, _kiosk_prefix(access, kiosk))

    if any(a.id == attachment.id for a in kiosk.location_attachments):
        return kiosk
    updated = await store.append(KioskRecord, kiosk.id, "location_attachments", attachment, {"updated_at": utcnow()})
    logger.info("Attachment {} added to kiosk {}", attachment.id, kiosk.kiosk_id)
    return updated


async def remove_kiosk_attachment(
    store: DocumentStore,
    objects: ObjectStore,
    identity: Identity,
    workspace_id: str,
    kiosk_id: str,
    attachment_id: str,
) -> KioskRecord:
    access = await validate_workspace_access(store, identity, workspace_id, WorkspaceRole.MEMBER)
    kiosk = await get_scoped_kiosk(store, access, kiosk_id)
    attachment = _find(kiosk.location_attachments, attachment_id)

    remaining = [a for a in kiosk.location_attachments if a.id != attachment_id]
    updated = await store.update(KioskRecord, kiosk.id, {"location_attachments": remaining, "updated_at": utcnow()})
    await objects.delete(attachment.s3_key)
    logger.info("Attachment {} removed from kiosk {}", attachment_id, kiosk.kiosk_id)
    return updated


async def get_kiosk_attachment_url(
    store: DocumentStore,
    objects: ObjectStore,
    identity: Identity,
    workspace_id: str,
    kiosk_id: str,
    attachment_id: str,
    *,
    expires_in: int = DEFAULT_URL_EXPIRES,
) -> AttachmentUrl:
    access = await validate_workspace_access(store, identity, workspace_id)
    kiosk = await get_scoped_kiosk(store, access, kiosk_id)
    attachment = _find(kiosk.location_attachments, attachment_id)
    url = await objects.presign_download(attachment.s3_key, expires_in)
    return AttachmentUrl(url=url, expires_in=expires_in)
