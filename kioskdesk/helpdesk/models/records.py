"""Stored entity records.

These are what the document store hands back: immutable snapshots of a
row for the duration of a request.  The SQL adapter builds them from ORM
rows via ``from_attributes``; the memory adapter stores them directly.

Each record has a store-assigned ``id``.  Users, workspaces, kiosks and
tickets additionally carry an external identifier (``user_id``,
``workspace_id``, ...) that other records reference.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from kioskdesk.helpdesk.models.enums import KioskStatus, TicketStatus, WorkspaceRole


class Record(BaseModel):
    """Base for everything the document store persists."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str


class UserRecord(Record):
    user_id: str
    email: str
    username: str
    name: str
    cognito_id: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class WorkspaceRecord(Record):
    workspace_id: str
    name: str
    description: str | None = None
    created_by: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class MembershipRecord(Record):
    """WorkspaceUser edge.  ``role`` may be None in damaged data."""

    workspace_id: str
    user_id: str
    role: WorkspaceRole | None = None
    joined_at: datetime | None = None


class Attachment(BaseModel):
    """Metadata for a blob held in the object store."""

    model_config = ConfigDict(frozen=True)

    id: str
    filename: str
    original_name: str
    file_type: str
    file_size: int
    s3_key: str
    uploaded_by: str
    uploaded_at: datetime
    is_image: bool


class TicketComment(BaseModel):
    """One entry in a ticket's ordered comment thread."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    user_name: str
    user_role: WorkspaceRole
    content: str
    created_at: datetime
    updated_at: datetime | None = None


class KioskRecord(Record):
    kiosk_id: str
    workspace_id: str
    address: str
    location_description: str | None = None
    description: str | None = None
    remark: str | None = None
    status: KioskStatus = KioskStatus.ACTIVE
    location_attachments: list[Attachment] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TicketRecord(Record):
    ticket_id: str
    workspace_id: str
    kiosk_id: str
    reporter_id: str
    assignee_id: str | None = None
    status: TicketStatus = TicketStatus.OPEN
    title: str
    description: str
    comments: list[TicketComment] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)
    reported_date: datetime
    updated_date: datetime | None = None
    maintenance_time: datetime | None = None
    is_deleted: bool = False
    deleted_at: datetime | None = None
    deleted_by: str | None = None
