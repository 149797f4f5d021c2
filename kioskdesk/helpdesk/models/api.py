"""API request / response schemas.

These thin schemas sit between HTTP and the managers.  They are separate
from the stored records in ``records.py`` because they serve a different
purpose:

- **Create** schemas validate user input and provide defaults.
- **Update** schemas allow partial updates via ``exclude_unset``.
- **View / result** schemas carry enriched or aggregated read data.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from kioskdesk.helpdesk.models.enums import KioskStatus, TicketStatus, WorkspaceRole
from kioskdesk.helpdesk.models.records import (
    Attachment,
    KioskRecord,
    TicketRecord,
    WorkspaceRecord,
)


def _reject_nulls(model: BaseModel, *fields: str) -> None:
    """Fields that may be omitted from a partial update but not set to null."""
    nulled = sorted(f for f in fields if f in model.model_fields_set and getattr(model, f) is None)
    if nulled:
        msg = f"{', '.join(nulled)} cannot be null"
        raise ValueError(msg)


# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------


class WorkspaceCreate(BaseModel):
    name: str
    description: str | None = None


class WorkspaceUpdate(BaseModel):
    """Partial workspace update."""

    name: str | None = None
    description: str | None = None


class UserWorkspace(BaseModel):
    """A workspace the caller belongs to, with their role in it."""

    workspace: WorkspaceRecord
    role: WorkspaceRole
    joined_at: datetime


class WorkspaceStats(BaseModel):
    total_kiosks: int
    open_tickets: int
    team_members: int


# ---------------------------------------------------------------------------
# Team
# ---------------------------------------------------------------------------


class TeamMember(BaseModel):
    membership_id: str
    user_id: str
    name: str
    email: str
    username: str
    role: WorkspaceRole
    joined_at: datetime


class TeamDetails(BaseModel):
    members: list[TeamMember]
    workspace: WorkspaceRecord
    role: WorkspaceRole
    can_manage_team: bool


class MemberAdd(BaseModel):
    email: str
    role: WorkspaceRole = WorkspaceRole.VIEWER


class MemberRoleUpdate(BaseModel):
    role: WorkspaceRole


class WorkspaceUserSummary(BaseModel):
    """Minimal user info, e.g. for assignee pickers and invite lists."""

    user_id: str
    name: str
    email: str
    username: str
    role: WorkspaceRole | None = None


# ---------------------------------------------------------------------------
# Kiosk
# ---------------------------------------------------------------------------


class KioskCreate(BaseModel):
    address: str = Field(min_length=1)
    location_description: str | None = None
    description: str | None = None
    remark: str | None = None
    status: KioskStatus = KioskStatus.ACTIVE


class KioskUpdate(BaseModel):
    """Partial kiosk update -- only fields explicitly set are applied."""

    address: str | None = Field(default=None, min_length=1)
    location_description: str | None = None
    description: str | None = None
    remark: str | None = None
    status: KioskStatus | None = None

    @model_validator(mode="after")
    def _validate_required(self) -> KioskUpdate:
        _reject_nulls(self, "address", "status")
        return self


class KioskListResult(BaseModel):
    kiosks: list[KioskRecord]
    workspace: WorkspaceRecord
    role: WorkspaceRole


class MaintenanceRecord(BaseModel):
    """A ticket as seen from the kiosk history page."""

    id: str
    ticket_id: str
    title: str
    status: TicketStatus
    description: str
    reported_date: datetime
    updated_date: datetime | None = None
    maintenance_time: datetime | None = None
    assignee_id: str | None = None
    reporter_id: str


class MaintenanceSummary(BaseModel):
    total_records: int
    open_records: int
    in_progress_records: int
    resolved_records: int
    closed_records: int
    last_maintenance_date: datetime | None = None


# ---------------------------------------------------------------------------
# Ticket
# ---------------------------------------------------------------------------


class TicketCreate(BaseModel):
    kiosk_id: str
    title: str = Field(min_length=1)
    description: str
    reporter_id: str | None = Field(default=None, description="Defaults to the caller.")
    assignee_id: str | None = None
    status: TicketStatus = TicketStatus.OPEN
    maintenance_time: datetime | None = None


class TicketUpdate(BaseModel):
    """Partial ticket update.  Use ``model_dump(exclude_unset=True)``.

    ``assignee_id`` and ``maintenance_time`` may be set to null to clear them;
    the remaining fields may be omitted but not nulled.
    """

    assignee_id: str | None = None
    status: TicketStatus | None = None
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    maintenance_time: datetime | None = None

    @model_validator(mode="after")
    def _validate_required(self) -> TicketUpdate:
        _reject_nulls(self, "status", "title", "description")
        return self


class MaintenanceTimeUpdate(BaseModel):
    maintenance_time: str | None = Field(
        default=None,
        description="Local datetime as ``YYYY-MM-DDTHH:MM``; empty or null clears it.",
    )


class TicketKioskUpdate(BaseModel):
    kiosk_id: str


class TicketAssigneeUpdate(BaseModel):
    assignee_id: str | None = None


class TicketFilters(BaseModel):
    """Query options for the ticket list."""

    search_term: str | None = None
    status: TicketStatus | None = None
    assignee_id: str | None = None
    kiosk_id: str | None = None
    date_from: str | None = Field(default=None, description="YYYY-MM-DD, inclusive.")
    date_to: str | None = Field(default=None, description="YYYY-MM-DD, inclusive.")
    use_current_month_default: bool = False


class UserTicketFilters(TicketFilters):
    """Query options for the cross-workspace ticket list."""

    workspace_id: str | None = Field(default=None, description="Restrict to one workspace.")
    only_my_tickets: bool = Field(default=False, description="Only tickets assigned to the caller.")


class TicketView(TicketRecord):
    """Ticket enriched with display names."""

    reporter_name: str | None = None
    assignee_name: str | None = None


class UserTicketView(TicketView):
    """Ticket row on the cross-workspace "my tickets" page."""

    workspace_name: str
    kiosk_address: str
    kiosk_description: str


class TicketListResult(BaseModel):
    tickets: list[TicketView]
    workspace: WorkspaceRecord
    role: WorkspaceRole


class TicketDetail(BaseModel):
    ticket: TicketView
    workspace: WorkspaceRecord
    role: WorkspaceRole


class UserTicketsResult(BaseModel):
    tickets: list[UserTicketView]
    workspaces: list[WorkspaceRecord]
    total_count: int


# ---------------------------------------------------------------------------
# Comments & attachments
# ---------------------------------------------------------------------------


class CommentCreate(BaseModel):
    content: str


class AttachmentUploadRequest(BaseModel):
    filename: str
    file_type: str
    file_size: int = Field(ge=0)


class AttachmentUpload(BaseModel):
    """Metadata to persist after the client PUTs the bytes to ``upload_url``."""

    attachment: Attachment
    upload_url: str
    expires_in: int


class AttachmentUrl(BaseModel):
    url: str
    expires_in: int
