"""Data models for the helpdesk."""

from kioskdesk.helpdesk.models.api import (
    AttachmentUpload,
    AttachmentUploadRequest,
    AttachmentUrl,
    CommentCreate,
    KioskCreate,
    KioskListResult,
    KioskUpdate,
    MaintenanceRecord,
    MaintenanceSummary,
    MaintenanceTimeUpdate,
    MemberAdd,
    MemberRoleUpdate,
    TeamDetails,
    TeamMember,
    TicketAssigneeUpdate,
    TicketCreate,
    TicketDetail,
    TicketFilters,
    TicketKioskUpdate,
    TicketListResult,
    TicketUpdate,
    TicketView,
    UserTicketFilters,
    UserTicketView,
    UserTicketsResult,
    UserWorkspace,
    WorkspaceCreate,
    WorkspaceStats,
    WorkspaceUpdate,
    WorkspaceUserSummary,
)
from kioskdesk.helpdesk.models.enums import KioskStatus, TicketStatus, WorkspaceRole
from kioskdesk.helpdesk.models.records import (
    Attachment,
    KioskRecord,
    MembershipRecord,
    Record,
    TicketComment,
    TicketRecord,
    UserRecord,
    WorkspaceRecord,
)

__all__ = [
    # Records
    "Attachment",
    # API schemas
    "AttachmentUpload",
    "AttachmentUploadRequest",
    "AttachmentUrl",
    "CommentCreate",
    "KioskCreate",
    "KioskListResult",
    "KioskRecord",
    # Enums
    "KioskStatus",
    "KioskUpdate",
    "MaintenanceRecord",
    "MaintenanceSummary",
    "MaintenanceTimeUpdate",
    "MemberAdd",
    "MemberRoleUpdate",
    "MembershipRecord",
    "Record",
    "TeamDetails",
    "TeamMember",
    "TicketAssigneeUpdate",
    "TicketComment",
    "TicketCreate",
    "TicketDetail",
    "TicketFilters",
    "TicketKioskUpdate",
    "TicketListResult",
    "TicketRecord",
    "TicketStatus",
    "TicketUpdate",
    "TicketView",
    "UserRecord",
    "UserTicketFilters",
    "UserTicketView",
    "UserTicketsResult",
    "UserWorkspace",
    "WorkspaceCreate",
    "WorkspaceRecord",
    "WorkspaceRole",
    "WorkspaceStats",
    "WorkspaceUpdate",
    "WorkspaceUserSummary",
]
