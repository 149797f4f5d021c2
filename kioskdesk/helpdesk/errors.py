"""Domain exceptions raised by managers and adapters.

Managers never raise HTTP exceptions.  Each class carries the status code
the app-level exception handler answers with, so routers stay free of
translation boilerplate.
"""

from __future__ import annotations


class HelpdeskError(Exception):
    """Base class for all helpdesk failures surfaced to callers."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnauthenticatedError(HelpdeskError):
    """Missing, malformed or expired credentials."""

    status_code = 401


class AccessDeniedError(HelpdeskError, PermissionError):
    """Caller has no membership in the workspace."""

    status_code = 403

    def __init__(self, workspace_id: str) -> None:
        super().__init__(f"Access denied to workspace: {workspace_id}")
        self.workspace_id = workspace_id


class InsufficientPermissionsError(HelpdeskError, PermissionError):
    """Caller is a member but the role is below the required level."""

    status_code = 403

    def __init__(self, required: str, actual: str) -> None:
        super().__init__(f"Insufficient permissions. Required: {required}, Current: {actual}")
        self.required = required
        self.actual = actual


class WorkspaceNotFoundError(HelpdeskError, LookupError):
    status_code = 404

    def __init__(self, workspace_id: str) -> None:
        super().__init__(f"Workspace not found: {workspace_id}")
        self.workspace_id = workspace_id


class TicketNotFoundError(HelpdeskError, LookupError):
    """Also raised when a ticket belongs to a different workspace."""

    status_code = 404

    def __init__(self, ticket_id: str) -> None:
        super().__init__(f"Ticket not found: {ticket_id}")
        self.ticket_id = ticket_id


class KioskNotFoundError(HelpdeskError, LookupError):
    """Also raised when a kiosk belongs to a different workspace."""

    status_code = 404

    def __init__(self, kiosk_id: str) -> None:
        super().__init__(f"Kiosk not found: {kiosk_id}")
        self.kiosk_id = kiosk_id


class MemberNotFoundError(HelpdeskError, LookupError):
    status_code = 404


class AttachmentNotFoundError(HelpdeskError, LookupError):
    status_code = 404


class InvalidRoleError(HelpdeskError):
    """A membership row exists but its role is unset (data integrity failure)."""

    status_code = 500


class InvalidInputError(HelpdeskError, ValueError):
    """Malformed caller input, e.g. a bad date filter or an empty comment."""

    status_code = 422


class TicketStateError(HelpdeskError, ValueError):
    """Operation conflicts with the ticket's current state (already deleted, ...)."""

    status_code = 409


class DuplicateMemberError(HelpdeskError, ValueError):
    status_code = 409


class LastAdminError(HelpdeskError, ValueError):
    """Change would leave the workspace without an ADMIN."""

    status_code = 409


class StorageError(HelpdeskError):
    """Wraps a document or object store failure; ``message`` holds the provider text."""

    status_code = 502

    def __init__(self, operation: str, detail: str) -> None:
        super().__init__(f"Failed to {operation}: {detail}")
        self.operation = operation
        self.detail = detail
