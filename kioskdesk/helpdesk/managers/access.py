"""Workspace membership resolution and role checks.

Every read or write scoped to a workspace starts here.  ``get_workspace_access``
answers "is the caller a member, and with which role"; ``validate_workspace_access``
adds a minimum-role assertion on top and is the single gate mutating
operations pass through.

Workspaces can be addressed by two identifiers: the store record ``id`` and
the tenant-facing ``workspace_id``.  Older references use either, so the
workspace lookup tries the record id first and falls back to a query on
``workspace_id``.

Access is checked and the subsequent write is issued as separate store calls.
A role change landing between the two is not detected.
"""

from __future__ import annotations

from dataclasses import dataclass

from kioskdesk.helpdesk.errors import (
    AccessDeniedError,
    InsufficientPermissionsError,
    InvalidRoleError,
    WorkspaceNotFoundError,
)
from kioskdesk.helpdesk.identity import Identity
from kioskdesk.helpdesk.models.enums import WorkspaceRole
from kioskdesk.helpdesk.models.records import MembershipRecord, WorkspaceRecord
from kioskdesk.helpdesk.store.base import DocumentStore

ROLE_RANK: dict[WorkspaceRole, int] = {
    WorkspaceRole.ADMIN: 3,
    WorkspaceRole.MEMBER: 2,
    WorkspaceRole.VIEWER: 1,
}


@dataclass(frozen=True)
class WorkspaceAccess:
    workspace: WorkspaceRecord
    role: WorkspaceRole
    membership: MembershipRecord


def has_permission(current_role: WorkspaceRole | str, required_role: WorkspaceRole | str) -> bool:
    """Whether ``current_role`` is at least ``required_role``."""
    return ROLE_RANK[WorkspaceRole(current_role)] >= ROLE_RANK[WorkspaceRole(required_role)]


async def find_workspace(store: DocumentStore, workspace_id: str) -> WorkspaceRecord | None:
    """Look a workspace up by record id, then by tenant-facing ``workspace_id``."""
    workspace = await store.get(WorkspaceRecord, workspace_id)
    if workspace is not None:
        return workspace
    matches = await store.list(WorkspaceRecord, {"workspace_id": workspace_id})
    return matches[0] if matches else None


async def find_membership(store: DocumentStore, workspace_id: str, user_id: str) -> MembershipRecord | None:
    """First membership row for the pair; duplicates are not expected."""
    rows = await store.list(MembershipRecord, {"workspace_id": workspace_id, "user_id": user_id})
    return rows[0] if rows else None


async def get_workspace_access(store: DocumentStore, identity: Identity, workspace_id: str) -> WorkspaceAccess:
    """Resolve the caller's membership and role in a workspace.

    Raises:
        AccessDeniedError: no membership row for (caller, workspace).
        InvalidRoleError: the membership row has no role.
        WorkspaceNotFoundError: neither lookup finds the workspace.
    """
    membership = await find_membership(store, workspace_id, identity.user_id)
    if membership is None:
        raise AccessDeniedError(workspace_id)

    if membership.role is None:
        msg = f"Invalid workspace role for user {identity.user_id} in {workspace_id}"
        raise InvalidRoleError(msg)

    workspace = await find_workspace(store, workspace_id)
    if workspace is None:
        raise WorkspaceNotFoundError(workspace_id)

    return WorkspaceAccess(workspace=workspace, role=membership.role, membership=membership)


async def validate_workspace_access(
    store: DocumentStore,
    identity: Identity,
    workspace_id: str,
    required_role: WorkspaceRole = WorkspaceRole.VIEWER,
) -> WorkspaceAccess:
    """Resolve access and require at least ``required_role``.

    Resolver errors propagate unchanged.  Raises
    ``InsufficientPermissionsError`` when the role is too low.
    """
    access = await get_workspace_access(store, identity, workspace_id)
    if not has_permission(access.role, required_role):
        raise InsufficientPermissionsError(required=required_role.value, actual=access.role.value)
    return access
