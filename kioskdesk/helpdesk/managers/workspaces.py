"""Workspace operations.

A workspace is created together with an ADMIN membership for its creator.
Memberships reference the workspace record ``id``; clients address the
workspace by that id in every scoped call.
"""

from __future__ import annotations

from loguru import logger

from kioskdesk.helpdesk.errors import InvalidInputError
from kioskdesk.helpdesk.identity import Identity
from kioskdesk.helpdesk.managers._shared import new_external_id, new_record_id, utcnow
from kioskdesk.helpdesk.managers.access import find_workspace, validate_workspace_access
from kioskdesk.helpdesk.models.api import UserWorkspace, WorkspaceCreate, WorkspaceUpdate
from kioskdesk.helpdesk.models.enums import WorkspaceRole
from kioskdesk.helpdesk.models.records import MembershipRecord, WorkspaceRecord
from kioskdesk.helpdesk.store.base import DocumentStore

MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500


def _clean_name(name: str | None) -> str:
    name = (name or "").strip()
    if not name:
        msg = "Workspace name is required"
        raise InvalidInputError(msg)
    if len(name) > MAX_NAME_LENGTH:
        msg = f"Workspace name must be {MAX_NAME_LENGTH} characters or fewer"
        raise InvalidInputError(msg)
    return name


def _clean_description(description: str | None) -> str | None:
    description = (description or "").strip()
    if len(description) > MAX_DESCRIPTION_LENGTH:
        msg = f"Workspace description must be {MAX_DESCRIPTION_LENGTH} characters or fewer"
        raise InvalidInputError(msg)
    return description or None


async def create_workspace(store: DocumentStore, identity: Identity, body: WorkspaceCreate) -> UserWorkspace:
    """Create a workspace and make the caller its ADMIN."""
    name = _clean_name(body.name)
    description = _clean_description(body.description)

    now = utcnow()
    workspace = await store.create(
        WorkspaceRecord(
            id=new_record_id(),
            workspace_id=new_external_id("workspace"),
            name=name,
            description=description,
            created_by=identity.user_id,
            created_at=now,
            updated_at=now,
        )
    )
    membership = await store.create(
        MembershipRecord(
            id=new_record_id(),
            workspace_id=workspace.id,
            user_id=identity.user_id,
            role=WorkspaceRole.ADMIN,
            joined_at=now,
        )
    )
    logger.info("Workspace created: {} ({}) by {}", workspace.id, workspace.name, identity.user_id)
    return UserWorkspace(workspace=workspace, role=WorkspaceRole.ADMIN, joined_at=membership.joined_at or now)


async def list_user_workspaces(store: DocumentStore, identity: Identity) -> list[UserWorkspace]:
    """Workspaces the caller belongs to, earliest joined first.

    Membership rows without a role or join date, or pointing at a workspace
    that no longer exists, are skipped.
    """
    memberships = await store.list(MembershipRecord, {"user_id": identity.user_id})

    result: list[UserWorkspace] = []
    for membership in memberships:
        if membership.role is None or membership.joined_at is None:
            logger.warning("Skipping incomplete membership {}", membership.id)
            continue
        workspace = await find_workspace(store, membership.workspace_id)
        if workspace is None:
            logger.warning("Membership {} points at missing workspace {}", membership.id, membership.workspace_id)
            continue
        result.append(UserWorkspace(workspace=workspace, role=membership.role, joined_at=membership.joined_at))

    result.sort(key=lambda w: w.joined_at)
    return result


async def get_workspace(store: DocumentStore, identity: Identity, workspace_id: str) -> UserWorkspace:
    access = await validate_workspace_access(store, identity, workspace_id)
    joined_at = access.membership.joined_at or access.workspace.created_at or utcnow()
    return UserWorkspace(workspace=access.workspace, role=access.role, joined_at=joined_at)


async def update_workspace(
    store: DocumentStore,
    identity: Identity,
    workspace_id: str,
    body: WorkspaceUpdate,
) -> WorkspaceRecord:
    """Rename or re-describe a workspace (ADMIN only)."""
    access = await validate_workspace_access(store, identity, workspace_id, WorkspaceRole.ADMIN)

    changes = body.model_dump(exclude_unset=True)
    if "name" in changes:
        changes["name"] = _clean_name(changes["name"])
    if "description" in changes:
        changes["description"] = _clean_description(changes["description"])
    if not changes:
        return access.workspace

    changes["updated_at"] = utcnow()
    return await store.update(WorkspaceRecord, access.workspace.id, changes)
