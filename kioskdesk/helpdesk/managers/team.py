"""Workspace team management.

Membership changes require ADMIN.  A workspace always keeps at least one
ADMIN: demoting or removing the last one raises ``LastAdminError``.
Members are addressed by their membership record id.
"""

from __future__ import annotations

from loguru import logger

from kioskdesk.helpdesk.errors import DuplicateMemberError, InvalidInputError, LastAdminError, MemberNotFoundError
from kioskdesk.helpdesk.identity import Identity
from kioskdesk.helpdesk.managers._shared import new_record_id, utcnow
from kioskdesk.helpdesk.managers.access import WorkspaceAccess, validate_workspace_access
from kioskdesk.helpdesk.managers.kiosks import workspace_keys
from kioskdesk.helpdesk.models.api import MemberAdd, TeamDetails, TeamMember, WorkspaceUserSummary
from kioskdesk.helpdesk.models.enums import WorkspaceRole
from kioskdesk.helpdesk.models.records import MembershipRecord, UserRecord
from kioskdesk.helpdesk.store.base import DocumentStore


async def _memberships(store: DocumentStore, access: WorkspaceAccess) -> list[MembershipRecord]:
    return await store.list(MembershipRecord, {"workspace_id": workspace_keys(access)})


async def _users_by_id(store: DocumentStore, user_ids: list[str]) -> dict[str, UserRecord]:
    if not user_ids:
        return {}
    users = await store.list(UserRecord, {"user_id": sorted(set(user_ids))})
    return {user.user_id: user for user in users}


def _member(membership: MembershipRecord, user: UserRecord) -> TeamMember:
    return TeamMember(
        membership_id=membership.id,
        user_id=user.user_id,
        name=user.name,
        email=user.email,
        username=user.username,
        role=membership.role,
        joined_at=membership.joined_at,
    )


async def _get_member_row(store: DocumentStore, access: WorkspaceAccess, membership_id: str) -> MembershipRecord:
    membership = await store.get(MembershipRecord, membership_id)
    if membership is None or membership.workspace_id not in workspace_keys(access):
        msg = f"Team member not found: {membership_id}"
        raise MemberNotFoundError(msg)
    return membership


def _check_keeps_admin(memberships: list[MembershipRecord], target: MembershipRecord) -> None:
    if target.role != WorkspaceRole.ADMIN:
        return
    admins = [m for m in memberships if m.role == WorkspaceRole.ADMIN]
    if len(admins) <= 1:
        msg = "A workspace must keep at least one admin"
        raise LastAdminError(msg)


async def get_team(store: DocumentStore, identity: Identity, workspace_id: str) -> TeamDetails:
    """Members with user details, earliest joined first."""
    access = await validate_workspace_access(store, identity, workspace_id)
    memberships = [m for m in await _memberships(store, access) if m.role is not None and m.joined_at is not None]
    users = await _users_by_id(store, [m.user_id for m in memberships])

    members = []
    for membership in memberships:
        user = users.get(membership.user_id)
        if user is None:
            logger.warning("Membership {} references unknown user {}", membership.id, membership.user_id)
            continue
        members.append(_member(membership, user))
    members.sort(key=lambda m: m.joined_at)

    return TeamDetails(
        members=members,
        workspace=access.workspace,
        role=access.role,
        can_manage_team=access.role == WorkspaceRole.ADMIN,
    )


async def add_member(store: DocumentStore, identity: Identity, workspace_id: str, body: MemberAdd) -> TeamMember:
    """Add an existing user, found by email, to the workspace (ADMIN only)."""
    access = await validate_workspace_access(store, identity, workspace_id, WorkspaceRole.ADMIN)

    email = body.email.strip().lower()
    users = [u for u in await store.list(UserRecord) if u.email.lower() == email]
    if not users:
        msg = f"No user with email {body.email}"
        raise MemberNotFoundError(msg)
    user = users[0]

    existing = await store.list(MembershipRecord, {"workspace_id": workspace_keys(access), "user_id": user.user_id})
    if existing:
        msg = f"User {body.email} is already a member of this workspace"
        raise DuplicateMemberError(msg)

    membership = await store.create(
        MembershipRecord(
            id=new_record_id(),
            workspace_id=access.workspace.id,
            user_id=user.user_id,
            role=body.role,
            joined_at=utcnow(),
        )
    )
    logger.info("Member {} added to {} as {} by {}", user.user_id, access.workspace.id, body.role, identity.user_id)
    return _member(membership, user)


async def update_member_role(
    store: DocumentStore,
    identity: Identity,
    workspace_id: str,
    membership_id: str,
    role: WorkspaceRole,
) -> MembershipRecord:
    """Change a member's role (ADMIN only)."""
    access = await validate_workspace_access(store, identity, workspace_id, WorkspaceRole.ADMIN)
    target = await _get_member_row(store, access, membership_id)
    if target.role == role:
        return target
    if role != WorkspaceRole.ADMIN:
        _check_keeps_admin(await _memberships(store, access), target)

    updated = await store.update(MembershipRecord, target.id, {"role": role})
    logger.info("Member {} role {} -> {} by {}", target.user_id, target.role, role, identity.user_id)
    return updated


async def remove_member(store: DocumentStore, identity: Identity, workspace_id: str, membership_id: str) -> None:
    """Remove a member (ADMIN only).  Admins cannot remove themselves."""
    access = await validate_workspace_access(store, identity, workspace_id, WorkspaceRole.ADMIN)
    target = await _get_member_row(store, access, membership_id)
    if target.user_id == identity.user_id:
        msg = "You cannot remove yourself from the workspace"
        raise InvalidInputError(msg)
    _check_keeps_admin(await _memberships(store, access), target)

    await store.delete(MembershipRecord, target.id)
    logger.info("Member {} removed from {} by {}", target.user_id, access.workspace.id, identity.user_id)


async def list_non_members(store: DocumentStore, identity: Identity, workspace_id: str) -> list[WorkspaceUserSummary]:
    """Users not yet in the workspace, sorted by name (ADMIN only)."""
    access = await validate_workspace_access(store, identity, workspace_id, WorkspaceRole.ADMIN)
    member_ids = {m.user_id for m in await _memberships(store, access)}
    users = [u for u in await store.list(UserRecord) if u.user_id not in member_ids]
    users.sort(key=lambda u: u.name.lower())
    return [WorkspaceUserSummary(user_id=u.user_id, name=u.name, email=u.email, username=u.username) for u in users]


async def list_workspace_users(
    store: DocumentStore,
    identity: Identity,
    workspace_id: str,
) -> list[WorkspaceUserSummary]:
    """Members as assignee candidates, sorted by name."""
    access = await validate_workspace_access(store, identity, workspace_id)
    memberships = [m for m in await _memberships(store, access) if m.role is not None]
    users = await _users_by_id(store, [m.user_id for m in memberships])

    summaries = [
        WorkspaceUserSummary(user_id=u.user_id, name=u.name, email=u.email, username=u.username, role=m.role)
        for m in memberships
        if (u := users.get(m.user_id)) is not None
    ]
    summaries.sort(key=lambda s: s.name.lower())
    return summaries
