"""Team membership endpoints (RPC-style)."""

from __future__ import annotations

from fastapi import APIRouter, status

from kioskdesk.helpdesk.deps import CurrentIdentity, Store
from kioskdesk.helpdesk.managers import team
from kioskdesk.helpdesk.models.api import (
    MemberAdd,
    MemberRoleUpdate,
    TeamDetails,
    TeamMember,
    WorkspaceUserSummary,
)
from kioskdesk.helpdesk.models.records import MembershipRecord

router = APIRouter(prefix="/workspaces/{workspace_id}/team", tags=["team"])


@router.get("/get", response_model=TeamDetails)
async def get_team(workspace_id: str, store: Store, identity: CurrentIdentity) -> TeamDetails:
    return await team.get_team(store, identity, workspace_id)


@router.post("/add", response_model=TeamMember, status_code=status.HTTP_201_CREATED)
async def add_member(workspace_id: str, body: MemberAdd, store: Store, identity: CurrentIdentity) -> TeamMember:
    """Add an existing user to the workspace by email."""
    return await team.add_member(store, identity, workspace_id, body)


@router.post("/{membership_id}/role", response_model=MembershipRecord)
async def update_member_role(
    workspace_id: str,
    membership_id: str,
    body: MemberRoleUpdate,
    store: Store,
    identity: CurrentIdentity,
) -> MembershipRecord:
    return await team.update_member_role(store, identity, workspace_id, membership_id, body.role)


@router.post("/{membership_id}/remove", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(workspace_id: str, membership_id: str, store: Store, identity: CurrentIdentity) -> None:
    await team.remove_member(store, identity, workspace_id, membership_id)


@router.get("/non-members", response_model=list[WorkspaceUserSummary])
async def list_non_members(workspace_id: str, store: Store, identity: CurrentIdentity) -> list[WorkspaceUserSummary]:
    """Users who can be invited."""
    return await team.list_non_members(store, identity, workspace_id)


@router.get("/users", response_model=list[WorkspaceUserSummary])
async def list_workspace_users(
    workspace_id: str,
    store: Store,
    identity: CurrentIdentity,
) -> list[WorkspaceUserSummary]:
    """Members, e.g. as assignee candidates."""
    return await team.list_workspace_users(store, identity, workspace_id)
