"""Workspace endpoints (RPC-style).

All write operations use POST; reads use GET.
"""

from __future__ import annotations

from fastapi import APIRouter, status

from kioskdesk.helpdesk.deps import CurrentIdentity, Store
from kioskdesk.helpdesk.managers import dashboard, workspaces
from kioskdesk.helpdesk.models.api import UserWorkspace, WorkspaceCreate, WorkspaceStats, WorkspaceUpdate
from kioskdesk.helpdesk.models.records import WorkspaceRecord

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


@router.post("/create", response_model=UserWorkspace, status_code=status.HTTP_201_CREATED)
async def create_workspace(body: WorkspaceCreate, store: Store, identity: CurrentIdentity) -> UserWorkspace:
    """Create a workspace; the caller becomes its admin."""
    return await workspaces.create_workspace(store, identity, body)


@router.get("/list", response_model=list[UserWorkspace])
async def list_workspaces(store: Store, identity: CurrentIdentity) -> list[UserWorkspace]:
    """List the caller's workspaces with their role in each."""
    return await workspaces.list_user_workspaces(store, identity)


@router.get("/{workspace_id}/get", response_model=UserWorkspace)
async def get_workspace(workspace_id: str, store: Store, identity: CurrentIdentity) -> UserWorkspace:
    return await workspaces.get_workspace(store, identity, workspace_id)


@router.post("/{workspace_id}/update", response_model=WorkspaceRecord)
async def update_workspace(
    workspace_id: str,
    body: WorkspaceUpdate,
    store: Store,
    identity: CurrentIdentity,
) -> WorkspaceRecord:
    """Partially update a workspace."""
    return await workspaces.update_workspace(store, identity, workspace_id, body)


@router.get("/{workspace_id}/stats", response_model=WorkspaceStats)
async def get_workspace_stats(workspace_id: str, store: Store, identity: CurrentIdentity) -> WorkspaceStats:
    return await dashboard.get_workspace_stats(store, identity, workspace_id)
