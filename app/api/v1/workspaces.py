"""Workspace, membership and invitation endpoints."""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user, get_optional_user_id
from app.api.responses import unwrap
from app.core.database import get_db
from app.models.user import User
from app.services import workspace_service
from app.workspaces.schemas import (
    InvitationCreate,
    InvitationCreated,
    InvitationResponse,
    WorkspaceCreate,
    WorkspaceMemberCreate,
    WorkspaceMemberResponse,
    WorkspaceMembershipResponse,
    WorkspaceMemberUpdate,
    WorkspaceResponse,
    WorkspaceUpdate,
)


router = APIRouter(prefix="/workspaces", tags=["workspaces"])


@router.post("", response_model=WorkspaceResponse, status_code=status.HTTP_201_CREATED)
def create_workspace(
    payload: WorkspaceCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Create a workspace owned by the caller."""
    return unwrap(workspace_service.create_workspace(db, current_user.id, payload))


@router.get("", response_model=List[WorkspaceResponse])
def list_my_workspaces(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Workspaces the caller owns or is a member of."""
    return unwrap(workspace_service.list_user_workspaces(db, current_user.id))


@router.get("/{workspace_slug}", response_model=WorkspaceResponse)
def get_workspace(
    workspace_slug: str,
    db: Session = Depends(get_db),
    user_id: Optional[uuid.UUID] = Depends(get_optional_user_id),
):
    return unwrap(workspace_service.get_workspace(db, workspace_slug, user_id))


@router.patch("/{workspace_slug}", response_model=WorkspaceResponse)
def update_workspace(
    workspace_slug: str,
    payload: WorkspaceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return unwrap(workspace_service.update_workspace(db, workspace_slug, current_user.id, payload))


@router.delete("/{workspace_slug}", status_code=status.HTTP_204_NO_CONTENT)
def delete_workspace(
    workspace_slug: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Soft delete a workspace (owner only)."""
    unwrap(workspace_service.delete_workspace(db, workspace_slug, current_user.id))


# ==================== Members ====================

@router.get("/{workspace_slug}/members", response_model=List[WorkspaceMemberResponse])
def list_members(
    workspace_slug: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return unwrap(workspace_service.list_members(db, workspace_slug, current_user.id))


@router.post(
    "/{workspace_slug}/members",
    response_model=WorkspaceMembershipResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_member(
    workspace_slug: str,
    payload: WorkspaceMemberCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return unwrap(
        workspace_service.add_member(db, workspace_slug, current_user.id, payload.user_id, payload.role)
    )


@router.patch("/{workspace_slug}/members/{user_id}", response_model=WorkspaceMembershipResponse)
def update_member_role(
    workspace_slug: str,
    user_id: uuid.UUID,
    payload: WorkspaceMemberUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return unwrap(
        workspace_service.update_member_role(db, workspace_slug, current_user.id, user_id, payload.role)
    )


@router.delete("/{workspace_slug}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_member(
    workspace_slug: str,
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    unwrap(workspace_service.remove_member(db, workspace_slug, current_user.id, user_id))


# ==================== Invitations ====================

@router.get("/{workspace_slug}/invitations", response_model=List[InvitationResponse])
def list_invitations(
    workspace_slug: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Pending invitations of a workspace."""
    return unwrap(workspace_service.list_invitations(db, workspace_slug, current_user.id))


@router.post(
    "/{workspace_slug}/invitations",
    response_model=InvitationCreated,
    status_code=status.HTTP_201_CREATED,
)
def create_invitation(
    workspace_slug: str,
    payload: InvitationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return unwrap(workspace_service.create_invitation(db, workspace_slug, current_user.id, payload))


@router.delete("/{workspace_slug}/invitations/{invitation_id}", status_code=status.HTTP_204_NO_CONTENT)
def cancel_invitation(
    workspace_slug: str,
    invitation_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    unwrap(workspace_service.cancel_invitation(db, workspace_slug, invitation_id, current_user.id))
