"""Endpoints for the invitee side of workspace invitations."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user
from app.api.responses import unwrap
from app.core.database import get_db
from app.models.user import User
from app.services import workspace_service
from app.workspaces.schemas import InvitationResponse, WorkspaceMembershipResponse


router = APIRouter(prefix="/invitations", tags=["invitations"])


@router.get("", response_model=List[InvitationResponse])
def list_my_invitations(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Pending invitations sent to the caller's email."""
    return unwrap(workspace_service.list_user_invitations(db, current_user.id))


@router.post("/{token}/accept", response_model=WorkspaceMembershipResponse)
def accept_invitation(
    token: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return unwrap(workspace_service.accept_invitation(db, token, current_user.id))


@router.post("/{token}/reject", response_model=InvitationResponse)
def reject_invitation(
    token: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return unwrap(workspace_service.reject_invitation(db, token, current_user.id))
