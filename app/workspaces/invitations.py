"""
Workspace invitations.

An ADMIN or the owner invites an email address with a role; the person
holding that address redeems the token to become a member. Invitations
move from PENDING to exactly one of ACCEPTED, REJECTED or CANCELLED, and
read as EXPIRED once their deadline passes unanswered.
"""

import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.access import Action, MemberRole, require
from app.core import messages
from app.core.config import settings
from app.core.database import transaction
from app.core.errors import (
    ConflictError,
    InvalidArgumentError,
    NotFoundOrHiddenError,
    PermissionDeniedError,
)
from app.models.activity import ActivityType
from app.models.user import User
from app.services.activity_service import record_activity
from .crud import WorkspaceCRUD, WorkspaceMemberCRUD
from .members import parse_role
from .models import InvitationStatus, Workspace, WorkspaceInvitation, WorkspaceMember


logger = logging.getLogger("app.workspaces.invitations")

MAX_MESSAGE_LENGTH = 500


def normalize_email(email: Any) -> str:
    try:
        return validate_email(str(email or "").strip(), check_deliverability=False).normalized.lower()
    except EmailNotValidError as exc:
        raise InvalidArgumentError(messages.INVITATION_EMAIL_INVALID) from exc


def _is_member(db: Session, workspace: Workspace, user: Optional[User]) -> bool:
    if user is None:
        return False
    if workspace.owner_id == user.id:
        return True
    return WorkspaceMemberCRUD.get_membership(db, workspace.id, user.id) is not None


def _user_by_email(db: Session, email: str) -> Optional[User]:
    return db.scalar(select(User).where(func.lower(User.email) == email))


def _pending_invitations(db: Session, workspace_id: uuid.UUID, email: Optional[str] = None) -> List[WorkspaceInvitation]:
    query = select(WorkspaceInvitation).where(
        WorkspaceInvitation.workspace_id == workspace_id,
        WorkspaceInvitation.status == InvitationStatus.PENDING.value,
    )
    if email is not None:
        query = query.where(WorkspaceInvitation.email == email)
    rows = db.scalars(query.order_by(WorkspaceInvitation.created_at.desc()))
    return [invitation for invitation in rows if not invitation.is_expired()]


def create_invitation(
    db: Session,
    workspace_slug: str,
    actor_id: uuid.UUID,
    email: Any,
    role: Any = MemberRole.MEMBER,
    message: Optional[str] = None,
) -> WorkspaceInvitation:
    """Invite an email address; the role obeys the same ceiling as adding a member directly."""
    role = parse_role(role)
    email = normalize_email(email)
    message = (message or "").strip() or None
    if message is not None and len(message) > MAX_MESSAGE_LENGTH:
        raise InvalidArgumentError(messages.INVITATION_MESSAGE_TOO_LONG)

    with transaction(db):
        workspace = WorkspaceCRUD.get_by_slug(db, workspace_slug)
        require(db, actor_id, workspace, Action.MANAGE_MEMBERS, granted_role=role)

        if _is_member(db, workspace, _user_by_email(db, email)):
            raise ConflictError(messages.MEMBER_ALREADY_EXISTS)
        if _pending_invitations(db, workspace.id, email):
            raise ConflictError(messages.INVITATION_ALREADY_PENDING)

        invitation = WorkspaceInvitation(
            workspace_id=workspace.id,
            email=email,
            role=role.value,
            token=secrets.token_hex(32),
            status=InvitationStatus.PENDING.value,
            message=message,
            invited_by=actor_id,
            expires_at=datetime.now(timezone.utc) + timedelta(days=settings.INVITATION_EXPIRE_DAYS),
            created_by=str(actor_id),
        )
        db.add(invitation)
        record_activity(
            db,
            ActivityType.MEMBER_INVITED,
            actor_id,
            workspace_id=workspace.id,
            details={"email": email, "role": role.value},
        )
        db.flush()

    logger.info("Invitation %s sent for workspace %s as %s", invitation.id, workspace_slug, role.value)
    return invitation


def list_invitations(db: Session, workspace_slug: str, actor_id: uuid.UUID) -> List[WorkspaceInvitation]:
    """Pending, unexpired invitations of a workspace; ADMIN or owner only."""
    workspace = WorkspaceCRUD.get_by_slug(db, workspace_slug)
    require(db, actor_id, workspace, Action.MANAGE_MEMBERS)
    return _pending_invitations(db, workspace.id)


def list_user_invitations(db: Session, user_id: uuid.UUID) -> List[WorkspaceInvitation]:
    """Pending, unexpired invitations addressed to the caller's email in live workspaces."""
    user = db.get(User, user_id)
    if user is None:
        return []
    rows = db.scalars(
        select(WorkspaceInvitation)
        .join(Workspace, Workspace.id == WorkspaceInvitation.workspace_id)
        .where(
            WorkspaceInvitation.email == user.email.lower(),
            WorkspaceInvitation.status == InvitationStatus.PENDING.value,
            Workspace.deleted_at.is_(None),
        )
        .order_by(WorkspaceInvitation.created_at.desc())
    )
    return [invitation for invitation in rows if not invitation.is_expired()]


def _open_invitation(db: Session, token: str, user_id: uuid.UUID) -> tuple:
    """Lock a pending invitation addressed to the caller, with its live workspace and the caller."""
    invitation = db.scalar(
        select(WorkspaceInvitation)
        .where(WorkspaceInvitation.token == token)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    if invitation is None or invitation.status != InvitationStatus.PENDING.value:
        raise NotFoundOrHiddenError(messages.INVITATION_NOT_FOUND)
    workspace = db.get(Workspace, invitation.workspace_id)
    if workspace is None or workspace.deleted_at is not None:
        raise NotFoundOrHiddenError(messages.INVITATION_NOT_FOUND)
    if invitation.is_expired():
        raise InvalidArgumentError(messages.INVITATION_EXPIRED)

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise PermissionDeniedError(messages.AUTHENTICATION_REQUIRED)
    if user.email.lower() != invitation.email:
        raise PermissionDeniedError(messages.INVITATION_EMAIL_MISMATCH)
    return invitation, workspace, user


def accept_invitation(db: Session, token: str, user_id: uuid.UUID) -> WorkspaceMember:
    """Redeem a token: the membership and the ACCEPTED status are written together."""
    with transaction(db):
        invitation, workspace, user = _open_invitation(db, token, user_id)
        if _is_member(db, workspace, user):
            raise ConflictError(messages.MEMBER_ALREADY_EXISTS)

        membership = WorkspaceMember(
            workspace_id=workspace.id,
            user_id=user.id,
            role=invitation.role,
            invited_by=invitation.invited_by,
            created_by=str(user.id),
        )
        db.add(membership)

        invitation.status = InvitationStatus.ACCEPTED.value
        invitation.accepted_at = datetime.now(timezone.utc)
        invitation.accepted_by = user.id
        invitation.updated_by = str(user.id)
        record_activity(
            db,
            ActivityType.MEMBER_ADDED,
            user.id,
            workspace_id=workspace.id,
            details={"user_id": str(user.id), "role": invitation.role, "invitation_id": str(invitation.id)},
        )
        try:
            db.flush()
        except IntegrityError as exc:
            raise ConflictError(messages.MEMBER_ALREADY_EXISTS) from exc

    logger.info("User %s joined workspace %s by invitation %s", user_id, workspace.slug, invitation.id)
    return membership


def reject_invitation(db: Session, token: str, user_id: uuid.UUID) -> WorkspaceInvitation:
    with transaction(db):
        invitation, _, user = _open_invitation(db, token, user_id)
        invitation.status = InvitationStatus.REJECTED.value
        invitation.rejected_at = datetime.now(timezone.utc)
        invitation.updated_by = str(user.id)
        db.flush()

    logger.info("Invitation %s rejected by %s", invitation.id, user_id)
    return invitation


def cancel_invitation(
    db: Session,
    workspace_slug: str,
    invitation_id: uuid.UUID,
    actor_id: uuid.UUID,
) -> WorkspaceInvitation:
    """Withdraw a pending invitation; ADMIN or owner only."""
    with transaction(db):
        workspace = WorkspaceCRUD.get_by_slug(db, workspace_slug)
        require(db, actor_id, workspace, Action.MANAGE_MEMBERS)

        invitation = db.get(WorkspaceInvitation, invitation_id, with_for_update=True)
        if (
            invitation is None
            or invitation.workspace_id != workspace.id
            or invitation.status != InvitationStatus.PENDING.value
        ):
            raise NotFoundOrHiddenError(messages.INVITATION_NOT_FOUND)

        invitation.status = InvitationStatus.CANCELLED.value
        invitation.updated_by = str(actor_id)
        db.flush()

    logger.info("Invitation %s cancelled by %s", invitation_id, actor_id)
    return invitation
