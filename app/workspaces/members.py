"""Workspace membership management under the role-ceiling rule."""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.access import ASSIGNABLE_ROLES, Action, MemberRole, require
from app.core import messages
from app.core.database import transaction
from app.core.errors import ConflictError, InvalidArgumentError, NotFoundOrHiddenError
from app.models.activity import ActivityType
from app.models.user import User
from app.services.activity_service import record_activity
from .crud import WorkspaceCRUD, WorkspaceMemberCRUD
from .models import WorkspaceMember


logger = logging.getLogger("app.workspaces.members")


def parse_role(value: Any) -> MemberRole:
    """Parse a requested membership role; OWNER passes through so the role ceiling can reject it."""
    role = MemberRole.parse(value)
    if role is None or (role not in ASSIGNABLE_ROLES and role is not MemberRole.OWNER):
        raise InvalidArgumentError(messages.MEMBER_ROLE_INVALID)
    return role


def _member_entry(user: User, role: MemberRole, joined_at) -> Dict[str, Any]:
    return {
        "user_id": user.id,
        "email": user.email,
        "username": user.username,
        "full_name": user.full_name,
        "role": role.value,
        "joined_at": joined_at,
    }


def list_members(db: Session, workspace_slug: str, user_id: Optional[uuid.UUID]) -> List[Dict[str, Any]]:
    """Members of a workspace, owner first with role OWNER."""
    workspace = WorkspaceCRUD.get_by_slug(db, workspace_slug)
    require(db, user_id, workspace, Action.READ)

    owner = db.get(User, workspace.owner_id)
    entries = [_member_entry(owner, MemberRole.OWNER, workspace.created_at)]
    rows = db.execute(
        select(WorkspaceMember, User)
        .join(User, User.id == WorkspaceMember.user_id)
        .where(WorkspaceMember.workspace_id == workspace.id, WorkspaceMember.user_id != workspace.owner_id)
        .order_by(WorkspaceMember.created_at)
    ).all()
    for membership, user in rows:
        role = MemberRole.parse(membership.role) or MemberRole.VIEWER
        entries.append(_member_entry(user, role, membership.created_at))
    return entries


def add_member(
    db: Session,
    workspace_slug: str,
    actor_id: uuid.UUID,
    target_user_id: uuid.UUID,
    role: Any = MemberRole.MEMBER,
) -> WorkspaceMember:
    role = parse_role(role)

    with transaction(db):
        workspace = WorkspaceCRUD.get_by_slug(db, workspace_slug)
        require(
            db,
            actor_id,
            workspace,
            Action.MANAGE_MEMBERS,
            target_user_id=target_user_id,
            granted_role=role,
        )
        target = db.get(User, target_user_id)
        if target is None or not target.is_active:
            raise NotFoundOrHiddenError(messages.MEMBER_USER_NOT_FOUND)
        if WorkspaceMemberCRUD.get_membership(db, workspace.id, target_user_id) is not None:
            raise ConflictError(messages.MEMBER_ALREADY_EXISTS)

        membership = WorkspaceMember(
            workspace_id=workspace.id,
            user_id=target_user_id,
            role=role.value,
            invited_by=actor_id,
            created_by=str(actor_id),
        )
        db.add(membership)
        record_activity(
            db,
            ActivityType.MEMBER_ADDED,
            actor_id,
            workspace_id=workspace.id,
            details={"user_id": str(target_user_id), "role": role.value},
        )
        try:
            db.flush()
        except IntegrityError as exc:
            raise ConflictError(messages.MEMBER_ALREADY_EXISTS) from exc

    logger.info("User %s added to workspace %s as %s", target_user_id, workspace_slug, role.value)
    return membership


def update_member_role(
    db: Session,
    workspace_slug: str,
    actor_id: uuid.UUID,
    target_user_id: uuid.UUID,
    role: Any,
) -> WorkspaceMember:
    role = parse_role(role)

    with transaction(db):
        workspace = WorkspaceCRUD.get_by_slug(db, workspace_slug)
        membership = (
            WorkspaceMemberCRUD.get_membership(db, workspace.id, target_user_id) if workspace else None
        )
        require(
            db,
            actor_id,
            workspace,
            Action.MANAGE_MEMBERS,
            target_user_id=target_user_id,
            target_role=MemberRole.parse(membership.role) if membership else None,
            granted_role=role,
        )
        if membership is None:
            raise NotFoundOrHiddenError(messages.MEMBER_NOT_FOUND)

        previous = membership.role
        membership.role = role.value
        membership.updated_by = str(actor_id)
        record_activity(
            db,
            ActivityType.MEMBER_ROLE_CHANGED,
            actor_id,
            workspace_id=workspace.id,
            details={"user_id": str(target_user_id), "from": previous, "to": role.value},
        )
        db.flush()

    return membership


def remove_member(
    db: Session,
    workspace_slug: str,
    actor_id: uuid.UUID,
    target_user_id: uuid.UUID,
) -> None:
    if actor_id == target_user_id:
        raise InvalidArgumentError(messages.MEMBER_CANNOT_REMOVE_SELF)

    with transaction(db):
        workspace = WorkspaceCRUD.get_by_slug(db, workspace_slug)
        membership = (
            WorkspaceMemberCRUD.get_membership(db, workspace.id, target_user_id) if workspace else None
        )
        require(
            db,
            actor_id,
            workspace,
            Action.MANAGE_MEMBERS,
            target_user_id=target_user_id,
            target_role=MemberRole.parse(membership.role) if membership else None,
        )
        if membership is None:
            raise NotFoundOrHiddenError(messages.MEMBER_NOT_FOUND)

        db.delete(membership)
        record_activity(
            db,
            ActivityType.MEMBER_REMOVED,
            actor_id,
            workspace_id=workspace.id,
            details={"user_id": str(target_user_id), "role": membership.role},
        )
        db.flush()

    logger.info("User %s removed from workspace %s", target_user_id, workspace_slug)
