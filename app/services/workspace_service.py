"""Engine boundary for workspaces, members, invitations and categories."""

import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from app.access import Action, require
from app.core.errors import engine_operation
from app.prompts import categories
from app.prompts.schemas import CategoryCreate, CategoryResponse, CategoryUpdate
from app.workspaces import invitations, members
from app.workspaces.crud import WorkspaceCRUD
from app.workspaces.schemas import (
    InvitationCreate,
    InvitationCreated,
    InvitationResponse,
    WorkspaceCreate,
    WorkspaceMemberResponse,
    WorkspaceMembershipResponse,
    WorkspaceResponse,
    WorkspaceUpdate,
)


# ==================== Workspaces ====================

@engine_operation("create_workspace")
def create_workspace(db: Session, user_id: uuid.UUID, payload: WorkspaceCreate) -> WorkspaceResponse:
    workspace = WorkspaceCRUD.create(
        db, user_id, payload.name, description=payload.description, slug=payload.slug
    )
    return WorkspaceResponse.model_validate(workspace)


@engine_operation("get_workspace")
def get_workspace(db: Session, workspace_slug: str, user_id: Optional[uuid.UUID]) -> WorkspaceResponse:
    workspace = WorkspaceCRUD.get_by_slug(db, workspace_slug)
    require(db, user_id, workspace, Action.READ)
    return WorkspaceResponse.model_validate(workspace)


@engine_operation("list_user_workspaces")
def list_user_workspaces(db: Session, user_id: uuid.UUID) -> List[WorkspaceResponse]:
    return [WorkspaceResponse.model_validate(w) for w in WorkspaceCRUD.get_user_workspaces(db, user_id)]


@engine_operation("update_workspace")
def update_workspace(
    db: Session,
    workspace_slug: str,
    user_id: uuid.UUID,
    payload: WorkspaceUpdate,
) -> WorkspaceResponse:
    workspace = WorkspaceCRUD.update(db, workspace_slug, user_id, payload.model_dump(exclude_unset=True))
    return WorkspaceResponse.model_validate(workspace)


@engine_operation("delete_workspace")
def delete_workspace(db: Session, workspace_slug: str, user_id: uuid.UUID) -> None:
    WorkspaceCRUD.delete(db, workspace_slug, user_id)


# ==================== Members ====================

@engine_operation("list_members")
def list_members(db: Session, workspace_slug: str, user_id: Optional[uuid.UUID]) -> List[WorkspaceMemberResponse]:
    return [WorkspaceMemberResponse(**entry) for entry in members.list_members(db, workspace_slug, user_id)]


@engine_operation("add_member")
def add_member(
    db: Session,
    workspace_slug: str,
    actor_id: uuid.UUID,
    target_user_id: uuid.UUID,
    role: str = "MEMBER",
) -> WorkspaceMembershipResponse:
    membership = members.add_member(db, workspace_slug, actor_id, target_user_id, role)
    return WorkspaceMembershipResponse.model_validate(membership)


@engine_operation("update_member_role")
def update_member_role(
    db: Session,
    workspace_slug: str,
    actor_id: uuid.UUID,
    target_user_id: uuid.UUID,
    role: str,
) -> WorkspaceMembershipResponse:
    membership = members.update_member_role(db, workspace_slug, actor_id, target_user_id, role)
    return WorkspaceMembershipResponse.model_validate(membership)


@engine_operation("remove_member")
def remove_member(db: Session, workspace_slug: str, actor_id: uuid.UUID, target_user_id: uuid.UUID) -> None:
    members.remove_member(db, workspace_slug, actor_id, target_user_id)


# ==================== Invitations ====================

@engine_operation("create_invitation")
def create_invitation(
    db: Session,
    workspace_slug: str,
    actor_id: uuid.UUID,
    payload: InvitationCreate,
) -> InvitationCreated:
    invitation = invitations.create_invitation(
        db, workspace_slug, actor_id, payload.email, payload.role, payload.message
    )
    return InvitationCreated.model_validate(invitation)


@engine_operation("list_invitations")
def list_invitations(db: Session, workspace_slug: str, actor_id: uuid.UUID) -> List[InvitationResponse]:
    return [InvitationResponse.model_validate(i) for i in invitations.list_invitations(db, workspace_slug, actor_id)]


@engine_operation("list_user_invitations")
def list_user_invitations(db: Session, user_id: uuid.UUID) -> List[InvitationResponse]:
    return [InvitationResponse.model_validate(i) for i in invitations.list_user_invitations(db, user_id)]


@engine_operation("accept_invitation")
def accept_invitation(db: Session, token: str, user_id: uuid.UUID) -> WorkspaceMembershipResponse:
    return WorkspaceMembershipResponse.model_validate(invitations.accept_invitation(db, token, user_id))


@engine_operation("reject_invitation")
def reject_invitation(db: Session, token: str, user_id: uuid.UUID) -> InvitationResponse:
    return InvitationResponse.model_validate(invitations.reject_invitation(db, token, user_id))


@engine_operation("cancel_invitation")
def cancel_invitation(
    db: Session,
    workspace_slug: str,
    invitation_id: uuid.UUID,
    actor_id: uuid.UUID,
) -> InvitationResponse:
    return InvitationResponse.model_validate(
        invitations.cancel_invitation(db, workspace_slug, invitation_id, actor_id)
    )


# ==================== Categories ====================

@engine_operation("create_category")
def create_category(
    db: Session,
    workspace_slug: str,
    user_id: uuid.UUID,
    payload: CategoryCreate,
) -> CategoryResponse:
    category = categories.create_category(
        db,
        user_id,
        workspace_slug,
        payload.name,
        description=payload.description,
        parent_id=payload.parent_id,
        icon=payload.icon,
        color=payload.color,
    )
    return CategoryResponse.model_validate(category)


@engine_operation("list_categories")
def list_categories(db: Session, workspace_slug: str, user_id: Optional[uuid.UUID]) -> List[CategoryResponse]:
    return [CategoryResponse.model_validate(c) for c in categories.list_categories(db, workspace_slug, user_id)]


@engine_operation("update_category")
def update_category(
    db: Session,
    category_id: uuid.UUID,
    user_id: uuid.UUID,
    payload: CategoryUpdate,
) -> CategoryResponse:
    category = categories.update_category(db, category_id, user_id, payload.model_dump(exclude_unset=True))
    return CategoryResponse.model_validate(category)


@engine_operation("delete_category")
def delete_category(db: Session, category_id: uuid.UUID, user_id: uuid.UUID) -> None:
    categories.delete_category(db, category_id, user_id)
