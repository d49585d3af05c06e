"""
Shared visibility predicates.

Every read path (lookup by id, lookup by slug, listings) narrows its
candidate rows with these clauses so that soft-deleted and private records
are excluded the same way everywhere.
"""

import uuid
from typing import Optional

from sqlalchemy import ColumnElement, Select, and_, false, or_, select

from app.models.category import Category
from app.models.prompt import Prompt
from app.workspaces.models import Workspace, WorkspaceMember


def _member_workspace_ids(user_id: uuid.UUID):
    return select(WorkspaceMember.workspace_id).where(WorkspaceMember.user_id == user_id)


def _owned_workspace_ids(user_id: uuid.UUID):
    return select(Workspace.id).where(Workspace.owner_id == user_id)


def _live_workspace_ids():
    return select(Workspace.id).where(Workspace.deleted_at.is_(None))


def workspace_access_clause(workspace_id_column, user_id: Optional[uuid.UUID]) -> ColumnElement[bool]:
    """Caller owns the workspace or holds a membership row in it."""
    if user_id is None:
        return false()
    return or_(
        workspace_id_column.in_(_owned_workspace_ids(user_id)),
        workspace_id_column.in_(_member_workspace_ids(user_id)),
    )


def prompt_visibility(user_id: Optional[uuid.UUID]) -> ColumnElement[bool]:
    """deleted_at IS NULL AND (public OR authored OR workspace member OR workspace owner)."""
    access = [Prompt.is_public.is_(True)]
    if user_id is not None:
        access.append(Prompt.user_id == user_id)
        access.append(workspace_access_clause(Prompt.workspace_id, user_id))
    return and_(
        Prompt.deleted_at.is_(None),
        Prompt.workspace_id.in_(_live_workspace_ids()),
        or_(*access),
    )


def category_visibility(user_id: Optional[uuid.UUID]) -> ColumnElement[bool]:
    return and_(
        Category.workspace_id.in_(_live_workspace_ids()),
        workspace_access_clause(Category.workspace_id, user_id),
    )


def workspace_visibility(user_id: Optional[uuid.UUID]) -> ColumnElement[bool]:
    return and_(
        Workspace.deleted_at.is_(None),
        workspace_access_clause(Workspace.id, user_id),
    )


def visible_prompts(user_id: Optional[uuid.UUID]) -> Select:
    return select(Prompt).where(prompt_visibility(user_id))

