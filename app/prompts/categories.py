"""Workspace-scoped, optionally nested categories."""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.access import Action, require
from app.core import messages
from app.core.database import transaction
from app.core.errors import InvalidArgumentError, NotFoundOrHiddenError
from app.models.category import Category
from app.models.prompt import Prompt
from app.workspaces.crud import WorkspaceCRUD
from .slugs import SlugAllocator, run_with_slug_retry


logger = logging.getLogger("app.prompts.categories")

category_slugs = SlugAllocator(Category, "workspace_id")

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 50
MAX_DESCRIPTION_LENGTH = 200

UPDATABLE_FIELDS = ("name", "description", "parent_id", "icon", "color")


def validate_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if len(name) < MIN_NAME_LENGTH or len(name) > MAX_NAME_LENGTH:
        raise InvalidArgumentError(messages.CATEGORY_NAME_INVALID)
    return name


def validate_description(description: Optional[str]) -> Optional[str]:
    if description is None:
        return None
    description = description.strip()
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise InvalidArgumentError(messages.CATEGORY_DESCRIPTION_TOO_LONG)
    return description or None


def _check_parent(
    db: Session,
    workspace_id: uuid.UUID,
    parent_id: Optional[uuid.UUID],
    category_id: Optional[uuid.UUID] = None,
) -> None:
    if parent_id is None:
        return
    parent = db.get(Category, parent_id)
    if parent is None or parent.workspace_id != workspace_id:
        raise InvalidArgumentError(messages.CATEGORY_PARENT_INVALID)
    if category_id is None:
        return

    # Walk up from the new parent; reaching the category itself means a cycle
    seen = set()
    current = parent
    while current is not None and current.id not in seen:
        if current.id == category_id:
            raise InvalidArgumentError(messages.CATEGORY_PARENT_CYCLE)
        seen.add(current.id)
        current = db.get(Category, current.parent_id) if current.parent_id else None


def _get_category(db: Session, category_id: uuid.UUID) -> Category:
    category = db.get(Category, category_id)
    if category is None:
        raise NotFoundOrHiddenError()
    return category


def create_category(
    db: Session,
    user_id: uuid.UUID,
    workspace_slug: str,
    name: str,
    description: Optional[str] = None,
    parent_id: Optional[uuid.UUID] = None,
    icon: Optional[str] = None,
    color: Optional[str] = None,
) -> Category:
    name = validate_name(name)
    description = validate_description(description)

    workspace = WorkspaceCRUD.get_by_slug(db, workspace_slug)
    require(db, user_id, workspace, Action.CREATE_CATEGORY)
    _check_parent(db, workspace.id, parent_id)
    workspace_id = workspace.id

    def unit(slug: str) -> Category:
        category = Category(
            workspace_id=workspace_id,
            parent_id=parent_id,
            name=name,
            slug=slug,
            description=description,
            icon=icon,
            color=color,
            created_by=str(user_id),
        )
        db.add(category)
        db.flush()
        return category

    category = run_with_slug_retry(
        db,
        category_slugs,
        name,
        unit,
        scope_id=workspace_id,
        conflict_message=messages.CATEGORY_SLUG_CONFLICT,
    )
    logger.info("Category %s created in workspace %s", category.id, workspace_id)
    return category


def list_categories(db: Session, workspace_slug: str, user_id: Optional[uuid.UUID]) -> List[Category]:
    workspace = WorkspaceCRUD.get_by_slug(db, workspace_slug)
    require(db, user_id, workspace, Action.READ)
    return list(
        db.scalars(
            select(Category).where(Category.workspace_id == workspace.id).order_by(Category.name)
        )
    )


def update_category(
    db: Session,
    category_id: uuid.UUID,
    user_id: uuid.UUID,
    changes: Dict[str, Any],
) -> Category:
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise InvalidArgumentError(f"Unknown category fields: {', '.join(sorted(unknown))}")
    changes = dict(changes)
    if "name" in changes:
        changes["name"] = validate_name(changes["name"])
    if "description" in changes:
        changes["description"] = validate_description(changes["description"])

    with transaction(db):
        category = _get_category(db, category_id)
        require(db, user_id, category, Action.MANAGE_CATEGORIES)
        if "parent_id" in changes:
            _check_parent(db, category.workspace_id, changes["parent_id"], category.id)

        # Renames keep the slug so existing links stay valid
        for field, value in changes.items():
            setattr(category, field, value)
        category.updated_by = str(user_id)
        db.flush()

    return category


def delete_category(db: Session, category_id: uuid.UUID, user_id: uuid.UUID) -> None:
    """Delete a category, detaching its prompts and child categories."""
    with transaction(db):
        category = _get_category(db, category_id)
        require(db, user_id, category, Action.MANAGE_CATEGORIES)

        db.execute(
            update(Prompt)
            .where(Prompt.category_id == category.id)
            .values(category_id=None)
            .execution_options(synchronize_session=False)
        )
        db.execute(
            update(Category)
            .where(Category.parent_id == category.id)
            .values(parent_id=None)
            .execution_options(synchronize_session=False)
        )
        db.delete(category)
        db.flush()

    logger.info("Category %s deleted by %s", category_id, user_id)
