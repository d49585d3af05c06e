"""CRUD operations for workspaces and workspace members."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.access import Action, require
from app.access.visibility import workspace_visibility
from app.core import messages
from app.core.database import transaction
from app.core.errors import InvalidArgumentError
from app.prompts.slugs import SlugAllocator, is_valid_slug, run_with_slug_retry, slugify
from .models import Workspace, WorkspaceMember


logger = logging.getLogger("app.workspaces.crud")

# workspaces.slug is unique across all rows, deleted ones included
workspace_slugs = SlugAllocator(Workspace, include_deleted=True)

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500

UPDATABLE_FIELDS = ("name", "description", "logo_url", "primary_color")


def validate_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if len(name) < MIN_NAME_LENGTH or len(name) > MAX_NAME_LENGTH:
        raise InvalidArgumentError(messages.WORKSPACE_NAME_INVALID)
    return name


def validate_description(description: Optional[str]) -> Optional[str]:
    if description is None:
        return None
    description = description.strip()
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise InvalidArgumentError(messages.WORKSPACE_DESCRIPTION_TOO_LONG)
    return description or None


class WorkspaceCRUD:
    """CRUD operations for workspaces."""

    @staticmethod
    def get_by_slug(db: Session, slug: str) -> Optional[Workspace]:
        """Get a live workspace by slug."""
        return db.scalar(
            select(Workspace).where(Workspace.slug == slug, Workspace.deleted_at.is_(None))
        )

    @staticmethod
    def get_user_workspaces(db: Session, user_id: uuid.UUID) -> List[Workspace]:
        """Workspaces the user owns or belongs to."""
        return list(
            db.scalars(select(Workspace).where(workspace_visibility(user_id)).order_by(Workspace.name))
        )

    @staticmethod
    def create(
        db: Session,
        owner_id: uuid.UUID,
        name: str,
        description: Optional[str] = None,
        slug: Optional[str] = None,
    ) -> Workspace:
        """Create a workspace owned by the caller; the owner gets no membership row."""
        name = validate_name(name)
        description = validate_description(description)
        if slug is not None:
            slug = slugify(slug)
            if not is_valid_slug(slug):
                raise InvalidArgumentError(messages.PROMPT_SLUG_INVALID)

        def unit(allocated: str) -> Workspace:
            workspace = Workspace(
                name=name,
                slug=allocated,
                description=description,
                owner_id=owner_id,
                created_by=str(owner_id),
            )
            db.add(workspace)
            db.flush()
            return workspace

        workspace = run_with_slug_retry(db, workspace_slugs, slug or name, unit)
        logger.info("Workspace %s (%s) created by %s", workspace.id, workspace.slug, owner_id)
        return workspace

    @staticmethod
    def update(
        db: Session,
        workspace_slug: str,
        user_id: uuid.UUID,
        changes: Dict[str, Any],
    ) -> Workspace:
        """Update workspace settings (ADMIN+). The slug never changes."""
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise InvalidArgumentError(f"Unknown workspace fields: {', '.join(sorted(unknown))}")
        changes = dict(changes)
        if "name" in changes:
            changes["name"] = validate_name(changes["name"])
        if "description" in changes:
            changes["description"] = validate_description(changes["description"])

        with transaction(db):
            workspace = WorkspaceCRUD.get_by_slug(db, workspace_slug)
            require(db, user_id, workspace, Action.MANAGE_WORKSPACE)
            for key, value in changes.items():
                setattr(workspace, key, value)
            workspace.updated_by = str(user_id)
            db.flush()
        return workspace

    @staticmethod
    def delete(db: Session, workspace_slug: str, user_id: uuid.UUID) -> None:
        """Soft delete a workspace (owner only); its prompts become invisible with it."""
        with transaction(db):
            workspace = WorkspaceCRUD.get_by_slug(db, workspace_slug)
            require(db, user_id, workspace, Action.DELETE_WORKSPACE)
            workspace.deleted_at = datetime.now(timezone.utc)
            workspace.deleted_by = str(user_id)
            db.flush()
        logger.info("Workspace %s soft-deleted by %s", workspace_slug, user_id)


class WorkspaceMemberCRUD:
    """Read helpers for workspace members."""

    @staticmethod
    def get_membership(
        db: Session,
        workspace_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Optional[WorkspaceMember]:
        """Get user's membership in a workspace."""
        return db.scalar(
            select(WorkspaceMember).where(
                WorkspaceMember.workspace_id == workspace_id,
                WorkspaceMember.user_id == user_id,
            )
        )
