"""Prompt document operations: create, get, update, soft delete and listing."""

import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from app.access import Action, prompt_visibility, require
from app.core import messages
from app.core.config import settings
from app.core.database import transaction
from app.core.errors import InvalidArgumentError, NotFoundOrHiddenError
from app.models.activity import ActivityType
from app.models.category import Category
from app.models.prompt import Block, Prompt
from app.services.activity_service import record_activity
from app.workspaces.crud import WorkspaceCRUD
from app.workspaces.models import Workspace
from .blocks import lock_prompt, ordered_blocks, parse_block_type, validate_indent
from .slugs import is_valid_slug, run_with_slug_retry, slugify
from .versions import prompt_slugs, write_version


logger = logging.getLogger("app.prompts.documents")

MIN_TITLE_LENGTH = 3
MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500

UPDATABLE_FIELDS = (
    "title",
    "description",
    "blocks",
    "is_public",
    "is_template",
    "is_pinned",
    "category_id",
    "llm_config",
    "variables",
)

# Columns that accept new values but never NULL
NON_NULLABLE_FIELDS = ("is_public", "is_template", "is_pinned", "llm_config", "variables")


def validate_title(title: Optional[str]) -> str:
    title = (title or "").strip()
    if len(title) < MIN_TITLE_LENGTH or len(title) > MAX_TITLE_LENGTH:
        raise InvalidArgumentError(messages.PROMPT_TITLE_INVALID)
    return title


def validate_description(description: Optional[str]) -> Optional[str]:
    if description is None:
        return None
    description = description.strip()
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise InvalidArgumentError(messages.PROMPT_DESCRIPTION_TOO_LONG)
    return description or None


def _check_category(db: Session, category_id: Optional[uuid.UUID], workspace_id: uuid.UUID) -> None:
    if category_id is None:
        return
    category = db.get(Category, category_id)
    if category is None or category.workspace_id != workspace_id:
        raise InvalidArgumentError(messages.PROMPT_CATEGORY_NOT_IN_WORKSPACE)


def _normalize_blocks(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    normalized = []
    for item in items:
        normalized.append(
            {
                "type": parse_block_type(item.get("type", "TEXT")),
                "content": item.get("content") or {},
                "indent_level": validate_indent(item.get("indent_level", 0)),
            }
        )
    return normalized


def _replace_blocks(db: Session, prompt: Prompt, items: List[Dict[str, Any]], user_id: uuid.UUID) -> None:
    existing = ordered_blocks(db, prompt.id)
    for block in existing:
        block.parent_id = None
    db.flush()
    for block in existing:
        db.delete(block)
    db.flush()

    for position, item in enumerate(items):
        db.add(
            Block(
                prompt_id=prompt.id,
                user_id=user_id,
                type=item["type"],
                content=item["content"],
                position=position,
                indent_level=item["indent_level"],
                created_by=str(user_id),
            )
        )


def create_document(
    db: Session,
    user_id: uuid.UUID,
    workspace_slug: str,
    title: str,
    description: Optional[str] = None,
    slug: Optional[str] = None,
    category_id: Optional[uuid.UUID] = None,
    is_public: bool = False,
    is_template: bool = False,
    llm_config: Optional[Dict[str, Any]] = None,
    variables: Optional[List[Any]] = None,
) -> Prompt:
    """Create a prompt with its first version and a creation activity."""
    title = validate_title(title)
    description = validate_description(description)
    if slug is not None:
        slug = slugify(slug)
        if not is_valid_slug(slug):
            raise InvalidArgumentError(messages.PROMPT_SLUG_INVALID)

    workspace = WorkspaceCRUD.get_by_slug(db, workspace_slug)
    require(db, user_id, workspace, Action.CREATE)
    _check_category(db, category_id, workspace.id)
    workspace_id = workspace.id

    def unit(allocated: str) -> Prompt:
        prompt = Prompt(
            workspace_id=workspace_id,
            user_id=user_id,
            category_id=category_id,
            title=title,
            slug=allocated,
            description=description,
            is_public=is_public,
            is_template=is_template,
            current_version=1,
            fork_count=0,
            llm_config=llm_config or {},
            variables=variables or [],
            created_by=str(user_id),
        )
        db.add(prompt)
        db.flush()
        write_version(db, prompt, user_id, 1, {"blocks": []})
        record_activity(
            db,
            ActivityType.PROMPT_CREATED,
            user_id,
            workspace_id=workspace_id,
            prompt_id=prompt.id,
            description=f"Created prompt '{title}'",
        )
        db.flush()
        return prompt

    prompt = run_with_slug_retry(db, prompt_slugs, slug or title, unit, scope_id=workspace_id)
    logger.info("Prompt %s created in workspace %s by %s", prompt.id, workspace_id, user_id)
    return prompt


def get_document(
    db: Session,
    workspace_slug: str,
    document_slug: str,
    user_id: Optional[uuid.UUID],
) -> Prompt:
    """Resolve a prompt by workspace and prompt slug through the shared visibility predicate."""
    workspace_id = select(Workspace.id).where(Workspace.slug == workspace_slug).scalar_subquery()
    prompt = db.scalar(
        select(Prompt).where(
            Prompt.workspace_id == workspace_id,
            Prompt.slug == document_slug,
            prompt_visibility(user_id),
        )
    )
    if prompt is None:
        raise NotFoundOrHiddenError()
    return prompt


def update_document(
    db: Session,
    prompt_id: uuid.UUID,
    user_id: uuid.UUID,
    changes: Dict[str, Any],
) -> Prompt:
    """Apply partial changes; ``blocks`` replaces the whole block list in the given order."""
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise InvalidArgumentError(f"Unknown prompt fields: {', '.join(sorted(unknown))}")
    changes = dict(changes)
    nulls = [field for field in NON_NULLABLE_FIELDS if field in changes and changes[field] is None]
    if nulls:
        raise InvalidArgumentError(f"Fields cannot be null: {', '.join(nulls)}")
    if "title" in changes:
        changes["title"] = validate_title(changes["title"])
    if "description" in changes:
        changes["description"] = validate_description(changes["description"])
    new_blocks = changes.pop("blocks", None)
    if new_blocks is not None:
        new_blocks = _normalize_blocks(new_blocks)

    with transaction(db):
        prompt = lock_prompt(db, prompt_id)
        require(db, user_id, prompt, Action.EDIT)
        if "category_id" in changes:
            _check_category(db, changes["category_id"], prompt.workspace_id)

        change_map: Dict[str, Any] = {}
        for field, value in changes.items():
            current = getattr(prompt, field)
            if current != value:
                change_map[field] = {"from": _jsonable(current), "to": _jsonable(value)}
                setattr(prompt, field, value)

        if new_blocks is not None:
            _replace_blocks(db, prompt, new_blocks, user_id)
            change_map["blocks"] = {"count": len(new_blocks)}

        prompt.updated_by = str(user_id)
        record_activity(
            db,
            ActivityType.PROMPT_UPDATED,
            user_id,
            workspace_id=prompt.workspace_id,
            prompt_id=prompt.id,
            details={"changes": change_map},
        )
        db.flush()

    return prompt


def _jsonable(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    return value


def delete_document(db: Session, prompt_id: uuid.UUID, user_id: uuid.UUID) -> None:
    """Soft delete; a fork also gives back its origin's fork count."""
    with transaction(db):
        prompt = lock_prompt(db, prompt_id)
        require(db, user_id, prompt, Action.DELETE)

        prompt.deleted_at = datetime.now(timezone.utc)
        prompt.deleted_by = str(user_id)

        if prompt.parent_id is not None:
            db.execute(
                update(Prompt)
                .where(Prompt.id == prompt.parent_id, Prompt.fork_count > 0)
                .values(fork_count=Prompt.fork_count - 1)
                .execution_options(synchronize_session=False)
            )

        record_activity(
            db,
            ActivityType.PROMPT_DELETED,
            user_id,
            workspace_id=prompt.workspace_id,
            prompt_id=prompt.id,
            description=f"Deleted prompt '{prompt.title}'",
        )
        db.flush()

    logger.info("Prompt %s soft-deleted by %s", prompt_id, user_id)


def list_workspace_documents(
    db: Session,
    workspace_slug: str,
    user_id: Optional[uuid.UUID],
    page: int = 1,
    limit: int = settings.DEFAULT_PAGE_SIZE,
    search: Optional[str] = None,
    category_id: Optional[uuid.UUID] = None,
    is_template: Optional[bool] = None,
) -> Dict[str, Any]:
    """Visible prompts of a workspace, pinned first then most recently updated."""
    if page < 1 or limit < 1 or limit > settings.MAX_PAGE_SIZE:
        raise InvalidArgumentError(messages.PROMPT_PAGINATION_INVALID)

    workspace = WorkspaceCRUD.get_by_slug(db, workspace_slug)
    if workspace is None:
        raise NotFoundOrHiddenError()

    filters = [Prompt.workspace_id == workspace.id, prompt_visibility(user_id)]
    search = (search or "").strip()
    if search:
        filters.append(
            or_(
                Prompt.title.icontains(search, autoescape=True),
                Prompt.description.icontains(search, autoescape=True),
            )
        )
    if category_id is not None:
        filters.append(Prompt.category_id == category_id)
    if is_template is not None:
        filters.append(Prompt.is_template.is_(is_template))

    total = db.scalar(select(func.count(Prompt.id)).where(*filters)) or 0
    items = list(
        db.scalars(
            select(Prompt)
            .where(*filters)
            .order_by(Prompt.is_pinned.desc(), Prompt.updated_at.desc(), Prompt.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
    )
    return {
        "items": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit) if total else 0,
        },
    }
