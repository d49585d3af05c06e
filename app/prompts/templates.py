"""
Template gallery.

Templates are public prompts flagged ``is_template``. The gallery lists
them across workspaces; using one copies it into a workspace where the
caller may create prompts and bumps the template's ``use_count``.
"""

import logging
import math
import uuid
from typing import Any, Dict, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from app.access import Action, prompt_visibility, require
from app.core import messages
from app.core.config import settings
from app.core.errors import InvalidArgumentError, NotFoundOrHiddenError
from app.models.activity import ActivityType
from app.models.prompt import Favorite, Prompt
from app.services.activity_service import record_activity
from app.workspaces.crud import WorkspaceCRUD
from .blocks import block_to_dict, lock_prompt, ordered_blocks
from .documents import MIN_TITLE_LENGTH
from .slugs import run_with_slug_retry
from .versions import build_snapshot_content, copy_blocks, prompt_slugs, source_payload, write_version


logger = logging.getLogger("app.prompts.templates")

TEMPLATE_PAGE_SIZE = 12
TEMPLATE_TITLE_SUFFIX = " Template"
TEMPLATE_SLUG_SUFFIX = "-template"

SORTS = ("popular", "recent", "alphabetical", "favorites")


def template_filter(user_id: Optional[uuid.UUID]):
    return (
        Prompt.is_template.is_(True),
        Prompt.is_public.is_(True),
        prompt_visibility(user_id),
    )


def _favorite_counts():
    return (
        select(Favorite.prompt_id, func.count(Favorite.id).label("favorites"))
        .group_by(Favorite.prompt_id)
        .subquery()
    )


def list_public_templates(
    db: Session,
    user_id: Optional[uuid.UUID] = None,
    page: int = 1,
    limit: int = TEMPLATE_PAGE_SIZE,
    search: Optional[str] = None,
    category_id: Optional[uuid.UUID] = None,
    sort: str = "popular",
) -> Dict[str, Any]:
    """Public templates of every live workspace, most used first by default."""
    if page < 1 or limit < 1 or limit > settings.MAX_PAGE_SIZE:
        raise InvalidArgumentError(messages.PROMPT_PAGINATION_INVALID)
    if sort not in SORTS:
        raise InvalidArgumentError(messages.TEMPLATE_SORT_INVALID)

    filters = list(template_filter(user_id))
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

    query = select(Prompt).where(*filters)
    if sort == "recent":
        order = [Prompt.created_at.desc()]
    elif sort == "alphabetical":
        order = [Prompt.title.asc()]
    elif sort == "favorites":
        counts = _favorite_counts()
        query = query.outerjoin(counts, counts.c.prompt_id == Prompt.id)
        order = [func.coalesce(counts.c.favorites, 0).desc()]
    else:
        order = [Prompt.use_count.desc()]
    order.extend([Prompt.created_at.desc(), Prompt.id])

    total = db.scalar(select(func.count(Prompt.id)).where(*filters)) or 0
    items = list(db.scalars(query.order_by(*order).offset((page - 1) * limit).limit(limit)))
    return {
        "items": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit) if total else 0,
        },
        "has_more": page * limit < total,
    }


def _strip_suffix(value: str, suffix: str) -> str:
    if value.endswith(suffix) and len(value) > len(suffix):
        return value[: -len(suffix)]
    return value


def _copy_title(title: str) -> str:
    stripped = _strip_suffix(title, TEMPLATE_TITLE_SUFFIX).strip()
    return stripped if len(stripped) >= MIN_TITLE_LENGTH else title


def use_template(db: Session, template_id: uuid.UUID, user_id: uuid.UUID, workspace_slug: str) -> Prompt:
    """
    Copy a public template into a workspace as a private, regular prompt.

    The copy has no fork lineage. The copy, its first version, the activity
    entry and the template's use count are written together or not at all.
    """
    template = db.scalar(select(Prompt).where(Prompt.id == template_id, *template_filter(user_id)))
    if template is None:
        raise NotFoundOrHiddenError(messages.TEMPLATE_NOT_FOUND)
    workspace = WorkspaceCRUD.get_by_slug(db, workspace_slug)
    require(db, user_id, workspace, Action.CREATE)

    payload = source_payload(db, template)
    workspace_id = workspace.id
    same_workspace = workspace_id == payload["workspace_id"]

    def unit(slug: str) -> Prompt:
        locked = lock_prompt(db, payload["id"])
        if locked is None or locked.deleted_at is not None or not (locked.is_template and locked.is_public):
            raise NotFoundOrHiddenError(messages.TEMPLATE_NOT_FOUND)
        source_blocks = ordered_blocks(db, locked.id)

        prompt = Prompt(
            workspace_id=workspace_id,
            user_id=user_id,
            category_id=payload["category_id"] if same_workspace else None,
            title=_copy_title(locked.title),
            slug=slug,
            description=locked.description,
            is_public=False,
            is_template=False,
            is_pinned=False,
            current_version=1,
            fork_count=0,
            use_count=0,
            llm_config=dict(locked.llm_config or {}),
            variables=list(locked.variables or []),
            created_by=str(user_id),
        )
        db.add(prompt)
        db.flush()

        blocks = copy_blocks(db, [block_to_dict(b) for b in source_blocks], prompt.id, user_id)
        write_version(db, prompt, user_id, 1, build_snapshot_content(blocks))

        db.execute(
            update(Prompt)
            .where(Prompt.id == payload["id"])
            .values(use_count=Prompt.use_count + 1)
            .execution_options(synchronize_session=False)
        )
        record_activity(
            db,
            ActivityType.PROMPT_CREATED,
            user_id,
            workspace_id=workspace_id,
            prompt_id=prompt.id,
            description=f"Created prompt '{prompt.title}' from a template",
            details={"template_id": str(payload["id"])},
        )
        db.flush()
        return prompt

    candidate = _strip_suffix(payload["slug"], TEMPLATE_SLUG_SUFFIX)
    prompt = run_with_slug_retry(db, prompt_slugs, candidate, unit, scope_id=workspace_id)
    db.expire(template, ["use_count"])
    logger.info("Template %s used in workspace %s as %s", template_id, workspace_id, prompt.id)
    return prompt
