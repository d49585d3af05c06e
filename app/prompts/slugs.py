"""
Slug derivation and per-scope unique allocation.

Allocation is optimistic: a free slug is picked by probing, then the
creating transaction relies on the store's unique constraint. When two
writers pick the same slug the loser rolls back and retries exactly once
with a random suffix (see ``run_with_slug_retry``).
"""

import logging
import re
import secrets
import time
import uuid
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core import messages
from app.core.database import transaction
from app.core.errors import ConflictError


logger = logging.getLogger("app.prompts.slugs")

T = TypeVar("T")

FALLBACK_SLUG = "untitled"
MAX_SLUG_LENGTH = 50
MIN_SLUG_LENGTH = 3
MAX_SLUG_ATTEMPTS = 100

_INVALID_CHARS = re.compile(r"[^a-z0-9\s_-]")
_SEPARATORS = re.compile(r"[\s_-]+")
_VALID_SLUG = re.compile(r"^[a-z0-9-]+$")


def slugify(text: Optional[str]) -> str:
    """Lowercase, strip non [a-z0-9 _-], collapse separators to '-', trim, truncate."""
    slug = (text or "").lower()
    slug = _INVALID_CHARS.sub("", slug)
    slug = _SEPARATORS.sub("-", slug)
    slug = slug.strip("-")[:MAX_SLUG_LENGTH].strip("-")
    return slug or FALLBACK_SLUG


def is_valid_slug(slug: Optional[str]) -> bool:
    return bool(slug) and len(slug) >= MIN_SLUG_LENGTH and bool(_VALID_SLUG.match(slug))


def base_slug(candidate: Optional[str]) -> str:
    """Slug to allocate from; derivations too short to be valid use the fallback."""
    slug = slugify(candidate)
    return slug if is_valid_slug(slug) else FALLBACK_SLUG


class SlugAllocator:
    """
    Allocate slugs unique within a scope column (or globally when unscoped).

    Soft-deleted rows release their slug unless ``include_deleted`` is set,
    which must match how the table's unique constraint treats them.
    """

    def __init__(self, model: Any, scope_column: Optional[str] = None, include_deleted: bool = False):
        self.model = model
        self.scope_column = scope_column
        self.include_deleted = include_deleted

    def is_taken(
        self,
        db: Session,
        slug: str,
        scope_id: Optional[uuid.UUID] = None,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> bool:
        query = select(self.model.id).where(self.model.slug == slug)
        if self.scope_column is not None:
            query = query.where(getattr(self.model, self.scope_column) == scope_id)
        if not self.include_deleted and hasattr(self.model, "deleted_at"):
            query = query.where(self.model.deleted_at.is_(None))
        if exclude_id is not None:
            query = query.where(self.model.id != exclude_id)
        return db.scalar(query.limit(1)) is not None

    def allocate(
        self,
        db: Session,
        candidate: Optional[str],
        scope_id: Optional[uuid.UUID] = None,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> str:
        """Return base, base-1 .. base-100, falling back to a timestamp suffix."""
        base = base_slug(candidate)
        if not self.is_taken(db, base, scope_id, exclude_id):
            return base

        for counter in range(1, MAX_SLUG_ATTEMPTS + 1):
            slug = f"{base}-{counter}"
            if not self.is_taken(db, slug, scope_id, exclude_id):
                return slug

        logger.warning("Slug space exhausted for '%s', using timestamp suffix", base)
        return f"{base}-{time.time_ns()}"


def run_with_slug_retry(
    db: Session,
    allocator: SlugAllocator,
    candidate: Optional[str],
    unit: Callable[[str], T],
    scope_id: Optional[uuid.UUID] = None,
    conflict_message: str = messages.PROMPT_SLUG_CONFLICT,
) -> T:
    """
    Run ``unit(slug)`` inside one transaction with an allocated slug.

    ``unit`` must write everything the operation creates; it is rerun from
    scratch on retry since the failed attempt is rolled back as a whole.
    A uniqueness violation on the chosen slug is retried once with a random
    suffix; a second violation becomes CONFLICT.
    """
    slug = allocator.allocate(db, candidate, scope_id)
    try:
        with transaction(db):
            return unit(slug)
    except IntegrityError:
        if not allocator.is_taken(db, slug, scope_id):
            raise
        logger.info("Slug '%s' was taken concurrently, retrying once", slug)

    retry_slug = f"{slug}-{secrets.token_hex(3)}"
    try:
        with transaction(db):
            return unit(retry_slug)
    except IntegrityError as exc:
        raise ConflictError(conflict_message) from exc
