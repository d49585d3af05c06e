"""User bookmarks on prompts."""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.access import Action, prompt_visibility, require
from app.core import messages
from app.core.database import transaction
from app.core.errors import PermissionDeniedError
from app.models.prompt import Favorite, Prompt


logger = logging.getLogger("app.prompts.favorites")


def toggle_favorite(db: Session, prompt_id: uuid.UUID, user_id: Optional[uuid.UUID]) -> bool:
    """Flip the caller's favorite on a readable prompt; returns the new state."""
    if user_id is None:
        raise PermissionDeniedError(messages.AUTHENTICATION_REQUIRED)
    require(db, user_id, db.get(Prompt, prompt_id), Action.READ)

    try:
        with transaction(db):
            existing = db.scalar(
                select(Favorite).where(Favorite.user_id == user_id, Favorite.prompt_id == prompt_id)
            )
            if existing is not None:
                db.delete(existing)
                return False
            db.add(Favorite(user_id=user_id, prompt_id=prompt_id, created_by=str(user_id)))
            db.flush()
            return True
    except IntegrityError:
        # Another request favorited it first
        logger.info("Favorite for prompt %s by %s already exists", prompt_id, user_id)
        return True


def list_favorites(db: Session, user_id: uuid.UUID) -> List[Prompt]:
    """The caller's favorited prompts that are still visible to them."""
    return list(
        db.scalars(
            select(Prompt)
            .join(Favorite, Favorite.prompt_id == Prompt.id)
            .where(Favorite.user_id == user_id, prompt_visibility(user_id))
            .order_by(Favorite.created_at.desc())
        )
    )
