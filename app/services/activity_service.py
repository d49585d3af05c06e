from __future__ import annotations

import uuid
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.models.activity import Activity, ActivityType


def record_activity(
    db: Session,
    activity_type: ActivityType,
    user_id: Optional[uuid.UUID],
    *,
    workspace_id: Optional[uuid.UUID] = None,
    prompt_id: Optional[uuid.UUID] = None,
    description: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> Activity:
    """Append an activity inside the caller's transaction (never commits)."""
    activity = Activity(
        activity_type=activity_type.value,
        user_id=user_id,
        workspace_id=workspace_id,
        prompt_id=prompt_id,
        description=description,
        details=details or {},
        created_by=str(user_id) if user_id else None,
    )
    db.add(activity)
    return activity
