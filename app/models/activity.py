import enum
import uuid

from sqlalchemy import ForeignKey, String, Text, Uuid, event
from sqlalchemy.orm import Mapped, mapped_column

from app.core.errors import ImmutableRecordError
from .base import JSONType, TimestampedUUIDModel


class ActivityType(str, enum.Enum):
    PROMPT_CREATED = "PROMPT_CREATED"
    PROMPT_UPDATED = "PROMPT_UPDATED"
    PROMPT_DELETED = "PROMPT_DELETED"
    PROMPT_FORKED = "PROMPT_FORKED"
    VERSION_CREATED = "VERSION_CREATED"
    MEMBER_INVITED = "MEMBER_INVITED"
    MEMBER_ADDED = "MEMBER_ADDED"
    MEMBER_ROLE_CHANGED = "MEMBER_ROLE_CHANGED"
    MEMBER_REMOVED = "MEMBER_REMOVED"


class Activity(TimestampedUUIDModel):
    """Append-only event log entry."""

    __tablename__ = "activities"

    workspace_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("workspaces.id", ondelete="SET NULL"), nullable=True, index=True
    )
    prompt_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("prompts.id", ondelete="SET NULL"), nullable=True, index=True
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    activity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    details: Mapped[dict] = mapped_column("metadata", JSONType, default=dict)
    # created_at from base gives the event timestamp


@event.listens_for(Activity, "before_update")
@event.listens_for(Activity, "before_delete")
def _reject_activity_mutation(mapper, connection, target):  # noqa: ARG001
    raise ImmutableRecordError()
