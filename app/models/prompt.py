"""Prompt documents, their ordered blocks, version snapshots and favorites."""

import enum
import uuid
from typing import TYPE_CHECKING, List

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    event,
    inspect,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.core import messages
from app.core.errors import ImmutableRecordError
from app.models.base import JSONType, SoftDeleteMixin, TimestampedUUIDModel

if TYPE_CHECKING:
    from app.workspaces.models import Workspace


class BlockType(str, enum.Enum):
    TEXT = "TEXT"
    VARIABLE = "VARIABLE"
    PROMPT = "PROMPT"
    HEADING = "HEADING"
    CODE = "CODE"


class Prompt(SoftDeleteMixin, TimestampedUUIDModel):
    """Core document: lives in one workspace, composed of ordered blocks."""

    __tablename__ = "prompts"
    __table_args__ = (
        # Live slugs are unique per workspace; soft-deleted rows release theirs
        Index(
            "uq_prompts_workspace_slug_live",
            "workspace_id",
            "slug",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        Index("idx_prompts_workspace_listing", "workspace_id", "deleted_at", "is_pinned"),
    )

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    # Fork lineage: non-owning back-reference, write-once
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("prompts.id"), nullable=True, index=True
    )

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(80), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_template: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    current_version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    fork_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    use_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    llm_config: Mapped[dict] = mapped_column("model_config", JSONType, default=dict)
    variables: Mapped[list] = mapped_column(JSONType, default=list)

    workspace: Mapped["Workspace"] = relationship(lazy="joined", innerjoin=True)
    blocks: Mapped[List["Block"]] = relationship(
        back_populates="prompt",
        order_by="Block.position",
        cascade="all, delete-orphan",
        foreign_keys="Block.prompt_id",
    )

    @property
    def workspace_slug(self) -> str:
        return self.workspace.slug

    @validates("parent_id")
    def _validate_parent_id(self, key, value):  # noqa: ARG002
        if inspect(self).persistent:
            # Loads the committed value when the attribute was expired
            current = self.parent_id
        else:
            current = self.__dict__.get("parent_id")
        if current is not None and value != current:
            raise ImmutableRecordError(messages.PROMPT_LINEAGE_IMMUTABLE)
        return value


class Block(TimestampedUUIDModel):
    """Positioned, typed unit of prompt content."""

    __tablename__ = "blocks"
    __table_args__ = (Index("idx_blocks_prompt_position", "prompt_id", "position"),)

    prompt_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("prompts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("blocks.id", ondelete="SET NULL"), nullable=True
    )

    type: Mapped[str] = mapped_column(String(20), nullable=False, default=BlockType.TEXT.value)
    content: Mapped[dict] = mapped_column(JSONType, default=dict)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    indent_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    prompt: Mapped[Prompt] = relationship(back_populates="blocks", foreign_keys=[prompt_id])


class PromptVersion(TimestampedUUIDModel):
    """Immutable, sequentially numbered snapshot of a prompt."""

    __tablename__ = "prompt_versions"
    __table_args__ = (UniqueConstraint("prompt_id", "version", name="uq_prompt_versions_prompt_version"),)

    prompt_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("prompts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    content: Mapped[dict] = mapped_column(JSONType, default=dict)
    llm_config: Mapped[dict] = mapped_column("model_config", JSONType, default=dict)
    variables: Mapped[list] = mapped_column(JSONType, default=list)
    change_note: Mapped[str | None] = mapped_column(String(500), nullable=True)


class Favorite(TimestampedUUIDModel):
    """A user's bookmark on a prompt."""

    __tablename__ = "favorites"
    __table_args__ = (UniqueConstraint("user_id", "prompt_id", name="uq_favorites_user_prompt"),)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    prompt_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("prompts.id", ondelete="CASCADE"), nullable=False
    )


@event.listens_for(PromptVersion, "before_update")
@event.listens_for(PromptVersion, "before_delete")
def _reject_version_mutation(mapper, connection, target):  # noqa: ARG001
    raise ImmutableRecordError()
