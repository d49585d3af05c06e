"""
Version & Fork Manager.

Versions are immutable snapshots numbered 1, 2, 3... per prompt. Duplicates
copy a prompt inside its own workspace with no lineage; forks copy it into
any workspace the caller can fork into and keep a write-once reference to
their origin. Each of these writes happens in a single transaction.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.access import Action, require
from app.core import messages
from app.core.database import transaction
from app.core.errors import NotFoundOrHiddenError
from app.models.activity import ActivityType
from app.models.prompt import Block, Prompt, PromptVersion
from app.services.activity_service import record_activity
from app.workspaces.models import Workspace
from .blocks import block_to_dict, lock_prompt, ordered_blocks
from .slugs import SlugAllocator, run_with_slug_retry


logger = logging.getLogger("app.prompts.versions")

prompt_slugs = SlugAllocator(Prompt, "workspace_id")

COPY_SUFFIX = " (Copy)"
MAX_TITLE_LENGTH = 100
FORK_SNAPSHOT_NOTE = "Snapshot taken for fork"


def build_snapshot_content(blocks: List[Block]) -> Dict[str, Any]:
    return {"blocks": [block_to_dict(block) for block in blocks]}


def latest_version(db: Session, prompt_id: uuid.UUID) -> Optional[PromptVersion]:
    return db.scalar(
        select(PromptVersion)
        .where(PromptVersion.prompt_id == prompt_id)
        .order_by(PromptVersion.version.desc())
        .limit(1)
    )


def write_version(
    db: Session,
    prompt: Prompt,
    user_id: Optional[uuid.UUID],
    version: int,
    content: Dict[str, Any],
    change_note: Optional[str] = None,
) -> PromptVersion:
    record = PromptVersion(
        prompt_id=prompt.id,
        user_id=user_id,
        version=version,
        title=prompt.title,
        content=content,
        llm_config=dict(prompt.llm_config or {}),
        variables=list(prompt.variables or []),
        change_note=change_note,
        created_by=str(user_id) if user_id else None,
    )
    db.add(record)
    prompt.current_version = version
    return record


def next_version_number(db: Session, prompt: Prompt) -> int:
    highest = db.scalar(
        select(func.max(PromptVersion.version)).where(PromptVersion.prompt_id == prompt.id)
    ) or 0
    return max(highest, prompt.current_version or 0) + 1


def pin_current_version(db: Session, prompt: Prompt, blocks: List[Block], user_id: uuid.UUID) -> PromptVersion:
    """
    Return a stored version whose content equals the prompt's live state.

    The latest version is reused when nothing changed since it was taken;
    otherwise the live state is snapshot first. The caller must hold the
    prompt's row lock.
    """
    latest = latest_version(db, prompt.id)
    content = build_snapshot_content(blocks)
    if (
        latest is not None
        and (latest.content or {}).get("blocks") == content["blocks"]
        and (latest.llm_config or {}) == (prompt.llm_config or {})
        and list(latest.variables or []) == list(prompt.variables or [])
    ):
        return latest

    number = next_version_number(db, prompt)
    record = write_version(db, prompt, user_id, number, content, FORK_SNAPSHOT_NOTE)
    record_activity(
        db,
        ActivityType.VERSION_CREATED,
        user_id,
        workspace_id=prompt.workspace_id,
        prompt_id=prompt.id,
        details={"version": number, "reason": "fork"},
    )
    db.flush()
    return record


def copy_blocks(db: Session, source_blocks: List[Dict[str, Any]], prompt_id: uuid.UUID, user_id: uuid.UUID) -> List[Block]:
    """Copy serialized blocks into another prompt, remapping parent links to the new ids."""
    id_map = {item["id"]: uuid.uuid4() for item in source_blocks}
    copies = [
        Block(
            id=id_map[item["id"]],
            prompt_id=prompt_id,
            user_id=user_id,
            type=item["type"],
            content=dict(item["content"]),
            position=index,
            indent_level=item["indent_level"],
            created_by=str(user_id),
        )
        for index, item in enumerate(source_blocks)
    ]
    db.add_all(copies)
    db.flush()

    # Parents may sit after their children, so links are set once every row exists
    for item, block in zip(source_blocks, copies):
        if item["parent_id"] in id_map:
            block.parent_id = id_map[item["parent_id"]]
    db.flush()
    return copies


def source_payload(db: Session, source: Prompt) -> Dict[str, Any]:
    return {
        "id": source.id,
        "workspace_id": source.workspace_id,
        "category_id": source.category_id,
        "title": source.title,
        "slug": source.slug,
        "description": source.description,
        "llm_config": dict(source.llm_config or {}),
        "variables": list(source.variables or []),
        "blocks": [block_to_dict(block) for block in ordered_blocks(db, source.id)],
    }


class VersionManager:
    """Snapshots, duplicates and forks."""

    @staticmethod
    def snapshot(
        db: Session,
        prompt_id: uuid.UUID,
        user_id: uuid.UUID,
        change_note: Optional[str] = None,
    ) -> PromptVersion:
        """Record the prompt's current content as the next version."""
        with transaction(db):
            prompt = lock_prompt(db, prompt_id)
            require(db, user_id, prompt, Action.EDIT)

            next_version = next_version_number(db, prompt)
            content = build_snapshot_content(ordered_blocks(db, prompt_id))
            record = write_version(db, prompt, user_id, next_version, content, change_note)
            record_activity(
                db,
                ActivityType.VERSION_CREATED,
                user_id,
                workspace_id=prompt.workspace_id,
                prompt_id=prompt.id,
                details={"version": next_version},
            )
            db.flush()

        logger.info("Prompt %s snapshot as version %s", prompt_id, next_version)
        return record

    @staticmethod
    def list_versions(db: Session, prompt_id: uuid.UUID, user_id: Optional[uuid.UUID]) -> List[PromptVersion]:
        require(db, user_id, db.get(Prompt, prompt_id), Action.READ)
        return list(
            db.scalars(
                select(PromptVersion)
                .where(PromptVersion.prompt_id == prompt_id)
                .order_by(PromptVersion.version.desc())
            )
        )

    @staticmethod
    def duplicate(
        db: Session,
        prompt_id: uuid.UUID,
        user_id: uuid.UUID,
        workspace_slug: Optional[str] = None,
    ) -> Prompt:
        """Copy a prompt within its own workspace; the copy has no lineage."""
        source = db.get(Prompt, prompt_id)
        require(db, user_id, source, Action.READ)
        workspace = db.get(Workspace, source.workspace_id)
        if workspace_slug is not None and workspace.slug != workspace_slug:
            raise NotFoundOrHiddenError(messages.PROMPT_WORKSPACE_MISMATCH)
        require(db, user_id, workspace, Action.CREATE)

        payload = source_payload(db, source)

        def unit(slug: str) -> Prompt:
            copy = Prompt(
                workspace_id=payload["workspace_id"],
                user_id=user_id,
                category_id=payload["category_id"],
                title=(payload["title"] + COPY_SUFFIX)[:MAX_TITLE_LENGTH],
                slug=slug,
                description=payload["description"],
                is_public=False,
                is_template=False,
                is_pinned=False,
                current_version=1,
                fork_count=0,
                llm_config=dict(payload["llm_config"]),
                variables=list(payload["variables"]),
                created_by=str(user_id),
            )
            db.add(copy)
            db.flush()

            blocks = copy_blocks(db, payload["blocks"], copy.id, user_id)
            write_version(db, copy, user_id, 1, build_snapshot_content(blocks))
            record_activity(
                db,
                ActivityType.PROMPT_CREATED,
                user_id,
                workspace_id=copy.workspace_id,
                prompt_id=copy.id,
                details={"duplicated_from": str(payload["id"])},
            )
            db.flush()
            return copy

        copy = run_with_slug_retry(
            db, prompt_slugs, f"{payload['slug']}-copy", unit, scope_id=payload["workspace_id"]
        )
        logger.info("Prompt %s duplicated as %s", prompt_id, copy.id)
        return copy

    @staticmethod
    def fork(
        db: Session,
        prompt_id: uuid.UUID,
        user_id: uuid.UUID,
        target_workspace_id: Optional[uuid.UUID] = None,
    ) -> Prompt:
        """
        Fork a readable prompt into a workspace where the caller is EDITOR+.

        The new prompt, the origin's fork counter, the activity entry and the
        fork's first version are written together or not at all.
        """
        source = db.get(Prompt, prompt_id)
        require(db, user_id, source, Action.READ)
        target_id = target_workspace_id or source.workspace_id
        target = db.get(Workspace, target_id)
        require(db, user_id, target, Action.FORK_INTO)

        payload = source_payload(db, source)
        same_workspace = target_id == payload["workspace_id"]

        def unit(slug: str) -> Prompt:
            # Copied blocks and the referenced version are read under the source lock
            locked = lock_prompt(db, payload["id"])
            if locked is None or locked.deleted_at is not None:
                raise NotFoundOrHiddenError()
            source_blocks = ordered_blocks(db, locked.id)
            origin_version = pin_current_version(db, locked, source_blocks, user_id)
            forked_from = {
                "prompt_id": str(locked.id),
                "version_id": str(origin_version.id),
                "version": origin_version.version,
            }

            fork = Prompt(
                workspace_id=target_id,
                user_id=user_id,
                parent_id=payload["id"],
                category_id=payload["category_id"] if same_workspace else None,
                title=payload["title"],
                slug=slug,
                description=payload["description"],
                is_public=False,
                is_template=False,
                is_pinned=False,
                current_version=1,
                fork_count=0,
                llm_config=dict(locked.llm_config or {}),
                variables=list(locked.variables or []),
                created_by=str(user_id),
            )
            db.add(fork)
            db.flush()

            db.execute(
                update(Prompt)
                .where(Prompt.id == payload["id"])
                .values(fork_count=Prompt.fork_count + 1)
                .execution_options(synchronize_session=False)
            )

            record_activity(
                db,
                ActivityType.PROMPT_FORKED,
                user_id,
                workspace_id=target_id,
                prompt_id=fork.id,
                details={
                    "source_prompt_id": str(payload["id"]),
                    "source_workspace_id": str(payload["workspace_id"]),
                },
            )

            blocks = copy_blocks(db, [block_to_dict(b) for b in source_blocks], fork.id, user_id)
            content = build_snapshot_content(blocks)
            content["forked_from"] = forked_from
            write_version(db, fork, user_id, 1, content)
            db.flush()
            return fork

        fork = run_with_slug_retry(db, prompt_slugs, payload["slug"], unit, scope_id=target_id)
        db.expire(source, ["fork_count"])
        logger.info("Prompt %s forked into workspace %s as %s", prompt_id, target_id, fork.id)
        return fork
