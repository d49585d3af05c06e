"""
Content Block Store.

Blocks of a prompt always occupy the dense positions 0..n-1. Every
mutation locks the owning prompt row first, so concurrent writers on the
same prompt serialize and the positions never show gaps or duplicates.
"""

import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.access import Action, require
from app.core import messages
from app.core.database import transaction
from app.core.errors import ConflictError, InvalidArgumentError, NotFoundOrHiddenError
from app.models.prompt import Block, BlockType, Prompt


logger = logging.getLogger("app.prompts.blocks")

MIN_INDENT = 0
MAX_INDENT = 10

UPDATABLE_FIELDS = ("type", "content", "indent_level", "parent_id", "position")


def parse_block_type(value: Any) -> str:
    try:
        return BlockType(str(value).upper()).value
    except ValueError:
        raise InvalidArgumentError(messages.BLOCK_TYPE_INVALID)


def validate_indent(indent_level: Any) -> int:
    if not isinstance(indent_level, int) or isinstance(indent_level, bool):
        raise InvalidArgumentError(messages.BLOCK_INDENT_INVALID)
    if indent_level < MIN_INDENT or indent_level > MAX_INDENT:
        raise InvalidArgumentError(messages.BLOCK_INDENT_INVALID)
    return indent_level


def block_to_dict(block: Block) -> Dict[str, Any]:
    return {
        "id": str(block.id),
        "type": block.type,
        "content": block.content or {},
        "position": block.position,
        "indent_level": block.indent_level,
        "parent_id": str(block.parent_id) if block.parent_id else None,
    }


def lock_prompt(db: Session, prompt_id: uuid.UUID) -> Optional[Prompt]:
    """Load a prompt holding its row lock for the rest of the transaction."""
    return db.scalar(
        select(Prompt)
        .where(Prompt.id == prompt_id)
        .with_for_update(of=Prompt)
        .execution_options(populate_existing=True)
    )


def ordered_blocks(db: Session, prompt_id: uuid.UUID) -> List[Block]:
    return list(
        db.scalars(
            select(Block)
            .where(Block.prompt_id == prompt_id)
            .order_by(Block.position, Block.created_at)
        )
    )


def _repack(blocks: Iterable[Block]) -> None:
    for index, block in enumerate(blocks):
        if block.position != index:
            block.position = index


def _check_parent(db: Session, prompt_id: uuid.UUID, parent_id: Optional[uuid.UUID], block_id=None) -> None:
    if parent_id is None:
        return
    if parent_id == block_id:
        raise InvalidArgumentError(messages.BLOCK_PARENT_INVALID)
    parent = db.get(Block, parent_id)
    if parent is None or parent.prompt_id != prompt_id:
        raise InvalidArgumentError(messages.BLOCK_PARENT_INVALID)


class BlockStore:
    """Ordered, typed content blocks of a prompt."""

    @staticmethod
    def list_blocks(db: Session, prompt_id: uuid.UUID, user_id: Optional[uuid.UUID]) -> List[Block]:
        require(db, user_id, db.get(Prompt, prompt_id), Action.READ)
        return ordered_blocks(db, prompt_id)

    @staticmethod
    def create_block(
        db: Session,
        prompt_id: uuid.UUID,
        user_id: uuid.UUID,
        block_type: Any,
        content: Optional[Dict[str, Any]] = None,
        position: Optional[int] = None,
        indent_level: int = 0,
        parent_id: Optional[uuid.UUID] = None,
    ) -> Block:
        """Append a block, or insert it at ``position`` shifting later blocks down."""
        block_type = parse_block_type(block_type)
        indent_level = validate_indent(indent_level)

        with transaction(db):
            prompt = lock_prompt(db, prompt_id)
            require(db, user_id, prompt, Action.EDIT)

            blocks = ordered_blocks(db, prompt_id)
            if position is None:
                position = len(blocks)
            elif position < 0 or position > len(blocks):
                raise InvalidArgumentError(messages.BLOCK_POSITION_INVALID)
            _check_parent(db, prompt_id, parent_id)

            block = Block(
                prompt_id=prompt_id,
                user_id=user_id,
                parent_id=parent_id,
                type=block_type,
                content=content or {},
                position=position,
                indent_level=indent_level,
                created_by=str(user_id),
            )
            db.add(block)
            blocks.insert(position, block)
            _repack(blocks)
            db.flush()

        logger.debug("Block %s created in prompt %s at %s", block.id, prompt_id, position)
        return block

    @staticmethod
    def update_block(
        db: Session,
        block_id: uuid.UUID,
        user_id: uuid.UUID,
        changes: Dict[str, Any],
    ) -> Block:
        """Apply partial changes; a new ``position`` moves the block within the list."""
        changes = dict(changes)
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise InvalidArgumentError(f"Unknown block fields: {', '.join(sorted(unknown))}")
        if "type" in changes:
            changes["type"] = parse_block_type(changes["type"])
        if "indent_level" in changes:
            validate_indent(changes["indent_level"])

        with transaction(db):
            block = db.get(Block, block_id)
            if block is None:
                raise NotFoundOrHiddenError()
            prompt = lock_prompt(db, block.prompt_id)
            require(db, user_id, prompt, Action.EDIT)

            if "parent_id" in changes:
                _check_parent(db, block.prompt_id, changes["parent_id"], block.id)

            if "content" in changes:
                changes["content"] = changes["content"] or {}
            for field in ("type", "content", "indent_level", "parent_id"):
                if field in changes:
                    setattr(block, field, changes[field])

            if changes.get("position") is not None:
                blocks = ordered_blocks(db, block.prompt_id)
                target = changes["position"]
                if target < 0 or target >= len(blocks):
                    raise InvalidArgumentError(messages.BLOCK_POSITION_INVALID)
                blocks.remove(block)
                blocks.insert(target, block)
                _repack(blocks)

            block.updated_by = str(user_id)
            db.flush()

        return block

    @staticmethod
    def delete_block(db: Session, block_id: uuid.UUID, user_id: uuid.UUID) -> None:
        """Delete a block, detach its children and close the gap it leaves."""
        with transaction(db):
            block = db.get(Block, block_id)
            if block is None:
                raise NotFoundOrHiddenError()
            prompt_id = block.prompt_id
            prompt = lock_prompt(db, prompt_id)
            require(db, user_id, prompt, Action.EDIT)

            blocks = ordered_blocks(db, prompt_id)
            for child in blocks:
                if child.parent_id == block.id:
                    child.parent_id = None
            db.flush()

            blocks.remove(block)
            db.delete(block)
            _repack(blocks)
            db.flush()

        logger.debug("Block %s deleted from prompt %s", block_id, prompt_id)

    @staticmethod
    def reorder_blocks(
        db: Session,
        prompt_id: uuid.UUID,
        user_id: uuid.UUID,
        placements: List[Dict[str, Any]],
    ) -> List[Block]:
        """
        Move the named blocks to the given positions in one step.

        ``placements`` is a list of ``{"id": ..., "position": ...}``. Blocks
        that are not named keep their relative order and fill the remaining
        slots.
        """
        if not placements:
            raise InvalidArgumentError(messages.BLOCK_REORDER_EMPTY)

        with transaction(db):
            prompt = lock_prompt(db, prompt_id)
            require(db, user_id, prompt, Action.EDIT)

            blocks = ordered_blocks(db, prompt_id)
            by_id = {block.id: block for block in blocks}

            requested: List[tuple] = []
            for placement in placements:
                block_id = placement.get("id")
                position = placement.get("position")
                if block_id not in by_id:
                    raise InvalidArgumentError(messages.BLOCK_REORDER_UNKNOWN_BLOCK)
                if not isinstance(position, int) or position < 0 or position >= len(blocks):
                    raise InvalidArgumentError(messages.BLOCK_POSITION_INVALID)
                requested.append((block_id, position))

            ids = [block_id for block_id, _ in requested]
            positions = [position for _, position in requested]
            if len(set(ids)) != len(ids) or len(set(positions)) != len(positions):
                raise ConflictError(messages.BLOCK_REORDER_DUPLICATE)

            slots: List[Optional[Block]] = [None] * len(blocks)
            for block_id, position in requested:
                slots[position] = by_id[block_id]
            named = set(ids)
            remaining = iter(block for block in blocks if block.id not in named)
            for index, slot in enumerate(slots):
                if slot is None:
                    slots[index] = next(remaining)

            _repack(slots)
            db.flush()

        return slots
