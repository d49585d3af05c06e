"""Engine boundary for the content block store."""

import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.errors import engine_operation
from app.prompts.blocks import BlockStore
from app.prompts.schemas import BlockCreate, BlockReorder, BlockResponse, BlockUpdate


@engine_operation("list_blocks")
def list_blocks(db: Session, prompt_id: uuid.UUID, user_id: Optional[uuid.UUID]) -> List[BlockResponse]:
    return [BlockResponse.model_validate(b) for b in BlockStore.list_blocks(db, prompt_id, user_id)]


@engine_operation("create_block")
def create_block(db: Session, prompt_id: uuid.UUID, user_id: uuid.UUID, payload: BlockCreate) -> BlockResponse:
    block = BlockStore.create_block(
        db,
        prompt_id,
        user_id,
        payload.type,
        content=payload.content,
        position=payload.position,
        indent_level=payload.indent_level,
        parent_id=payload.parent_id,
    )
    return BlockResponse.model_validate(block)


@engine_operation("update_block")
def update_block(db: Session, block_id: uuid.UUID, user_id: uuid.UUID, payload: BlockUpdate) -> BlockResponse:
    block = BlockStore.update_block(db, block_id, user_id, payload.model_dump(exclude_unset=True))
    return BlockResponse.model_validate(block)


@engine_operation("delete_block")
def delete_block(db: Session, block_id: uuid.UUID, user_id: uuid.UUID) -> None:
    BlockStore.delete_block(db, block_id, user_id)


@engine_operation("reorder_blocks")
def reorder_blocks(db: Session, prompt_id: uuid.UUID, user_id: uuid.UUID, payload: BlockReorder) -> List[BlockResponse]:
    placements = [placement.model_dump() for placement in payload.blocks]
    blocks = BlockStore.reorder_blocks(db, prompt_id, user_id, placements)
    return [BlockResponse.model_validate(b) for b in blocks]
