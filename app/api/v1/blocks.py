"""Content block endpoints."""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user, get_optional_user_id
from app.api.responses import unwrap
from app.core.database import get_db
from app.models.user import User
from app.prompts.schemas import BlockCreate, BlockReorder, BlockResponse, BlockUpdate
from app.services import block_service


router = APIRouter(tags=["blocks"])


@router.get("/prompts/{prompt_id}/blocks", response_model=List[BlockResponse])
def list_blocks(
    prompt_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: Optional[uuid.UUID] = Depends(get_optional_user_id),
):
    return unwrap(block_service.list_blocks(db, prompt_id, user_id))


@router.post("/prompts/{prompt_id}/blocks", response_model=BlockResponse, status_code=status.HTTP_201_CREATED)
def create_block(
    prompt_id: uuid.UUID,
    payload: BlockCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return unwrap(block_service.create_block(db, prompt_id, current_user.id, payload))


@router.put("/prompts/{prompt_id}/blocks/reorder", response_model=List[BlockResponse])
def reorder_blocks(
    prompt_id: uuid.UUID,
    payload: BlockReorder,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Move blocks to new positions in one step."""
    return unwrap(block_service.reorder_blocks(db, prompt_id, current_user.id, payload))


@router.patch("/blocks/{block_id}", response_model=BlockResponse)
def update_block(
    block_id: uuid.UUID,
    payload: BlockUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return unwrap(block_service.update_block(db, block_id, current_user.id, payload))


@router.delete("/blocks/{block_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_block(
    block_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    unwrap(block_service.delete_block(db, block_id, current_user.id))
