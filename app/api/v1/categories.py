"""Category endpoints."""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user, get_optional_user_id
from app.api.responses import unwrap
from app.core.database import get_db
from app.models.user import User
from app.prompts.schemas import CategoryCreate, CategoryResponse, CategoryUpdate
from app.services import workspace_service


router = APIRouter(tags=["categories"])


@router.get("/workspaces/{workspace_slug}/categories", response_model=List[CategoryResponse])
def list_categories(
    workspace_slug: str,
    db: Session = Depends(get_db),
    user_id: Optional[uuid.UUID] = Depends(get_optional_user_id),
):
    return unwrap(workspace_service.list_categories(db, workspace_slug, user_id))


@router.post(
    "/workspaces/{workspace_slug}/categories",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_category(
    workspace_slug: str,
    payload: CategoryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Create a category (EDITOR and above)."""
    return unwrap(workspace_service.create_category(db, workspace_slug, current_user.id, payload))


@router.patch("/categories/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: uuid.UUID,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return unwrap(workspace_service.update_category(db, category_id, current_user.id, payload))


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Delete a category; its prompts and sub-categories are detached."""
    unwrap(workspace_service.delete_category(db, category_id, current_user.id))
