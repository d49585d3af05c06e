"""Prompt document endpoints: CRUD, listing, duplicate, fork, favorites, templates and versions."""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user, get_optional_user_id
from app.api.responses import unwrap
from app.core.config import settings
from app.core.database import get_db
from app.models.user import User
from app.prompts.schemas import (
    FavoriteResponse,
    ForkRequest,
    PromptCreate,
    PromptCreated,
    PromptDetailResponse,
    PromptListResponse,
    PromptResponse,
    PromptUpdate,
    SnapshotCreate,
    TemplateListResponse,
    UseTemplateRequest,
    VersionResponse,
)
from app.services import document_service


router = APIRouter(tags=["prompts"])


# ==================== Workspace-scoped ====================

@router.post(
    "/workspaces/{workspace_slug}/prompts",
    response_model=PromptCreated,
    status_code=status.HTTP_201_CREATED,
)
def create_prompt(
    workspace_slug: str,
    payload: PromptCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return unwrap(document_service.create_document(db, current_user.id, workspace_slug, payload))


@router.get("/workspaces/{workspace_slug}/prompts", response_model=PromptListResponse)
def list_prompts(
    workspace_slug: str,
    page: int = Query(1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE),
    search: Optional[str] = Query(None),
    category_id: Optional[uuid.UUID] = Query(None),
    is_template: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    user_id: Optional[uuid.UUID] = Depends(get_optional_user_id),
):
    """List the prompts of a workspace the caller can see."""
    return unwrap(
        document_service.list_workspace_documents(
            db,
            workspace_slug,
            user_id,
            page=page,
            limit=limit,
            search=search,
            category_id=category_id,
            is_template=is_template,
        )
    )


@router.get("/workspaces/{workspace_slug}/prompts/{prompt_slug}", response_model=PromptDetailResponse)
def get_prompt(
    workspace_slug: str,
    prompt_slug: str,
    db: Session = Depends(get_db),
    user_id: Optional[uuid.UUID] = Depends(get_optional_user_id),
):
    return unwrap(document_service.get_document(db, workspace_slug, prompt_slug, user_id))


@router.post(
    "/workspaces/{workspace_slug}/prompts/{prompt_id}/duplicate",
    response_model=PromptCreated,
    status_code=status.HTTP_201_CREATED,
)
def duplicate_prompt(
    workspace_slug: str,
    prompt_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return unwrap(document_service.duplicate_document(db, prompt_id, current_user.id, workspace_slug))


# ==================== Prompt-scoped ====================

@router.patch("/prompts/{prompt_id}", response_model=PromptDetailResponse)
def update_prompt(
    prompt_id: uuid.UUID,
    payload: PromptUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return unwrap(document_service.update_document(db, prompt_id, current_user.id, payload))


@router.delete("/prompts/{prompt_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_prompt(
    prompt_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Soft delete a prompt."""
    unwrap(document_service.delete_document(db, prompt_id, current_user.id))


@router.post("/prompts/{prompt_id}/fork", response_model=PromptCreated, status_code=status.HTTP_201_CREATED)
def fork_prompt(
    prompt_id: uuid.UUID,
    payload: ForkRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return unwrap(
        document_service.fork_document(db, prompt_id, current_user.id, payload.target_workspace_slug)
    )


@router.post("/prompts/{prompt_id}/favorite", response_model=FavoriteResponse)
def toggle_favorite(
    prompt_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return unwrap(document_service.toggle_favorite(db, prompt_id, current_user.id))


@router.get("/favorites", response_model=List[PromptResponse])
def list_favorites(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return unwrap(document_service.list_favorites(db, current_user.id))


# ==================== Templates ====================

@router.get("/templates", response_model=TemplateListResponse)
def list_templates(
    page: int = Query(1),
    limit: int = Query(12),
    search: Optional[str] = Query(None),
    category_id: Optional[uuid.UUID] = Query(None),
    sort: str = Query("popular"),
    db: Session = Depends(get_db),
    user_id: Optional[uuid.UUID] = Depends(get_optional_user_id),
):
    """Public template gallery."""
    return unwrap(
        document_service.list_templates(
            db, user_id, page=page, limit=limit, search=search, category_id=category_id, sort=sort
        )
    )


@router.post("/templates/{template_id}/use", response_model=PromptCreated, status_code=status.HTTP_201_CREATED)
def use_template(
    template_id: uuid.UUID,
    payload: UseTemplateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Copy a template into one of the caller's workspaces."""
    return unwrap(document_service.use_template(db, template_id, current_user.id, payload.workspace_slug))


# ==================== Versions ====================

@router.get("/prompts/{prompt_id}/versions", response_model=List[VersionResponse])
def list_versions(
    prompt_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: Optional[uuid.UUID] = Depends(get_optional_user_id),
):
    return unwrap(document_service.list_versions(db, prompt_id, user_id))


@router.post(
    "/prompts/{prompt_id}/versions",
    response_model=VersionResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_version(
    prompt_id: uuid.UUID,
    payload: SnapshotCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Snapshot the prompt's current blocks as a new version."""
    return unwrap(document_service.snapshot_document(db, prompt_id, current_user.id, payload.change_note))
