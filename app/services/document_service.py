"""Engine boundary for prompt documents, versions, forks and favorites."""

import logging
import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.errors import NotFoundOrHiddenError, engine_operation
from app.prompts import documents, favorites, templates
from app.prompts.schemas import (
    FavoriteResponse,
    PromptCreate,
    PromptCreated,
    PromptDetailResponse,
    PromptListResponse,
    PromptResponse,
    PromptUpdate,
    TemplateListResponse,
    VersionResponse,
)
from app.prompts.versions import VersionManager
from app.workspaces.crud import WorkspaceCRUD


logger = logging.getLogger("app.services.document")


def _created(prompt) -> PromptCreated:
    return PromptCreated(id=prompt.id, slug=prompt.slug, workspace_slug=prompt.workspace_slug)


@engine_operation("create_document")
def create_document(
    db: Session,
    user_id: uuid.UUID,
    workspace_slug: str,
    payload: PromptCreate,
) -> PromptCreated:
    prompt = documents.create_document(
        db,
        user_id,
        workspace_slug,
        title=payload.title,
        description=payload.description,
        slug=payload.slug,
        category_id=payload.category_id,
        is_public=payload.is_public,
        is_template=payload.is_template,
        llm_config=payload.llm_config,
        variables=payload.variables,
    )
    return _created(prompt)


@engine_operation("get_document")
def get_document(
    db: Session,
    workspace_slug: str,
    prompt_slug: str,
    user_id: Optional[uuid.UUID],
) -> PromptDetailResponse:
    prompt = documents.get_document(db, workspace_slug, prompt_slug, user_id)
    return PromptDetailResponse.model_validate(prompt)


@engine_operation("update_document")
def update_document(
    db: Session,
    prompt_id: uuid.UUID,
    user_id: uuid.UUID,
    payload: PromptUpdate,
) -> PromptDetailResponse:
    prompt = documents.update_document(db, prompt_id, user_id, payload.model_dump(exclude_unset=True))
    return PromptDetailResponse.model_validate(prompt)


@engine_operation("delete_document")
def delete_document(db: Session, prompt_id: uuid.UUID, user_id: uuid.UUID) -> None:
    documents.delete_document(db, prompt_id, user_id)


@engine_operation("duplicate_document")
def duplicate_document(
    db: Session,
    prompt_id: uuid.UUID,
    user_id: uuid.UUID,
    workspace_slug: str,
) -> PromptCreated:
    return _created(VersionManager.duplicate(db, prompt_id, user_id, workspace_slug))


@engine_operation("fork_document")
def fork_document(
    db: Session,
    prompt_id: uuid.UUID,
    user_id: uuid.UUID,
    target_workspace_slug: Optional[str] = None,
) -> PromptCreated:
    target_id = None
    if target_workspace_slug is not None:
        target = WorkspaceCRUD.get_by_slug(db, target_workspace_slug)
        if target is None:
            raise NotFoundOrHiddenError()
        target_id = target.id
    return _created(VersionManager.fork(db, prompt_id, user_id, target_id))


@engine_operation("toggle_favorite")
def toggle_favorite(db: Session, prompt_id: uuid.UUID, user_id: Optional[uuid.UUID]) -> FavoriteResponse:
    return FavoriteResponse(is_favorited=favorites.toggle_favorite(db, prompt_id, user_id))


@engine_operation("list_favorites")
def list_favorites(db: Session, user_id: uuid.UUID) -> List[PromptResponse]:
    return [PromptResponse.model_validate(p) for p in favorites.list_favorites(db, user_id)]


@engine_operation("list_workspace_documents")
def list_workspace_documents(
    db: Session,
    workspace_slug: str,
    user_id: Optional[uuid.UUID],
    page: int = 1,
    limit: int = 20,
    search: Optional[str] = None,
    category_id: Optional[uuid.UUID] = None,
    is_template: Optional[bool] = None,
) -> PromptListResponse:
    listing = documents.list_workspace_documents(
        db,
        workspace_slug,
        user_id,
        page=page,
        limit=limit,
        search=search,
        category_id=category_id,
        is_template=is_template,
    )
    return PromptListResponse(
        items=[PromptResponse.model_validate(p) for p in listing["items"]],
        pagination=listing["pagination"],
    )


@engine_operation("list_templates")
def list_templates(
    db: Session,
    user_id: Optional[uuid.UUID],
    page: int = 1,
    limit: int = templates.TEMPLATE_PAGE_SIZE,
    search: Optional[str] = None,
    category_id: Optional[uuid.UUID] = None,
    sort: str = "popular",
) -> TemplateListResponse:
    listing = templates.list_public_templates(
        db, user_id, page=page, limit=limit, search=search, category_id=category_id, sort=sort
    )
    return TemplateListResponse(
        items=[PromptResponse.model_validate(p) for p in listing["items"]],
        pagination=listing["pagination"],
        has_more=listing["has_more"],
    )


@engine_operation("use_template")
def use_template(
    db: Session,
    template_id: uuid.UUID,
    user_id: uuid.UUID,
    workspace_slug: str,
) -> PromptCreated:
    return _created(templates.use_template(db, template_id, user_id, workspace_slug))


@engine_operation("snapshot_document")
def snapshot_document(
    db: Session,
    prompt_id: uuid.UUID,
    user_id: uuid.UUID,
    change_note: Optional[str] = None,
) -> VersionResponse:
    return VersionResponse.model_validate(VersionManager.snapshot(db, prompt_id, user_id, change_note))


@engine_operation("list_versions")
def list_versions(db: Session, prompt_id: uuid.UUID, user_id: Optional[uuid.UUID]) -> List[VersionResponse]:
    return [VersionResponse.model_validate(v) for v in VersionManager.list_versions(db, prompt_id, user_id)]
