"""Pydantic schemas for prompts, blocks, versions and categories."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


# ==================== Blocks ====================

class BlockInput(BaseModel):
    """A block inside a full block-list replacement."""
    type: str = "TEXT"
    content: Dict[str, Any] = Field(default_factory=dict)
    indent_level: int = 0


class BlockCreate(BlockInput):
    position: Optional[int] = Field(None, description="Insert position; appended when omitted")
    parent_id: Optional[UUID] = None


class BlockUpdate(BaseModel):
    type: Optional[str] = None
    content: Optional[Dict[str, Any]] = None
    indent_level: Optional[int] = None
    position: Optional[int] = None
    parent_id: Optional[UUID] = None


class BlockPlacement(BaseModel):
    id: UUID
    position: int


class BlockReorder(BaseModel):
    blocks: List[BlockPlacement]


class BlockResponse(BaseModel):
    id: UUID
    prompt_id: UUID
    parent_id: Optional[UUID] = None
    type: str
    content: Dict[str, Any]
    position: int
    indent_level: int

    class Config:
        from_attributes = True


# ==================== Prompts ====================

class PromptCreate(BaseModel):
    title: str
    description: Optional[str] = None
    slug: Optional[str] = Field(None, description="Preferred slug; derived from the title when omitted")
    category_id: Optional[UUID] = None
    is_public: bool = False
    is_template: bool = False
    llm_config: Dict[str, Any] = Field(default_factory=dict)
    variables: List[Any] = Field(default_factory=list)


class PromptUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    blocks: Optional[List[BlockInput]] = None
    is_public: Optional[bool] = None
    is_template: Optional[bool] = None
    is_pinned: Optional[bool] = None
    category_id: Optional[UUID] = None
    llm_config: Optional[Dict[str, Any]] = None
    variables: Optional[List[Any]] = None


class PromptResponse(BaseModel):
    id: UUID
    workspace_id: UUID
    workspace_slug: str
    user_id: UUID
    category_id: Optional[UUID] = None
    parent_id: Optional[UUID] = None
    title: str
    slug: str
    description: Optional[str] = None
    is_public: bool
    is_template: bool
    is_pinned: bool
    current_version: int
    fork_count: int
    use_count: int = 0
    llm_config: Dict[str, Any]
    variables: List[Any]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PromptDetailResponse(PromptResponse):
    blocks: List[BlockResponse] = Field(default_factory=list)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class PromptListResponse(BaseModel):
    items: List[PromptResponse]
    pagination: Pagination


class PromptCreated(BaseModel):
    id: UUID
    slug: str
    workspace_slug: str


class ForkRequest(BaseModel):
    target_workspace_slug: Optional[str] = Field(
        None, description="Workspace to fork into; the source workspace when omitted"
    )


class FavoriteResponse(BaseModel):
    is_favorited: bool


# ==================== Templates ====================

class TemplateListResponse(PromptListResponse):
    has_more: bool


class UseTemplateRequest(BaseModel):
    workspace_slug: str = Field(..., description="Workspace that receives the copy")


# ==================== Versions ====================

class SnapshotCreate(BaseModel):
    change_note: Optional[str] = Field(None, max_length=500)


class VersionResponse(BaseModel):
    id: UUID
    prompt_id: UUID
    user_id: Optional[UUID] = None
    version: int
    title: str
    content: Dict[str, Any]
    llm_config: Dict[str, Any]
    variables: List[Any]
    change_note: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ==================== Categories ====================

class CategoryCreate(BaseModel):
    name: str
    description: Optional[str] = None
    parent_id: Optional[UUID] = None
    icon: Optional[str] = None
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    parent_id: Optional[UUID] = None
    icon: Optional[str] = None
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")


class CategoryResponse(BaseModel):
    id: UUID
    workspace_id: UUID
    parent_id: Optional[UUID] = None
    name: str
    slug: str
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None

    class Config:
        from_attributes = True
