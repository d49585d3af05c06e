"""Pydantic schemas for workspace management."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, EmailStr, Field


class WorkspaceCreate(BaseModel):
    """Schema for creating a workspace."""
    name: str
    description: Optional[str] = None
    slug: Optional[str] = Field(None, description="Preferred slug; made unique if taken")


class WorkspaceUpdate(BaseModel):
    """Schema for updating a workspace."""
    name: Optional[str] = None
    description: Optional[str] = None
    logo_url: Optional[str] = None
    primary_color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")


class WorkspaceResponse(BaseModel):
    """Schema for workspace response."""
    id: UUID
    name: str
    slug: str
    description: Optional[str] = None
    owner_id: UUID
    logo_url: Optional[str] = None
    primary_color: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WorkspaceMemberCreate(BaseModel):
    """Schema for adding a workspace member."""
    user_id: UUID
    role: str = "MEMBER"


class WorkspaceMemberUpdate(BaseModel):
    """Schema for changing a member's role."""
    role: str


class WorkspaceMembershipResponse(BaseModel):
    id: UUID
    workspace_id: UUID
    user_id: UUID
    role: str
    invited_by: Optional[UUID] = None

    class Config:
        from_attributes = True


class WorkspaceMemberResponse(BaseModel):
    """A member as listed for a workspace (the owner included)."""
    user_id: UUID
    email: str
    username: Optional[str] = None
    full_name: Optional[str] = None
    role: str
    joined_at: Optional[datetime] = None


class InvitationCreate(BaseModel):
    """Schema for inviting someone by email."""
    email: EmailStr
    role: str = "MEMBER"
    message: Optional[str] = Field(None, max_length=500)


class InvitationResponse(BaseModel):
    id: UUID
    workspace_id: UUID
    email: str
    role: str
    # Unanswered invitations past their deadline read as EXPIRED
    status: str = Field(validation_alias=AliasChoices("effective_status", "status"))
    message: Optional[str] = None
    invited_by: UUID
    expires_at: datetime
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InvitationCreated(InvitationResponse):
    """Returned to the inviter only; the token is what the invitee redeems."""
    token: str
