"""
Access Control Resolver.

Resolves a caller's effective role in the workspace that owns a resource
and decides whether a requested action is permitted. The decision is made
in three steps:

1. visibility: soft-deleted or invisible resources are reported exactly
   like missing ones (RESOURCE_NOT_FOUND_OR_HIDDEN);
2. override rules (role ceiling, author exception), which are not
   monotonic in role rank and are therefore evaluated explicitly;
3. the generic rank comparison against MIN_ROLE.

Reads have an alternate success path for public resources and for the
caller's own prompts.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core import messages
from app.core.errors import NotFoundOrHiddenError, PermissionDeniedError
from app.models.category import Category
from app.models.prompt import Block, Prompt
from app.workspaces.models import Workspace, WorkspaceMember
from .roles import (
    AUTHOR_ACTIONS,
    AUTHOR_MIN_ROLE,
    MIN_ROLE,
    AccessReason,
    Action,
    MemberRole,
)
from .visibility import prompt_visibility


logger = logging.getLogger("app.access.resolver")

Resource = Union[Workspace, Prompt, Block, Category]


@dataclass(frozen=True)
class ResourceContext:
    """What the resolver needs to know about a resource."""

    kind: str
    resource_id: Optional[uuid.UUID]
    workspace: Optional[Workspace]
    author_id: Optional[uuid.UUID] = None
    is_public: bool = False
    is_deleted: bool = False
    prompt_id: Optional[uuid.UUID] = None


@dataclass(frozen=True)
class AccessRequest:
    user_id: Optional[uuid.UUID]
    action: Action
    context: ResourceContext
    role: Optional[MemberRole]
    target_user_id: Optional[uuid.UUID] = None
    target_role: Optional[MemberRole] = None
    granted_role: Optional[MemberRole] = None


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    effective_role: Optional[MemberRole]
    reason: Optional[AccessReason] = None

    @classmethod
    def allow(cls, role: Optional[MemberRole]) -> "AccessDecision":
        return cls(True, role)

    @classmethod
    def deny(cls, role: Optional[MemberRole], reason: AccessReason) -> "AccessDecision":
        return cls(False, role, reason)


def resolve_role(db: Session, user_id: Optional[uuid.UUID], workspace: Optional[Workspace]) -> Optional[MemberRole]:
    """Owner first, then the membership row, otherwise no role."""
    if user_id is None or workspace is None:
        return None
    if workspace.owner_id == user_id:
        return MemberRole.OWNER
    role = db.scalar(
        select(WorkspaceMember.role).where(
            WorkspaceMember.workspace_id == workspace.id,
            WorkspaceMember.user_id == user_id,
        )
    )
    resolved = MemberRole.parse(role)
    # A stale OWNER row never outranks the authoritative owner_id
    if resolved is MemberRole.OWNER:
        return MemberRole.ADMIN
    return resolved


def resource_context(db: Session, resource: Optional[Resource]) -> ResourceContext:
    if resource is None:
        return ResourceContext(kind="unknown", resource_id=None, workspace=None, is_deleted=True)

    if isinstance(resource, Workspace):
        return ResourceContext(
            kind="workspace",
            resource_id=resource.id,
            workspace=resource,
            is_deleted=resource.deleted_at is not None,
        )

    if isinstance(resource, Prompt):
        return ResourceContext(
            kind="prompt",
            resource_id=resource.id,
            workspace=db.get(Workspace, resource.workspace_id),
            author_id=resource.user_id,
            is_public=bool(resource.is_public),
            is_deleted=resource.deleted_at is not None,
            prompt_id=resource.id,
        )

    if isinstance(resource, Block):
        prompt = db.get(Prompt, resource.prompt_id)
        if prompt is None:
            return ResourceContext(kind="block", resource_id=resource.id, workspace=None, is_deleted=True)
        parent = resource_context(db, prompt)
        return ResourceContext(
            kind="block",
            resource_id=resource.id,
            workspace=parent.workspace,
            author_id=parent.author_id,
            is_public=parent.is_public,
            is_deleted=parent.is_deleted,
            prompt_id=prompt.id,
        )

    if isinstance(resource, Category):
        return ResourceContext(
            kind="category",
            resource_id=resource.id,
            workspace=db.get(Workspace, resource.workspace_id),
        )

    raise TypeError(f"Unsupported resource type: {type(resource).__name__}")


def _is_visible(db: Session, request: AccessRequest) -> bool:
    ctx = request.context
    if ctx.is_deleted or ctx.workspace is None or ctx.workspace.deleted_at is not None:
        return False
    if ctx.prompt_id is not None:
        # Same predicate the listing and lookup queries use
        return db.scalar(
            select(Prompt.id).where(Prompt.id == ctx.prompt_id, prompt_visibility(request.user_id))
        ) is not None
    # Workspaces themselves are not secret; their contents are
    return ctx.kind == "workspace" or request.role is not None


# ==================== Override rules ====================

Rule = Callable[[AccessRequest], Optional[AccessDecision]]


def role_ceiling_rule(request: AccessRequest) -> Optional[AccessDecision]:
    """Member management can never reach the owner, and ADMINs cannot act on ADMINs."""
    if request.action is not Action.MANAGE_MEMBERS or request.role is None:
        return None
    workspace = request.context.workspace
    targets_owner = (
        request.target_role is MemberRole.OWNER
        or (request.target_user_id is not None and workspace is not None and request.target_user_id == workspace.owner_id)
    )
    if targets_owner or request.granted_role is MemberRole.OWNER:
        return AccessDecision.deny(request.role, AccessReason.ROLE_CEILING)
    if request.role is MemberRole.ADMIN and MemberRole.ADMIN in (request.target_role, request.granted_role):
        return AccessDecision.deny(request.role, AccessReason.ROLE_CEILING)
    return None


def author_rule(request: AccessRequest) -> Optional[AccessDecision]:
    """Authors may edit and delete their own prompts with MEMBER or above."""
    ctx = request.context
    if request.action not in AUTHOR_ACTIONS or ctx.author_id is None or request.role is None:
        return None
    if ctx.author_id == request.user_id and request.role.at_least(AUTHOR_MIN_ROLE):
        return AccessDecision.allow(request.role)
    return None


OVERRIDE_RULES: Sequence[Rule] = (role_ceiling_rule, author_rule)


# ==================== Public contract ====================

def authorize(
    db: Session,
    user_id: Optional[uuid.UUID],
    resource: Optional[Resource],
    action: Action,
    *,
    target_user_id: Optional[uuid.UUID] = None,
    target_role: Optional[MemberRole] = None,
    granted_role: Optional[MemberRole] = None,
) -> AccessDecision:
    """Compute the caller's effective role and whether the action is permitted."""
    context = resource_context(db, resource)
    role = resolve_role(db, user_id, context.workspace)
    request = AccessRequest(
        user_id=user_id,
        action=action,
        context=context,
        role=role,
        target_user_id=target_user_id,
        target_role=target_role,
        granted_role=granted_role,
    )

    if not _is_visible(db, request):
        return AccessDecision.deny(role, AccessReason.RESOURCE_NOT_FOUND_OR_HIDDEN)

    if action is Action.READ and (context.is_public or (user_id is not None and context.author_id == user_id)):
        return AccessDecision.allow(role)

    if role is None:
        return AccessDecision.deny(None, AccessReason.NOT_A_MEMBER)

    for rule in OVERRIDE_RULES:
        decision = rule(request)
        if decision is not None:
            return decision

    if role.at_least(MIN_ROLE[action]):
        return AccessDecision.allow(role)
    return AccessDecision.deny(role, AccessReason.INSUFFICIENT_ROLE)


_REASON_MESSAGES = {
    AccessReason.NOT_A_MEMBER: messages.ACCESS_NOT_A_MEMBER,
    AccessReason.INSUFFICIENT_ROLE: messages.ACCESS_INSUFFICIENT_ROLE,
    AccessReason.ROLE_CEILING: messages.ACCESS_ROLE_CEILING,
}


def require(
    db: Session,
    user_id: Optional[uuid.UUID],
    resource: Optional[Resource],
    action: Action,
    **targets,
) -> MemberRole | None:
    """Authorize or raise; returns the caller's effective role."""
    decision = authorize(db, user_id, resource, action, **targets)
    if decision.allowed:
        return decision.effective_role

    logger.warning(
        "Access denied: user=%s action=%s resource=%s reason=%s",
        user_id,
        action.value,
        getattr(resource, "id", None),
        decision.reason.value if decision.reason else None,
    )
    if decision.reason is AccessReason.RESOURCE_NOT_FOUND_OR_HIDDEN:
        raise NotFoundOrHiddenError(reason=decision.reason.value)
    if user_id is None:
        raise PermissionDeniedError(messages.AUTHENTICATION_REQUIRED, reason=decision.reason.value)
    raise PermissionDeniedError(_REASON_MESSAGES[decision.reason], reason=decision.reason.value)
