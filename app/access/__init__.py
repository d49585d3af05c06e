from .roles import ASSIGNABLE_ROLES, MIN_ROLE, AccessReason, Action, MemberRole  # noqa: F401
from .resolver import AccessDecision, authorize, require, resolve_role  # noqa: F401
from .visibility import (  # noqa: F401
    category_visibility,
    prompt_visibility,
    visible_prompts,
    workspace_visibility,
)
