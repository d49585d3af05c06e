"""Workspace roles, actions and the fixed minimum-role table."""

import enum
from typing import Optional


class MemberRole(str, enum.Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    EDITOR = "EDITOR"
    MEMBER = "MEMBER"
    VIEWER = "VIEWER"

    @property
    def rank(self) -> int:
        return ROLE_RANK[self]

    def at_least(self, other: "MemberRole") -> bool:
        return self.rank >= other.rank

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["MemberRole"]:
        if value is None:
            return None
        try:
            return cls(str(value).upper())
        except ValueError:
            return None


ROLE_RANK = {
    MemberRole.VIEWER: 0,
    MemberRole.MEMBER: 1,
    MemberRole.EDITOR: 2,
    MemberRole.ADMIN: 3,
    MemberRole.OWNER: 4,
}

# Roles that can be held through a membership row
ASSIGNABLE_ROLES = (MemberRole.ADMIN, MemberRole.EDITOR, MemberRole.MEMBER, MemberRole.VIEWER)


class Action(str, enum.Enum):
    READ = "read"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    FORK_INTO = "fork_into"
    CREATE_CATEGORY = "create_category"
    MANAGE_CATEGORIES = "manage_categories"
    MANAGE_MEMBERS = "manage_members"
    MANAGE_WORKSPACE = "manage_workspace"
    DELETE_WORKSPACE = "delete_workspace"


MIN_ROLE = {
    Action.READ: MemberRole.VIEWER,
    Action.CREATE: MemberRole.MEMBER,
    Action.EDIT: MemberRole.EDITOR,
    Action.DELETE: MemberRole.ADMIN,
    Action.FORK_INTO: MemberRole.EDITOR,
    Action.CREATE_CATEGORY: MemberRole.EDITOR,
    Action.MANAGE_CATEGORIES: MemberRole.ADMIN,
    Action.MANAGE_MEMBERS: MemberRole.ADMIN,
    Action.MANAGE_WORKSPACE: MemberRole.ADMIN,
    Action.DELETE_WORKSPACE: MemberRole.OWNER,
}

# Actions an author may perform on their own prompt regardless of the rank table
AUTHOR_ACTIONS = frozenset({Action.EDIT, Action.DELETE})
AUTHOR_MIN_ROLE = MemberRole.MEMBER


class AccessReason(str, enum.Enum):
    NOT_A_MEMBER = "NOT_A_MEMBER"
    INSUFFICIENT_ROLE = "INSUFFICIENT_ROLE"
    ROLE_CEILING = "ROLE_CEILING"
    RESOURCE_NOT_FOUND_OR_HIDDEN = "RESOURCE_NOT_FOUND_OR_HIDDEN"
