"""Multi-tenant workspace management module."""

from .models import InvitationStatus, Workspace, WorkspaceInvitation, WorkspaceMember

__all__ = [
    "InvitationStatus",
    "Workspace",
    "WorkspaceInvitation",
    "WorkspaceMember",
]
