#!/usr/bin/env python3
"""Script to add a user to a workspace, acting as the workspace owner."""

import sys
from pathlib import Path

# Add parent directory to path so we can import app modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.database import SessionLocal
from app.core.errors import EngineError
from app.models.user import User
from app.workspaces import members
from app.workspaces.crud import WorkspaceCRUD


def _find_user(db, username_or_email: str) -> User:
    user = db.query(User).filter(
        (User.username == username_or_email) | (User.email == username_or_email)
    ).first()
    if not user:
        print(f"❌ User not found: {username_or_email}")
        sys.exit(1)
    return user


def add_user_to_workspace(username_or_email: str, workspace_slug: str, role: str = "MEMBER"):
    """Add a user to a workspace with the given role."""
    db = SessionLocal()
    try:
        workspace = WorkspaceCRUD.get_by_slug(db, workspace_slug)
        if not workspace:
            print(f"❌ Workspace not found: {workspace_slug}")
            sys.exit(1)
        print(f"📦 Workspace: {workspace.name} ({workspace.slug})")

        user = _find_user(db, username_or_email)
        print(f"👤 User: {user.username or '-'} ({user.email})")

        membership = members.add_member(db, workspace.slug, workspace.owner_id, user.id, role)
        print("✅ User added to workspace successfully!")
        print(f"   Role: {membership.role}")
        return membership
    except EngineError as e:
        print(f"❌ Could not add user: {e.message}")
        sys.exit(1)
    finally:
        db.close()


def list_workspace_members(workspace_slug: str):
    """List all members of a workspace, the owner included."""
    db = SessionLocal()
    try:
        workspace = WorkspaceCRUD.get_by_slug(db, workspace_slug)
        if not workspace:
            print(f"❌ Workspace not found: {workspace_slug}")
            sys.exit(1)

        entries = members.list_members(db, workspace.slug, workspace.owner_id)
        print(f"\n📦 Workspace: {workspace.name} ({workspace.slug})")
        print(f"👥 Members ({len(entries)}):\n")
        for entry in entries:
            print(f"   • {entry['username'] or '-'} ({entry['email']}) - Role: {entry['role']}")
        return entries
    finally:
        db.close()


def main():
    """Main entry point for the script."""
    if len(sys.argv) < 3:
        print("Usage:")
        print("  Add user to workspace:")
        print("    python add_user_to_workspace.py <username_or_email> <workspace_slug> [role]")
        print("  List workspace members:")
        print("    python add_user_to_workspace.py --list <workspace_slug>")
        print("\nRoles: ADMIN, EDITOR, MEMBER, VIEWER")
        sys.exit(1)

    if sys.argv[1] == "--list":
        list_workspace_members(sys.argv[2])
    else:
        role = sys.argv[3] if len(sys.argv) > 3 else "MEMBER"
        add_user_to_workspace(sys.argv[1], sys.argv[2], role)


if __name__ == "__main__":
    main()
