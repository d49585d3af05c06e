#!/usr/bin/env python3
"""Script to create users in the database and print an access token for them."""

import sys
import uuid
from pathlib import Path

# Add parent directory to path so we can import app modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.exc import SQLAlchemyError

from app.core.database import SessionLocal
from app.core.security import create_access_token
from app.models.user import User


def create_user(
    email: str,
    username: str | None = None,
    full_name: str | None = None,
    auth_id: str | None = None,
) -> User:
    """Create a new user bound to an identity-provider subject."""
    db = SessionLocal()
    try:
        query = db.query(User).filter(User.email == email)
        if username:
            query = db.query(User).filter((User.email == email) | (User.username == username))
        if query.first():
            print(f"❌ User with email '{email}' or username '{username}' already exists!")
            sys.exit(1)

        user = User(
            id=uuid.uuid4(),
            auth_id=auth_id or f"local|{uuid.uuid4().hex}",
            email=email,
            username=username,
            full_name=full_name,
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        print("✅ User created successfully!")
        print(f"   ID: {user.id}")
        print(f"   Email: {user.email}")
        print(f"   Username: {user.username}")
        print("\n🔑 Access token (send as 'Authorization: Bearer <token>'):")
        print(create_access_token(user.id))
        return user
    except SQLAlchemyError as e:
        db.rollback()
        print(f"❌ Error creating user: {e}")
        sys.exit(1)
    finally:
        db.close()


def main():
    """Main entry point for the script."""
    if len(sys.argv) < 2:
        print("Usage: python create_user.py <email> [username] [full_name]")
        print("\nExample:")
        print("  python create_user.py ada@example.com ada 'Ada Lovelace'")
        sys.exit(1)

    create_user(
        email=sys.argv[1],
        username=sys.argv[2] if len(sys.argv) > 2 else None,
        full_name=sys.argv[3] if len(sys.argv) > 3 else None,
    )


if __name__ == "__main__":
    main()
