# tests/conftest.py: Shared test fixtures
import os
import uuid
from types import SimpleNamespace

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests-only-min-32-chars")
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["ENVIRONMENT"] = "test"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

import app.models  # noqa: F401
from app.access import MemberRole
from app.core.database import create_db_engine, get_db
from app.core.security import create_access_token
from app.models.base import Base
from app.models.user import User
from app.prompts import documents
from app.workspaces.models import Workspace, WorkspaceMember
from main import app as api


def get_auth_headers(user: User) -> dict:
    """Bearer header for a user."""
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def db_engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False, autocommit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_session):
    """HTTP test client sharing the test session, so SQLite only ever sees one writer."""

    def override_get_db():
        try:
            yield db_session
        except Exception:
            db_session.rollback()
            raise

    api.dependency_overrides[get_db] = override_get_db
    with TestClient(api) as test_client:
        yield test_client
    api.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    def _make(name: str | None = None, is_active: bool = True) -> User:
        name = name or f"user-{uuid.uuid4().hex[:8]}"
        user = User(
            auth_id=f"test|{uuid.uuid4().hex}",
            email=f"{name}@example.com",
            username=name,
            full_name=name.title(),
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture
def make_workspace(db_session):
    def _make(owner: User, slug: str | None = None, name: str = "Test Workspace") -> Workspace:
        workspace = Workspace(
            name=name,
            slug=slug or f"ws-{uuid.uuid4().hex[:8]}",
            owner_id=owner.id,
            created_by=str(owner.id),
        )
        db_session.add(workspace)
        db_session.commit()
        return workspace

    return _make


@pytest.fixture
def add_membership(db_session):
    def _add(workspace: Workspace, user: User, role: MemberRole) -> WorkspaceMember:
        membership = WorkspaceMember(workspace_id=workspace.id, user_id=user.id, role=role.value)
        db_session.add(membership)
        db_session.commit()
        return membership

    return _add


@pytest.fixture
def team(make_user, make_workspace, add_membership):
    """One workspace with a user at every role plus an outsider."""
    owner = make_user("owner")
    workspace = make_workspace(owner, slug="acme")
    people = {"owner": owner}
    for role in (MemberRole.ADMIN, MemberRole.EDITOR, MemberRole.MEMBER, MemberRole.VIEWER):
        user = make_user(role.value.lower())
        add_membership(workspace, user, role)
        people[role.value.lower()] = user
    people["outsider"] = make_user("outsider")
    return SimpleNamespace(workspace=workspace, **people)


@pytest.fixture
def make_prompt(db_session):
    def _make(author: User, workspace: Workspace, title: str = "Weekly Report", **kwargs):
        return documents.create_document(db_session, author.id, workspace.slug, title, **kwargs)

    return _make
