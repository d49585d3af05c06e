# tests/test_categories.py: Workspace categories
import pytest
from sqlalchemy import select

from app.core.errors import InvalidArgumentError, NotFoundOrHiddenError, PermissionDeniedError
from app.models.category import Category
from app.models.prompt import Prompt
from app.prompts import categories


def test_editor_creates_categories_with_unique_slugs(db_session, team):
    first = categories.create_category(db_session, team.editor.id, "acme", "Marketing", icon="megaphone", color="#FF8800")
    second = categories.create_category(db_session, team.editor.id, "acme", "Marketing")

    assert (first.slug, second.slug) == ("marketing", "marketing-1")
    assert first.workspace_id == team.workspace.id
    assert first.color == "#FF8800"


def test_member_cannot_create_category(db_session, team):
    with pytest.raises(PermissionDeniedError):
        categories.create_category(db_session, team.member.id, "acme", "Marketing")


@pytest.mark.parametrize("name, description", [("M", None), ("x" * 51, None), ("Marketing", "d" * 201)])
def test_category_input_is_validated(db_session, team, name, description):
    with pytest.raises(InvalidArgumentError):
        categories.create_category(db_session, team.editor.id, "acme", name, description=description)


def test_list_categories_by_name(db_session, team):
    for name in ("Sales", "Engineering", "Marketing"):
        categories.create_category(db_session, team.editor.id, "acme", name)

    listed = categories.list_categories(db_session, "acme", team.viewer.id)
    assert [c.name for c in listed] == ["Engineering", "Marketing", "Sales"]

    with pytest.raises(PermissionDeniedError):
        categories.list_categories(db_session, "acme", team.outsider.id)


def test_update_requires_admin_and_keeps_slug(db_session, team):
    category = categories.create_category(db_session, team.editor.id, "acme", "Marketing")

    with pytest.raises(PermissionDeniedError):
        categories.update_category(db_session, category.id, team.editor.id, {"name": "Growth"})

    updated = categories.update_category(db_session, category.id, team.admin.id, {"name": "Growth"})
    assert updated.name == "Growth"
    assert updated.slug == "marketing"


def test_parent_must_be_in_workspace_and_acyclic(db_session, team, make_workspace):
    root = categories.create_category(db_session, team.editor.id, "acme", "Root")
    child = categories.create_category(db_session, team.editor.id, "acme", "Child", parent_id=root.id)
    grandchild = categories.create_category(db_session, team.editor.id, "acme", "Grandchild", parent_id=child.id)
    other = make_workspace(team.owner, slug="other")
    foreign = categories.create_category(db_session, team.owner.id, other.slug, "Foreign")

    with pytest.raises(InvalidArgumentError):
        categories.update_category(db_session, root.id, team.admin.id, {"parent_id": grandchild.id})
    with pytest.raises(InvalidArgumentError):
        categories.update_category(db_session, root.id, team.admin.id, {"parent_id": root.id})
    with pytest.raises(InvalidArgumentError):
        categories.create_category(db_session, team.editor.id, "acme", "Stray", parent_id=foreign.id)

    moved = categories.update_category(db_session, grandchild.id, team.admin.id, {"parent_id": root.id})
    assert moved.parent_id == root.id


def test_delete_detaches_prompts_and_children(db_session, team, make_prompt):
    parent = categories.create_category(db_session, team.editor.id, "acme", "Parent")
    child = categories.create_category(db_session, team.editor.id, "acme", "Child", parent_id=parent.id)
    prompt = make_prompt(team.owner, team.workspace, "Tagged Prompt", category_id=parent.id)
    parent_id, child_id, prompt_id = parent.id, child.id, prompt.id

    with pytest.raises(PermissionDeniedError):
        categories.delete_category(db_session, parent_id, team.editor.id)
    categories.delete_category(db_session, parent_id, team.admin.id)

    assert db_session.scalar(select(Category).where(Category.id == parent_id)) is None
    assert db_session.scalar(select(Category.parent_id).where(Category.id == child_id)) is None
    assert db_session.scalar(select(Prompt.category_id).where(Prompt.id == prompt_id)) is None

    with pytest.raises(NotFoundOrHiddenError):
        categories.delete_category(db_session, parent_id, team.admin.id)
