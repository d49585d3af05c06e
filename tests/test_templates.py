# tests/test_templates.py: Template gallery
import pytest
from sqlalchemy import select

from app.core.errors import InvalidArgumentError, NotFoundOrHiddenError, PermissionDeniedError
from app.models.activity import Activity, ActivityType
from app.models.prompt import Prompt
from app.prompts import categories, documents, favorites, templates
from app.prompts.blocks import BlockStore, ordered_blocks
from app.prompts.versions import VersionManager
from app.services import document_service
from tests.conftest import get_auth_headers


PREFIX = "/api/v1"


def _use_count(db, prompt_id):
    return db.scalar(select(Prompt.use_count).where(Prompt.id == prompt_id))


def _titles(listing):
    return [p.title for p in listing["items"]]


@pytest.fixture
def template(db_session, team, make_prompt):
    prompt = make_prompt(
        team.owner,
        team.workspace,
        "Onboarding Template",
        description="Welcome new hires",
        is_public=True,
        is_template=True,
        llm_config={"model": "gpt-4o"},
        variables=[{"name": "team"}],
    )
    intro = BlockStore.create_block(db_session, prompt.id, team.owner.id, "HEADING", {"text": "Welcome"})
    BlockStore.create_block(
        db_session, prompt.id, team.owner.id, "TEXT", {"text": "Day one"}, indent_level=1, parent_id=intro.id
    )
    return prompt


@pytest.fixture
def studio(make_user, make_workspace):
    """A second user who owns their own workspace."""
    user = make_user("newcomer")
    return user, make_workspace(user, slug="studio")


# ==================== Gallery ====================

def test_gallery_lists_only_live_public_templates(db_session, team, make_prompt, template):
    make_prompt(team.owner, team.workspace, "Private Template", is_template=True)
    make_prompt(team.owner, team.workspace, "Public Prompt", is_public=True)
    retired = make_prompt(team.owner, team.workspace, "Retired Template", is_public=True, is_template=True)
    documents.delete_document(db_session, retired.id, team.owner.id)

    for user_id in (None, team.outsider.id, team.owner.id):
        listing = templates.list_public_templates(db_session, user_id)
        assert _titles(listing) == ["Onboarding Template"]
        assert listing["pagination"]["total"] == 1
        assert listing["has_more"] is False


def test_gallery_sorting(db_session, team, make_prompt, template, studio):
    user, workspace = studio
    checklist = make_prompt(team.owner, team.workspace, "Checklist Template", is_public=True, is_template=True)
    templates.use_template(db_session, checklist.id, user.id, workspace.slug)
    templates.use_template(db_session, checklist.id, user.id, workspace.slug)
    templates.use_template(db_session, template.id, user.id, workspace.slug)
    favorites.toggle_favorite(db_session, template.id, user.id)

    popular = templates.list_public_templates(db_session)
    assert _titles(popular) == ["Checklist Template", "Onboarding Template"]
    assert [p.use_count for p in popular["items"]] == [2, 1]

    alphabetical = templates.list_public_templates(db_session, sort="alphabetical")
    assert _titles(alphabetical) == ["Checklist Template", "Onboarding Template"]

    by_favorites = templates.list_public_templates(db_session, sort="favorites")
    assert _titles(by_favorites) == ["Onboarding Template", "Checklist Template"]

    with pytest.raises(InvalidArgumentError):
        templates.list_public_templates(db_session, sort="trending")


def test_gallery_search_category_and_pages(db_session, team, make_prompt, template):
    category = categories.create_category(db_session, team.editor.id, team.workspace.slug, "People")
    for title in ("Review Template", "Offboarding Template"):
        make_prompt(team.owner, team.workspace, title, is_public=True, is_template=True, category_id=category.id)

    assert _titles(templates.list_public_templates(db_session, search="hires")) == ["Onboarding Template"]
    in_category = templates.list_public_templates(db_session, category_id=category.id, sort="alphabetical")
    assert _titles(in_category) == ["Offboarding Template", "Review Template"]

    first = templates.list_public_templates(db_session, limit=2, sort="alphabetical")
    assert first["has_more"] is True
    assert first["pagination"]["total_pages"] == 2
    second = templates.list_public_templates(db_session, page=2, limit=2, sort="alphabetical")
    assert _titles(second) == ["Review Template"]
    assert second["has_more"] is False

    with pytest.raises(InvalidArgumentError):
        templates.list_public_templates(db_session, page=0)


# ==================== Using a template ====================

def test_use_template_copies_into_workspace(db_session, template, studio):
    user, workspace = studio

    copy = templates.use_template(db_session, template.id, user.id, workspace.slug)

    assert copy.title == "Onboarding"
    assert copy.slug == "onboarding"
    assert copy.workspace_id == workspace.id
    assert copy.user_id == user.id
    assert copy.parent_id is None
    assert (copy.is_public, copy.is_template, copy.is_pinned) == (False, False, False)
    assert copy.llm_config == {"model": "gpt-4o"}
    assert copy.variables == [{"name": "team"}]
    assert copy.category_id is None
    assert _use_count(db_session, template.id) == 1
    # Using a template is not a fork
    assert db_session.scalar(select(Prompt.fork_count).where(Prompt.id == template.id)) == 0

    copied = ordered_blocks(db_session, copy.id)
    assert [b.content["text"] for b in copied] == ["Welcome", "Day one"]
    assert copied[1].parent_id == copied[0].id

    history = VersionManager.list_versions(db_session, copy.id, user.id)
    assert [v.version for v in history] == [1]
    assert [b["content"]["text"] for b in history[0].content["blocks"]] == ["Welcome", "Day one"]

    activity = db_session.scalar(
        select(Activity).where(Activity.prompt_id == copy.id, Activity.activity_type == ActivityType.PROMPT_CREATED.value)
    )
    assert activity.details["template_id"] == str(template.id)
    assert activity.workspace_id == workspace.id


def test_using_a_template_twice_gets_distinct_slugs(db_session, template, studio):
    user, workspace = studio
    first = templates.use_template(db_session, template.id, user.id, workspace.slug)
    second = templates.use_template(db_session, template.id, user.id, workspace.slug)

    assert (first.slug, second.slug) == ("onboarding", "onboarding-1")
    assert _use_count(db_session, template.id) == 2


def test_use_template_in_own_workspace_keeps_category(db_session, team, make_prompt):
    category = categories.create_category(db_session, team.editor.id, team.workspace.slug, "People")
    template = make_prompt(
        team.owner, team.workspace, "Exit Interview", is_public=True, is_template=True, category_id=category.id
    )

    copy = templates.use_template(db_session, template.id, team.member.id, team.workspace.slug)

    assert copy.category_id == category.id
    assert copy.title == "Exit Interview"
    assert copy.slug == "exit-interview-1"


def test_use_template_needs_create_access(db_session, team, template):
    with pytest.raises(PermissionDeniedError):
        templates.use_template(db_session, template.id, team.viewer.id, team.workspace.slug)
    with pytest.raises(NotFoundOrHiddenError):
        templates.use_template(db_session, template.id, team.member.id, "no-such-workspace")
    assert _use_count(db_session, template.id) == 0


def test_private_or_regular_prompts_are_not_templates(db_session, team, make_prompt, studio):
    user, workspace = studio
    private = make_prompt(team.owner, team.workspace, "Secret Template", is_template=True)
    regular = make_prompt(team.owner, team.workspace, "Open Prompt", is_public=True)

    for prompt in (private, regular):
        with pytest.raises(NotFoundOrHiddenError):
            templates.use_template(db_session, prompt.id, user.id, workspace.slug)


def test_use_template_is_all_or_nothing(db_session, template, studio, monkeypatch):
    user, workspace = studio

    def explode(*args, **kwargs):
        raise RuntimeError("activity store unavailable")

    # Fails after the use count was incremented
    monkeypatch.setattr(templates, "record_activity", explode)

    with pytest.raises(RuntimeError):
        templates.use_template(db_session, template.id, user.id, workspace.slug)

    assert _use_count(db_session, template.id) == 0
    assert db_session.scalar(select(Prompt).where(Prompt.workspace_id == workspace.id)) is None


def test_use_template_result_carries_location(db_session, template, studio):
    user, workspace = studio

    result = document_service.use_template(db_session, template.id, user.id, workspace.slug)

    assert result.ok
    assert (result.data.slug, result.data.workspace_slug) == ("onboarding", "studio")


# ==================== HTTP ====================

def test_template_endpoints(client, db_session, template, studio):
    user, workspace = studio

    resp = client.get(f"{PREFIX}/templates")
    assert resp.status_code == 200
    body = resp.json()
    assert [t["slug"] for t in body["items"]] == ["onboarding-template"]
    assert body["has_more"] is False

    resp = client.post(f"{PREFIX}/templates/{template.id}/use", json={"workspace_slug": workspace.slug})
    assert resp.status_code == 401

    resp = client.post(
        f"{PREFIX}/templates/{template.id}/use",
        json={"workspace_slug": workspace.slug},
        headers=get_auth_headers(user),
    )
    assert resp.status_code == 201
    assert resp.json()["workspace_slug"] == "studio"

    resp = client.get(f"{PREFIX}/templates", params={"sort": "newest"})
    assert resp.status_code == 400
    assert client.get(f"{PREFIX}/templates").json()["items"][0]["use_count"] == 1
