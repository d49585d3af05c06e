# tests/test_documents.py: Prompt document operations and favorites
import pytest
from sqlalchemy import select, update

from app.core.errors import InvalidArgumentError, NotFoundOrHiddenError, PermissionDeniedError
from app.models.activity import Activity, ActivityType
from app.models.prompt import Prompt, PromptVersion
from app.prompts import categories, documents, favorites
from app.prompts.blocks import ordered_blocks


# ==================== Create ====================

def test_create_writes_prompt_version_and_activity(db_session, team):
    prompt = documents.create_document(
        db_session, team.member.id, team.workspace.slug, "  Onboarding Email  ", description="Welcome flow"
    )

    assert prompt.title == "Onboarding Email"
    assert prompt.slug == "onboarding-email"
    assert prompt.user_id == team.member.id
    assert prompt.current_version == 1
    assert prompt.fork_count == 0
    assert prompt.workspace_slug == "acme"

    version = db_session.scalar(select(PromptVersion).where(PromptVersion.prompt_id == prompt.id))
    assert (version.version, version.content) == (1, {"blocks": []})
    activity = db_session.scalar(select(Activity).where(Activity.prompt_id == prompt.id))
    assert activity.activity_type == ActivityType.PROMPT_CREATED.value


def test_explicit_slug_is_normalized(db_session, team):
    prompt = documents.create_document(
        db_session, team.member.id, team.workspace.slug, "Onboarding Email", slug="Welcome Sequence"
    )
    assert prompt.slug == "welcome-sequence"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"title": "ab"},
        {"title": "x" * 101},
        {"title": "Fine Title", "description": "d" * 501},
        {"title": "Fine Title", "slug": "ab"},
    ],
)
def test_create_validates_input(db_session, team, kwargs):
    with pytest.raises(InvalidArgumentError):
        documents.create_document(db_session, team.member.id, team.workspace.slug, **kwargs)
    assert db_session.scalar(select(Prompt.id)) is None


def test_category_must_belong_to_workspace(db_session, team, make_workspace):
    other = make_workspace(team.owner, slug="other")
    foreign = categories.create_category(db_session, team.owner.id, other.slug, "Elsewhere")

    with pytest.raises(InvalidArgumentError):
        documents.create_document(db_session, team.member.id, team.workspace.slug, "Tagged", category_id=foreign.id)


def test_create_requires_member_role(db_session, team):
    with pytest.raises(PermissionDeniedError):
        documents.create_document(db_session, team.viewer.id, team.workspace.slug, "Viewer Idea")
    with pytest.raises(PermissionDeniedError):
        documents.create_document(db_session, team.outsider.id, team.workspace.slug, "Outsider Idea")
    with pytest.raises(NotFoundOrHiddenError):
        documents.create_document(db_session, team.owner.id, "no-such-workspace", "Lost Idea")


# ==================== Get ====================

def test_get_by_workspace_and_prompt_slug(db_session, team, make_prompt):
    prompt = make_prompt(team.owner, team.workspace, "Weekly Report")

    found = documents.get_document(db_session, "acme", "weekly-report", team.viewer.id)
    assert found.id == prompt.id

    with pytest.raises(NotFoundOrHiddenError):
        documents.get_document(db_session, "acme", "weekly-report", team.outsider.id)
    with pytest.raises(NotFoundOrHiddenError):
        documents.get_document(db_session, "acme", "missing", team.owner.id)


# ==================== Update ====================

def test_update_fields_and_record_changes(db_session, team, make_prompt):
    prompt = make_prompt(team.owner, team.workspace, "Weekly Report")

    updated = documents.update_document(
        db_session, prompt.id, team.editor.id, {"title": "Monthly Report", "is_pinned": True}
    )

    assert updated.title == "Monthly Report"
    assert updated.is_pinned is True
    # Renames keep the slug
    assert updated.slug == "weekly-report"
    activity = db_session.scalar(
        select(Activity).where(Activity.activity_type == ActivityType.PROMPT_UPDATED.value)
    )
    assert activity.details["changes"]["title"] == {"from": "Weekly Report", "to": "Monthly Report"}


def test_update_replaces_blocks_in_list_order(db_session, team, make_prompt):
    prompt = make_prompt(team.owner, team.workspace, "Weekly Report")
    documents.update_document(
        db_session, prompt.id, team.editor.id, {"blocks": [{"type": "TEXT", "content": {"text": "old"}}]}
    )

    documents.update_document(
        db_session,
        prompt.id,
        team.editor.id,
        {"blocks": [{"type": "HEADING", "content": {"text": "one"}}, {"type": "code", "content": {"text": "two"}}]},
    )

    blocks = ordered_blocks(db_session, prompt.id)
    assert [(b.type, b.content["text"], b.position) for b in blocks] == [("HEADING", "one", 0), ("CODE", "two", 1)]


def test_update_rejects_bad_input(db_session, team, make_prompt):
    prompt = make_prompt(team.owner, team.workspace, "Weekly Report")

    with pytest.raises(InvalidArgumentError):
        documents.update_document(db_session, prompt.id, team.editor.id, {"is_public": None})
    with pytest.raises(InvalidArgumentError):
        documents.update_document(db_session, prompt.id, team.editor.id, {"slug": "new-slug"})
    with pytest.raises(InvalidArgumentError):
        documents.update_document(db_session, prompt.id, team.editor.id, {"blocks": [{"type": "IMAGE"}]})


def test_update_permissions(db_session, team, make_prompt):
    prompt = make_prompt(team.owner, team.workspace, "Weekly Report")
    own = make_prompt(team.member, team.workspace, "Member Draft")

    with pytest.raises(PermissionDeniedError):
        documents.update_document(db_session, prompt.id, team.member.id, {"title": "Hijacked"})
    documents.update_document(db_session, own.id, team.member.id, {"title": "Member Final"})
    assert db_session.get(Prompt, own.id).title == "Member Final"


# ==================== Delete ====================

def test_delete_is_soft_and_hides_prompt(db_session, team, make_prompt):
    prompt = make_prompt(team.owner, team.workspace, "Weekly Report")

    documents.delete_document(db_session, prompt.id, team.admin.id)

    row = db_session.get(Prompt, prompt.id)
    assert row.deleted_at is not None
    assert row.deleted_by == str(team.admin.id)
    with pytest.raises(NotFoundOrHiddenError):
        documents.get_document(db_session, "acme", "weekly-report", team.owner.id)
    with pytest.raises(NotFoundOrHiddenError):
        documents.delete_document(db_session, prompt.id, team.owner.id)

    activity = db_session.scalar(
        select(Activity).where(Activity.activity_type == ActivityType.PROMPT_DELETED.value)
    )
    assert activity.prompt_id == prompt.id


def test_delete_needs_admin_unless_author(db_session, team, make_prompt):
    prompt = make_prompt(team.owner, team.workspace, "Weekly Report")
    own = make_prompt(team.member, team.workspace, "Member Draft")

    with pytest.raises(PermissionDeniedError):
        documents.delete_document(db_session, prompt.id, team.editor.id)
    documents.delete_document(db_session, own.id, team.member.id)


# ==================== Listing ====================

def test_listing_orders_pinned_first_and_paginates(db_session, team, make_prompt):
    created = [make_prompt(team.owner, team.workspace, f"Prompt {n}") for n in range(5)]
    documents.update_document(db_session, created[2].id, team.owner.id, {"is_pinned": True})

    page = documents.list_workspace_documents(db_session, "acme", team.viewer.id, page=1, limit=2)

    assert page["items"][0].id == created[2].id
    assert len(page["items"]) == 2
    assert page["pagination"] == {"page": 1, "limit": 2, "total": 5, "total_pages": 3}

    last = documents.list_workspace_documents(db_session, "acme", team.viewer.id, page=3, limit=2)
    assert len(last["items"]) == 1


def test_listing_filters(db_session, team, make_prompt):
    category = categories.create_category(db_session, team.editor.id, "acme", "Sales")
    make_prompt(team.owner, team.workspace, "Cold Outreach", category_id=category.id)
    make_prompt(team.owner, team.workspace, "Template Letter", is_template=True, description="100% reusable")
    make_prompt(team.owner, team.workspace, "Status Update")

    def titles(**filters):
        listing = documents.list_workspace_documents(db_session, "acme", team.owner.id, **filters)
        return sorted(p.title for p in listing["items"])

    assert titles(search="OUTREACH") == ["Cold Outreach"]
    assert titles(search="100%") == ["Template Letter"]
    assert titles(search="%") == ["Template Letter"]
    assert titles(category_id=category.id) == ["Cold Outreach"]
    assert titles(is_template=True) == ["Template Letter"]
    assert titles(is_template=False) == ["Cold Outreach", "Status Update"]


@pytest.mark.parametrize("page, limit", [(0, 20), (1, 0), (1, 101)])
def test_listing_rejects_bad_pagination(db_session, team, page, limit):
    with pytest.raises(InvalidArgumentError):
        documents.list_workspace_documents(db_session, "acme", team.owner.id, page=page, limit=limit)


def test_listing_for_outsiders_shows_only_public(db_session, team, make_prompt):
    make_prompt(team.owner, team.workspace, "Private Plan")
    make_prompt(team.owner, team.workspace, "Open Recipe", is_public=True)

    for caller in (team.outsider.id, None):
        listing = documents.list_workspace_documents(db_session, "acme", caller)
        assert [p.title for p in listing["items"]] == ["Open Recipe"]
        assert listing["pagination"]["total"] == 1


# ==================== Favorites ====================

def test_toggle_favorite(db_session, team, make_prompt):
    prompt = make_prompt(team.owner, team.workspace, "Weekly Report")

    assert favorites.toggle_favorite(db_session, prompt.id, team.viewer.id) is True
    assert [p.id for p in favorites.list_favorites(db_session, team.viewer.id)] == [prompt.id]
    assert favorites.toggle_favorite(db_session, prompt.id, team.viewer.id) is False
    assert favorites.list_favorites(db_session, team.viewer.id) == []


def test_favorite_requires_caller_and_read_access(db_session, team, make_prompt):
    prompt = make_prompt(team.owner, team.workspace, "Weekly Report")

    with pytest.raises(PermissionDeniedError):
        favorites.toggle_favorite(db_session, prompt.id, None)
    with pytest.raises(NotFoundOrHiddenError):
        favorites.toggle_favorite(db_session, prompt.id, team.outsider.id)


def test_favorites_of_hidden_prompts_are_not_listed(db_session, team, make_prompt):
    prompt = make_prompt(team.owner, team.workspace, "Open Recipe", is_public=True)
    favorites.toggle_favorite(db_session, prompt.id, team.outsider.id)

    db_session.execute(update(Prompt).where(Prompt.id == prompt.id).values(is_public=False))
    db_session.commit()

    assert favorites.list_favorites(db_session, team.outsider.id) == []
