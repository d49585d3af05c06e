# tests/test_versions.py: Snapshots, duplicates and forks
import uuid

import pytest
from sqlalchemy import select

from app.access import MemberRole
from app.core.errors import (
    ErrorCode,
    ImmutableRecordError,
    NotFoundOrHiddenError,
    PermissionDeniedError,
)
from app.models.activity import Activity, ActivityType
from app.models.prompt import Prompt, PromptVersion
from app.prompts import categories, documents, versions
from app.prompts.blocks import BlockStore, ordered_blocks
from app.prompts.versions import VersionManager
from app.services import document_service


def _fork_count(db, prompt_id):
    return db.scalar(select(Prompt.fork_count).where(Prompt.id == prompt_id))


@pytest.fixture
def source(db_session, team, make_prompt):
    """A prompt with a nested block structure and model settings."""
    prompt = make_prompt(
        team.owner,
        team.workspace,
        "Report",
        is_public=True,
        llm_config={"model": "gpt-4o", "temperature": 0.2},
        variables=[{"name": "quarter"}],
    )
    heading = BlockStore.create_block(db_session, prompt.id, team.owner.id, "HEADING", {"text": "Summary"})
    BlockStore.create_block(
        db_session, prompt.id, team.owner.id, "TEXT", {"text": "Numbers"}, indent_level=1, parent_id=heading.id
    )
    return prompt


# ==================== Snapshots ====================

def test_new_prompt_starts_at_version_one(db_session, team, make_prompt):
    prompt = make_prompt(team.owner, team.workspace, "Fresh Prompt")

    history = VersionManager.list_versions(db_session, prompt.id, team.viewer.id)
    assert [v.version for v in history] == [1]
    assert history[0].content == {"blocks": []}
    assert db_session.get(Prompt, prompt.id).current_version == 1


def test_snapshot_records_next_version_with_blocks(db_session, team, source):
    record = VersionManager.snapshot(db_session, source.id, team.editor.id, change_note="Added summary")

    assert record.version == 2
    assert record.change_note == "Added summary"
    assert [b["content"]["text"] for b in record.content["blocks"]] == ["Summary", "Numbers"]
    assert record.llm_config == {"model": "gpt-4o", "temperature": 0.2}
    assert db_session.get(Prompt, source.id).current_version == 2

    VersionManager.snapshot(db_session, source.id, team.editor.id)
    history = VersionManager.list_versions(db_session, source.id, team.editor.id)
    assert [v.version for v in history] == [3, 2, 1]

    activity = db_session.scalar(
        select(Activity).where(Activity.activity_type == ActivityType.VERSION_CREATED.value).limit(1)
    )
    assert activity.prompt_id == source.id


def test_viewer_cannot_snapshot(db_session, team, source):
    with pytest.raises(PermissionDeniedError):
        VersionManager.snapshot(db_session, source.id, team.viewer.id)


def test_versions_are_immutable(db_session, team, source):
    record = VersionManager.snapshot(db_session, source.id, team.editor.id)

    record.title = "Rewritten history"
    with pytest.raises(ImmutableRecordError):
        db_session.flush()
    db_session.rollback()

    db_session.delete(db_session.get(PromptVersion, record.id))
    with pytest.raises(ImmutableRecordError):
        db_session.flush()
    db_session.rollback()


# ==================== Duplicates ====================

def test_duplicate_copies_content_without_lineage(db_session, team, source):
    copy = VersionManager.duplicate(db_session, source.id, team.member.id, team.workspace.slug)

    assert copy.title == "Report (Copy)"
    assert copy.slug == "report-copy"
    assert copy.parent_id is None
    assert copy.workspace_id == team.workspace.id
    assert copy.user_id == team.member.id
    assert (copy.is_public, copy.is_template, copy.is_pinned) == (False, False, False)
    assert copy.llm_config == {"model": "gpt-4o", "temperature": 0.2}
    assert _fork_count(db_session, source.id) == 0

    copied = ordered_blocks(db_session, copy.id)
    assert [b.content["text"] for b in copied] == ["Summary", "Numbers"]
    # Parent links point inside the copy
    assert copied[1].parent_id == copied[0].id

    activity = db_session.scalar(
        select(Activity).where(Activity.prompt_id == copy.id, Activity.activity_type == ActivityType.PROMPT_CREATED.value)
    )
    assert activity.details["duplicated_from"] == str(source.id)


def test_duplicate_twice_gets_distinct_slugs(db_session, team, source):
    first = VersionManager.duplicate(db_session, source.id, team.owner.id)
    second = VersionManager.duplicate(db_session, source.id, team.owner.id)
    assert (first.slug, second.slug) == ("report-copy", "report-copy-1")


def test_duplicate_rejects_workspace_mismatch(db_session, team, source, make_workspace):
    other = make_workspace(team.owner, slug="elsewhere")
    with pytest.raises(NotFoundOrHiddenError):
        VersionManager.duplicate(db_session, source.id, team.owner.id, other.slug)


def test_viewer_cannot_duplicate(db_session, team, source):
    with pytest.raises(PermissionDeniedError):
        VersionManager.duplicate(db_session, source.id, team.viewer.id)


# ==================== Forks ====================

@pytest.fixture
def forker(make_user, make_workspace, add_membership):
    """User C: EDITOR in workspace W2, owned by someone else."""
    user = make_user("forker")
    target = make_workspace(make_user("target-owner"), slug="w2")
    add_membership(target, user, MemberRole.EDITOR)
    return user, target


def test_fork_into_other_workspace(db_session, source, forker):
    user, target = forker

    fork = VersionManager.fork(db_session, source.id, user.id, target.id)

    assert fork.parent_id == source.id
    assert fork.workspace_id == target.id
    assert fork.slug == "report"
    assert fork.is_public is False
    assert _fork_count(db_session, source.id) == 1

    activity = db_session.scalar(
        select(Activity).where(Activity.activity_type == ActivityType.PROMPT_FORKED.value)
    )
    assert activity.prompt_id == fork.id
    assert activity.details["source_prompt_id"] == str(source.id)
    assert activity.workspace_id == target.id

    first = VersionManager.list_versions(db_session, fork.id, user.id)
    assert [v.version for v in first] == [1]
    assert first[0].content["forked_from"]["prompt_id"] == str(source.id)
    assert [b["content"]["text"] for b in first[0].content["blocks"]] == ["Summary", "Numbers"]


def test_fork_references_version_matching_copied_blocks(db_session, team, source, forker):
    user, target = forker
    # Blocks were added after version 1 without a snapshot
    assert VersionManager.list_versions(db_session, source.id, team.owner.id)[0].content == {"blocks": []}

    fork = VersionManager.fork(db_session, source.id, user.id, target.id)

    reference = VersionManager.list_versions(db_session, fork.id, user.id)[0].content["forked_from"]
    origin = db_session.get(PromptVersion, uuid.UUID(reference["version_id"]))
    assert reference["version"] == origin.version == 2
    assert origin.prompt_id == source.id
    assert [b["content"] for b in origin.content["blocks"]] == [
        b.content for b in ordered_blocks(db_session, fork.id)
    ]
    assert db_session.get(Prompt, source.id).current_version == 2

    # Nothing changed since, so the next fork points at the same version
    again = VersionManager.fork(db_session, source.id, user.id, target.id)
    assert VersionManager.list_versions(db_session, again.id, user.id)[0].content["forked_from"]["version"] == 2
    assert [v.version for v in VersionManager.list_versions(db_session, source.id, team.owner.id)] == [2, 1]


def test_fork_snapshots_source_edits_made_after_last_version(db_session, team, source, forker):
    user, target = forker
    VersionManager.snapshot(db_session, source.id, team.owner.id)
    BlockStore.create_block(db_session, source.id, team.owner.id, "TEXT", {"text": "Late addition"})

    fork = VersionManager.fork(db_session, source.id, user.id, target.id)

    reference = VersionManager.list_versions(db_session, fork.id, user.id)[0].content["forked_from"]
    assert reference["version"] == 3
    origin = db_session.get(PromptVersion, uuid.UUID(reference["version_id"]))
    assert origin.change_note == versions.FORK_SNAPSHOT_NOTE
    assert [b["content"]["text"] for b in origin.content["blocks"]] == ["Summary", "Numbers", "Late addition"]


def test_fork_needs_editor_in_target(db_session, source, make_user, make_workspace, add_membership):
    user = make_user("plain-member")
    target = make_workspace(make_user("target-owner"), slug="w2")
    add_membership(target, user, MemberRole.MEMBER)

    with pytest.raises(PermissionDeniedError):
        VersionManager.fork(db_session, source.id, user.id, target.id)
    assert _fork_count(db_session, source.id) == 0


def test_private_prompt_cannot_be_forked_by_outsider(db_session, team, make_prompt, forker):
    user, target = forker
    private = make_prompt(team.owner, team.workspace, "Internal Only")

    with pytest.raises(NotFoundOrHiddenError):
        VersionManager.fork(db_session, private.id, user.id, target.id)


def test_fork_in_same_workspace_keeps_category(db_session, team, make_prompt):
    category = categories.create_category(db_session, team.editor.id, team.workspace.slug, "Finance")
    prompt = make_prompt(team.owner, team.workspace, "Budget", category_id=category.id)

    fork = VersionManager.fork(db_session, prompt.id, team.editor.id)

    assert fork.workspace_id == team.workspace.id
    assert fork.category_id == category.id
    assert fork.slug == "budget-1"


def test_cross_workspace_fork_drops_category(db_session, team, make_prompt, forker):
    user, target = forker
    category = categories.create_category(db_session, team.editor.id, team.workspace.slug, "Finance")
    prompt = make_prompt(team.owner, team.workspace, "Budget", category_id=category.id, is_public=True)

    fork = VersionManager.fork(db_session, prompt.id, user.id, target.id)
    assert fork.category_id is None


def test_fork_is_all_or_nothing(db_session, team, source, forker, monkeypatch):
    user, target = forker
    VersionManager.snapshot(db_session, source.id, team.owner.id)

    def explode(*args, **kwargs):
        raise RuntimeError("activity store unavailable")

    # Fails after the fork counter was incremented
    monkeypatch.setattr(versions, "record_activity", explode)

    with pytest.raises(RuntimeError):
        VersionManager.fork(db_session, source.id, user.id, target.id)

    assert _fork_count(db_session, source.id) == 0
    assert db_session.scalar(select(Prompt).where(Prompt.parent_id == source.id)) is None
    assert db_session.scalar(select(Prompt).where(Prompt.workspace_id == target.id)) is None
    assert [v.version for v in VersionManager.list_versions(db_session, source.id, team.owner.id)] == [2, 1]


def test_fork_failure_surfaces_as_internal_result(db_session, source, forker, monkeypatch):
    user, target = forker
    monkeypatch.setattr(versions, "record_activity", lambda *args, **kwargs: 1 / 0)

    result = document_service.fork_document(db_session, source.id, user.id, target.slug)

    assert not result.ok
    assert result.error.code is ErrorCode.INTERNAL
    assert "division" not in result.error.message
    assert _fork_count(db_session, source.id) == 0


def test_fork_lineage_is_write_once(db_session, source, forker, make_prompt, team):
    user, target = forker
    fork = VersionManager.fork(db_session, source.id, user.id, target.id)
    other = make_prompt(team.owner, team.workspace, "Other Origin")

    with pytest.raises(ImmutableRecordError):
        fork.parent_id = other.id


def test_deleting_fork_gives_back_fork_count(db_session, source, forker):
    user, target = forker
    fork = VersionManager.fork(db_session, source.id, user.id, target.id)
    VersionManager.fork(db_session, source.id, user.id, target.id)
    assert _fork_count(db_session, source.id) == 2

    documents.delete_document(db_session, fork.id, user.id)

    assert _fork_count(db_session, source.id) == 1
    # The deleted fork keeps pointing at its origin
    assert db_session.scalar(select(Prompt.parent_id).where(Prompt.id == fork.id)) == source.id
