# tests/test_members.py: Workspace membership management
import pytest
from sqlalchemy import select

from app.access import AccessReason, MemberRole
from app.core.errors import ConflictError, InvalidArgumentError, NotFoundOrHiddenError, PermissionDeniedError
from app.models.activity import Activity, ActivityType
from app.workspaces import members
from app.workspaces.crud import WorkspaceMemberCRUD


def test_admin_adds_member_and_activity_is_recorded(db_session, team, make_user):
    newcomer = make_user("newcomer")

    membership = members.add_member(db_session, "acme", team.admin.id, newcomer.id, "viewer")

    assert membership.role == "VIEWER"
    assert membership.invited_by == team.admin.id
    activity = db_session.scalar(select(Activity).where(Activity.activity_type == ActivityType.MEMBER_ADDED.value))
    assert activity.details == {"user_id": str(newcomer.id), "role": "VIEWER"}


def test_adding_existing_member_is_a_conflict(db_session, team):
    with pytest.raises(ConflictError):
        members.add_member(db_session, "acme", team.owner.id, team.viewer.id, "MEMBER")


def test_adding_unknown_or_inactive_user_fails(db_session, team, make_user):
    inactive = make_user("dormant", is_active=False)
    with pytest.raises(NotFoundOrHiddenError):
        members.add_member(db_session, "acme", team.owner.id, inactive.id, "MEMBER")


@pytest.mark.parametrize("role", ["SUPERUSER", "", None])
def test_invalid_role_is_rejected(db_session, team, make_user, role):
    newcomer = make_user("newcomer")
    with pytest.raises(InvalidArgumentError):
        members.add_member(db_session, "acme", team.owner.id, newcomer.id, role)


def test_role_ceiling_on_add(db_session, team, make_user):
    newcomer = make_user("newcomer")

    with pytest.raises(PermissionDeniedError) as exc_info:
        members.add_member(db_session, "acme", team.admin.id, newcomer.id, "ADMIN")
    assert exc_info.value.reason == AccessReason.ROLE_CEILING.value

    with pytest.raises(PermissionDeniedError):
        members.add_member(db_session, "acme", team.owner.id, newcomer.id, "OWNER")

    assert members.add_member(db_session, "acme", team.owner.id, newcomer.id, "ADMIN").role == "ADMIN"


def test_editor_cannot_manage_members(db_session, team, make_user):
    newcomer = make_user("newcomer")
    with pytest.raises(PermissionDeniedError) as exc_info:
        members.add_member(db_session, "acme", team.editor.id, newcomer.id, "VIEWER")
    assert exc_info.value.reason == AccessReason.INSUFFICIENT_ROLE.value


def test_update_member_role(db_session, team):
    updated = members.update_member_role(db_session, "acme", team.admin.id, team.viewer.id, "EDITOR")
    assert updated.role == "EDITOR"

    activity = db_session.scalar(
        select(Activity).where(Activity.activity_type == ActivityType.MEMBER_ROLE_CHANGED.value)
    )
    assert (activity.details["from"], activity.details["to"]) == ("VIEWER", "EDITOR")

    with pytest.raises(NotFoundOrHiddenError):
        members.update_member_role(db_session, "acme", team.admin.id, team.outsider.id, "EDITOR")


def test_admin_cannot_demote_or_remove_another_admin(db_session, team, make_user, add_membership):
    other_admin = make_user("second-admin")
    add_membership(team.workspace, other_admin, MemberRole.ADMIN)

    with pytest.raises(PermissionDeniedError):
        members.update_member_role(db_session, "acme", team.admin.id, other_admin.id, "VIEWER")
    with pytest.raises(PermissionDeniedError):
        members.remove_member(db_session, "acme", team.admin.id, other_admin.id)

    members.remove_member(db_session, "acme", team.owner.id, other_admin.id)
    assert WorkspaceMemberCRUD.get_membership(db_session, team.workspace.id, other_admin.id) is None


def test_owner_cannot_be_targeted_or_promoted_to(db_session, team):
    with pytest.raises(PermissionDeniedError):
        members.remove_member(db_session, "acme", team.admin.id, team.owner.id)
    with pytest.raises(PermissionDeniedError):
        members.update_member_role(db_session, "acme", team.owner.id, team.admin.id, "OWNER")


def test_members_cannot_remove_themselves(db_session, team):
    with pytest.raises(InvalidArgumentError):
        members.remove_member(db_session, "acme", team.admin.id, team.admin.id)
    with pytest.raises(InvalidArgumentError):
        members.remove_member(db_session, "acme", team.owner.id, team.owner.id)


def test_remove_member_records_activity(db_session, team):
    members.remove_member(db_session, "acme", team.admin.id, team.viewer.id)

    assert WorkspaceMemberCRUD.get_membership(db_session, team.workspace.id, team.viewer.id) is None
    activity = db_session.scalar(select(Activity).where(Activity.activity_type == ActivityType.MEMBER_REMOVED.value))
    assert activity.details["user_id"] == str(team.viewer.id)


def test_list_members_reports_owner_first(db_session, team):
    listed = members.list_members(db_session, "acme", team.viewer.id)

    assert listed[0]["user_id"] == team.owner.id
    assert listed[0]["role"] == "OWNER"
    assert {entry["role"] for entry in listed[1:]} == {"ADMIN", "EDITOR", "MEMBER", "VIEWER"}

    with pytest.raises(PermissionDeniedError):
        members.list_members(db_session, "acme", team.outsider.id)
