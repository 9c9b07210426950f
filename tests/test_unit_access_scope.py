from mktdash.models.db.enums import UserRole
from mktdash.services.access_scope import (
    can_edit_roster,
    can_manage_reports,
    can_view_orders,
    scope,
)
from mktdash.services.records import ReportRecord

RECORDS = [
    ReportRecord(person_name="A", person_email="a@acme.io", team="T1"),
    ReportRecord(person_name="B", person_email="b@acme.io", team="T1"),
    ReportRecord(person_name="C", person_email="c@acme.io", team="T2"),
]


def test_admin_sees_everything():
    assert scope(RECORDS, UserRole.ADMIN, "", "") == RECORDS


def test_leader_sees_own_team_only():
    visible = scope(RECORDS, "leader", "T1", "lead@acme.io")
    assert [r.person_name for r in visible] == ["A", "B"]


def test_leader_without_team_sees_nothing():
    assert scope(RECORDS, UserRole.LEADER, "", "a@acme.io") == []


def test_user_and_manager_see_own_email():
    assert [r.person_name for r in scope(RECORDS, UserRole.USER, "T1", "c@acme.io")] == ["C"]
    assert [r.person_name for r in scope(RECORDS, UserRole.MANAGER, "T1", "b@acme.io")] == ["B"]
    # exact match only
    assert scope(RECORDS, UserRole.USER, "T1", "C@acme.io") == []
    assert scope(RECORDS, UserRole.USER, "T1", "") == []


def test_scope_with_custom_accessors():
    rows = [{"team": "T1", "mail": "x@acme.io"}, {"team": "T2", "mail": "y@acme.io"}]
    visible = scope(rows, "user", "", "y@acme.io", email_of=lambda r: r["mail"])
    assert visible == [rows[1]]


def test_capabilities():
    assert can_manage_reports(UserRole.ADMIN) and can_manage_reports("leader")
    assert not can_manage_reports(UserRole.MANAGER)
    assert can_edit_roster(UserRole.ADMIN) and not can_edit_roster(UserRole.LEADER)
    assert can_view_orders(UserRole.LEADER) and not can_view_orders(UserRole.USER)
