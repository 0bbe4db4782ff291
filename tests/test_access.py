# tests/test_access.py

from __future__ import annotations

import pytest

from sm_manager.core.access import AccessGate, AdminIdentity, MemberIdentity, Session
from sm_manager.core.errors import InvalidCredential, PermissionDenied
from sm_manager.core.models import Person, PrivacyMode, ScheduleEntry, TaskRecord


@pytest.fixture()
def gate() -> AccessGate:
    return AccessGate("7788")


def test_admin_code_gives_admin_session(gate: AccessGate, members) -> None:
    s = gate.authenticate("7788", members)
    assert s.is_admin
    assert s.person_id is None
    assert s.describe() == "admin"


def test_zone_number_gives_member_session(gate: AccessGate, members) -> None:
    s = gate.authenticate(" 2002 ", members)
    assert not s.is_admin
    assert s.person_id == "o_2"
    assert s.describe() == "박둘 (오산중앙, zone 2002)"


@pytest.mark.parametrize("credential", ["", "   ", "9999", "778", "77880", "박둘"])
def test_invalid_credentials_rejected_uniformly(gate: AccessGate, members, credential: str) -> None:
    with pytest.raises(InvalidCredential) as ei:
        gate.authenticate(credential, members)
    assert str(ei.value) == "Invalid credential."


def test_admin_code_wins_over_colliding_zone_number(gate: AccessGate) -> None:
    clash = [Person(id="x", name="X", group="G", zone_number="7788")]
    assert gate.authenticate("7788", clash).is_admin


def test_gate_requires_admin_code() -> None:
    with pytest.raises(ValueError):
        AccessGate("")


def test_require_admin() -> None:
    Session(AdminIdentity()).require_admin()
    with pytest.raises(PermissionDenied):
        Session(MemberIdentity(Person("a", "A", "G", "1"))).require_admin()


def test_private_entry_hides_other_rows_from_members(member_session: Session, admin: Session) -> None:
    entry = ScheduleEntry(
        id="e",
        date="2024-05-20",
        title="",
        records={"h_1": TaskRecord(True), "h_2": TaskRecord()},
        created_at=1,
        privacy_mode=PrivacyMode.PRIVATE,
    )

    assert set(member_session.visible_rows(entry)) == {"h_2"}
    assert set(admin.visible_rows(entry)) == {"h_1", "h_2"}
    assert member_session.editable_rows(entry) == {"h_2"}
    assert admin.editable_rows(entry) == {"h_1", "h_2"}


def test_public_entry_is_visible_but_not_editable(member_session: Session) -> None:
    entry = ScheduleEntry(
        id="e",
        date="2024-05-20",
        title="",
        records={"h_1": TaskRecord(), "h_2": TaskRecord()},
        created_at=1,
    )

    assert set(member_session.visible_rows(entry)) == {"h_1", "h_2"}
    assert member_session.can_edit_row("h_1") is False
    assert member_session.can_edit_row("h_2") is True
