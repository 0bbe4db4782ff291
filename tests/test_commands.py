# tests/test_commands.py

from __future__ import annotations

from sm_manager.cli.commands import CommandRegistry, registry
from sm_manager.core.models import DEFAULT_TEAM_MEMBERS, PrivacyMode, TaskRecord
from sm_manager.core.state import AppState


def _run(state: AppState, line: str) -> str:
    return registry.handle(state, line) or ""


def _admin_saves_entry(state: AppState, *extra: str, date: str = "2024-05-20") -> str:
    assert _run(state, "/login 7788").startswith("Logged in as admin")
    _run(state, f"/new {date} morning")
    for line in extra:
        _run(state, line)
    reply = _run(state, "/save")
    assert reply.startswith("Saved ")
    assert state.draft is not None and state.draft.id is not None
    return state.draft.id


def test_command_registry_unknown_and_non_command(state: AppState) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_login_required_for_most_commands(state: AppState) -> None:
    assert _run(state, "/list") == "Please log in first: /login <zone number or admin code>."
    assert "Available commands" in _run(state, "/help")
    assert "Logged in: nobody" in _run(state, "/status")


def test_login_failure_and_success(state: AppState) -> None:
    assert _run(state, "/login 9999") == "Login failed: invalid credential."
    assert state.session is None

    assert _run(state, "/login 1002") == "Logged in as 김둘 (화성병점, zone 1002)."
    assert _run(state, "/whoami") == "You are 김둘 (화성병점, zone 1002)."

    assert _run(state, "/logout") == "Logged out."
    assert state.session is None


def test_admin_creates_and_lists_entry(state: AppState) -> None:
    entry_id = _admin_saves_entry(state, "/check 김하나 on", "/remark 2001 병가 중")

    stored = state.store.load_schedule_entry(entry_id)
    assert stored is not None
    assert stored.title == "morning"
    assert stored.records["h_1"] == TaskRecord(True, "")
    assert stored.records["o_1"] == TaskRecord(False, "병가 중")

    listing = _run(state, "/list")
    assert listing.startswith(f"[{entry_id}] 2024-05-20 (morning)  1/6  pending: 김둘")


def test_list_empty(state: AppState) -> None:
    _run(state, "/login 7788")
    assert _run(state, "/list") == "No entries yet."


def test_member_edits_only_own_row(state: AppState) -> None:
    entry_id = _admin_saves_entry(state)
    _run(state, "/logout")

    _run(state, "/login 1002")
    assert entry_id in _run(state, f"/open {entry_id}")
    assert _run(state, "/check 1002 on") == "김둘: completed (unsaved)"
    assert _run(state, "/check 1001 on").startswith("Permission denied")
    assert _run(state, "/save") == f"Saved {entry_id}."

    stored = state.store.load_schedule_entry(entry_id)
    assert stored is not None
    assert stored.records["h_2"].completed is True
    assert stored.records["h_1"].completed is False


def test_member_cannot_create_or_manage(state: AppState) -> None:
    _run(state, "/login 1002")
    assert _run(state, "/new").startswith("Permission denied")
    assert _run(state, "/members").startswith("Permission denied")
    assert _run(state, "/clear-schedules").startswith("Permission denied")
    assert _run(state, "/delete k1").startswith("Permission denied")


def test_private_entry_render_hides_other_rows(state: AppState) -> None:
    entry_id = _admin_saves_entry(state, "/privacy private", "/remark 김하나 secret")
    _run(state, "/logout")

    _run(state, "/login 1002")
    out = _run(state, f"/view {entry_id}")

    assert "김둘" in out
    assert "김하나" not in out
    assert "secret" not in out
    assert "Progress" not in out
    assert state.store.load_schedule_entry(entry_id).privacy_mode == PrivacyMode.PRIVATE


def test_open_missing_and_no_draft(state: AppState) -> None:
    _run(state, "/login 7788")
    assert _run(state, "/open nope") == "Entry not found: nope"
    assert _run(state, "/show") == "No entry open. Use /new or /open <id>."
    assert _run(state, "/new 2024-13-40") == "Not a date: 2024-13-40"


def test_delete_single_and_bulk(state: AppState) -> None:
    first = _admin_saves_entry(state, date="2024-05-20")
    second = _admin_saves_entry(state, date="2024-05-21")
    third = _admin_saves_entry(state, date="2024-05-22")

    # nothing is deleted until the phrase is confirmed
    assert "WARNING" in _run(state, f"/delete {first}")
    assert state.store.count_schedules() == 3
    assert _run(state, "/confirm nope") == "Cancelled."
    assert state.store.count_schedules() == 3

    _run(state, f"/delete {first}")
    assert _run(state, "/confirm 삭제") == f"Deleted {first}."
    assert state.store.count_schedules() == 2

    assert f"{second}, {third}" in _run(state, f"/rm {second} {third} {second}")
    assert state.store.count_schedules() == 2
    out = _run(state, "/confirm 삭제")
    assert out.startswith("Deleted 2 entries.")
    assert state.draft is None
    assert state.store.list_schedule_summaries() == []


def test_list_hides_others_in_private_entries(state: AppState) -> None:
    private_id = _admin_saves_entry(state, "/privacy private", date="2024-05-20")
    public_id = _admin_saves_entry(state, date="2024-05-21")

    admin_view = _run(state, "/list")
    assert f"[{private_id}] 2024-05-20 (morning)  0/6  pending: 김하나, 김둘" in admin_view

    _run(state, "/logout")
    _run(state, "/login 1002")
    _run(state, f"/open {private_id}")
    _run(state, "/check 1002 on")
    _run(state, "/save")

    lines = _run(state, "/list").splitlines()

    assert lines[0].startswith(f"[{public_id}] 2024-05-21 (morning)  0/6  pending: 김하나")
    assert lines[1] == f"[{private_id}] 2024-05-20 (morning)  private  your row: done"
    assert "김하나" not in lines[1]
    assert "/6" not in lines[1]


def test_member_commands(state: AppState) -> None:
    _run(state, "/login 7788")

    assert _run(state, "/member add 1004 화성병점 최 넷") == "Roster saved (7 members)."
    assert state.members[-1].name == "최 넷"
    assert _run(state, "/member add 1001 화성병점 중복") == (
        "Conflict: zone_number '1001' is already used by another member."
    )
    assert _run(state, "/member edit nobody 9 G X") == "Unknown member id: nobody"
    assert _run(state, "/member remove h_1") == "Roster saved (6 members)."
    assert [m.id for m in state.store.get_members()][:2] == ["h_2", "h_3"]


def test_factory_reset_requires_exact_phrase(state: AppState) -> None:
    _admin_saves_entry(state)
    _run(state, "/member remove o_3")

    assert "WARNING" in _run(state, "/factory-reset")
    assert _run(state, "/confirm nope") == "Cancelled."
    assert state.store.count_schedules() == 1

    _run(state, "/factory-reset")
    assert _run(state, "/confirm 초기화") == "Application reset to defaults."
    assert state.store.count_schedules() == 0
    assert state.members == list(DEFAULT_TEAM_MEMBERS)
    assert _run(state, "/confirm 초기화") == "Nothing to confirm."


def test_clear_schedules_keeps_roster(state: AppState) -> None:
    _admin_saves_entry(state)
    _run(state, "/member remove o_3")

    _run(state, "/clear-schedules")
    assert _run(state, "/confirm 삭제") == "All entries deleted."
    assert state.store.count_schedules() == 0
    assert len(state.store.get_members()) == 5


def test_report_is_admin_only(state: AppState) -> None:
    _admin_saves_entry(state)
    assert _run(state, "/report") == "오늘은 모두 완료했어요."

    entry_id = state.draft.id
    _run(state, "/logout")
    _run(state, "/login 1002")
    _run(state, f"/open {entry_id}")
    assert _run(state, "/report").startswith("Permission denied")
