# src/sm_manager/cli/commands.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import date as date_cls
from typing import Optional

from ..core.errors import (
    ConflictingIdentifier,
    InvalidCredential,
    PermissionDenied,
    StoreUnavailable,
)
from ..core.lifecycle import (
    EntryDraft,
    group_progress,
    progress_percent,
    reset_records,
)
from ..core.models import INITIAL_RECORD, Person, PrivacyMode, ScheduleSummary, SetCompleted, SetRemarks, TaskRecord
from ..core.roster import add_member, edit_member, find_member, remove_member
from ..core.state import AppState, PendingAction

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)

CONFIRM_CLEAR_PHRASE = "삭제"
CONFIRM_DELETE_PHRASE = "삭제"
CONFIRM_RESET_PHRASE = "초기화"


class CommandError(Exception):
    """User-facing command failure (bad arguments, nothing open, ...)."""


class CommandRegistry:
    """Slash-command registry used by the console (/help, /login, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}
        self._login_required: set[str] = set()

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: Optional[list[str]] = None,
        login_required: bool = True,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in [key, *(a.lower() for a in aliases)]:
            self._handlers[alias] = handler
            if login_required:
                self._login_required.add(alias)

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        if name in self._login_required and state.session is None:
            return "Please log in first: /login <zone number or admin code>."

        try:
            return handler(state, args)
        except CommandError as e:
            return str(e)
        except PermissionDenied as e:
            return f"Permission denied: {e}"
        except StoreUnavailable:
            return "Store unavailable: the change was NOT saved. Try again later."
        except ConflictingIdentifier as e:
            return f"Conflict: {e.field} '{e.value}' is already used by another member."

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- rendering ----


def _format_summary(s: ScheduleSummary) -> str:
    title = f" ({s.title})" if s.title else ""
    if s.is_all_completed:
        state = "all done"
    elif s.total == 0:
        state = "no records"
    else:
        state = "pending: " + ", ".join(s.uncompleted_names)
    return f"[{s.storage_key}] {s.date}{title}  {s.completed}/{s.total}  {state}"


def _format_private_summary(state: AppState, s: ScheduleSummary) -> str:
    """A member's line for a private entry: their own row only, no counts."""
    assert state.session is not None
    title = f" ({s.title})" if s.title else ""
    entry = state.store.load_schedule_entry(s.storage_key)
    rec = entry.records.get(state.session.person_id or "") if entry is not None else None
    if rec is None:
        mine = "no row for you"
    else:
        mine = "your row: done" if rec.completed else "your row: pending"
    return f"[{s.storage_key}] {s.date}{title}  private  {mine}"


def _format_listing(state: AppState, s: ScheduleSummary) -> str:
    assert state.session is not None
    if s.privacy_mode == PrivacyMode.PRIVATE and not state.session.is_admin:
        return _format_private_summary(state, s)
    return _format_summary(s)


def _format_row(person: Person | None, person_id: str, rec: TaskRecord, editable: bool) -> str:
    mark = "[x]" if rec.completed else "[ ]"
    name = person.name if person else person_id
    zone = f" #{person.zone_number}" if person else ""
    remark = f"  - {rec.remarks}" if rec.remarks else ""
    lock = "" if editable else " (read-only)"
    return f"    {mark} {name}{zone}{remark}{lock}"


def _render(state: AppState, draft: EntryDraft, *, read_only: bool = False) -> str:
    session = state.session
    assert session is not None
    members = state.members
    by_id = {m.id: m for m in members}

    title = f" ({draft.title})" if draft.title else ""
    head = f"{draft.id or '(new entry)'}  {draft.date}{title}  [{draft.privacy_mode.value}]"
    lines = [head]

    # Private entries: a member sees their own row and nothing aggregated over others.
    if draft.privacy_mode == PrivacyMode.PRIVATE and not session.is_admin:
        pid = session.person_id or ""
        if pid in draft.records:
            editable = not read_only and session.can_edit_row(pid)
            lines.append(_format_row(by_id.get(pid), pid, draft.records[pid], editable))
        else:
            lines.append("  (private entry: you have no row here)")
        return "\n".join(lines)

    lines.append(f"  Progress: {progress_percent(draft.records, members)}%")
    for gp in group_progress(draft.records, members):
        done = " - all done" if gp.all_completed else ""
        lines.append(f"  {gp.group}  {gp.completed}/{gp.total}{done}")
        for m in members:
            if m.group != gp.group:
                continue
            rec = draft.records.get(m.id, INITIAL_RECORD)
            editable = not read_only and session.can_edit_row(m.id)
            lines.append(_format_row(m, m.id, rec, editable))
    if not members:
        lines.append("  No members registered. Use /member add.")
    return "\n".join(lines)


def _require_draft(state: AppState) -> EntryDraft:
    if state.draft is None:
        raise CommandError("No entry open. Use /new or /open <id>.")
    return state.draft


def _resolve_member(state: AppState, ref: str) -> Person:
    person = find_member(state.members, ref)
    if person is None:
        raise CommandError(f"Unknown member: {ref}")
    return person


# ---- session ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_login(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /login <zone number or admin code>"
    members = state.refresh_members()
    try:
        state.session = state.gate.authenticate(args[0], members)
    except InvalidCredential:
        return "Login failed: invalid credential."
    state.draft = None
    state.pending = None
    return f"Logged in as {state.session.describe()}."


def cmd_logout(state: AppState, args: list[str]) -> str:
    state.logout()
    return "Logged out."


def cmd_whoami(state: AppState, args: list[str]) -> str:
    assert state.session is not None
    return f"You are {state.session.describe()}."


def cmd_status(state: AppState, args: list[str]) -> str:
    s = state.settings
    who = state.session.describe() if state.session else "nobody"
    llm = "configured" if state.llm is not None else "not configured"
    lines = [
        "Status:",
        f"  App: {getattr(s, 'app_name', 'sm-manager')}",
        f"  Store: {type(state.store).__name__} ({getattr(s, 'db_path', '?')})",
        f"  AI report: {llm}",
        f"  Logged in: {who}",
    ]
    # Admin only: shows whether the default admin code is still in use.
    describe = getattr(s, "describe", None)
    if state.session is not None and state.session.is_admin and callable(describe):
        lines.append("Settings:")
        lines.extend(f"  {k}: {v}" for k, v in describe().items())
    return "\n".join(lines)


# ---- entries ----


def cmd_list(state: AppState, args: list[str]) -> str:
    state.refresh_members()
    summaries = state.manager.list_summaries()
    if not summaries:
        return "No entries yet."
    return "\n".join(_format_listing(state, s) for s in summaries)


def cmd_new(state: AppState, args: list[str]) -> str:
    assert state.session is not None
    state.session.require_admin()
    today = args[0] if args else date_cls.today().isoformat()
    try:
        date_cls.fromisoformat(today)
    except ValueError:
        return f"Not a date: {today}"
    draft = state.manager.new_draft(state.refresh_members(), today=today)
    draft.title = " ".join(args[1:])
    state.draft = draft
    return _render(state, draft)


def cmd_open(state: AppState, args: list[str]) -> str:
    assert state.session is not None
    if not args:
        return "Usage: /open <entry id>"
    state.refresh_members()
    view = state.manager.load_for_edit(state.session, args[0])
    if view is None:
        return f"Entry not found: {args[0]}"
    state.draft = EntryDraft.from_entry(view.entry)
    return _render(state, state.draft)


def cmd_view(state: AppState, args: list[str]) -> str:
    assert state.session is not None
    if not args:
        return "Usage: /view <entry id>"
    state.refresh_members()
    view = state.manager.load_for_view(state.session, args[0])
    if view is None:
        return f"Entry not found: {args[0]}"
    return _render(state, EntryDraft.from_entry(view.entry), read_only=True)


def cmd_show(state: AppState, args: list[str]) -> str:
    return _render(state, _require_draft(state))


def cmd_check(state: AppState, args: list[str]) -> str:
    assert state.session is not None
    if len(args) < 2 or args[1].lower() not in ("on", "off"):
        return "Usage: /check <member> on|off"
    draft = _require_draft(state)
    person = _resolve_member(state, args[0])
    state.manager.update_record(state.session, draft, person.id, SetCompleted(args[1].lower() == "on"))
    return f"{person.name}: {'completed' if args[1].lower() == 'on' else 'not completed'} (unsaved)"


def cmd_remark(state: AppState, args: list[str]) -> str:
    assert state.session is not None
    if not args:
        return "Usage: /remark <member> <text...>"
    draft = _require_draft(state)
    person = _resolve_member(state, args[0])
    state.manager.update_record(state.session, draft, person.id, SetRemarks(" ".join(args[1:])))
    return f"{person.name}: remark updated (unsaved)"


def cmd_title(state: AppState, args: list[str]) -> str:
    assert state.session is not None
    state.session.require_admin()
    draft = _require_draft(state)
    draft.title = " ".join(args)
    return f"Title set to '{draft.title}' (unsaved)"


def cmd_date(state: AppState, args: list[str]) -> str:
    assert state.session is not None
    state.session.require_admin()
    if not args:
        return "Usage: /date YYYY-MM-DD"
    draft = _require_draft(state)
    try:
        date_cls.fromisoformat(args[0])
    except ValueError:
        return f"Not a date: {args[0]}"
    draft.date = args[0]
    return f"Date set to {draft.date} (unsaved)"


def cmd_privacy(state: AppState, args: list[str]) -> str:
    assert state.session is not None
    state.session.require_admin()
    if not args or args[0].lower() not in ("public", "private"):
        return "Usage: /privacy public|private"
    draft = _require_draft(state)
    draft.privacy_mode = PrivacyMode(args[0].lower())
    return f"Privacy set to {draft.privacy_mode.value} (unsaved)"


def cmd_reset_records(state: AppState, args: list[str]) -> str:
    assert state.session is not None
    state.session.require_admin()
    draft = _require_draft(state)
    draft.records = reset_records(state.members)
    return "All rows reset (unsaved)."


def cmd_save(state: AppState, args: list[str]) -> str:
    assert state.session is not None
    draft = _require_draft(state)
    entry = state.manager.save_draft(state.session, draft, state.refresh_members())
    state.draft = EntryDraft.from_entry(entry)
    return f"Saved {entry.id}."


def cmd_delete(state: AppState, args: list[str]) -> str:
    assert state.session is not None
    state.session.require_admin()
    if not args:
        return "Usage: /delete <key> [key...]"
    keys = tuple(dict.fromkeys(args))
    state.pending = PendingAction("delete_entries", CONFIRM_DELETE_PHRASE, keys)
    return (
        f"WARNING: {len(keys)} entr{'y' if len(keys) == 1 else 'ies'} will be deleted permanently: "
        + ", ".join(keys)
        + f"\nType /confirm {CONFIRM_DELETE_PHRASE} to proceed, anything else cancels."
    )


def _delete_confirmed(state: AppState, keys: tuple[str, ...]) -> str:
    assert state.session is not None
    if len(keys) == 1:
        state.manager.delete_entry(state.session, keys[0])
        if state.draft is not None and state.draft.id == keys[0]:
            state.draft = None
        return f"Deleted {keys[0]}."

    result = asyncio.run(state.manager.delete_entries(state.session, keys))
    if state.draft is not None and state.draft.id in result.deleted:
        state.draft = None
    lines = [f"Deleted {len(result.deleted)} entries."]
    if result.failed:
        lines.append("Failed (still present): " + ", ".join(result.failed))
    lines.extend(_format_summary(s) for s in result.summaries)
    return "\n".join(lines)


def cmd_report(state: AppState, args: list[str]) -> str:
    assert state.session is not None
    state.session.require_admin()
    draft = _require_draft(state)
    return state.manager.generate_report(draft, state.members)


# ---- members ----


def cmd_members(state: AppState, args: list[str]) -> str:
    assert state.session is not None
    state.session.require_admin()
    members = state.refresh_members()
    if not members:
        return "No members."
    return "\n".join(f"  {m.id}  #{m.zone_number}  [{m.group}] {m.name}" for m in members)


def cmd_member(state: AppState, args: list[str]) -> str:
    """
    /member add <zone> <group> <name...>
    /member edit <id> <zone> <group> <name...>
    /member remove <id>
    """
    assert state.session is not None
    state.session.require_admin()
    usage = (
        "Usage:\n"
        "  /member add <zone> <group> <name...>\n"
        "  /member edit <id> <zone> <group> <name...>\n"
        "  /member remove <id>"
    )
    if not args:
        return usage

    sub, rest = args[0].lower(), args[1:]
    members = state.refresh_members()

    try:
        if sub == "add" and len(rest) >= 3:
            updated = add_member(members, zone_number=rest[0], group=rest[1], name=" ".join(rest[2:]))
        elif sub == "edit" and len(rest) >= 4:
            updated = edit_member(members, rest[0], zone_number=rest[1], group=rest[2], name=" ".join(rest[3:]))
        elif sub == "remove" and len(rest) == 1:
            updated = remove_member(members, rest[0])
            if len(updated) == len(members):
                return f"Unknown member id: {rest[0]}"
        else:
            return usage
    except KeyError as e:
        return f"Unknown member id: {e.args[0]}"
    except ValueError as e:
        return f"Invalid member: {e}"

    state.manager.save_members(state.session, updated)
    state.members = updated
    return f"Roster saved ({len(updated)} members)."


# ---- destructive (two-step) ----


def cmd_clear_schedules(state: AppState, args: list[str]) -> str:
    assert state.session is not None
    state.session.require_admin()
    state.pending = PendingAction("clear_schedules", CONFIRM_CLEAR_PHRASE)
    return (
        "WARNING: every saved entry will be deleted permanently. The roster is kept.\n"
        f"Type /confirm {CONFIRM_CLEAR_PHRASE} to proceed, anything else cancels."
    )


def cmd_factory_reset(state: AppState, args: list[str]) -> str:
    assert state.session is not None
    state.session.require_admin()
    state.pending = PendingAction("reset_application", CONFIRM_RESET_PHRASE)
    return (
        "WARNING: ALL data will be erased: every entry, and the roster goes back to defaults.\n"
        f"Type /confirm {CONFIRM_RESET_PHRASE} to proceed, anything else cancels."
    )


def cmd_confirm(state: AppState, args: list[str]) -> str:
    assert state.session is not None
    pending, state.pending = state.pending, None
    if pending is None:
        return "Nothing to confirm."
    if " ".join(args).strip() != pending.phrase:
        return "Cancelled."

    if pending.name == "delete_entries":
        return _delete_confirmed(state, pending.keys)
    if pending.name == "clear_schedules":
        state.manager.clear_schedules(state.session)
        state.draft = None
        return "All entries deleted."
    if pending.name == "reset_application":
        state.members = state.manager.reset_application(state.session)
        state.draft = None
        return "Application reset to defaults."
    logger.warning("Unknown pending action: %s", pending.name)
    return "Cancelled."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"], login_required=False)
registry.register("login", cmd_login, help_text="Log in: /login <zone number | admin code>.", login_required=False)
registry.register("status", cmd_status, help_text="Show store/AI/session status.", login_required=False)
registry.register("logout", cmd_logout, help_text="Log out.")
registry.register("whoami", cmd_whoami, help_text="Show the current identity.")
registry.register("list", cmd_list, help_text="List entries with completion summaries.", aliases=["ls"])
registry.register("new", cmd_new, help_text="Start a new entry: /new [YYYY-MM-DD] [title...] (admin).")
registry.register("open", cmd_open, help_text="Open an entry for editing: /open <id>.")
registry.register("view", cmd_view, help_text="Show an entry read-only: /view <id>.")
registry.register("show", cmd_show, help_text="Show the open entry.")
registry.register("check", cmd_check, help_text="Mark a row: /check <member> on|off.")
registry.register("remark", cmd_remark, help_text="Set a remark: /remark <member> <text...>.")
registry.register("title", cmd_title, help_text="Set the entry title (admin).")
registry.register("date", cmd_date, help_text="Set the entry date (admin).")
registry.register("privacy", cmd_privacy, help_text="Set privacy: /privacy public|private (admin).")
registry.register("reset-records", cmd_reset_records, help_text="Reset every row of the open entry (admin).")
registry.register("save", cmd_save, help_text="Save the open entry.")
registry.register("delete", cmd_delete, help_text="Delete entries: /delete <key> [key...] (admin, needs /confirm).", aliases=["rm"])
registry.register("report", cmd_report, help_text="AI briefing for the open entry (admin).")
registry.register("members", cmd_members, help_text="List the roster (admin).")
registry.register("member", cmd_member, help_text="Roster: /member add|edit|remove ... (admin).")
registry.register("clear-schedules", cmd_clear_schedules, help_text="Delete ALL entries (admin, needs /confirm).")
registry.register("factory-reset", cmd_factory_reset, help_text="Erase everything (admin, needs /confirm).")
registry.register("confirm", cmd_confirm, help_text="Confirm a pending destructive command.")
