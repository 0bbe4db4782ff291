# src/sm_manager/core/lifecycle.py

"""
Entry lifecycle: the only place schedule entries are created, changed or deleted.

Identity and timestamps:
- new entries get id "<date>_<epoch millis>" and created_at = the same millis,
  so sorting ids within a date approximates creation order
- updates reuse the id and send created_at=0; the store keeps the original

Records are always reconciled against the live roster before a save:
one record per current member (default if missing), removed members dropped.

Destructive operations (clear schedules, full reset) are admin-only here;
asking the human to confirm is the caller's job.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import date as date_cls

from ..report.daily_report import generate_daily_report
from .access import Session
from .errors import PermissionDenied
from .models import (
    GROUP_PRIORITY,
    INITIAL_RECORD,
    Person,
    PrivacyMode,
    RecordUpdate,
    ScheduleEntry,
    ScheduleSummary,
    SetCompleted,
    SetRemarks,
    TaskRecord,
)
from .ports import LLMClient, RecordRepo
from .roster import validate_roster

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def make_entry_id(date: str, now_ms: int) -> str:
    return f"{date}_{int(now_ms)}"


@dataclass(slots=True)
class EntryDraft:
    """In-progress editor state. id is None until the first save."""

    date: str
    title: str = ""
    records: dict[str, TaskRecord] = field(default_factory=dict)
    privacy_mode: PrivacyMode = PrivacyMode.PUBLIC
    id: str | None = None

    @staticmethod
    def from_entry(entry: ScheduleEntry) -> EntryDraft:
        return EntryDraft(
            date=entry.date,
            title=entry.title or "",
            records=dict(entry.records),
            privacy_mode=entry.privacy_mode,
            id=entry.id,
        )


@dataclass(frozen=True, slots=True)
class EntryView:
    """
    An entry as one session may see it.

    rows: only the rows the session is allowed to see
    editable: person ids the session may change (empty for view-only loads)
    """

    entry: ScheduleEntry
    rows: dict[str, TaskRecord]
    editable: frozenset[str]
    read_only: bool


@dataclass(frozen=True, slots=True)
class BulkDeleteResult:
    deleted: list[str]
    failed: list[str]
    summaries: list[ScheduleSummary]


@dataclass(frozen=True, slots=True)
class GroupProgress:
    group: str
    completed: int
    total: int

    @property
    def all_completed(self) -> bool:
        return self.total > 0 and self.completed == self.total


# ---- record helpers (pure) ----


def reconcile_records(records: Mapping[str, TaskRecord], members: Sequence[Person]) -> dict[str, TaskRecord]:
    """One record per current member, in roster order."""
    return {m.id: records.get(m.id, INITIAL_RECORD) for m in members}


def apply_update(records: Mapping[str, TaskRecord], person_id: str, update: RecordUpdate) -> dict[str, TaskRecord]:
    current = records.get(person_id, INITIAL_RECORD)
    match update:
        case SetCompleted(completed=completed):
            changed = replace(current, completed=bool(completed))
        case SetRemarks(remarks=remarks):
            changed = replace(current, remarks=str(remarks))
        case _:
            raise TypeError(f"Unsupported record update: {update!r}")
    return {**records, person_id: changed}


def reset_records(members: Sequence[Person]) -> dict[str, TaskRecord]:
    return {m.id: INITIAL_RECORD for m in members}


def progress_percent(records: Mapping[str, TaskRecord], members: Sequence[Person]) -> int:
    """Share of roster members marked completed, rounded half up. 0 for an empty roster."""
    if not members:
        return 0
    done = sum(1 for m in members if records.get(m.id, INITIAL_RECORD).completed)
    return int(math.floor(done * 100 / len(members) + 0.5))


def group_order(members: Iterable[Person]) -> list[str]:
    groups = {m.group for m in members}

    def key(g: str) -> tuple[int, str]:
        try:
            return GROUP_PRIORITY.index(g), g
        except ValueError:
            return len(GROUP_PRIORITY), g

    return sorted(groups, key=key)


def group_progress(records: Mapping[str, TaskRecord], members: Sequence[Person]) -> list[GroupProgress]:
    out: list[GroupProgress] = []
    for g in group_order(members):
        in_group = [m for m in members if m.group == g]
        done = sum(1 for m in in_group if records.get(m.id, INITIAL_RECORD).completed)
        out.append(GroupProgress(group=g, completed=done, total=len(in_group)))
    return out


def report_title(date: str, title: str) -> str:
    return f"{date} ({title})" if title else date


class EntryLifecycleManager:
    def __init__(self, store: RecordRepo, llm: LLMClient | None = None) -> None:
        self._store = store
        self._llm = llm

    @property
    def store(self) -> RecordRepo:
        return self._store

    # ---- drafts ----

    def new_draft(self, members: Sequence[Person], *, today: str | None = None) -> EntryDraft:
        return EntryDraft(
            date=today or date_cls.today().isoformat(),
            records=reset_records(members),
        )

    # ---- create / update ----

    def create_entry(
        self,
        *,
        date: str,
        title: str,
        records: Mapping[str, TaskRecord],
        members: Sequence[Person],
        privacy_mode: PrivacyMode = PrivacyMode.PUBLIC,
        now_ms: int | None = None,
    ) -> ScheduleEntry:
        if not date:
            raise ValueError("date is required")
        ts = _now_ms() if now_ms is None else int(now_ms)
        entry = ScheduleEntry(
            id=make_entry_id(date, ts),
            date=date,
            title=title or "",
            records=reconcile_records(records, members),
            created_at=ts,
            privacy_mode=privacy_mode,
        )
        self._store.save_schedule_entry(entry)
        logger.info("Entry created id=%s", entry.id)
        return entry

    def update_entry(
        self,
        entry_id: str,
        *,
        date: str,
        title: str,
        records: Mapping[str, TaskRecord],
        members: Sequence[Person],
        privacy_mode: PrivacyMode = PrivacyMode.PUBLIC,
    ) -> ScheduleEntry:
        if not entry_id:
            raise ValueError("entry_id is required")
        entry = ScheduleEntry(
            id=entry_id,
            date=date,
            title=title or "",
            records=reconcile_records(records, members),
            created_at=0,  # keep the stored value
            privacy_mode=privacy_mode,
        )
        self._store.save_schedule_entry(entry)
        logger.info("Entry updated id=%s", entry.id)
        return entry

    def save_draft(self, session: Session, draft: EntryDraft, members: Sequence[Person]) -> ScheduleEntry:
        """
        Persist a draft on behalf of a session.

        Admins save the draft as-is. A member can only change their own row:
        the stored entry is reloaded and only that row is taken from the draft.
        """
        if session.is_admin:
            if draft.id is None:
                entry = self.create_entry(
                    date=draft.date,
                    title=draft.title,
                    records=draft.records,
                    members=members,
                    privacy_mode=draft.privacy_mode,
                )
                draft.id = entry.id
                return entry
            return self.update_entry(
                draft.id,
                date=draft.date,
                title=draft.title,
                records=draft.records,
                members=members,
                privacy_mode=draft.privacy_mode,
            )

        if draft.id is None:
            raise PermissionDenied("Only an admin can create entries.")
        stored = self._store.load_schedule_entry(draft.id)
        if stored is None:
            raise PermissionDenied("Entry no longer exists.")

        pid = session.person_id
        records = dict(stored.records)
        if pid is not None and pid in draft.records:
            records[pid] = draft.records[pid]
        return self.update_entry(
            stored.id,
            date=stored.date,
            title=stored.title,
            records=records,
            members=members,
            privacy_mode=stored.privacy_mode,
        )

    def update_record(
        self, session: Session, draft: EntryDraft, person_id: str, update: RecordUpdate
    ) -> EntryDraft:
        if not session.can_edit_row(person_id):
            raise PermissionDenied("You can only edit your own row.")
        draft.records = apply_update(draft.records, person_id, update)
        return draft

    # ---- loads ----

    def load_for_view(self, session: Session, entry_id: str) -> EntryView | None:
        entry = self._store.load_schedule_entry(entry_id)
        if entry is None:
            return None
        return EntryView(entry=entry, rows=session.visible_rows(entry), editable=frozenset(), read_only=True)

    def load_for_edit(self, session: Session, entry_id: str) -> EntryView | None:
        entry = self._store.load_schedule_entry(entry_id)
        if entry is None:
            return None
        rows = session.visible_rows(entry)
        editable = frozenset(pid for pid in rows if session.can_edit_row(pid))
        return EntryView(entry=entry, rows=rows, editable=editable, read_only=not editable)

    def list_summaries(self) -> list[ScheduleSummary]:
        return self._store.list_schedule_summaries()

    # ---- deletes ----

    def delete_entry(self, session: Session, key: str) -> None:
        session.require_admin()
        self._store.delete_schedule_by_key(key)
        logger.info("Entry deleted key=%s", key)

    async def delete_entries(self, session: Session, keys: Iterable[str]) -> BulkDeleteResult:
        """
        Delete many entries concurrently, then refresh the summary list.

        Each key is deleted independently: one failure neither blocks nor rolls
        back the others, and failed keys simply stay in the store.
        """
        session.require_admin()
        unique = list(dict.fromkeys(k for k in keys if k))

        results = await asyncio.gather(
            *(asyncio.to_thread(self._store.delete_schedule_by_key, k) for k in unique),
            return_exceptions=True,
        )

        deleted: list[str] = []
        failed: list[str] = []
        for key, res in zip(unique, results):
            if isinstance(res, BaseException):
                logger.error("Bulk delete failed key=%s (%s)", key, res.__class__.__name__)
                failed.append(key)
            else:
                deleted.append(key)

        summaries = await asyncio.to_thread(self._store.list_schedule_summaries)
        logger.info("Bulk delete done deleted=%d failed=%d", len(deleted), len(failed))
        return BulkDeleteResult(deleted=deleted, failed=failed, summaries=summaries)

    # ---- roster ----

    def save_members(self, session: Session, members: Sequence[Person]) -> None:
        session.require_admin()
        validate_roster(members)
        self._store.save_members(list(members))

    # ---- destructive ----

    def clear_schedules(self, session: Session) -> None:
        session.require_admin()
        self._store.delete_all_schedules()

    def reset_application(self, session: Session) -> list[Person]:
        """Full reset; returns the restored roster."""
        session.require_admin()
        self._store.reset_application()
        return self._store.get_members()

    # ---- report ----

    def generate_report(self, draft: EntryDraft, members: Sequence[Person]) -> str:
        return generate_daily_report(
            self._llm,
            report_title(draft.date, draft.title),
            list(members),
            draft.records,
        )
