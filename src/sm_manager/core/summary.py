# src/sm_manager/core/summary.py

"""
Schedule summary aggregation.

Summaries are recomputed on every list fetch from the live entry + roster:
the roster (names and order) can change independently of any entry, so a
cached summary would go stale.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from .models import Person, PrivacyMode, ScheduleSummary, TaskRecord


def derive_summary(
    storage_key: str,
    entry_id: str,
    date: str,
    title: str,
    records: Mapping[str, TaskRecord],
    members: Sequence[Person],
    privacy_mode: PrivacyMode = PrivacyMode.PUBLIC,
) -> ScheduleSummary:
    """
    Turn one entry's records into a display-ready summary.

    - total counts records, not roster members
    - uncompleted names resolve through the roster (raw id if the person is gone)
    - names are ordered by roster position; unresolvable ones go last, in record order
    - an entry with no records is never "all completed"
    """
    position = {m.id: i for i, m in enumerate(members)}
    names = {m.id: m.name for m in members}
    last = len(members)

    total = len(records)
    completed = 0
    pending: list[tuple[int, str]] = []

    for person_id, record in records.items():
        if record.completed:
            completed += 1
            continue
        pending.append((position.get(person_id, last), names.get(person_id, person_id)))

    # list.sort is stable: unresolvable ids keep record order.
    pending.sort(key=lambda item: item[0])

    return ScheduleSummary(
        storage_key=storage_key,
        id=entry_id,
        date=date,
        title=title,
        total=total,
        completed=completed,
        is_all_completed=total > 0 and completed == total,
        uncompleted_names=[name for _, name in pending],
        privacy_mode=privacy_mode,
    )


def sort_summaries(summaries: Iterable[ScheduleSummary]) -> list[ScheduleSummary]:
    """Date descending, then id descending (newest first within a date)."""
    return sorted(summaries, key=lambda s: (s.date, s.id), reverse=True)
