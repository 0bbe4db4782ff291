# src/sm_manager/store/legacy_store.py

"""
Record store that can still read the old date-keyed format.

Old versions wrote one row per day into `daily_schedules`:
    key   = bare date ("2024-05-20")
    value = bare records map {person_id: {"completed": ..., "remarks": ...}}
No wrapper, no title, no createdAt.

Decoding is versioned and explicit:
- try the current `schedules` collection first,
- fall back to the legacy row and upgrade it in memory (title='', created_at=0),
- writes always produce the current format; re-saving an upgraded row (its id is
  the bare date) drops that legacy row in the same transaction, so the day never
  shows up twice. New "<date>_<millis>" entries on the same day leave it alone.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any

from ..core.models import PrivacyMode, ScheduleEntry, records_from_dict
from .record_store import RecordStore

logger = logging.getLogger(__name__)

SCHEMA_LEGACY = 1
SCHEMA_CURRENT = 2


def upgrade_legacy_records(date: str, raw_records: Any) -> ScheduleEntry:
    """Legacy (v1) -> current (v2): the date doubles as the entry id."""
    return ScheduleEntry(
        id=date,
        date=date,
        title="",
        records=records_from_dict(raw_records),
        created_at=0,
        privacy_mode=PrivacyMode.PUBLIC,
    )


class LegacyCompatRecordStore(RecordStore):
    def _create_tables(self, cur: sqlite3.Cursor) -> None:
        super()._create_tables(cur)
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS daily_schedules (
                date TEXT PRIMARY KEY,
                records TEXT NOT NULL DEFAULT '{}'
            )
            """
        )

    @staticmethod
    def _legacy_row_to_entry(row: sqlite3.Row) -> ScheduleEntry:
        try:
            raw = json.loads(row["records"] or "{}")
        except ValueError:
            logger.warning("Legacy row %s has unreadable records; treating as empty.", row["date"])
            raw = {}
        return upgrade_legacy_records(str(row["date"]), raw)

    def _load_entry(self, conn: sqlite3.Connection, entry_id: str) -> ScheduleEntry | None:
        entry = super()._load_entry(conn, entry_id)
        if entry is not None:
            return entry

        row = conn.execute(
            "SELECT date, records FROM daily_schedules WHERE date = ?", (entry_id,)
        ).fetchone()
        if row is None:
            return None
        logger.debug("Entry %s decoded from legacy format (v%d -> v%d)", entry_id, SCHEMA_LEGACY, SCHEMA_CURRENT)
        return self._legacy_row_to_entry(row)

    def _load_all_entries(self, conn: sqlite3.Connection) -> list[tuple[str, ScheduleEntry]]:
        pairs = super()._load_all_entries(conn)
        rows = conn.execute("SELECT date, records FROM daily_schedules").fetchall()
        pairs.extend((str(r["date"]), self._legacy_row_to_entry(r)) for r in rows)
        return pairs

    def _write_entry(self, cur: sqlite3.Cursor, entry: ScheduleEntry) -> None:
        super()._write_entry(cur, entry)
        # Legacy rows are keyed by bare date, so only the upgraded entry itself matches.
        cur.execute("DELETE FROM daily_schedules WHERE date = ?", (entry.id,))
        if cur.rowcount:
            logger.info("Legacy row %s upgraded to the current format", entry.id)

    def _delete_key(self, cur: sqlite3.Cursor, key: str) -> None:
        super()._delete_key(cur, key)
        cur.execute("DELETE FROM daily_schedules WHERE date = ?", (key,))

    def _clear_entries(self, cur: sqlite3.Cursor) -> None:
        super()._clear_entries(cur)
        cur.execute("DELETE FROM daily_schedules")

    def count_schedules(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM schedules").fetchone()
            (legacy,) = conn.execute("SELECT COUNT(*) FROM daily_schedules").fetchone()
            return int(n) + int(legacy)
        finally:
            conn.close()
