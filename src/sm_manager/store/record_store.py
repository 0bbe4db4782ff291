# src/sm_manager/store/record_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any

from ..core.errors import StoreUnavailable
from ..core.models import (
    Person,
    PrivacyMode,
    ScheduleEntry,
    ScheduleSummary,
    default_members,
    records_from_dict,
    records_to_dict,
)
from ..core.summary import derive_summary, sort_summaries

logger = logging.getLogger(__name__)

MEMBERS_DOC_ID = "team_members"


class RecordStore:
    """
    SQLite document store for the roster and schedule entries.

    Two kinds of documents:
    - settings/team_members: a single JSON document {"members": [...]}
    - schedules/<entry id>: one row per entry, records kept as a JSON map

    The schema is migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Failure semantics:
    - reads log and degrade (default roster, None, [])
    - writes log and raise StoreUnavailable; nothing is retried

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "records.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_schedules()
        except Exception:
            total = -1
        logger.info("%s ready db=%s schedules=%s", type(self).__name__, self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            self._create_tables(cur)
            conn.commit()
        finally:
            conn.close()

    def _create_tables(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS settings (
                doc_id TEXT PRIMARY KEY,
                body TEXT NOT NULL,
                updated_at REAL NOT NULL
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS schedules (
                id TEXT PRIMARY KEY,
                date TEXT NOT NULL,
                title TEXT NOT NULL DEFAULT '',
                records TEXT NOT NULL DEFAULT '{}',
                created_at INTEGER NOT NULL DEFAULT 0,
                privacy_mode TEXT NOT NULL DEFAULT 'public',
                updated_at REAL NOT NULL DEFAULT 0
            )
            """
        )

        cur.execute("PRAGMA table_info(schedules)")
        cols = {row["name"] for row in cur.fetchall()}

        def add_col(name: str, decl: str) -> None:
            if name in cols:
                return
            cur.execute(f"ALTER TABLE schedules ADD COLUMN {name} {decl}")
            logger.info("RecordStore migration: added column %s", name)

        # Databases created before titles/privacy existed lack these.
        add_col("title", "TEXT NOT NULL DEFAULT ''")
        add_col("created_at", "INTEGER NOT NULL DEFAULT 0")
        add_col("privacy_mode", "TEXT NOT NULL DEFAULT 'public'")
        add_col("updated_at", "REAL NOT NULL DEFAULT 0")

        cur.execute("CREATE INDEX IF NOT EXISTS idx_schedules_date ON schedules(date, id)")

    @staticmethod
    def _members_to_str(members: list[Person]) -> str:
        return json.dumps({"members": [m.to_dict() for m in members]}, ensure_ascii=False)

    @staticmethod
    def _str_to_members(s: str | None) -> list[Person] | None:
        if not s:
            return None
        try:
            val = json.loads(s)
        except ValueError:
            logger.warning("Roster document is not valid JSON.")
            return None
        raw = val.get("members") if isinstance(val, dict) else None
        if not isinstance(raw, list):
            return None
        return [Person.from_dict(item) for item in raw if isinstance(item, dict)]

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> ScheduleEntry:
        try:
            records = records_from_dict(json.loads(row["records"] or "{}"))
        except ValueError:
            logger.warning("Entry %s has unreadable records; treating as empty.", row["id"])
            records = {}
        return ScheduleEntry(
            id=str(row["id"]),
            date=str(row["date"]),
            title=str(row["title"] or ""),
            records=records,
            created_at=int(row["created_at"] or 0),
            privacy_mode=PrivacyMode.from_db(row["privacy_mode"]),
        )

    def _write_roster(self, cur: sqlite3.Cursor, members: list[Person]) -> None:
        cur.execute(
            """
            INSERT INTO settings(doc_id, body, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(doc_id) DO UPDATE SET
                body = excluded.body,
                updated_at = excluded.updated_at
            """,
            (MEMBERS_DOC_ID, self._members_to_str(members), time.time()),
        )

    def _write_entry(self, cur: sqlite3.Cursor, entry: ScheduleEntry) -> None:
        # created_at is written once: a stored non-zero value always wins.
        cur.execute(
            """
            INSERT INTO schedules(id, date, title, records, created_at, privacy_mode, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                date = excluded.date,
                title = excluded.title,
                records = excluded.records,
                privacy_mode = excluded.privacy_mode,
                updated_at = excluded.updated_at,
                created_at = CASE
                    WHEN schedules.created_at > 0 THEN schedules.created_at
                    ELSE excluded.created_at
                END
            """,
            (
                entry.id,
                entry.date,
                entry.title or "",
                json.dumps(records_to_dict(entry.records), ensure_ascii=False),
                int(entry.created_at or 0),
                PrivacyMode.from_db(entry.privacy_mode).value,
                time.time(),
            ),
        )

    def _delete_key(self, cur: sqlite3.Cursor, key: str) -> None:
        cur.execute("DELETE FROM schedules WHERE id = ?", (key,))

    def _clear_entries(self, cur: sqlite3.Cursor) -> None:
        cur.execute("DELETE FROM schedules")

    def _load_entry(self, conn: sqlite3.Connection, entry_id: str) -> ScheduleEntry | None:
        row = conn.execute("SELECT * FROM schedules WHERE id = ?", (entry_id,)).fetchone()
        return self._row_to_entry(row) if row else None

    def _load_all_entries(self, conn: sqlite3.Connection) -> list[tuple[str, ScheduleEntry]]:
        """(storage key, entry) pairs for every stored entry."""
        rows = conn.execute("SELECT * FROM schedules ORDER BY date DESC, id DESC").fetchall()
        return [(str(r["id"]), self._row_to_entry(r)) for r in rows]

    def _run_write(self, op: str, fn: Any, *args: Any) -> None:
        """Run fn(cur, *args) in one transaction; surface failure as StoreUnavailable."""
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            logger.exception("%s failed: cannot open %s", op, self._db_path)
            raise StoreUnavailable(f"{op} failed: store unavailable") from e
        try:
            cur = conn.cursor()
            fn(cur, *args)
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.exception("%s failed", op)
            raise StoreUnavailable(f"{op} failed: store unavailable") from e
        finally:
            conn.close()

    # ---- public API: roster ----

    def get_members(self) -> list[Person]:
        """
        Return the persisted roster.

        The first caller on an empty store persists the default roster; a
        concurrent initializer simply overwrites with the same defaults.
        """
        try:
            conn = self._get_conn()
            try:
                row = conn.execute(
                    "SELECT body FROM settings WHERE doc_id = ?", (MEMBERS_DOC_ID,)
                ).fetchone()
                if row is not None:
                    members = self._str_to_members(row["body"])
                    if members is not None:
                        return members
                    logger.warning("Roster document unreadable; using defaults.")
                    return default_members()

                defaults = default_members()
                self._write_roster(conn.cursor(), defaults)
                conn.commit()
                logger.info("Roster initialized with %d default members", len(defaults))
                return defaults
            finally:
                conn.close()
        except sqlite3.Error:
            logger.exception("Failed to load members; using defaults.")
            return default_members()

    def save_members(self, members: list[Person]) -> None:
        self._run_write("save_members", self._write_roster, list(members))
        logger.info("Roster saved: %d members", len(members))

    # ---- public API: entries ----

    def count_schedules(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM schedules").fetchone()
            return int(n)
        finally:
            conn.close()

    def save_schedule_entry(self, entry: ScheduleEntry) -> None:
        """Upsert by entry.id. Saving the same id again overwrites."""
        if not entry.id:
            raise ValueError("entry.id is required")
        self._run_write("save_schedule_entry", self._write_entry, entry)
        logger.debug("Entry saved id=%s date=%s records=%d", entry.id, entry.date, len(entry.records))

    def load_schedule_entry(self, entry_id: str) -> ScheduleEntry | None:
        if not entry_id:
            return None
        try:
            conn = self._get_conn()
            try:
                return self._load_entry(conn, entry_id)
            finally:
                conn.close()
        except sqlite3.Error:
            logger.exception("Failed to load entry id=%s", entry_id)
            return None

    def delete_schedule_by_key(self, key: str) -> None:
        """Delete one entry. A missing key is a no-op."""
        self._run_write("delete_schedule_by_key", self._delete_key, key)
        logger.debug("Entry deleted key=%s", key)

    def list_schedule_summaries(self) -> list[ScheduleSummary]:
        members = self.get_members()
        try:
            conn = self._get_conn()
            try:
                pairs = self._load_all_entries(conn)
            finally:
                conn.close()
        except sqlite3.Error:
            logger.exception("Failed to load schedule summaries.")
            return []

        return sort_summaries(
            derive_summary(key, e.id, e.date, e.title, e.records, members, e.privacy_mode)
            for key, e in pairs
        )

    # ---- public API: bulk / destructive ----

    def delete_all_schedules(self) -> None:
        self._run_write("delete_all_schedules", self._clear_entries)
        logger.warning("All schedule entries deleted.")

    def reset_application(self) -> None:
        """Clear every entry and restore the default roster in one transaction."""

        def _reset(cur: sqlite3.Cursor) -> None:
            self._clear_entries(cur)
            self._write_roster(cur, default_members())

        self._run_write("reset_application", _reset)
        logger.warning("Application reset: entries cleared, roster restored to defaults.")
