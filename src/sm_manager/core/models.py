# src/sm_manager/core/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

TEAM_HWASEONG = "화성병점"
TEAM_OSAN = "오산중앙"

# Display priority for groups; anything else sorts alphabetically after these.
GROUP_PRIORITY: tuple[str, ...] = (TEAM_HWASEONG, TEAM_OSAN)


class PrivacyMode(StrEnum):
    """
    Per-entry row visibility.

    Enforced at presentation time only; the store keeps every row regardless.
    """

    PUBLIC = "public"
    PRIVATE = "private"

    @classmethod
    def from_db(cls, raw: str | None) -> PrivacyMode:
        if not raw:
            return cls.PUBLIC
        try:
            return cls(raw)
        except ValueError:
            return cls.PUBLIC


@dataclass(frozen=True, slots=True)
class Person:
    id: str
    name: str
    group: str
    zone_number: str  # login credential, unique across the roster

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "name": self.name,
            "group": self.group,
            "zoneNumber": self.zone_number,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Person:
        return Person(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            group=str(data.get("group", "")),
            zone_number=str(data.get("zoneNumber", data.get("zone_number", "")) or ""),
        )


@dataclass(frozen=True, slots=True)
class TaskRecord:
    completed: bool = False
    remarks: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"completed": self.completed, "remarks": self.remarks}

    @staticmethod
    def from_dict(data: Any) -> TaskRecord:
        if not isinstance(data, dict):
            return TaskRecord()
        return TaskRecord(
            completed=bool(data.get("completed", False)),
            remarks=str(data.get("remarks", "") or ""),
        )


INITIAL_RECORD = TaskRecord()


def records_to_dict(records: dict[str, TaskRecord]) -> dict[str, dict[str, Any]]:
    return {pid: rec.to_dict() for pid, rec in records.items()}


def records_from_dict(data: Any) -> dict[str, TaskRecord]:
    if not isinstance(data, dict):
        return {}
    return {str(pid): TaskRecord.from_dict(rec) for pid, rec in data.items()}


@dataclass(slots=True)
class ScheduleEntry:
    id: str
    date: str  # ISO date, YYYY-MM-DD
    title: str
    records: dict[str, TaskRecord]
    created_at: int  # epoch millis; 0 means "keep whatever is stored"
    privacy_mode: PrivacyMode = PrivacyMode.PUBLIC


@dataclass(frozen=True, slots=True)
class ScheduleSummary:
    """Derived list-view row. Never persisted."""

    storage_key: str
    id: str
    date: str
    title: str
    total: int
    completed: int
    is_all_completed: bool
    uncompleted_names: list[str] = field(default_factory=list)
    privacy_mode: PrivacyMode = PrivacyMode.PUBLIC


# ---- record updates (closed set) ----


@dataclass(frozen=True, slots=True)
class SetCompleted:
    completed: bool


@dataclass(frozen=True, slots=True)
class SetRemarks:
    remarks: str


RecordUpdate = SetCompleted | SetRemarks


DEFAULT_TEAM_MEMBERS: tuple[Person, ...] = (
    Person(id="h_1", name="김하나", group=TEAM_HWASEONG, zone_number="1001"),
    Person(id="h_2", name="김둘", group=TEAM_HWASEONG, zone_number="1002"),
    Person(id="h_3", name="김셋", group=TEAM_HWASEONG, zone_number="1003"),
    Person(id="o_1", name="박하나", group=TEAM_OSAN, zone_number="2001"),
    Person(id="o_2", name="박둘", group=TEAM_OSAN, zone_number="2002"),
    Person(id="o_3", name="박셋", group=TEAM_OSAN, zone_number="2003"),
)


def default_members() -> list[Person]:
    return list(DEFAULT_TEAM_MEMBERS)
