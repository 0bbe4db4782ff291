# src/sm_manager/core/roster.py

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import replace

from .errors import ConflictingIdentifier
from .models import Person


def _now_ms() -> int:
    return int(time.time() * 1000)


def _clean(name: str, group: str, zone_number: str) -> tuple[str, str, str]:
    name, group, zone_number = (name or "").strip(), (group or "").strip(), (zone_number or "").strip()
    if not name:
        raise ValueError("name is required")
    if not group:
        raise ValueError("group is required")
    if not zone_number:
        raise ValueError("zone_number is required")
    return name, group, zone_number


def _check_zone_free(members: Sequence[Person], zone_number: str, *, except_id: str | None = None) -> None:
    for m in members:
        if m.zone_number == zone_number and m.id != except_id:
            raise ConflictingIdentifier("zone_number", zone_number)


def add_member(
    members: Sequence[Person],
    *,
    name: str,
    group: str,
    zone_number: str,
    now_ms: int | None = None,
) -> list[Person]:
    """Return a new roster with the member appended (id = user_<millis>)."""
    name, group, zone_number = _clean(name, group, zone_number)
    _check_zone_free(members, zone_number)

    ts = _now_ms() if now_ms is None else int(now_ms)
    new_id = f"user_{ts}"
    existing = {m.id for m in members}
    while new_id in existing:
        ts += 1
        new_id = f"user_{ts}"

    return [*members, Person(id=new_id, name=name, group=group, zone_number=zone_number)]


def edit_member(
    members: Sequence[Person],
    member_id: str,
    *,
    name: str,
    group: str,
    zone_number: str,
) -> list[Person]:
    name, group, zone_number = _clean(name, group, zone_number)
    if not any(m.id == member_id for m in members):
        raise KeyError(member_id)
    _check_zone_free(members, zone_number, except_id=member_id)
    return [
        replace(m, name=name, group=group, zone_number=zone_number) if m.id == member_id else m
        for m in members
    ]


def remove_member(members: Sequence[Person], member_id: str) -> list[Person]:
    """Removing an unknown id returns the roster unchanged."""
    return [m for m in members if m.id != member_id]


def find_member(members: Sequence[Person], ref: str) -> Person | None:
    """Look a member up by id, zone number or exact name (in that order)."""
    ref = (ref or "").strip()
    if not ref:
        return None
    for key in ("id", "zone_number", "name"):
        for m in members:
            if getattr(m, key) == ref:
                return m
    return None


def validate_roster(members: Sequence[Person]) -> None:
    """Raise ConflictingIdentifier on a duplicate id or zone number."""
    seen_ids: set[str] = set()
    seen_zones: set[str] = set()
    for m in members:
        if m.id in seen_ids:
            raise ConflictingIdentifier("id", m.id)
        if m.zone_number in seen_zones:
            raise ConflictingIdentifier("zone_number", m.zone_number)
        seen_ids.add(m.id)
        seen_zones.add(m.zone_number)
