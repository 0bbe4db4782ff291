# tests/test_summary.py

from __future__ import annotations

from sm_manager.core.models import Person, ScheduleSummary, TaskRecord
from sm_manager.core.summary import derive_summary, sort_summaries

A = Person(id="a", name="Alice", group="g1", zone_number="1")
B = Person(id="b", name="Bob", group="g1", zone_number="2")
C = Person(id="c", name="Carol", group="g2", zone_number="3")


def _done() -> TaskRecord:
    return TaskRecord(completed=True, remarks="")


def _open() -> TaskRecord:
    return TaskRecord(completed=False, remarks="")


def test_uncompleted_names_follow_roster_order_not_record_order() -> None:
    records = {"c": _open(), "a": _done(), "b": _open()}

    s = derive_summary("k", "k", "2024-05-20", "", records, [A, B, C])

    assert s.total == 3
    assert s.completed == 1
    assert s.uncompleted_names == ["Bob", "Carol"]
    assert s.is_all_completed is False


def test_unknown_person_falls_back_to_raw_id_and_sorts_last() -> None:
    records = {"ghost": _open(), "c": _open(), "a": _open()}

    s = derive_summary("k", "k", "2024-05-20", "", records, [A, B, C])

    assert s.uncompleted_names == ["Alice", "Carol", "ghost"]


def test_all_completed_requires_at_least_one_record() -> None:
    empty = derive_summary("k", "k", "2024-05-20", "", {}, [A])
    assert empty.total == 0
    assert empty.is_all_completed is False

    full = derive_summary("k", "k", "2024-05-20", "", {"a": _done(), "b": _done()}, [A, B])
    assert full.is_all_completed is True
    assert full.uncompleted_names == []


def test_derive_summary_is_pure() -> None:
    records = {"b": _open(), "a": _open()}
    members = [A, B]

    first = derive_summary("k", "id", "2024-05-20", "t", records, members)
    second = derive_summary("k", "id", "2024-05-20", "t", records, members)

    assert first == second
    assert records == {"b": _open(), "a": _open()}
    assert members == [A, B]


def test_summary_reflects_current_roster_names() -> None:
    records = {"a": _open()}
    renamed = Person(id="a", name="Alicia", group="g1", zone_number="1")

    assert derive_summary("k", "k", "d", "", records, [A]).uncompleted_names == ["Alice"]
    assert derive_summary("k", "k", "d", "", records, [renamed]).uncompleted_names == ["Alicia"]


def test_sort_summaries_date_desc_then_id_desc() -> None:
    def mk(entry_id: str, date: str) -> ScheduleSummary:
        return ScheduleSummary(entry_id, entry_id, date, "", 0, 0, False, [])

    out = sort_summaries(
        [
            mk("2024-05-20_1716182922000", "2024-05-20"),
            mk("2024-05-21_1716269322000", "2024-05-21"),
            mk("2024-05-20_1716182999000", "2024-05-20"),
        ]
    )

    assert [s.id for s in out] == [
        "2024-05-21_1716269322000",
        "2024-05-20_1716182999000",
        "2024-05-20_1716182922000",
    ]
