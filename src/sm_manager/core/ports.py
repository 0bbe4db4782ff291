# src/sm_manager/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the document store and LLM providers swappable and makes testing easier.
"""

from typing import Iterable, Protocol

from .models import Person, ScheduleEntry, ScheduleSummary

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.


class LLMClient(Protocol):
    """Streaming chat completion client (OpenAI/OpenRouter-compatible)."""
    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]: ...


class RecordRepo(Protocol):
    """
    Durable store for the roster document and the schedule entry collection.

    Reads degrade (defaults / None / []), writes raise StoreUnavailable.
    The store is not identity-aware; authorization happens above it.
    """

    # Roster
    def get_members(self) -> list[Person]: ...
    def save_members(self, members: list[Person]) -> None: ...

    # Entries
    def save_schedule_entry(self, entry: ScheduleEntry) -> None: ...
    def load_schedule_entry(self, entry_id: str) -> ScheduleEntry | None: ...
    def delete_schedule_by_key(self, key: str) -> None: ...
    def list_schedule_summaries(self) -> list[ScheduleSummary]: ...

    # Bulk / destructive
    def delete_all_schedules(self) -> None: ...
    def reset_application(self) -> None: ...

    def close(self) -> None: ...
