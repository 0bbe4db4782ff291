# tests/fakes.py

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from sm_manager.core.errors import StoreUnavailable
from sm_manager.core.ports import ChatMessage
from sm_manager.store.record_store import RecordStore


class FakeLLMClient:
    """
    Deterministic LLM client for unit tests.

    - Captures calls for assertions
    - Yields a predefined text as a single chunk
    """

    def __init__(self, next_text: str = "ok") -> None:
        self.next_text = next_text
        self.calls: list[tuple[list[ChatMessage], str]] = []

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        self.calls.append((messages, system_prompt))
        yield self.next_text


class FailingLLMClient:
    """Raises mid-stream, like a dropped connection."""

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        raise RuntimeError("LLM network/timeout error.")
        yield ""  # pragma: no cover


class FlakyDeleteStore(RecordStore):
    """
    Real SQLite store whose deletes fail for selected keys.

    Lets bulk-delete tests check that one failing key neither blocks nor
    rolls back the others.
    """

    def __init__(self, db_path: Path, fail_keys: set[str]) -> None:
        super().__init__(db_path)
        self.fail_keys = set(fail_keys)
        self.delete_calls: list[str] = []

    def delete_schedule_by_key(self, key: str) -> None:
        self.delete_calls.append(key)
        if key in self.fail_keys:
            raise StoreUnavailable(f"delete_schedule_by_key failed: {key}")
        super().delete_schedule_by_key(key)
