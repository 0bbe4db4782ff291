# src/sm_manager/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .access import AccessGate, Session
from .lifecycle import EntryDraft, EntryLifecycleManager
from .models import Person
from .ports import LLMClient, RecordRepo


@dataclass(slots=True)
class PendingAction:
    """A destructive command waiting for its confirmation phrase."""

    name: str
    phrase: str
    keys: tuple[str, ...] = ()


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    store: RecordRepo
    manager: EntryLifecycleManager
    gate: AccessGate
    llm: LLMClient | None = None

    # Per console session; cleared on logout.
    session: Session | None = None
    draft: EntryDraft | None = None
    pending: PendingAction | None = None
    members: list[Person] = field(default_factory=list)

    def refresh_members(self) -> list[Person]:
        self.members = self.store.get_members()
        return self.members

    def logout(self) -> None:
        self.session = None
        self.draft = None
        self.pending = None
