# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from sm_manager.core.access import AccessGate, AdminIdentity, MemberIdentity, Session
from sm_manager.core.lifecycle import EntryLifecycleManager
from sm_manager.core.models import DEFAULT_TEAM_MEMBERS, Person
from sm_manager.core.state import AppState
from sm_manager.store.legacy_store import LegacyCompatRecordStore
from sm_manager.store.record_store import RecordStore

from .fakes import FakeLLMClient

ADMIN_CODE = "7788"


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="sm-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        db_path=tmp_path / "records.sqlite3",
        legacy_compat=False,
        admin_code=ADMIN_CODE,
        llm_api_key=None,
        llm_base_url="",
        llm_models=[],
        extra_headers={},
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> RecordStore:
    return RecordStore(settings.db_path)


@pytest.fixture()
def legacy_store(tmp_path: Path) -> LegacyCompatRecordStore:
    return LegacyCompatRecordStore(tmp_path / "legacy.sqlite3")


@pytest.fixture()
def members() -> list[Person]:
    return list(DEFAULT_TEAM_MEMBERS)


@pytest.fixture()
def admin() -> Session:
    return Session(AdminIdentity())


@pytest.fixture()
def member_session(members: list[Person]) -> Session:
    # 김둘, zone 1002
    return Session(MemberIdentity(members[1]))


@pytest.fixture()
def llm() -> FakeLLMClient:
    return FakeLLMClient("오늘은 모두 완료했어요.")


@pytest.fixture()
def manager(store: RecordStore, llm: FakeLLMClient) -> EntryLifecycleManager:
    return EntryLifecycleManager(store, llm)


@pytest.fixture()
def state(settings: SimpleNamespace, store: RecordStore, manager: EntryLifecycleManager, llm: FakeLLMClient) -> AppState:
    """
    AppState wired with deterministic fakes.

    NOTE: We keep the real SQLite store here because its correctness is part
    of what we want to test.
    """
    st = AppState(
        settings=settings,
        store=store,
        manager=manager,
        gate=AccessGate(settings.admin_code),
        llm=llm,
    )
    st.refresh_members()
    return st
