# src/sm_manager/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (store/LLM/access gate).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.access import AccessGate
from ..core.lifecycle import EntryLifecycleManager
from ..core.ports import LLMClient, RecordRepo
from ..core.state import AppState
from ..llm.client import OpenAICompatibleLLMClient
from ..store.legacy_store import LegacyCompatRecordStore
from ..store.record_store import RecordStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store: RecordRepo
    if getattr(settings, "legacy_compat", False):
        store = LegacyCompatRecordStore(settings.db_path)
    else:
        store = RecordStore(settings.db_path)

    llm_client: LLMClient | None
    try:
        llm_client = OpenAICompatibleLLMClient(settings)
    except RuntimeError as e:
        # Reports then answer with the "API key is missing" fallback text.
        logger.info("AI report disabled: %s", e)
        llm_client = None

    state = AppState(
        settings=settings,
        store=store,
        manager=EntryLifecycleManager(store, llm_client),
        gate=AccessGate(settings.admin_code),
        llm=llm_client,
    )
    state.refresh_members()
    return state
