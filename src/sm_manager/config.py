# src/sm_manager/config.py

"""Settings for the tracker, read from SM_* environment variables (+ optional .env).

- One frozen Settings object; nothing secret is required at import time.
- Consumers take settings as an argument; get_settings() is only the default.
- Blank values count as unset everywhere.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

ENV_PREFIX = "SM"

DEFAULT_ADMIN_CODE = "7788"
DEFAULT_DATA_DIR = Path(".local/sm_manager")
DEFAULT_LLM_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_LLM_MODELS = (
    "google/gemini-2.5-flash",
    "qwen/qwen-2.5-72b-instruct:free",
)

_TRUTHY = frozenset({"1", "true", "yes", "y", "on"})

load_dotenv(override=False)


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _raw(*names: str) -> Optional[str]:
    """First non-blank value among names, stripped."""
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip():
            return v.strip()
    return None


def _env_str(name: str, default: str) -> str:
    v = _raw(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    v = _raw(name)
    return default if v is None else v.lower() in _TRUTHY


def _env_list(name: str, default: tuple[str, ...]) -> List[str]:
    v = _raw(name)
    if v is None:
        return list(default)
    return [p for p in v.replace(",", " ").split() if p]


def _env_path(name: str, default: Path) -> Path:
    v = _raw(name)
    return default if v is None else Path(v).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    app_name: str
    log_level: str

    # Storage
    data_dir: Path
    db_path: Path
    legacy_compat: bool

    # Access
    admin_code: str

    # Daily report LLM
    llm_api_key: Optional[str]
    llm_base_url: str
    llm_models: List[str]
    extra_headers: Dict[str, str]

    @staticmethod
    def from_env() -> "Settings":
        data_dir = _env_path(_k("DATA_DIR"), DEFAULT_DATA_DIR)

        return Settings(
            app_name=_env_str(_k("APP_NAME"), "SM관리 매니저"),
            log_level=_env_str(_k("LOG_LEVEL"), "INFO"),
            data_dir=data_dir,
            db_path=_env_path(_k("DB_PATH"), data_dir / "records.sqlite3"),
            # Old date-keyed rows stay readable until this is switched off.
            legacy_compat=_env_bool(_k("LEGACY_COMPAT"), True),
            admin_code=_env_str(_k("ADMIN_CODE"), DEFAULT_ADMIN_CODE),
            llm_api_key=_raw(_k("LLM_API_KEY"), "OPENAI_API_KEY"),
            llm_base_url=_env_str(_k("LLM_BASE_URL"), DEFAULT_LLM_BASE_URL),
            llm_models=_env_list(_k("LLM_MODELS"), DEFAULT_LLM_MODELS),
            extra_headers={
                "HTTP-Referer": _env_str(_k("HTTP_REFERER"), "https://example.com"),
                "X-Title": _env_str(_k("APP_TITLE"), "sm-manager"),
            },
        )

    def describe(self) -> Dict[str, str]:
        """Printable view without secrets (admin code and API key are masked)."""
        return {
            "data_dir": str(self.data_dir),
            "db_path": str(self.db_path),
            "legacy_compat": "on" if self.legacy_compat else "off",
            "admin_code": "default" if self.admin_code == DEFAULT_ADMIN_CODE else "custom",
            "llm_api_key": "set" if self.llm_api_key else "missing",
            "llm_models": ", ".join(self.llm_models) or "-",
        }


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
