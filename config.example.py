# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets or a real admin code. Put them in .env (local, gitignored).

This file lists every variable sm_manager.config reads.
"""

ENV_VARS = {
    # App / logging
    "SM_APP_NAME": "App display name (default: SM관리 매니저).",
    "SM_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Storage (gitignored)
    "SM_DATA_DIR": "Local data directory, also holds sm_manager.log (default: .local/sm_manager).",
    "SM_DB_PATH": "SQLite record store path (default: <data_dir>/records.sqlite3).",
    "SM_LEGACY_COMPAT": "Also read old date-keyed daily_schedules rows (true/false, default: true).",
    # Access
    "SM_ADMIN_CODE": "Admin login code (default: 7788). Change it for any shared install.",
    # LLM / daily report
    "SM_LLM_API_KEY": "API key for the report model. OPENAI_API_KEY is accepted as a fallback.",
    "SM_LLM_BASE_URL": "OpenAI-compatible base URL (default: https://openrouter.ai/api/v1).",
    "SM_LLM_MODELS": "Comma/space separated list of models to try in order.",
    "SM_HTTP_REFERER": "Optional OpenRouter metadata header.",
    "SM_APP_TITLE": "Optional OpenRouter metadata header title.",
}
