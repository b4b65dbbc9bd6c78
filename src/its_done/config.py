# src/its_done/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

ENV_PREFIX = "ITS_DONE"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except ImportError:
        return
    load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_ratio(name: str, default: float) -> float:
    """Float in (0, 1]; anything outside falls back to `default`."""
    value = _env_float(name, default)
    return value if 0.0 < value <= 1.0 else default


def _env_minutes(name: str, default: int) -> int:
    value = _env_int(name, default)
    return value if value > 0 else default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- LLM / OpenRouter ----
    openrouter_api_key: Optional[str]
    openrouter_base_url: str
    llm_models: List[str]
    extra_headers: Dict[str, str]

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    state_db_path: Path

    # ---- Agent ----
    task_match_strategy: str
    fuzzy_match_threshold: float
    agent_clarify_ambiguous: bool
    chat_history_limit: int

    # ---- Pomodoro defaults (minutes) ----
    pomodoro_work_minutes: int
    pomodoro_short_minutes: int
    pomodoro_long_minutes: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _first_env(_k("APP_NAME"), default="it's_done.") or "it's_done."
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        openrouter_api_key = _first_env(_k("OPENROUTER_API_KEY"), "OPENROUTER_API_KEY", default=None)
        openrouter_base_url = _env(_k("OPENROUTER_BASE_URL"), "https://openrouter.ai/api/v1")

        http_referer = _env(_k("HTTP_REFERER"), "https://example.com")
        title = _env(_k("APP_TITLE"), app_name)
        extra_headers = {
            "HTTP-Referer": http_referer,
            "X-Title": title,
        }

        llm_models = _env_list(
            _k("LLM_MODELS"),
            [
                "google/gemini-2.5-flash",
                "deepseek/deepseek-chat-v3-0324:free",
                "qwen/qwen-2.5-72b-instruct:free",
            ],
        )

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/its_done"))
        state_db_path = _env_path(_k("STATE_DB_PATH"), data_dir / "state.sqlite3")

        task_match_strategy = _env(_k("TASK_MATCH"), "substring").strip().lower() or "substring"
        fuzzy_match_threshold = _env_ratio(_k("FUZZY_MATCH_THRESHOLD"), 0.8)
        agent_clarify_ambiguous = _env_bool(_k("AGENT_CLARIFY_AMBIGUOUS"), True)
        chat_history_limit = max(1, _env_int(_k("CHAT_HISTORY_LIMIT"), 100))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            openrouter_api_key=openrouter_api_key,
            openrouter_base_url=openrouter_base_url,
            llm_models=llm_models,
            extra_headers=extra_headers,
            data_dir=data_dir,
            state_db_path=state_db_path,
            task_match_strategy=task_match_strategy,
            fuzzy_match_threshold=fuzzy_match_threshold,
            agent_clarify_ambiguous=agent_clarify_ambiguous,
            chat_history_limit=chat_history_limit,
            pomodoro_work_minutes=_env_minutes(_k("POMODORO_WORK_MINUTES"), 25),
            pomodoro_short_minutes=_env_minutes(_k("POMODORO_SHORT_MINUTES"), 5),
            pomodoro_long_minutes=_env_minutes(_k("POMODORO_LONG_MINUTES"), 15),
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _load_dotenv_if_available()
        _SETTINGS = Settings.from_env()
    return _SETTINGS
