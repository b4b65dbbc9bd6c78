# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets; keep them in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "ITS_DONE_APP_NAME": "App display name (default: it's_done.).",
    "ITS_DONE_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # LLM / OpenRouter
    "ITS_DONE_OPENROUTER_API_KEY": "OpenRouter API key. Without it the app runs in offline demo mode.",
    "ITS_DONE_OPENROUTER_BASE_URL": "OpenRouter base URL (default: https://openrouter.ai/api/v1).",
    "ITS_DONE_LLM_MODELS": "Comma/space separated list of models to try in order.",
    "ITS_DONE_HTTP_REFERER": "Optional OpenRouter metadata header.",
    "ITS_DONE_APP_TITLE": "Optional OpenRouter metadata header title.",
    "ITS_DONE_LLM_FIRST_TOKEN_TIMEOUT_SECONDS": "Abandon a model without a first token after N s (default: 20).",
    "ITS_DONE_LLM_READ_TIMEOUT_SECONDS": "HTTP read timeout (default: 25).",
    "ITS_DONE_LLM_CONNECT_TIMEOUT_SECONDS": "HTTP connect timeout (default: 5).",
    # Paths (gitignored)
    "ITS_DONE_DATA_DIR": "Local data directory (default: .local/its_done). Holds its_done.log.",
    "ITS_DONE_STATE_DB_PATH": "SQLite record store (default: <data_dir>/state.sqlite3).",
    # Agent
    "ITS_DONE_TASK_MATCH": "Task lookup by text: substring (default) | exact | prefix | fuzzy.",
    "ITS_DONE_FUZZY_MATCH_THRESHOLD": "Similarity ratio for fuzzy matching (default: 0.8).",
    "ITS_DONE_AGENT_CLARIFY_AMBIGUOUS": "Append a 'which one did you mean?' note on ambiguous matches (default: true).",
    "ITS_DONE_CHAT_HISTORY_LIMIT": "Messages kept per persisted conversation (default: 100).",
    # Pomodoro defaults (used until changed with /timer set)
    "ITS_DONE_POMODORO_WORK_MINUTES": "Work interval (default: 25).",
    "ITS_DONE_POMODORO_SHORT_MINUTES": "Short break (default: 5).",
    "ITS_DONE_POMODORO_LONG_MINUTES": "Long break (default: 15).",
}
