"""
it's_done. - a local productivity dashboard with an LLM agent.

Subpackages:
- core: data model, pomodoro, markup renderer, sessions, app state
- storage: SQLite key/value records + the State Store
- llm: OpenAI-compatible client, offline client, gateway operations
- agent: action types, task matching, resolver, executor
- tasks: reminder scheduler
- cli / connectors: composition root, slash commands, console
"""
