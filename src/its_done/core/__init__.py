"""Core domain: models, ports, pomodoro, markup, chat sessions, app state."""
