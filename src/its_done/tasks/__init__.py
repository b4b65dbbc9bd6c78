"""Task reminders (asyncio call_later scheduling)."""
