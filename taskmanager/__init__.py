"""Task manager API with email and realtime reminders."""
