"""Training plan resolution and progression engine."""
