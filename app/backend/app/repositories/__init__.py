"""Query and persistence helpers."""
