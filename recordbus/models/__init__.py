"""Recordbus data models — frozen Pydantic records for events, messages, and outcomes."""
