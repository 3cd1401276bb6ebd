"""Recordbus core — filtering, actor resolution, enrichment, and publishing."""
