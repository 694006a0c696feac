"""Shared infrastructure: paths, settings, logging and SQLite helpers."""
