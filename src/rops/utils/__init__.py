"""Shared helpers: logging setup and retry with backoff."""
