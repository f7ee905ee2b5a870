"""Shared helpers for money, timing and logging."""
