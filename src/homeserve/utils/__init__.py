"""Utility helpers."""

from .time import ensure_utc, parse_utc, utc_now

__all__ = ["ensure_utc", "parse_utc", "utc_now"]
