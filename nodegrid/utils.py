"""Shared utility functions."""

from __future__ import annotations

from datetime import datetime, timezone


def format_age(created: datetime | None, now: datetime | None = None) -> str:
    """Format a creation time as a kubectl-style age like '2h', '15m'."""
    if created is None:
        return ""
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    secs = (now - created).total_seconds()
    if secs < 0:
        return "now"
    if secs < 60:
        return f"{int(secs)}s"
    if secs < 3600:
        return f"{int(secs // 60)}m"
    if secs < 86400:
        return f"{int(secs // 3600)}h"
    return f"{int(secs // 86400)}d"


def plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"
