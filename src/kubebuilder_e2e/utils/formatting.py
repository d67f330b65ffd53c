"""Formatting helpers for command lines and log output."""

from __future__ import annotations

import shlex
from collections.abc import Sequence


def format_command_line(program: str, args: Sequence[str]) -> str:
    """Render a program and its arguments as a copy-pasteable shell line."""
    return shlex.join([program, *args])


def format_duration(ms: int) -> str:
    """Format milliseconds to human-readable duration."""
    if ms < 1000:
        return f"{ms}ms"
    elif ms < 60000:
        return f"{ms / 1000:.1f}s"
    else:
        minutes = ms // 60000
        seconds = (ms % 60000) // 1000
        return f"{minutes}m {seconds}s"


def truncate(text: str, limit: int = 2000) -> str:
    """Shorten text for table cells, keeping the head."""
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[:limit] + f"... ({len(text) - limit} more chars)"
