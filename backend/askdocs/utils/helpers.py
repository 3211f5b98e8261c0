"""Small shared helpers: identifiers, timestamps, whitespace."""

from __future__ import annotations

import re
import time
import uuid

WHITESPACE_RE = re.compile(r"\s+")


def new_id(prefix: str | None = None) -> str:
    """Generate a random UUID4 hex string with optional prefix."""
    base = uuid.uuid4().hex
    return f"{prefix}_{base}" if prefix else base


def now_ms() -> int:
    """Return current timestamp in milliseconds."""
    return int(time.time() * 1000)


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs to single spaces and strip."""
    return WHITESPACE_RE.sub(" ", text).strip()


__all__ = ["new_id", "now_ms", "normalize_whitespace"]
