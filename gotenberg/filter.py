"""Allow and deny lists of regular expressions, bounded by a deadline."""

from __future__ import annotations

import time
from datetime import datetime
from typing import Any

import regex


class FilteredError(ValueError):
    """Raised when a value is refused by the allowed or denied expressions."""


class DeadlineExceededError(TimeoutError):
    """Raised when filtering did not finish before the deadline."""

    def __init__(self, message: str = "context deadline exceeded") -> None:
        super().__init__(message)


def _pattern_text(pattern: Any) -> str:
    if pattern is None:
        return ""
    if isinstance(pattern, str):
        return pattern
    return pattern.pattern


def _timestamp(deadline: datetime | float) -> float:
    if isinstance(deadline, datetime):
        return deadline.timestamp()
    return float(deadline)


def _matches(pattern: str, s: str, deadline: float) -> bool:
    remaining = deadline - time.time()
    if remaining <= 0:
        raise DeadlineExceededError()
    compiled = regex.compile(pattern)
    try:
        return compiled.search(s, timeout=remaining) is not None
    except TimeoutError as err:
        if time.time() > deadline:
            raise DeadlineExceededError() from err
        raise RuntimeError(f"'{pattern}' cannot handle '{s}': {err}") from err


def filter_deadline(allowed: Any, denied: Any, s: str, deadline: datetime | float) -> None:
    """Check that ``s`` matches ``allowed`` and does not match ``denied``.

    Empty expressions are ignored. ``deadline`` is a datetime or a
    ``time.time()`` timestamp.
    """
    limit = _timestamp(deadline)

    allow = _pattern_text(allowed)
    if allow and not _matches(allow, s, limit):
        raise FilteredError(
            f"'{s}' does not match the expression from the allowed list: value filtered"
        )

    deny = _pattern_text(denied)
    if deny and _matches(deny, s, limit):
        raise FilteredError(
            f"'{s}' matches the expression from the denied list: value filtered"
        )