"""Alphanumeric ordering of file names by numeric prefix or suffix."""

from __future__ import annotations

import re
from functools import cmp_to_key
from typing import Iterable

_MAX_INT = 2**63 - 1

# A numeric prefix: one or more digits at the start.
_PREFIX = re.compile(r"(\d+)(.*)", re.ASCII)
# A numeric block immediately before a file extension.
_EXTENSION_SUFFIX = re.compile(r"(.*?)(\d+)(\.[^.]+)", re.ASCII)
# A trailing numeric sequence when there is no extension.
_SUFFIX = re.compile(r"(.*?)(\d+)", re.ASCII)


def _base(path: str) -> str:
    if path == "":
        return "."
    stripped = path.rstrip("/")
    if stripped == "":
        return "/"
    return stripped.rsplit("/", 1)[-1]


def _to_int(digits: str) -> int | None:
    number = int(digits)
    return number if number <= _MAX_INT else None


def _extract_number(value: str) -> tuple[int, str]:
    """Return the numeric part of a file name and what remains, or -1."""
    name = _base(value)

    match = _PREFIX.fullmatch(name)
    if match:
        number = _to_int(match.group(1))
        if number is not None:
            return number, match.group(2)

    match = _EXTENSION_SUFFIX.fullmatch(name)
    if match:
        number = _to_int(match.group(2))
        if number is not None:
            return number, match.group(1) + match.group(3)

    match = _SUFFIX.fullmatch(name)
    if match:
        number = _to_int(match.group(2))
        if number is not None:
            return number, match.group(1)

    return -1, name


def alphanumeric_less(a: str, b: str) -> bool:
    """Tell whether ``a`` sorts before ``b``.

    Names carrying a number compare numerically and come before names
    without one; the latter fall back to lexicographical order.
    """
    num_a, rest_a = _extract_number(a)
    num_b, rest_b = _extract_number(b)

    if num_a != -1 and num_b != -1:
        if num_a != num_b:
            return num_a < num_b
        return rest_a < rest_b
    if num_a != -1:
        return True
    if num_b != -1:
        return False
    return a < b


def _compare(a: str, b: str) -> int:
    if alphanumeric_less(a, b):
        return -1
    if alphanumeric_less(b, a):
        return 1
    return 0


def alphanumeric_sort(values: Iterable[str]) -> list[str]:
    """Return the values sorted alphanumerically."""
    return sorted(values, key=cmp_to_key(_compare))