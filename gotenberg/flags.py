"""Command-line flags with typed values and typed accessors."""

from __future__ import annotations

import csv
import io
import math
import re
from collections import deque
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Iterator

import regex

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class FlagError(ValueError):
    """Raised for unknown flags, bad values or mistyped accesses."""


# Durations.

_NANOS = {
    "ns": 1,
    "us": 10**3,
    "\u00b5s": 10**3,
    "\u03bcs": 10**3,
    "ms": 10**6,
    "s": 10**9,
    "m": 60 * 10**9,
    "h": 3600 * 10**9,
}
_DURATION_COMPONENT = re.compile(r"([0-9]*(?:\.[0-9]*)?)([^0-9.]*)")


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as ``"1h30m"``, ``"2m"`` or ``"1.5s"``."""
    body = value
    negative = False
    if body and body[0] in "+-":
        negative = body[0] == "-"
        body = body[1:]
    if body == "0":
        return timedelta(0)
    if not body:
        raise ValueError(f'time: invalid duration "{value}"')

    total = Decimal(0)
    pos = 0
    while pos < len(body):
        match = _DURATION_COMPONENT.match(body, pos)
        number, unit = match.group(1), match.group(2)
        if number in ("", "."):
            raise ValueError(f'time: invalid duration "{value}"')
        if unit == "":
            raise ValueError(f'time: missing unit in duration "{value}"')
        if unit not in _NANOS:
            raise ValueError(f'time: unknown unit "{unit}" in duration "{value}"')
        total += Decimal(number) * _NANOS[unit]
        pos = match.end()

    if total > _INT64_MAX:
        raise ValueError(f'time: invalid duration "{value}"')
    micros = int(total / 1000)
    return timedelta(microseconds=-micros if negative else micros)


def _fraction(value: int, scale: int) -> str:
    whole, rest = divmod(value, scale)
    if not rest:
        return str(whole)
    width = len(str(scale)) - 1
    return f"{whole}.{rest:0{width}d}".rstrip("0")


def _format_duration(duration: timedelta) -> str:
    nanos = ((duration.days * 86400 + duration.seconds) * 10**6 + duration.microseconds) * 1000
    sign = "-" if nanos < 0 else ""
    nanos = abs(nanos)
    if nanos == 0:
        return "0s"
    if nanos < 10**9:
        for unit, scale in (("ns", 1), ("\u00b5s", 10**3), ("ms", 10**6)):
            if nanos < scale * 1000:
                return sign + _fraction(nanos, scale) + unit
    seconds, rest = divmod(nanos, 10**9)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    text = _fraction(seconds * 10**9 + rest, 10**9) + "s"
    if hours or minutes:
        text = f"{minutes}m{text}"
    if hours:
        text = f"{hours}h{text}"
    return sign + text


# Byte sizes.

_BINARY_SIZE = re.compile(r"(-?\d+(?:\.\d+)?)\s?([KMGTPE]iB?)", re.IGNORECASE | re.ASCII)
_DECIMAL_SIZE = re.compile(r"(-?\d+(?:\.\d+)?)\s?([KMGTPE]B?|B?)", re.IGNORECASE | re.ASCII)
_SIZE_MULTIPLIERS = {"B": 1, "": 1}
for _power, _letter in enumerate("KMGTPE", start=1):
    _SIZE_MULTIPLIERS[_letter + "I"] = 1 << (10 * _power)
    _SIZE_MULTIPLIERS[_letter + "IB"] = 1 << (10 * _power)
    _SIZE_MULTIPLIERS[_letter] = 1000**_power
    _SIZE_MULTIPLIERS[_letter + "B"] = 1000**_power


def parse_bytes(value: str) -> int:
    """Parse a human-readable size such as ``"1MB"`` or ``"512KiB"``."""
    match = _BINARY_SIZE.fullmatch(value) or _DECIMAL_SIZE.fullmatch(value)
    if match is None:
        raise ValueError(f"error parsing value={value}")
    return int(float(match.group(1)) * _SIZE_MULTIPLIERS[match.group(2).upper()])


# Scalar values.

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}
_INT_SYNTAX = re.compile(r"[+-]?(?:0[xX][0-9a-fA-F]+|0[oO]?[0-7]+|0[bB][01]+|[1-9][0-9]*|0)")
_FLOAT_SYNTAX = re.compile(r"\S+")


def _parse_bool(raw: str) -> bool:
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ValueError(f"invalid boolean {raw!r}")


def _parse_int(raw: str) -> int:
    if not _INT_SYNTAX.fullmatch(raw):
        raise ValueError(f"invalid integer {raw!r}")
    sign = -1 if raw.startswith("-") else 1
    body = raw.lstrip("+-")
    if len(body) > 1 and body[0] == "0" and body[1].isdigit():
        number = int(body, 8)
    else:
        number = int(body, 0)
    number *= sign
    if not _INT64_MIN <= number <= _INT64_MAX:
        raise ValueError(f"integer {raw!r} out of range")
    return number


def _parse_float(raw: str) -> float:
    if not _FLOAT_SYNTAX.fullmatch(raw):
        raise ValueError(f"invalid float {raw!r}")
    return float(raw)


def _format_float(number: float) -> str:
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "+Inf" if number > 0 else "-Inf"
    if number == 0:
        return "-0" if math.copysign(1.0, number) < 0 else "0"
    sign, digit_tuple, exponent = Decimal(repr(number)).as_tuple()
    point = len(digit_tuple) + exponent
    digits = "".join(map(str, digit_tuple)).rstrip("0")
    prefix = "-" if sign else ""
    exp = point - 1
    if exp < -4 or exp >= 6:
        mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
        return f"{prefix}{mantissa}e{'-' if exp < 0 else '+'}{abs(exp):02d}"
    if point <= 0:
        return f"{prefix}0.{'0' * -point}{digits}"
    if point >= len(digits):
        return prefix + digits + "0" * (point - len(digits))
    return f"{prefix}{digits[:point]}.{digits[point:]}"


def _read_csv(raw: str) -> list[str]:
    if raw == "":
        return []
    try:
        return next(csv.reader([raw], strict=True))
    except csv.Error as err:
        raise ValueError(str(err)) from err


def _write_csv(items: list[str]) -> str:
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(items)
    return "[" + buffer.getvalue().rstrip("\n") + "]"


_PARSERS = {
    "string": str,
    "bool": _parse_bool,
    "int": _parse_int,
    "int64": _parse_int,
    "float64": _parse_float,
    "duration": parse_duration,
}


@dataclass(eq=False)
class Flag:
    """A named, typed flag.

    ``kind`` is one of ``string``, ``stringSlice``, ``bool``, ``int``,
    ``int64``, ``float64`` or ``duration``.
    """

    name: str
    kind: str
    value: Any
    default: Any
    usage: str = ""
    changed: bool = False
    _slice_set: bool = field(default=False, init=False, repr=False)

    def set(self, raw: str) -> None:
        """Parse ``raw`` and store it; a string slice appends after its first set."""
        try:
            if self.kind == "stringSlice":
                items = _read_csv(raw)
                self.value = self.value + items if self._slice_set else items
                self._slice_set = True
            else:
                self.value = _PARSERS[self.kind](raw)
        except (ValueError, InvalidOperation) as err:
            raise FlagError(f'invalid argument "{raw}" for "--{self.name}" flag: {err}') from err

    def replace(self, items: Iterable[str]) -> None:
        """Replace the whole value of a string slice flag."""
        if self.kind != "stringSlice":
            raise FlagError(f"flag --{self.name} of type {self.kind} is not a slice")
        self.value = list(items)

    def __str__(self) -> str:
        if self.kind == "stringSlice":
            return _write_csv(self.value)
        if self.kind == "bool":
            return "true" if self.value else "false"
        if self.kind == "float64":
            return _format_float(self.value)
        if self.kind == "duration":
            return _format_duration(self.value)
        return str(self.value)


class FlagSet:
    """A named collection of flags and the parser for them."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.args: list[str] = []
        self._flags: dict[str, Flag] = {}

    def _add(self, name: str, kind: str, default: Any, usage: str) -> Flag:
        if name in self._flags:
            raise FlagError(f"{self.name} flag redefined: {name}")
        value = list(default) if kind == "stringSlice" else default
        flag = Flag(name=name, kind=kind, value=value, default=default, usage=usage)
        self._flags[name] = flag
        return flag

    def add_string(self, name: str, default: str, usage: str) -> Flag:
        return self._add(name, "string", default, usage)

    def add_string_slice(self, name: str, default: Iterable[str], usage: str) -> Flag:
        return self._add(name, "stringSlice", list(default), usage)

    def add_bool(self, name: str, default: bool, usage: str) -> Flag:
        return self._add(name, "bool", default, usage)

    def add_int(self, name: str, default: int, usage: str) -> Flag:
        return self._add(name, "int", default, usage)

    def add_int64(self, name: str, default: int, usage: str) -> Flag:
        return self._add(name, "int64", default, usage)

    def add_float64(self, name: str, default: float, usage: str) -> Flag:
        return self._add(name, "float64", float(default), usage)

    def add_duration(self, name: str, default: timedelta, usage: str) -> Flag:
        return self._add(name, "duration", default, usage)

    def add_flag_set(self, other: FlagSet | None) -> None:
        """Add the flags of ``other`` that are not already defined here."""
        if other is None:
            return
        for flag in other:
            self._flags.setdefault(flag.name, flag)

    def lookup(self, name: str) -> Flag | None:
        return self._flags.get(name)

    def get(self, name: str, kind: str) -> Any:
        """Return the value of flag ``name``, which must be of ``kind``."""
        flag = self._flags.get(name)
        if flag is None:
            raise FlagError(f"flag accessed but not defined: {name}")
        if flag.kind != kind:
            raise FlagError(f"trying to get {kind} value of flag of type {flag.kind}")
        return list(flag.value) if kind == "stringSlice" else flag.value

    def changed(self, name: str) -> bool:
        flag = self._flags.get(name)
        return flag is not None and flag.changed

    def parse(self, args: Iterable[str]) -> list[str]:
        """Parse ``--name=value`` and ``--name value`` arguments.

        Returns the positional arguments, which are also kept in ``args``.
        """
        remaining = deque(args)
        positional: list[str] = []
        while remaining:
            arg = remaining.popleft()
            if arg == "--":
                positional.extend(remaining)
                break
            if arg == "-" or not arg.startswith("-"):
                positional.append(arg)
                continue
            if not arg.startswith("--"):
                raise FlagError(f"unknown shorthand flag: '{arg[1]}' in {arg}")
            body = arg[2:]
            if not body or body[0] in "-=":
                raise FlagError(f"bad flag syntax: {arg}")
            name, sep, raw = body.partition("=")
            flag = self._flags.get(name)
            if flag is None:
                raise FlagError(f"unknown flag: --{name}")
            if not sep:
                if flag.kind == "bool":
                    raw = "true"
                elif remaining:
                    raw = remaining.popleft()
                else:
                    raise FlagError(f"flag needs an argument: {arg}")
            flag.set(raw)
            flag.changed = True
        self.args = positional
        return positional

    def __iter__(self) -> Iterator[Flag]:
        """Iterate over the flags in lexicographical order of their names."""
        return iter(sorted(self._flags.values(), key=lambda flag: flag.name))


@dataclass
class ParsedFlags:
    """A flag set with accessors that raise :class:`FlagError` on failure."""

    flag_set: FlagSet = field(default_factory=FlagSet)

    def parse(self, args: Iterable[str]) -> list[str]:
        return self.flag_set.parse(args)

    def changed(self, name: str) -> bool:
        return self.flag_set.changed(name)

    def __iter__(self) -> Iterator[Flag]:
        return iter(self.flag_set)

    def _pick(self, deprecated: str, new_name: str) -> str:
        return deprecated if self.changed(deprecated) else new_name

    def must_string(self, name: str) -> str:
        return self.flag_set.get(name, "string")

    def must_deprecated_string(self, deprecated: str, new_name: str) -> str:
        return self.must_string(self._pick(deprecated, new_name))

    def must_string_slice(self, name: str) -> list[str]:
        return self.flag_set.get(name, "stringSlice")

    def must_deprecated_string_slice(self, deprecated: str, new_name: str) -> list[str]:
        return self.must_string_slice(self._pick(deprecated, new_name))

    def must_bool(self, name: str) -> bool:
        return self.flag_set.get(name, "bool")

    def must_deprecated_bool(self, deprecated: str, new_name: str) -> bool:
        return self.must_bool(self._pick(deprecated, new_name))

    def must_int64(self, name: str) -> int:
        return self.flag_set.get(name, "int64")

    def must_deprecated_int64(self, deprecated: str, new_name: str) -> int:
        return self.must_int64(self._pick(deprecated, new_name))

    def must_int(self, name: str) -> int:
        return self.flag_set.get(name, "int")

    def must_deprecated_int(self, deprecated: str, new_name: str) -> int:
        return self.must_int(self._pick(deprecated, new_name))

    def must_float64(self, name: str) -> float:
        return self.flag_set.get(name, "float64")

    def must_deprecated_float64(self, deprecated: str, new_name: str) -> float:
        return self.must_float64(self._pick(deprecated, new_name))

    def must_duration(self, name: str) -> timedelta:
        return self.flag_set.get(name, "duration")

    def must_deprecated_duration(self, deprecated: str, new_name: str) -> timedelta:
        return self.must_duration(self._pick(deprecated, new_name))

    def must_human_readable_bytes(self, name: str) -> int:
        """Return the size in bytes of a string flag such as ``"1MB"``; empty is 0."""
        value = self.must_string(name)
        if value == "":
            return 0
        try:
            return parse_bytes(value)
        except ValueError as err:
            raise FlagError(str(err)) from err

    def must_deprecated_human_readable_bytes(self, deprecated: str, new_name: str) -> int:
        return self.must_human_readable_bytes(self._pick(deprecated, new_name))

    def must_regexp(self, name: str) -> Any:
        """Return the compiled regular expression held by a string flag."""
        value = self.must_string(name)
        try:
            return regex.compile(value)
        except regex.error as err:
            raise FlagError(f"invalid regular expression {value!r}: {err}") from err

    def must_deprecated_regexp(self, deprecated: str, new_name: str) -> Any:
        return self.must_regexp(self._pick(deprecated, new_name))