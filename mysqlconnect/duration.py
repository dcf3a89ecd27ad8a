"""Go-style duration strings for configuration fields.

Pool durations in the configuration file use the notation of Go's
``time.ParseDuration`` (``"10m"``, ``"1h30m"``, ``"100ms"``) because the same
files are shared with services written in Go. Values are held as
``datetime.timedelta`` and serialised back in Go's canonical form, so
``"10m"`` is written out as ``"10m0s"``.

Examples
--------
>>> parse_duration("1h30m")
datetime.timedelta(seconds=5400)
>>> format_duration(timedelta(milliseconds=100))
'100ms'
"""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Annotated, Any

from pydantic import BeforeValidator, PlainSerializer

_NANOSECOND = 1
_MICROSECOND = 1_000 * _NANOSECOND
_MILLISECOND = 1_000 * _MICROSECOND
_SECOND = 1_000 * _MILLISECOND
_MINUTE = 60 * _SECOND
_HOUR = 60 * _MINUTE

# Go durations are int64 nanoseconds, roughly 2562047h.
_MAX_DURATION_NS = (1 << 63) - 1

_UNITS: dict[str, int] = {
    "ns": _NANOSECOND,
    "us": _MICROSECOND,
    "µs": _MICROSECOND,  # micro sign
    "μs": _MICROSECOND,  # Greek mu
    "ms": _MILLISECOND,
    "s": _SECOND,
    "m": _MINUTE,
    "h": _HOUR,
}

_COMPONENT = re.compile(r"([0-9]*)(?:\.([0-9]*))?([^0-9.]*)")


def _invalid(text: str) -> ValueError:
    return ValueError(f'invalid duration: "{text}"')


def parse_duration(text: str) -> timedelta:
    """Parse a Go duration string.

    Parameters
    ----------
    text
        A possibly signed sequence of decimal numbers, each with an optional
        fraction and a unit suffix (``ns``, ``us``/``µs``, ``ms``, ``s``,
        ``m``, ``h``). ``"0"`` is accepted without a unit.

    Returns
    -------
    timedelta
        The parsed value, truncated to microsecond resolution.

    Raises
    ------
    ValueError
        If ``text`` is not a valid duration or is out of Go's range.
    """
    remaining = text
    negative = False
    if remaining[:1] in ("-", "+"):
        negative = remaining[0] == "-"
        remaining = remaining[1:]

    if remaining == "0":
        return timedelta(0)
    if not remaining:
        raise _invalid(text)

    limit_ns = _MAX_DURATION_NS + 1 if negative else _MAX_DURATION_NS
    total_ns = 0
    while remaining:
        match = _COMPONENT.match(remaining)
        if match is None:
            raise _invalid(text)
        whole, fraction, unit = match.groups()
        if not whole and not fraction:
            raise _invalid(text)
        if unit not in _UNITS:
            raise _invalid(text)

        scale = _UNITS[unit]
        total_ns += int(whole or "0") * scale
        if fraction:
            total_ns += int(fraction) * scale // 10 ** len(fraction)
        if total_ns > limit_ns:
            raise _invalid(text)
        remaining = remaining[match.end() :]

    microseconds = total_ns // _MICROSECOND
    return timedelta(microseconds=-microseconds if negative else microseconds)


def _split_fraction(value: int, precision: int) -> tuple[int, str]:
    whole, remainder = divmod(value, 10**precision)
    digits = f"{remainder:0{precision}d}".rstrip("0")
    return whole, f".{digits}" if digits else ""


def format_duration(value: timedelta) -> str:
    """Format a ``timedelta`` the way Go's ``Duration.String`` does.

    Examples
    --------
    >>> format_duration(timedelta(minutes=10))
    '10m0s'
    >>> format_duration(timedelta(microseconds=1500))
    '1.5ms'
    """
    total_ns = (value // timedelta(microseconds=1)) * _MICROSECOND
    if total_ns == 0:
        return "0s"

    sign = "-" if total_ns < 0 else ""
    magnitude = abs(total_ns)

    if magnitude < _SECOND:
        if magnitude < _MICROSECOND:
            return f"{sign}{magnitude}ns"
        if magnitude < _MILLISECOND:
            whole, fraction = _split_fraction(magnitude, 3)
            return f"{sign}{whole}{fraction}µs"
        whole, fraction = _split_fraction(magnitude, 6)
        return f"{sign}{whole}{fraction}ms"

    seconds_total, fraction = _split_fraction(magnitude, 9)
    text = f"{seconds_total % 60}{fraction}s"
    if seconds_total >= 60:
        text = f"{seconds_total // 60 % 60}m{text}"
    if seconds_total >= 3600:
        text = f"{seconds_total // 3600}h{text}"
    return f"{sign}{text}"


def _coerce_duration(value: Any) -> Any:
    if isinstance(value, str):
        return parse_duration(value)
    if isinstance(value, timedelta):
        return value
    raise ValueError('duration must be a string such as "10m" or "100ms"')


Duration = Annotated[
    timedelta,
    BeforeValidator(_coerce_duration),
    PlainSerializer(format_duration, return_type=str),
]
"""A ``timedelta`` read from and written to Go duration strings."""
