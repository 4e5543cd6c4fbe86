from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone


_DURATION_RE = re.compile(r"^\s*(\d+)\s*(ms|s|m|h|d|w)?\s*$", re.IGNORECASE)

_UNITS = {
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def utcnow_iso() -> str:
    """Current UTC time as ISO-8601 string with Z."""
    return utcnow().replace(microsecond=0).isoformat().replace("+00:00", "Z")


def parse_duration(value: str | int | timedelta) -> timedelta:
    """Parse a lifetime like "90s", "30m", "1h", "1d", "2w" or bare seconds.

    Raises ValueError on anything else, including lifetimes under one second:
    token timestamps are whole seconds.
    """
    if isinstance(value, timedelta):
        td = value
    elif isinstance(value, int):
        td = timedelta(seconds=value)
    else:
        m = _DURATION_RE.match(str(value or ""))
        if m is None:
            raise ValueError(f"invalid_duration: {value!r}")
        amount = int(m.group(1))
        unit = (m.group(2) or "s").lower()
        td = amount * _UNITS[unit]

    if td < timedelta(seconds=1):
        raise ValueError(f"invalid_duration: {value!r}")
    return td
