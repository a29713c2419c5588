"""Duration literals such as ``"20s"``, ``"5m"`` or ``"1h30m"``.

The grammar is a signed sequence of decimal numbers, each followed by a unit
(``ns``, ``us``, ``µs``, ``ms``, ``s``, ``m``, ``h``). A bare ``"0"`` is the
only literal accepted without a unit.
"""

from __future__ import annotations

from datetime import timedelta
import re

_UNITS_IN_MICROSECONDS: dict[str, float] = {
    "ns": 0.001,
    "us": 1.0,
    "µs": 1.0,
    "ms": 1_000.0,
    "s": 1_000_000.0,
    "m": 60_000_000.0,
    "h": 3_600_000_000.0,
}

_COMPONENT = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(text: str) -> timedelta:
    """Parse a duration literal into a timedelta.

    Raises:
        ValueError: If the literal is empty, lacks units or has trailing junk.
    """
    raw = text.strip()
    body = raw
    sign = 1
    if body[:1] in {"+", "-"}:
        sign = -1 if body[0] == "-" else 1
        body = body[1:]

    if body == "0":
        return timedelta(0)
    if not body:
        raise ValueError(f"invalid duration {text!r}")

    total_us = 0.0
    pos = 0
    while pos < len(body):
        match = _COMPONENT.match(body, pos)
        if match is None:
            rest = body[pos:]
            stripped = rest.lstrip("0123456789.")
            if not stripped:
                raise ValueError(f"missing unit in duration {text!r}")
            if stripped == rest:
                raise ValueError(f"invalid duration {text!r}")
            raise ValueError(f"unknown unit in duration {text!r}")
        number, unit = match.groups()
        total_us += float(number) * _UNITS_IN_MICROSECONDS[unit]
        pos = match.end()

    return sign * timedelta(microseconds=total_us)

