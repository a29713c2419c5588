"""Reusable validation rules.

Each rule inspects already-decoded values and returns a (possibly empty) list
of :class:`~kiln.errors.ValidationError`. Rules never raise for invalid input
and never stop early; callers concatenate the lists they get back.
"""

from __future__ import annotations

from datetime import timedelta
import ipaddress
from pathlib import Path
from typing import TYPE_CHECKING, Any

from kiln.durations import parse_duration
from kiln.errors import DecodeError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable

Errors = list[ValidationError]


def is_set(value: Any) -> bool:
    """Return True for non-empty strings/collections and non-None scalars."""
    if value is None:
        return False
    if isinstance(value, str):
        return value != ""
    if isinstance(value, list | tuple | dict | set | frozenset):
        return len(value) > 0
    return True


def required(value: Any, key: str, message: str | None = None) -> Errors:
    if is_set(value):
        return []
    return [ValidationError(message or f"a {key} must be specified", field=key)]


def exactly_one(first: tuple[str, Any], second: tuple[str, Any]) -> Errors:
    """Exactly one of two fields must be set.

    Missing both and setting both are reported once each, naming both fields.
    """
    (a_key, a_value), (b_key, b_value) = first, second
    a_set, b_set = is_set(a_value), is_set(b_value)
    if a_set and b_set:
        return [
            ValidationError(
                f"{a_key} and {b_key} are mutually exclusive; only one can be specified",
                field=a_key,
            )
        ]
    if not a_set and not b_set:
        return [
            ValidationError(f"either {a_key} or {b_key} must be specified", field=a_key)
        ]
    return []


def mutually_exclusive(first: tuple[str, Any], second: tuple[str, Any]) -> Errors:
    (a_key, a_value), (b_key, b_value) = first, second
    if is_set(a_value) and is_set(b_value):
        return [
            ValidationError(f"only one of {a_key} or {b_key} can be specified", field=a_key)
        ]
    return []


def required_when(condition: bool, value: Any, key: str, message: str) -> Errors:
    if condition and not is_set(value):
        return [ValidationError(message, field=key)]
    return []


def one_of(value: str, key: str, allowed: Iterable[str]) -> Errors:
    choices = list(allowed)
    if value in choices:
        return []
    return [
        ValidationError(
            f"{key} must be one of: {', '.join(choices)} (got {value!r})", field=key
        )
    ]


def multiple_of(value: int, key: str, divisor: int) -> Errors:
    if value % divisor == 0:
        return []
    return [ValidationError(f"{key} must be multiple of {divisor}", field=key)]


def length_between(value: str, key: str, low: int, high: int) -> Errors:
    if low <= len(value) <= high:
        return []
    return [
        ValidationError(
            f"{key} must be between {low} and {high} characters long", field=key
        )
    ]


def file_exists(path: str, key: str, message: str | None = None) -> Errors:
    """Best-effort existence check; the file may still vanish before use."""
    if not path:
        return []
    try:
        Path(path).stat()
    except OSError as exc:
        detail = message or f"{key} not found"
        return [ValidationError(f"{detail}: {path} ({exc.strerror or exc})", field=key)]
    return []


def parse_cidrs(values: Collection[str], key: str) -> Errors:
    """Every entry must be an address with an explicit prefix length."""
    errs: Errors = []
    for literal in values:
        try:
            if "/" not in literal:
                raise ValueError("missing prefix length")
            ipaddress.ip_network(literal, strict=False)
        except ValueError as exc:
            errs.append(
                ValidationError(f"error parsing CIDR {literal!r} in {key}: {exc}", field=key)
            )
    return errs


def parse_duration_field(raw: str, key: str) -> tuple[timedelta | None, list[DecodeError]]:
    """Parse a duration literal, deferring failure into the error list."""
    try:
        return parse_duration(raw), []
    except ValueError as exc:
        return None, [DecodeError(f"failed parsing {key}: {exc}", field=key)]


def unique(values: Iterable[str]) -> list[str]:
    """De-duplicate while keeping first-seen order."""
    seen: set[str] = set()
    out: list[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        out.append(value)
    return out
