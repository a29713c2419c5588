"""Exception hierarchy for kiln.

Resolution never stops at the first problem: decode and validation errors are
collected per component and folded into a single :class:`AggregateError` by
:func:`aggregate`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


class KilnError(Exception):
    """Base exception for all kiln errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else ""


class ConfigurationError(KilnError):
    """Configuration loading or resolution failed."""


class DecodeError(ConfigurationError):
    """Malformed input shape: unknown key, type mismatch, unparsable value."""

    def __init__(
        self, message: str, *, field: str | None = None, hint: str | None = None
    ) -> None:
        super().__init__(message, hint=hint)
        self.field = field


class InterpolationError(DecodeError):
    """A template expression could not be rendered."""


class ValidationError(ConfigurationError):
    """A named rule was violated by an otherwise well-typed value."""

    def __init__(
        self, message: str, *, field: str | None = None, hint: str | None = None
    ) -> None:
        super().__init__(message, hint=hint)
        self.field = field


class DerivationError(KilnError):
    """A derived artifact hit input that validation should have rejected."""


@dataclass(frozen=True)
class AttributedError:
    """An error paired with the component that reported it."""

    component: str
    error: KilnError

    def __str__(self) -> str:
        return f"{self.component}: {self.error}" if self.component else str(self.error)


class AggregateError(ConfigurationError):
    """Every decode and validation failure of one resolution attempt."""

    def __init__(self, entries: Sequence[AttributedError]) -> None:
        self.entries: tuple[AttributedError, ...] = tuple(entries)
        count = len(self.entries)
        noun = "error" if count == 1 else "errors"
        super().__init__(f"{count} {noun} occurred")

    @property
    def errors(self) -> tuple[KilnError, ...]:
        return tuple(entry.error for entry in self.entries)

    @property
    def messages(self) -> list[str]:
        return [str(entry) for entry in self.entries]

    def __len__(self) -> int:
        return len(self.entries)

    def __str__(self) -> str:
        lines = [f"{self.message}:", ""]
        lines.extend(f"* {m}" for m in self.messages)
        return "\n".join(lines)


def aggregate(
    groups: Iterable[tuple[str, Sequence[KilnError]]],
) -> AggregateError | None:
    """Flatten per-component error lists into one AggregateError.

    Order is preserved exactly as given: components first-to-last, and each
    component's errors in the order it reported them. Returns None when no
    component reported anything, which is the only success signal.
    """
    entries = [
        AttributedError(component=component, error=error)
        for component, errors in groups
        for error in errors
    ]
    if not entries:
        return None
    return AggregateError(entries)


__all__ = [
    "AggregateError",
    "AttributedError",
    "ConfigurationError",
    "DecodeError",
    "DerivationError",
    "InterpolationError",
    "KilnError",
    "ValidationError",
    "aggregate",
]
