"""Interpolation context and template rendering.

Template strings use Jinja2 syntax with undefined names treated as errors::

    "kiln-{{ build_name }}-{{ timestamp }}"
    "{{ user('region') }}"
    "{{ isotime('%Y%m%d') }}"

The :class:`InterpolationContext` is created once per resolution and never
mutated afterwards; the build start time lives on it rather than in module
state, so parallel resolutions cannot observe each other's clocks.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from functools import cache
import os
from types import MappingProxyType
from typing import TYPE_CHECKING, Any
import uuid

import jinja2
from jinja2.sandbox import SandboxedEnvironment

from kiln.errors import InterpolationError

if TYPE_CHECKING:
    from collections.abc import Mapping

_TEMPLATE_MARKERS = ("{{", "{%", "{#")
# Template text has its newlines normalised, so carriage returns go through
# a string literal.
_QUOTED_CHARS = {"{": "{{ '{' }}", "\r": "{{ '\\r' }}"}


def time_ordered_uuid(at: datetime | None = None) -> str:
    """Return a UUID-shaped id whose leading bytes sort by creation time."""
    moment = at or datetime.now(UTC)
    nanos = int(moment.timestamp() * 1_000_000_000)
    rand = uuid.uuid4().hex
    stamp = f"{nanos:016x}"[-16:]
    return f"{stamp[:8]}-{stamp[8:12]}-{stamp[12:16]}-{rand[:4]}-{rand[4:16]}"


@dataclass(frozen=True)
class InterpolationContext:
    """Read-only variables available to template expressions."""

    build_name: str = ""
    builder_type: str = ""
    user_variables: Mapping[str, str] = field(default_factory=dict)
    template_dir: str = ""
    init_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    build_uuid: str = ""

    def __post_init__(self) -> None:
        # Freeze caller-supplied mappings so the context stays shareable.
        object.__setattr__(
            self, "user_variables", MappingProxyType(dict(self.user_variables))
        )
        if not self.build_uuid:
            object.__setattr__(self, "build_uuid", time_ordered_uuid(self.init_time))

    @property
    def timestamp(self) -> int:
        """Unix seconds of the build start time."""
        return int(self.init_time.timestamp())

    def evolve(self, **changes: Any) -> InterpolationContext:
        """Return a copy with *changes* applied; the original is untouched."""
        return replace(self, **changes)

    def variables(self) -> dict[str, Any]:
        """Names visible to templates rendered against this context."""
        return {
            "build_name": self.build_name,
            "builder_type": self.builder_type,
            "template_dir": self.template_dir,
            "timestamp": str(self.timestamp),
            "build_uuid": self.build_uuid,
            "user": self._user,
            "isotime": self._isotime,
            "uuid": lambda: time_ordered_uuid(),
            "pwd": os.getcwd,
        }

    def _user(self, name: str) -> str:
        try:
            return self.user_variables[name]
        except KeyError:
            raise jinja2.UndefinedError(f"user variable {name!r} is not defined") from None

    def _isotime(self, fmt: str | None = None) -> str:
        if fmt is None:
            return self.init_time.isoformat()
        return self.init_time.strftime(fmt)


@cache
def _environment() -> SandboxedEnvironment:
    return SandboxedEnvironment(
        undefined=jinja2.StrictUndefined,
        autoescape=False,
        keep_trailing_newline=True,
    )


def render(template: str, context: InterpolationContext) -> str:
    """Render *template* against *context*.

    Strings without template markers are returned unchanged.

    Raises:
        InterpolationError: On syntax errors, undefined names or any exception
            raised while evaluating the template.
    """
    if not any(marker in template for marker in _TEMPLATE_MARKERS):
        return template
    try:
        compiled = _environment().from_string(template)
        return compiled.render(context.variables())
    except Exception as exc:  # noqa: BLE001 - user templates may raise anything
        raise InterpolationError(f"error rendering {template!r}: {exc}") from exc


def render_value(value: Any, context: InterpolationContext) -> Any:
    """Render strings inside *value*, descending into lists and mappings."""
    if isinstance(value, str):
        return render(value, context)
    if isinstance(value, list | tuple):
        return [render_value(item, context) for item in value]
    if isinstance(value, dict):
        return {key: render_value(item, context) for key, item in value.items()}
    return value


def quote(text: str) -> str:
    """Return a template that renders to *text* verbatim.

    Strings without template markers are returned unchanged.
    """
    if not any(marker in text for marker in _TEMPLATE_MARKERS):
        return text
    if "endraw" not in text and "\r" not in text:
        return "{% raw %}" + text + "{% endraw %}"
    return "".join(_QUOTED_CHARS.get(ch, ch) for ch in text)


def quote_value(value: Any) -> Any:
    """Apply :func:`quote` to strings inside *value*, like :func:`render_value`."""
    if isinstance(value, str):
        return quote(value)
    if isinstance(value, list | tuple):
        return [quote_value(item) for item in value]
    if isinstance(value, dict):
        return {key: quote_value(item) for key, item in value.items()}
    return value


__all__ = [
    "InterpolationContext",
    "quote",
    "quote_value",
    "render",
    "render_value",
    "time_ordered_uuid",
]
