"""Root configuration type shared by every builder backend."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from functools import cache
import typing
from typing import TYPE_CHECKING, Any, ClassVar

from kiln.common.build import BuildConfig
from kiln.config.schema import Section, schema_for
from kiln.config.utils import redact
from kiln.interpolate import quote_value

if TYPE_CHECKING:
    from kiln.errors import KilnError
    from kiln.interpolate import InterpolationContext


@cache
def _section_types(cls: type[BuilderConfig]) -> tuple[tuple[str, type[Section]], ...]:
    hints = typing.get_type_hints(cls)
    out: list[tuple[str, type[Section]]] = []
    for f in fields(cls):
        hint = hints.get(f.name)
        if isinstance(hint, type) and issubclass(hint, Section):
            out.append((f.name, hint))
    return tuple(out)


@dataclass
class BuilderConfig:
    """A backend configuration composed of named sections.

    Subclasses declare their sections as dataclass fields; declaration order
    is the order sections are decoded and prepared in, and the first section
    declaring a key owns it. Values are reached by explicit path
    (``cfg.run.instance_type``) or through the flat view (``cfg.get(key)``).
    """

    #: Registry name, also used to attribute builder-level errors.
    builder_type: ClassVar[str] = ""
    #: Keys never passed through the template renderer for this builder.
    render_exclude: ClassVar[frozenset[str]] = frozenset()

    build: BuildConfig = field(default_factory=BuildConfig)

    @classmethod
    def section_types(cls) -> tuple[tuple[str, type[Section]], ...]:
        return _section_types(cls)

    def sections(self) -> list[tuple[str, Section]]:
        return [(name, getattr(self, name)) for name, _ in self.section_types()]

    def apply_defaults(self, context: InterpolationContext) -> None:  # noqa: ARG002
        """Fill defaults that depend on more than one section."""
        return None

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        """Check rules that span sections; section rules run in ``prepare``."""
        return []

    def warnings(self) -> list[str]:
        """Non-fatal advisories about a resolved configuration."""
        return []

    def get(self, key: str) -> Any:
        """Return the value stored under flat *key*.

        Raises:
            KeyError: If no section declares *key*.
        """
        spec = schema_for(type(self))[key]
        return getattr(getattr(self, spec.section), spec.attr)

    def to_fragment(self, *, quote_templates: bool = True) -> dict[str, Any]:
        """Flatten into a single fragment that resolves back to this value.

        Rendered strings that still contain template markers are quoted so a
        second resolution reproduces them instead of rendering them again.
        Pass ``quote_templates=False`` for display.
        """
        schema = schema_for(type(self))
        out: dict[str, Any] = {}
        for name, section in self.sections():
            for key, value in section.to_fragment().items():
                spec = schema[key]
                if spec.section != name:
                    continue
                if quote_templates and spec.interpolate:
                    value = quote_value(value)
                out[key] = value
        return out

    def __str__(self) -> str:
        """String representation with redacted secrets for safe logging."""
        flat = self.to_fragment(quote_templates=False)
        parts = [f"{k}={redact(k, v)!r}" for k, v in flat.items()]
        return f"{type(self).__name__}({', '.join(parts)})"
