"""Section models and the flat field table built from them.

A builder configuration is a composition of :class:`Section` models. Every
section field is addressable by a single flat key (its alias, or its name),
and :func:`schema_for` derives the key → :class:`FieldSpec` table that the
decoder uses to route, merge and interpolate fragment values.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import cache
import logging
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar, Protocol

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from collections.abc import Mapping

    from kiln.errors import KilnError
    from kiln.interpolate import InterpolationContext

log = logging.getLogger(__name__)


class MergeStrategy(str, Enum):
    """How a later fragment combines with an earlier value for one key."""

    REPLACE = "replace"
    UNION = "union"


@dataclass(frozen=True)
class FieldSpec:
    """Where a flat key lives and how it is decoded."""

    key: str
    section: str
    attr: str
    merge: MergeStrategy = MergeStrategy.REPLACE
    interpolate: bool = True


class Section(BaseModel):
    """An independently prepared unit of configuration.

    Every field carries a zero-value default so a section can always be built
    from a partial payload; "required" is a validation rule, not a decode rule.
    """

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    #: Component name used to attribute errors in aggregate reports.
    label: ClassVar[str] = "config"
    #: Keys whose mapping values accumulate across fragments.
    union_fields: ClassVar[frozenset[str]] = frozenset()
    #: Keys never passed through the template renderer.
    raw_fields: ClassVar[frozenset[str]] = frozenset()

    @classmethod
    def field_keys(cls) -> list[tuple[str, str]]:
        """Return ``(flat key, attribute name)`` pairs in declaration order."""
        return [(info.alias or name, name) for name, info in cls.model_fields.items()]

    def prepare(self, context: InterpolationContext) -> list[KilnError]:
        """Fill defaults, then return every rule violation found."""
        self.apply_defaults(context)
        return list(self.validate_rules(context))

    def apply_defaults(self, context: InterpolationContext) -> None:  # noqa: ARG002
        return None

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        return []

    def to_fragment(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="python")


class ComposedConfig(Protocol):
    """What :func:`schema_for` needs from a builder configuration class."""

    render_exclude: ClassVar[frozenset[str]]

    @classmethod
    def section_types(cls) -> tuple[tuple[str, type[Section]], ...]: ...


@cache
def schema_for(config_cls: type[ComposedConfig]) -> Mapping[str, FieldSpec]:
    """Build the flat key table for a composed configuration class.

    Sections are visited in declaration order; when two sections declare the
    same key, the first one keeps it.
    """
    table: dict[str, FieldSpec] = {}
    exclude = config_cls.render_exclude
    for section_name, section_cls in config_cls.section_types():
        for key, attr in section_cls.field_keys():
            owner = table.get(key)
            if owner is not None:
                log.debug(
                    "Key %r is declared by sections %r and %r; %r owns it",
                    key,
                    owner.section,
                    section_name,
                    owner.section,
                )
                continue
            table[key] = FieldSpec(
                key=key,
                section=section_name,
                attr=attr,
                merge=(
                    MergeStrategy.UNION
                    if key in section_cls.union_fields
                    else MergeStrategy.REPLACE
                ),
                interpolate=key not in section_cls.raw_fields and key not in exclude,
            )
    return MappingProxyType(table)
