# src/kiln/config/decode.py

"""Layered decoder: ordered fragments in, one typed configuration out.

Decoding happens in three passes, none of which stop at the first problem:

1. merge: fragments are applied in order, later values replacing earlier ones
   (or accumulating keys, for fields declared with a union strategy);
2. render: string values are passed through the template renderer unless the
   field is marked raw;
3. typed decode: each section validates its share of the merged mapping.

Every problem becomes a :class:`~kiln.errors.DecodeError` naming its field;
the field is dropped and the rest of the payload still decodes. No I/O.
"""

from __future__ import annotations

from collections.abc import Mapping
import copy
from dataclasses import dataclass, field
import difflib
from enum import Enum
import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from kiln.errors import DecodeError, InterpolationError, KilnError
from kiln.interpolate import render_value

from .schema import MergeStrategy, schema_for

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from kiln.builders.base import BuilderConfig
    from kiln.interpolate import InterpolationContext

    from .schema import FieldSpec, Section

log = logging.getLogger(__name__)

# --- Audit types ---


class Origin(str, Enum):
    """Source origin for configuration field values."""

    DEFAULT = "default"
    FILE = "file"
    ENV = "env"
    OVERRIDES = "overrides"


@dataclass(frozen=True)
class FieldOrigin:
    """Tracks the origin and context of a configuration field value."""

    origin: Origin
    label: str | None = None  # e.g., "build.toml" or "KILN_REGION"
    index: int | None = None  # position in the fragment sequence


SourceMap = dict[str, FieldOrigin]


@dataclass(frozen=True)
class Fragment:
    """One partial configuration payload in the overlay sequence."""

    data: Mapping[str, Any]
    origin: Origin = Origin.OVERRIDES
    label: str | None = None


@dataclass
class Decoded:
    """Result of decoding: the configuration plus everything noticed on the way."""

    config: BuilderConfig
    sources: SourceMap
    errors: list[tuple[str, list[KilnError]]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not any(errs for _, errs in self.errors)


def as_fragment(value: Fragment | Mapping[str, Any]) -> Fragment:
    """Wrap plain mappings as override fragments."""
    if isinstance(value, Fragment):
        return value
    return Fragment(data=value)


# --- Pass 1: merge ---


def _unknown_key(key: Any, known: Iterable[str], where: str) -> DecodeError:
    close = difflib.get_close_matches(str(key), list(known), n=1)
    hint = f"Did you mean {close[0]!r}?" if close else None
    return DecodeError(
        f"unknown configuration key {key!r}{where}", field=str(key), hint=hint
    )


def merge_fragments(
    fragments: Sequence[Fragment], schema: Mapping[str, FieldSpec]
) -> tuple[dict[str, Any], SourceMap, list[KilnError]]:
    """Apply fragments in order into one flat mapping with source tracking."""
    merged: dict[str, Any] = {}
    sources: SourceMap = {}
    errors: list[KilnError] = []

    for index, fragment in enumerate(fragments):
        where = f" in {fragment.label}" if fragment.label else ""
        if not isinstance(fragment.data, Mapping):
            errors.append(
                DecodeError(
                    f"fragment {index}{where} must be a mapping, "
                    f"got {type(fragment.data).__name__}"
                )
            )
            continue
        for key, value in fragment.data.items():
            spec = schema.get(key) if isinstance(key, str) else None
            if spec is None:
                errors.append(_unknown_key(key, schema, where))
                continue
            previous = merged.get(key)
            if (
                spec.merge is MergeStrategy.UNION
                and isinstance(previous, Mapping)
                and isinstance(value, Mapping)
            ):
                merged[key] = {**previous, **copy.deepcopy(dict(value))}
            else:
                merged[key] = copy.deepcopy(value)
            sources[key] = FieldOrigin(
                origin=fragment.origin, label=fragment.label, index=index
            )

    log.debug("Merged %d fragment(s) into %d key(s)", len(fragments), len(merged))
    return merged, sources, errors


# --- Pass 2: render ---


def render_fields(
    merged: Mapping[str, Any],
    schema: Mapping[str, FieldSpec],
    context: InterpolationContext,
) -> tuple[dict[str, Any], list[KilnError]]:
    """Render interpolatable values; failing keys are dropped and reported."""
    rendered: dict[str, Any] = {}
    errors: list[KilnError] = []
    for key, value in merged.items():
        if not schema[key].interpolate:
            rendered[key] = value
            continue
        try:
            rendered[key] = render_value(value, context)
        except InterpolationError as exc:
            errors.append(InterpolationError(f"{key}: {exc.message}", field=key))
    return rendered, errors


# --- Pass 3: typed decode ---


def decode_section(
    section_cls: type[Section], payload: Mapping[str, Any]
) -> tuple[Section, list[KilnError]]:
    """Validate *payload* into *section_cls*, dropping fields that fail."""
    try:
        return section_cls.model_validate(payload), []
    except PydanticValidationError as exc:
        errors: list[KilnError] = []
        rejected: set[str] = set()
        for item in exc.errors(include_url=False):
            loc = item.get("loc", ())
            key = str(loc[0]) if loc else section_cls.label
            path = ".".join(str(part) for part in loc) or key
            errors.append(DecodeError(f"{path}: {item['msg']}", field=key))
            rejected.add(key)

    remaining = {k: v for k, v in payload.items() if k not in rejected}
    log.debug(
        "Section %r rejected %s; decoding remaining keys",
        section_cls.label,
        sorted(rejected),
    )
    try:
        return section_cls.model_validate(remaining), errors
    except PydanticValidationError:
        return section_cls(), errors


def decode(
    config_cls: type[BuilderConfig],
    fragments: Iterable[Fragment | Mapping[str, Any]],
    *,
    context: InterpolationContext,
    interpolate: bool = True,
) -> Decoded:
    """Decode ordered fragments into an instance of *config_cls*.

    Returns the decoded configuration together with the source map and every
    decode error, grouped by the component that reported it.
    """
    schema = schema_for(config_cls)
    merged, sources, merge_errors = merge_fragments(
        [as_fragment(f) for f in fragments], schema
    )
    groups: list[tuple[str, list[KilnError]]] = [("decode", merge_errors)]

    if interpolate:
        merged, render_errors = render_fields(merged, schema, context)
        groups[0][1].extend(render_errors)

    payloads: dict[str, dict[str, Any]] = {}
    for key, value in merged.items():
        spec = schema[key]
        payloads.setdefault(spec.section, {})[key] = value

    sections: dict[str, Section] = {}
    for name, section_cls in config_cls.section_types():
        instance, errors = decode_section(section_cls, payloads.get(name, {}))
        sections[name] = instance
        groups.append((section_cls.label, errors))

    return Decoded(config=config_cls(**sections), sources=sources, errors=groups)


__all__ = [
    "Decoded",
    "FieldOrigin",
    "Fragment",
    "Origin",
    "SourceMap",
    "as_fragment",
    "decode",
    "decode_section",
    "merge_fragments",
    "render_fields",
]
