# src/kiln/config/core.py

"""Resolution pipeline and audit helpers.

This module ties the stages together:

- decode ordered fragments into a typed builder configuration;
- run every section's ``prepare`` step in declaration order;
- apply and validate the builder's own cross-section rules;
- fold every reported problem into one :class:`~kiln.errors.AggregateError`.

Nothing is raised until all stages have run, so a failing resolution reports
every problem at once.
"""

from __future__ import annotations

from collections.abc import Mapping
from contextlib import suppress
import logging
from typing import TYPE_CHECKING, Any, Literal, overload
import warnings

from kiln.errors import ConfigurationError, KilnError, aggregate
from kiln.interpolate import InterpolationContext

from .decode import FieldOrigin, Fragment, Origin, SourceMap, as_fragment, decode
from .loaders import _try_load_dotenv
from .schema import schema_for
from .utils import ENV_PREFIX, is_sensitive_field_key, redact, should_emit_debug

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from kiln.builders.base import BuilderConfig

log = logging.getLogger(__name__)

# Keys whose values seed the interpolation context when none is supplied.
_CONTEXT_KEYS = ("build_name", "user_variables", "template_dir")


# --- Public resolution API ---


@overload
def resolve(
    builder: str | type[BuilderConfig],
    fragments: Iterable[Fragment | Mapping[str, Any]] = ...,
    *,
    context: InterpolationContext | None = ...,
    interpolate: bool = ...,
    explain: Literal[True],
) -> tuple[BuilderConfig, SourceMap]: ...


@overload
def resolve(
    builder: str | type[BuilderConfig],
    fragments: Iterable[Fragment | Mapping[str, Any]] = ...,
    *,
    context: InterpolationContext | None = ...,
    interpolate: bool = ...,
    explain: Literal[False] = ...,
) -> BuilderConfig: ...


def resolve(
    builder: str | type[BuilderConfig],
    fragments: Iterable[Fragment | Mapping[str, Any]] = (),
    *,
    context: InterpolationContext | None = None,
    interpolate: bool = True,
    explain: bool = False,
) -> BuilderConfig | tuple[BuilderConfig, SourceMap]:
    """Resolve ordered fragments into a fully defaulted, validated configuration.

    Args:
        builder: A registered builder name (e.g. ``"amazon-ebs"``) or a
            :class:`~kiln.builders.base.BuilderConfig` subclass.
        fragments: Partial configurations applied in order; later fragments
            win. Plain mappings are treated as programmatic overrides.
        context: Interpolation context. When omitted, one is created from the
            ``build_name``, ``user_variables`` and ``template_dir`` values of
            the fragments.
        interpolate: Render template expressions in string values.
        explain: If True, return ``(config, source_map)`` for audit.

    Returns:
        The resolved configuration, or ``(config, source_map)`` if explain=True.

    Raises:
        AggregateError: If decoding or any validation rule failed.
        ConfigurationError: If *builder* names no registered builder.
    """
    # Ensure .env is loaded (optional) before environment fallbacks are read
    _try_load_dotenv()

    config_cls = builder_class(builder)
    ordered = [as_fragment(f) for f in fragments]
    ctx = _context_for(config_cls, ordered, context)

    decoded = decode(config_cls, ordered, context=ctx, interpolate=interpolate)
    cfg = decoded.config
    groups: list[tuple[str, Sequence[KilnError]]] = list(decoded.errors)

    for _, section in cfg.sections():
        groups.append((section.label, section.prepare(ctx)))
    cfg.apply_defaults(ctx)
    groups.append((config_cls.builder_type, cfg.validate_rules(ctx)))

    failure = aggregate(groups)
    if failure is not None:
        log.debug(
            "Resolution of %s failed with %d error(s)",
            config_cls.builder_type,
            len(failure),
        )
        raise failure

    for message in cfg.warnings():
        log.warning("%s: %s", config_cls.builder_type, message)
        warnings.warn(message, UserWarning, stacklevel=2)

    log.debug("Resolved %s configuration", config_cls.builder_type)
    # Note: Python's warnings filter prints once per callsite by default,
    # so we intentionally avoid global state and rely on that behavior.
    if not explain and should_emit_debug():
        with suppress(Exception):
            warnings.warn(
                "Config audit (redacted)\n" + audit_text(cfg, decoded.sources),
                stacklevel=2,
            )

    return (cfg, decoded.sources) if explain else cfg


def builder_class(builder: str | type[BuilderConfig]) -> type[BuilderConfig]:
    """Return the configuration class for a builder name or class."""
    if isinstance(builder, str):
        from kiln.builders import get_builder  # registry imports config modules

        return get_builder(builder)
    return builder


# --- Internal helpers (pure & tiny) ---


def _context_for(
    config_cls: type[BuilderConfig],
    fragments: Sequence[Fragment],
    context: InterpolationContext | None,
) -> InterpolationContext:
    if context is None:
        seen: dict[str, Any] = {}
        for fragment in fragments:
            if not isinstance(fragment.data, Mapping):
                continue
            for key in _CONTEXT_KEYS:
                if key in fragment.data:
                    seen[key] = fragment.data[key]
        user_variables = seen.get("user_variables")
        if not isinstance(user_variables, Mapping):
            user_variables = {}
        context = InterpolationContext(
            build_name=str(seen.get("build_name") or ""),
            user_variables={str(k): str(v) for k, v in user_variables.items()},
            template_dir=str(seen.get("template_dir") or ""),
        )
    if not context.builder_type:
        context = context.evolve(builder_type=config_cls.builder_type)
    return context


# --- Minimal audit helpers (transparency with small surface) ---


def _origin_label(field: str, where: FieldOrigin | None) -> str:
    if where is None:
        return Origin.DEFAULT.value
    match where.origin:
        case Origin.ENV:
            return f"env:{ENV_PREFIX}{field.upper()}"
        case Origin.FILE:
            return f"file:{where.label or '?'}"
        case _:
            return str(where.origin.value)


def audit_lines(cfg: BuilderConfig, sources: SourceMap) -> list[str]:
    """Produce redacted, human-readable audit lines per field.

    Only origins are shown; secrets are never printed. Keys that no fragment
    supplied are reported as ``default``.
    """
    lines: list[str] = []
    for key in schema_for(type(cfg)):
        redaction = " [REDACTED]" if is_sensitive_field_key(key) else ""
        lines.append(f"{key}: {_origin_label(key, sources.get(key))}{redaction}")
    return lines


def audit_text(cfg: BuilderConfig, sources: SourceMap) -> str:
    """Format audit as a single string suitable for printing/logging."""
    return "\n".join(audit_lines(cfg, sources))


def summarize_origins(sources: SourceMap) -> dict[str, int]:
    """Count how many fields originated from each layer."""
    counts: dict[str, int] = {}
    for fo in sources.values():
        key = fo.origin.value
        counts[key] = counts.get(key, 0) + 1
    return counts


def was_field_overridden(sources: SourceMap, field: str) -> bool:
    """Return True if any fragment supplied a value for *field*."""
    fo = sources.get(field)
    return bool(fo and fo.origin is not Origin.DEFAULT)


def to_redacted_dict(cfg: BuilderConfig) -> dict[str, Any]:
    """Redacted dict for structured logging (never prints secrets)."""
    flat = cfg.to_fragment(quote_templates=False)
    return {key: redact(key, value) for key, value in flat.items()}


# --- Minimal CLI entrypoint (optional) ---


def main(argv: Sequence[str] | None = None) -> int:  # pragma: no cover - thin utility  # noqa: D103
    import argparse
    import json
    import sys

    from kiln.builders import BUILDERS

    from .loaders import load_env, load_file

    parser = argparse.ArgumentParser("kiln-config")
    sub = parser.add_subparsers(dest="cmd", required=True)
    sub.add_parser("builders")
    for name in ("validate", "show", "audit"):
        cmd = sub.add_parser(name)
        cmd.add_argument("builder")
        cmd.add_argument("files", nargs="*")
        cmd.add_argument("--table", default=None)
        cmd.add_argument("--no-env", action="store_true")
    args = parser.parse_args(argv)

    if args.cmd == "builders":
        for name in sorted(BUILDERS):
            sys.stdout.write(name + "\n")
        return 0

    try:
        config_cls = builder_class(args.builder)
        fragments = [load_file(path, args.table) for path in args.files]
        if not args.no_env:
            fragments.append(load_env(config_cls))
        cfg, src = resolve(config_cls, fragments, explain=True)
    except ConfigurationError as e:
        sys.stderr.write(str(e) + "\n")
        if e.hint:
            sys.stderr.write(f"hint: {e.hint}\n")
        return 1

    if args.cmd == "validate":
        sys.stdout.write(f"{args.builder}: configuration is valid\n")
    elif args.cmd == "show":
        sys.stdout.write(json.dumps(to_redacted_dict(cfg), indent=2, default=str) + "\n")
    elif args.cmd == "audit":
        sys.stdout.write(audit_text(cfg, src) + "\n")
        for name, count in sorted(summarize_origins(src).items()):
            sys.stdout.write(f"{name:9s}: {count} fields\n")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
