# src/kiln/config/loaders.py

"""Fragment loaders for files and the environment.

This module provides pure data loading functions that turn external sources
into :class:`~kiln.config.decode.Fragment` values without performing
validation. Each loader returns one fragment that the resolver merges in
order with the others.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, get_args, get_origin

# Python 3.11+ has tomllib in stdlib
import tomllib

from kiln.errors import ConfigurationError

from . import utils
from .decode import Fragment, Origin
from .schema import schema_for

if TYPE_CHECKING:
    from kiln.builders.base import BuilderConfig

log = logging.getLogger(__name__)

# Meta/control variables that steer resolution but aren't config fields
META_ENV_FIELDS = {"debug_config"}

_DOTENV_LOADED: bool = False


def _coerce_bool(v: str) -> bool:
    """Convert string to boolean using common conventions."""
    return v.strip().lower() in {"1", "true", "yes", "on"}


def _coerce_env_value(value: str, target_type: Any) -> Any:
    """Coerce env string to target type when possible.

    Lists accept comma-separated values; mappings accept JSON objects. Falls
    back to the original string on conversion failure so the decoder reports
    the mismatch against the field.
    """
    if target_type is bool:
        return _coerce_bool(value)
    if target_type is int:
        try:
            return int(value)
        except ValueError:
            return value
    if target_type is list:
        return [item.strip() for item in value.split(",") if item.strip()]
    if target_type is dict:
        try:
            parsed = json.loads(value)
        except ValueError:
            return value
        return parsed if isinstance(parsed, dict) else value
    return value


def _target_type(config_cls: type[BuilderConfig], key: str) -> Any:
    spec = schema_for(config_cls).get(key)
    if spec is None:
        return None
    section_cls = dict(config_cls.section_types())[spec.section]
    info = section_cls.model_fields[spec.attr]
    annotation = info.annotation
    origin = get_origin(annotation)
    if origin in {list, dict}:
        return origin
    if annotation in {bool, int}:
        return annotation
    # Optional[bool] style annotations
    args = [a for a in get_args(annotation) if a is not type(None)]
    if len(args) == 1 and args[0] in {bool, int}:
        return args[0]
    return None


def load_env(config_cls: type[BuilderConfig]) -> Fragment:
    """Load configuration from ``KILN_*`` environment variables.

    Behavior:
    - Reads only ``KILN_*`` variables; provider variables such as
      ``AWS_REGION`` are fallbacks applied during defaulting, not here.
    - Performs schema-informed type coercion (bool/int/list/dict).
    - Skips meta/control variables (debug toggles) entirely.
    - Variables naming keys the builder does not declare are left out, since
      several builders share one environment.
    """
    schema = schema_for(config_cls)
    data: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(utils.ENV_PREFIX):
            continue
        field_name = key[len(utils.ENV_PREFIX) :].lower()
        if field_name in META_ENV_FIELDS or field_name not in schema:
            continue
        data[field_name] = _coerce_env_value(value, _target_type(config_cls, field_name))
    return Fragment(data=data, origin=Origin.ENV, label="environment")


def _read_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as f:
        return tomllib.load(f)


def _read_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def load_file(path: str | Path, table: str | None = None) -> Fragment:
    """Load one fragment from a TOML or JSON file.

    Args:
        path: File to read; ``.json`` files are parsed as JSON, anything else
            as TOML.
        table: Optional dotted path of a nested table to use as the fragment,
            e.g. ``"builders.web"``.

    Raises:
        ConfigurationError: If the file is missing, unparsable, or the table
            does not hold a mapping.
    """
    p = Path(path)
    try:
        data = _read_json(p) if p.suffix.lower() == ".json" else _read_toml(p)
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read configuration file {str(p)!r}: {e.strerror or e}"
        ) from e
    except (tomllib.TOMLDecodeError, ValueError) as e:
        raise ConfigurationError(
            f"Cannot parse configuration file {str(p)!r}: {e}"
        ) from e

    for part in table.split(".") if table else ():
        if not isinstance(data, dict) or part not in data:
            raise ConfigurationError(
                f"Table {table!r} not found in {str(p)!r}",
                hint="Check the table name or omit it to use the whole file.",
            )
        data = data[part]

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration in {str(p)!r} must be a mapping, got {type(data).__name__}"
        )
    log.debug("Loaded %d key(s) from %s", len(data), p)
    return Fragment(data=data, origin=Origin.FILE, label=str(p))


def _try_load_dotenv() -> None:
    """Try to load a .env file using python-dotenv.

    Loads at most once per process and never overrides variables that are
    already set. Errors reading the file are logged and otherwise ignored so
    resolution stays predictable without one.
    """
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return
    _DOTENV_LOADED = True
    try:
        from dotenv import load_dotenv

        load_dotenv(override=False)
    except OSError as e:
        log.debug("Skipping .env: %s", e)
