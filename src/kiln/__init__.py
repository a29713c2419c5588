"""kiln: configuration resolution for machine-image builders.

Public API:
    - resolve(): Decode, default and validate ordered fragments for one builder
    - Fragment / Origin: Overlay inputs and where they came from
    - InterpolationContext: Values visible to template expressions
    - BUILDERS / get_builder(): Registered builder backends
"""

from __future__ import annotations

import logging

from kiln.builders import BUILDERS, BuilderConfig, get_builder
from kiln.config import Fragment, Origin, load_env, load_file, resolve
from kiln.errors import (
    AggregateError,
    ConfigurationError,
    DecodeError,
    DerivationError,
    InterpolationError,
    KilnError,
    ValidationError,
)
from kiln.interpolate import InterpolationContext

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("kiln")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("kiln").addHandler(logging.NullHandler())

__all__ = [
    "BUILDERS",
    "AggregateError",
    "BuilderConfig",
    "ConfigurationError",
    "DecodeError",
    "DerivationError",
    "Fragment",
    "InterpolationContext",
    "InterpolationError",
    "KilnError",
    "Origin",
    "ValidationError",
    "get_builder",
    "load_env",
    "load_file",
    "resolve",
]
