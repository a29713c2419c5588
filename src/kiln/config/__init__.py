# src/kiln/config/__init__.py

"""Configuration resolution for kiln builders.

The core principle is resolve-once, fail-complete: ordered fragments are
decoded, defaulted and validated into one builder configuration, or every
problem found along the way is raised together as an AggregateError.

Key exports:
- resolve: Main API for configuration resolution
- Fragment / Origin: Overlay inputs and where they came from
- Section / schema_for: Composition model and the flat key table
- load_file / load_env: Fragment loaders
"""

# ruff: noqa: I001

# --- Core Configuration API ---

from .core import (
    audit_lines,
    audit_text,
    builder_class,
    resolve,
    summarize_origins,
    to_redacted_dict,
    was_field_overridden,
)
from .decode import (
    Decoded,
    FieldOrigin,
    Fragment,
    Origin,
    SourceMap,
    decode,
)
from .schema import FieldSpec, MergeStrategy, Section, schema_for

# Re-export loaders and helpers for advanced usage
from .loaders import load_env, load_file
from .utils import field_spec_hint, is_sensitive_field_key

__all__ = [  # noqa: RUF022
    # Main public API
    "resolve",
    "builder_class",
    "Fragment",
    "Origin",
    "FieldOrigin",
    "SourceMap",
    # Composition model
    "Section",
    "FieldSpec",
    "MergeStrategy",
    "schema_for",
    # Decoder
    "decode",
    "Decoded",
    # Loaders
    "load_env",
    "load_file",
    # Audit helpers
    "audit_lines",
    "audit_text",
    "summarize_origins",
    "to_redacted_dict",
    "was_field_overridden",
    "field_spec_hint",
    "is_sensitive_field_key",
]
