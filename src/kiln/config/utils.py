# src/kiln/config/utils.py

"""Configuration utilities and shared functionality.

Pure helpers that can be imported from anywhere in the package without
creating circular dependencies: environment variable names, the debug toggle,
environment fallbacks for provider credentials and sensitive-key redaction.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

# --- Constants ---

ENV_PREFIX = "KILN_"

DEBUG_CONFIG_VAR = "KILN_DEBUG_CONFIG"

# --- Environment Utilities ---


def env_fallback(current: str, names: Iterable[str]) -> str:
    """Return *current* if set, else the first non-empty variable in *names*.

    Read at call time so fallbacks follow the environment as it is when a
    configuration is resolved, not when the module was imported.
    """
    if current:
        return current
    for name in names:
        value = os.environ.get(name, "")
        if value:
            return value
    return current


# --- Field Specification Helpers ---


def field_spec_hint(field: str) -> str:
    """Return a compact hint for setting a config field via env or files."""
    env_key = f"{ENV_PREFIX}{field.upper()}"
    return f"Set {env_key} or add {field} to a configuration fragment."


def should_emit_debug() -> bool:
    """Return True when debug audit is enabled via environment.

    This function is intentionally stateless for thread-safety. Callers should
    rely on Python's warnings machinery (default filtering prints once per
    location) to avoid repeated emissions across threads.
    """
    return os.environ.get(DEBUG_CONFIG_VAR, "").strip().lower() in {
        "1",
        "true",
        "yes",
        "on",
    }


# --- Sensitive Key Utilities ---

# Field-level sensitive tokens used for redaction in audits and reprs.
SENSITIVE_KEYS = {
    "api_key",
    "apikey",
    "access_key",
    "secret",
    "password",
    "passwd",
    "token",
    "key_material",
    "mfa_code",
}

# Keys that contain a sensitive token but only name other resources.
_NOT_SENSITIVE = {
    "windows_password_timeout",
    "template_password_enabled",
}


def is_sensitive_field_key(name: str) -> bool:
    """Return True if a field name is considered sensitive for logging."""
    lower = name.lower()
    if lower in _NOT_SENSITIVE:
        return False
    return any(token in lower for token in SENSITIVE_KEYS)


def redact(name: str, value: object) -> object:
    """Return a placeholder for set sensitive values, else *value* unchanged."""
    if value and is_sensitive_field_key(name):
        return "***redacted***"
    return value
