"""Guest shutdown settings shared by the hypervisor builders."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, ClassVar

from pydantic import Field, PrivateAttr

from kiln import rules
from kiln.config.schema import Section

if TYPE_CHECKING:
    from kiln.errors import KilnError
    from kiln.interpolate import InterpolationContext

DEFAULT_SHUTDOWN_TIMEOUT = "5m"


class ShutdownConfig(Section):
    label: ClassVar[str] = "shutdown"

    shutdown_command: str = ""
    raw_shutdown_timeout: str = Field(default="", alias="shutdown_timeout")

    _shutdown_timeout: timedelta | None = PrivateAttr(default=None)

    @property
    def shutdown_timeout(self) -> timedelta | None:
        """Parsed ``shutdown_timeout``; None until prepared or if it failed to parse."""
        return self._shutdown_timeout

    def apply_defaults(self, context: InterpolationContext) -> None:  # noqa: ARG002
        if not self.raw_shutdown_timeout:
            self.raw_shutdown_timeout = DEFAULT_SHUTDOWN_TIMEOUT

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        self._shutdown_timeout, errs = rules.parse_duration_field(
            self.raw_shutdown_timeout, "shutdown_timeout"
        )
        return list(errs)
