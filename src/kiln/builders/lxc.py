"""The ``lxc`` builder: a container image exported from an LXC template."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, ClassVar

from pydantic import Field, PrivateAttr

from kiln import rules
from kiln.builders.base import BuilderConfig
from kiln.common.output import OutputConfig
from kiln.config.schema import Section

if TYPE_CHECKING:
    from kiln.errors import KilnError
    from kiln.interpolate import InterpolationContext

DEFAULT_COMMAND_WRAPPER = "{{ command }}"
DEFAULT_INIT_TIMEOUT = "20s"
DEFAULT_RUNLEVEL = 3


def default_container_name(build_name: str) -> str:
    return f"kiln-{build_name}"


class LXCConfig(Section):
    label: ClassVar[str] = "lxc"
    # Rendered per command at build time, not at resolution time.
    raw_fields: ClassVar[frozenset[str]] = frozenset({"command_wrapper"})

    config_file: str = ""
    container_name: str = ""
    command_wrapper: str = ""
    raw_init_timeout: str = Field(default="", alias="init_timeout")
    create_options: list[str] = Field(default_factory=list)
    start_options: list[str] = Field(default_factory=list)
    attach_options: list[str] = Field(default_factory=list)
    template_name: str = ""
    template_parameters: list[str] = Field(default_factory=list)
    template_environment_vars: list[str] = Field(default_factory=list)
    target_runlevel: int = 0

    _init_timeout: timedelta | None = PrivateAttr(default=None)

    @property
    def init_timeout(self) -> timedelta | None:
        return self._init_timeout

    def apply_defaults(self, context: InterpolationContext) -> None:
        if not self.container_name:
            self.container_name = default_container_name(context.build_name)
        if self.target_runlevel == 0:
            self.target_runlevel = DEFAULT_RUNLEVEL
        if not self.command_wrapper:
            self.command_wrapper = DEFAULT_COMMAND_WRAPPER
        if not self.raw_init_timeout:
            self.raw_init_timeout = DEFAULT_INIT_TIMEOUT

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        self._init_timeout, errs = rules.parse_duration_field(
            self.raw_init_timeout, "init_timeout"
        )
        out: list[KilnError] = list(errs)
        out += rules.required(self.config_file, "config_file")
        out += rules.file_exists(
            self.config_file, "config_file", "LXC Config file appears to be missing"
        )
        return out


@dataclass
class LXCBuilderConfig(BuilderConfig):
    builder_type = "lxc"

    output: OutputConfig = field(default_factory=OutputConfig)
    lxc: LXCConfig = field(default_factory=LXCConfig)
