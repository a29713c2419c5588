"""The ``lxd`` builder: an image published from an LXD container."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from pydantic import Field

from kiln.builders.base import BuilderConfig
from kiln.config.schema import Section
from kiln.errors import ValidationError

from .lxc import DEFAULT_COMMAND_WRAPPER, default_container_name

if TYPE_CHECKING:
    from kiln.errors import KilnError
    from kiln.interpolate import InterpolationContext


class LXDConfig(Section):
    label: ClassVar[str] = "lxd"
    raw_fields: ClassVar[frozenset[str]] = frozenset({"command_wrapper"})

    output_image: str = ""
    container_name: str = ""
    command_wrapper: str = ""
    image: str = ""
    profile: str = ""
    init_sleep: str = ""
    publish_properties: dict[str, str] = Field(default_factory=dict)
    launch_config: dict[str, str] = Field(default_factory=dict)

    def apply_defaults(self, context: InterpolationContext) -> None:
        if not self.container_name:
            self.container_name = default_container_name(context.build_name)
        if not self.output_image:
            self.output_image = self.container_name
        if not self.command_wrapper:
            self.command_wrapper = DEFAULT_COMMAND_WRAPPER
        if not self.profile:
            self.profile = "default"
        if not self.init_sleep:
            self.init_sleep = "3"

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        errs: list[KilnError] = []
        if not self.image:
            errs.append(
                ValidationError(
                    "`image` is a required parameter for LXD. Please specify an "
                    "image by alias or fingerprint. e.g. `ubuntu-daily:x`",
                    field="image",
                )
            )
        return errs


@dataclass
class LXDBuilderConfig(BuilderConfig):
    builder_type = "lxd"

    lxd: LXDConfig = field(default_factory=LXDConfig)
