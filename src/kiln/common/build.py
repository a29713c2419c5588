"""Values injected by the build engine rather than authored by users."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from pydantic import Field

from kiln import rules
from kiln.config.schema import Section

if TYPE_CHECKING:
    from kiln.errors import KilnError
    from kiln.interpolate import InterpolationContext

ON_ERROR_MODES = ("cleanup", "abort", "ask", "run-cleanup-provisioner")


class BuildConfig(Section):
    """Build-wide settings every backend embeds first."""

    label: ClassVar[str] = "build"
    raw_fields: ClassVar[frozenset[str]] = frozenset(
        {"build_name", "builder_type", "user_variables", "template_dir"}
    )

    build_name: str = ""
    builder_type: str = ""
    debug: bool = False
    force: bool = False
    on_error: str = ""
    user_variables: dict[str, str] = Field(default_factory=dict)
    template_dir: str = ""

    def apply_defaults(self, context: InterpolationContext) -> None:
        if not self.build_name:
            self.build_name = context.build_name
        if not self.builder_type:
            self.builder_type = context.builder_type
        if not self.template_dir:
            self.template_dir = context.template_dir
        if not self.on_error:
            self.on_error = "cleanup"

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        return [*rules.one_of(self.on_error, "on_error", ON_ERROR_MODES)]
