"""Where a builder writes its artifact on the local machine."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from kiln.config.schema import Section

if TYPE_CHECKING:
    from kiln.interpolate import InterpolationContext


def default_output_directory(build_name: str) -> str:
    return f"output-{build_name}"


class OutputConfig(Section):
    label: ClassVar[str] = "output"

    output_directory: str = ""

    def apply_defaults(self, context: InterpolationContext) -> None:
        if not self.output_directory:
            self.output_directory = default_output_directory(context.build_name)
