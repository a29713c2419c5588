"""Artifact export settings for the VMware builders."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from pydantic import Field

from kiln import rules
from kiln.config.schema import Section

if TYPE_CHECKING:
    from kiln.errors import KilnError
    from kiln.interpolate import InterpolationContext

EXPORT_FORMATS = ("ova", "ovf", "vmx")


class ExportConfig(Section):
    label: ClassVar[str] = "export"

    format: str = ""
    ovftool_options: list[str] = Field(default_factory=list)
    skip_export: bool = False
    keep_registered: bool = False
    skip_compaction: bool = False

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        # An empty format leaves the artifact in the hypervisor's native layout.
        if not self.format:
            return []
        return [*rules.one_of(self.format, "format", EXPORT_FORMATS)]
