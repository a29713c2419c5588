"""The ``vmware-vmx`` builder: a VMware VM cloned from an existing ``.vmx``."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from kiln import rules
from kiln.builders.base import BuilderConfig
from kiln.common.communicator import CommunicatorConfig
from kiln.common.export import ExportConfig
from kiln.common.output import OutputConfig
from kiln.common.shutdown import ShutdownConfig
from kiln.common.vmx import VMXConfig
from kiln.config.schema import Section

if TYPE_CHECKING:
    from kiln.errors import KilnError
    from kiln.interpolate import InterpolationContext


class VMXSourceConfig(Section):
    label: ClassVar[str] = "vmware-vmx"

    source_path: str = ""
    vm_name: str = ""
    linked: bool = False
    attach_snapshot: str = ""

    def apply_defaults(self, context: InterpolationContext) -> None:
        if not self.vm_name:
            self.vm_name = f"kiln-{context.build_name}"

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        errs: list[KilnError] = []
        errs += rules.required(
            self.source_path, "source_path", "source_path is blank, but is required"
        )
        errs += rules.file_exists(self.source_path, "source_path", "source_path is invalid")
        return errs


@dataclass
class VMwareVMXBuilderConfig(BuilderConfig):
    builder_type = "vmware-vmx"

    communicator: CommunicatorConfig = field(default_factory=CommunicatorConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    shutdown: ShutdownConfig = field(default_factory=ShutdownConfig)
    vmx: VMXConfig = field(default_factory=VMXConfig)
    source: VMXSourceConfig = field(default_factory=VMXSourceConfig)
