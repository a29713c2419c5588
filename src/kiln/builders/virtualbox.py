"""The ``virtualbox-ovf`` builder: a VirtualBox VM imported from OVF/OVA."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from pydantic import Field

from kiln import rules
from kiln.builders.base import BuilderConfig
from kiln.common.communicator import CommunicatorConfig
from kiln.common.output import OutputConfig
from kiln.common.shutdown import ShutdownConfig
from kiln.config.schema import Section
from kiln.errors import ValidationError

if TYPE_CHECKING:
    from kiln.errors import KilnError
    from kiln.interpolate import InterpolationContext

GUEST_ADDITIONS_MODES = ("disable", "attach", "upload")
GUEST_ADDITIONS_INTERFACES = ("ide", "sata")
CHECKSUM_TYPES = ("none", "md5", "sha1", "sha256", "sha512")
EXPORT_FORMATS = ("ovf", "ova")

SHUTDOWN_WARNING = (
    "A shutdown_command was not specified. Without a shutdown command, kiln\n"
    "will forcibly halt the virtual machine, which may result in data loss."
)


class VBoxExportConfig(Section):
    label: ClassVar[str] = "export"

    format: str = ""
    export_opts: list[str] = Field(default_factory=list)

    def apply_defaults(self, context: InterpolationContext) -> None:  # noqa: ARG002
        if not self.format:
            self.format = "ovf"

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        if self.format in EXPORT_FORMATS:
            return []
        return [
            ValidationError(
                f"invalid format {self.format!r}, only 'ovf' or 'ova' are allowed",
                field="format",
            )
        ]


class VBoxManageConfig(Section):
    """Extra ``VBoxManage`` invocations, run before and after the build."""

    label: ClassVar[str] = "vboxmanage"
    raw_fields: ClassVar[frozenset[str]] = frozenset({"vboxmanage", "vboxmanage_post"})

    vboxmanage: list[list[str]] = Field(default_factory=list)
    vboxmanage_post: list[list[str]] = Field(default_factory=list)


class VirtualBoxOVFConfig(Section):
    label: ClassVar[str] = "virtualbox-ovf"

    boot_command: list[str] = Field(default_factory=list)
    checksum: str = ""
    checksum_type: str = ""
    guest_additions_mode: str = ""
    guest_additions_path: str = ""
    guest_additions_interface: str = ""
    guest_additions_sha256: str = ""
    guest_additions_url: str = ""
    import_flags: list[str] = Field(default_factory=list)
    import_opts: str = ""
    source_path: str = ""
    target_path: str = ""
    vm_name: str = ""
    keep_registered: bool = False
    skip_export: bool = False

    @property
    def effective_import_flags(self) -> list[str]:
        """``import_flags`` with ``import_opts`` appended as ``--options``."""
        if not self.import_opts:
            return list(self.import_flags)
        return [*self.import_flags, "--options", self.import_opts]

    def apply_defaults(self, context: InterpolationContext) -> None:
        if not self.guest_additions_mode:
            self.guest_additions_mode = "upload"
        if not self.guest_additions_path:
            self.guest_additions_path = "VBoxGuestAdditions.iso"
        if not self.guest_additions_interface:
            self.guest_additions_interface = "ide"
        if not self.vm_name:
            self.vm_name = f"kiln-{context.build_name}-{context.timestamp}"
        self.checksum = self.checksum.lower()
        self.checksum_type = self.checksum_type.lower()
        self.guest_additions_sha256 = self.guest_additions_sha256.lower()

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        errs: list[KilnError] = []
        errs += rules.required(self.source_path, "source_path", "source_path is required")
        if self.source_path:
            errs += rules.file_exists(
                self.source_path,
                "source_path",
                "Source file needs to exist at time of config validation",
            )
        errs += rules.one_of(
            self.guest_additions_mode, "guest_additions_mode", GUEST_ADDITIONS_MODES
        )
        errs += rules.one_of(
            self.guest_additions_interface,
            "guest_additions_interface",
            GUEST_ADDITIONS_INTERFACES,
        )
        if self.checksum_type:
            errs += rules.one_of(self.checksum_type, "checksum_type", CHECKSUM_TYPES)
            errs += rules.required_when(
                self.checksum_type != "none",
                self.checksum,
                "checksum",
                "checksum must be specified when checksum_type is set",
            )
        return errs


@dataclass
class VirtualBoxOVFBuilderConfig(BuilderConfig):
    builder_type = "virtualbox-ovf"
    render_exclude = frozenset(
        {"boot_command", "guest_additions_path", "guest_additions_url"}
    )

    export: VBoxExportConfig = field(default_factory=VBoxExportConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    shutdown: ShutdownConfig = field(default_factory=ShutdownConfig)
    communicator: CommunicatorConfig = field(default_factory=CommunicatorConfig)
    vboxmanage: VBoxManageConfig = field(default_factory=VBoxManageConfig)
    ovf: VirtualBoxOVFConfig = field(default_factory=VirtualBoxOVFConfig)

    def warnings(self) -> list[str]:
        if not self.shutdown.shutdown_command:
            return [SHUTDOWN_WARNING]
        return []
