"""The ``amazon-ebs`` builder: an AMI backed by EBS snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from pydantic import Field

from kiln.builders.base import BuilderConfig
from kiln.common.communicator import CommunicatorConfig
from kiln.config.schema import Section
from kiln.errors import ValidationError

from .access import AccessConfig
from .ami import AMIConfig
from .block_device import BlockDevices
from .run import RunConfig

if TYPE_CHECKING:
    from kiln.errors import KilnError
    from kiln.interpolate import InterpolationContext

SSH_INTERFACES = ("public_ip", "private_ip", "public_dns", "private_dns")


class EBSConfig(Section):
    label: ClassVar[str] = "ebs"

    run_volume_tags: dict[str, str] = Field(default_factory=dict)


@dataclass
class AmazonEBSConfig(BuilderConfig):
    builder_type = "amazon-ebs"
    render_exclude = frozenset(
        {"ami_description", "run_tags", "run_volume_tags", "snapshot_tags", "spot_tags", "tags"}
    )

    access: AccessConfig = field(default_factory=AccessConfig)
    ami: AMIConfig = field(default_factory=AMIConfig)
    block_devices: BlockDevices = field(default_factory=BlockDevices)
    run: RunConfig = field(default_factory=RunConfig)
    communicator: CommunicatorConfig = field(default_factory=CommunicatorConfig)
    ebs: EBSConfig = field(default_factory=EBSConfig)

    def apply_defaults(self, context: InterpolationContext) -> None:
        comm = self.communicator
        if not (
            comm.ssh_keypair_name
            or comm.ssh_temporary_key_pair_name
            or comm.ssh_private_key_file
            or comm.ssh_password
        ):
            comm.ssh_temporary_key_pair_name = f"kiln_{context.build_uuid}"

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        errs: list[KilnError] = []
        comm = self.communicator
        if comm.ssh_interface and comm.ssh_interface not in SSH_INTERFACES:
            errs.append(
                ValidationError(
                    f"Unknown interface type: {comm.ssh_interface}",
                    field="ssh_interface",
                )
            )
        if comm.ssh_keypair_name:
            if comm.uses_winrm and not comm.winrm_password and not comm.ssh_private_key_file:
                errs.append(
                    ValidationError(
                        "ssh_private_key_file must be provided to retrieve the winrm "
                        "password when using ssh_keypair_name.",
                        field="ssh_private_key_file",
                    )
                )
            elif not comm.ssh_private_key_file and not comm.ssh_agent_auth:
                errs.append(
                    ValidationError(
                        "ssh_private_key_file must be provided or ssh_agent_auth "
                        "enabled when ssh_keypair_name is specified.",
                        field="ssh_private_key_file",
                    )
                )
        return errs
