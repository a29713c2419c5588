"""Block device specifications and the EC2 mappings derived from them.

A :class:`BlockDevice` is what users write; :func:`build_block_devices`
turns an already validated list of them into :class:`BlockDeviceMapping`
values, each of exactly one :class:`DeviceKind`:

- ``SUPPRESSED``: the named device is left out of the image entirely;
- ``EPHEMERAL``: backed by an instance-store volume (``ephemeral0`` ...);
- ``PERSISTENT``: backed by an EBS volume.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from kiln.config.schema import Section
from kiln.errors import DerivationError, KilnError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from kiln.interpolate import InterpolationContext

EPHEMERAL_PREFIX = "ephemeral"
# The only volume type whose provisioned IOPS may be requested.
IOPS_VOLUME_TYPE = "io1"


class BlockDevice(BaseModel):
    """One user-declared device."""

    model_config = ConfigDict(extra="forbid")

    delete_on_termination: bool = False
    device_name: str = ""
    encrypted: bool | None = None
    iops: int = 0
    no_device: bool = False
    snapshot_id: str = ""
    virtual_name: str = ""
    volume_type: str = ""
    volume_size: int = 0
    kms_key_id: str = ""
    omit_from_artifact: bool = False

    def validation_errors(self) -> list[ValidationError]:
        errs: list[ValidationError] = []
        if not self.device_name:
            errs.append(
                ValidationError(
                    "The `device_name` must be specified for every device in the "
                    "block device mapping.",
                    field="device_name",
                )
            )
        if self.kms_key_id and self.encrypted is False:
            errs.append(
                ValidationError(
                    f"The device {self.device_name}, must also have `encrypted: true` "
                    "when setting a kms_key_id.",
                    field="kms_key_id",
                )
            )
        if self.virtual_name and not self.virtual_name.startswith(EPHEMERAL_PREFIX):
            errs.append(
                ValidationError(
                    f"The device {self.device_name} has virtual_name "
                    f"{self.virtual_name!r}; virtual names must start with "
                    f"{EPHEMERAL_PREFIX!r}.",
                    field="virtual_name",
                )
            )
        return errs


class DeviceKind(str, Enum):
    SUPPRESSED = "suppressed"
    EPHEMERAL = "ephemeral"
    PERSISTENT = "persistent"


@dataclass(frozen=True)
class EbsBlockDevice:
    delete_on_termination: bool
    volume_type: str | None = None
    volume_size: int | None = None
    iops: int | None = None
    snapshot_id: str | None = None
    encrypted: bool | None = None
    kms_key_id: str | None = None

    def to_request(self) -> dict[str, Any]:
        request: dict[str, Any] = {"DeleteOnTermination": self.delete_on_termination}
        optional = {
            "VolumeType": self.volume_type,
            "VolumeSize": self.volume_size,
            "Iops": self.iops,
            "SnapshotId": self.snapshot_id,
            "Encrypted": self.encrypted,
            "KmsKeyId": self.kms_key_id,
        }
        request.update({k: v for k, v in optional.items() if v is not None})
        return request


@dataclass(frozen=True)
class BlockDeviceMapping:
    device_name: str
    kind: DeviceKind
    virtual_name: str | None = None
    ebs: EbsBlockDevice | None = None

    def to_request(self) -> dict[str, Any]:
        """Render in the shape the EC2 API expects for ``BlockDeviceMappings``."""
        request: dict[str, Any] = {"DeviceName": self.device_name}
        if self.kind is DeviceKind.SUPPRESSED:
            request["NoDevice"] = ""
        elif self.kind is DeviceKind.EPHEMERAL:
            request["VirtualName"] = self.virtual_name
        elif self.ebs is not None:
            request["Ebs"] = self.ebs.to_request()
        return request


def _persistent(device: BlockDevice) -> EbsBlockDevice:
    return EbsBlockDevice(
        delete_on_termination=device.delete_on_termination,
        volume_type=device.volume_type or None,
        volume_size=device.volume_size if device.volume_size > 0 else None,
        iops=device.iops if device.volume_type == IOPS_VOLUME_TYPE else None,
        snapshot_id=device.snapshot_id or None,
        encrypted=device.encrypted,
        kms_key_id=device.kms_key_id or None,
    )


def build_block_devices(devices: Iterable[BlockDevice]) -> list[BlockDeviceMapping]:
    """Translate validated device specifications into EC2 mappings, in order.

    Raises:
        DerivationError: If a device has no name; validation should already
            have rejected it.
    """
    mappings: list[BlockDeviceMapping] = []
    for device in devices:
        if not device.device_name:
            raise DerivationError(
                "cannot build a block device mapping without a device_name"
            )
        if device.no_device:
            mapping = BlockDeviceMapping(device.device_name, DeviceKind.SUPPRESSED)
        elif device.virtual_name.startswith(EPHEMERAL_PREFIX):
            mapping = BlockDeviceMapping(
                device.device_name,
                DeviceKind.EPHEMERAL,
                virtual_name=device.virtual_name,
            )
        else:
            mapping = BlockDeviceMapping(
                device.device_name, DeviceKind.PERSISTENT, ebs=_persistent(device)
            )
        mappings.append(mapping)
    return mappings


class BlockDevices(Section):
    """Devices baked into the AMI and devices attached only at launch."""

    label: ClassVar[str] = "block_devices"

    ami_block_device_mappings: list[BlockDevice] = Field(default_factory=list)
    launch_block_device_mappings: list[BlockDevice] = Field(default_factory=list)

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        errs: list[KilnError] = []
        for device in self.ami_block_device_mappings:
            errs += [_prefixed("AMIMapping", e) for e in device.validation_errors()]
        for device in self.launch_block_device_mappings:
            errs += [_prefixed("LaunchMapping", e) for e in device.validation_errors()]
        return errs

    def build_ami_devices(self) -> list[BlockDeviceMapping]:
        return build_block_devices(self.ami_block_device_mappings)

    def build_launch_devices(self) -> list[BlockDeviceMapping]:
        return build_block_devices(self.launch_block_device_mappings)

    def launch_omissions(self) -> dict[str, bool]:
        """Map launch device names to whether they are left out of the AMI."""
        return {
            d.device_name: d.omit_from_artifact for d in self.launch_block_device_mappings
        }


def _prefixed(role: str, error: ValidationError) -> ValidationError:
    return ValidationError(f"{role}: {error.message}", field=error.field, hint=error.hint)
