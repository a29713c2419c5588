"""Amazon EC2 builders and the sections they share."""

from .access import AccessConfig
from .ami import AMIConfig
from .block_device import (
    BlockDevice,
    BlockDeviceMapping,
    BlockDevices,
    DeviceKind,
    EbsBlockDevice,
    build_block_devices,
)
from .ebs import AmazonEBSConfig, EBSConfig
from .run import AmiFilterOptions, RunConfig

__all__ = [
    "AMIConfig",
    "AccessConfig",
    "AmazonEBSConfig",
    "AmiFilterOptions",
    "BlockDevice",
    "BlockDeviceMapping",
    "BlockDevices",
    "DeviceKind",
    "EBSConfig",
    "EbsBlockDevice",
    "RunConfig",
    "build_block_devices",
]
