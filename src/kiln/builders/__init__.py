"""Builder backends and the registry that names them."""

from __future__ import annotations

from kiln.errors import ConfigurationError

from .alicloud import AlicloudECSConfig
from .amazon import AmazonEBSConfig
from .base import BuilderConfig
from .cloudstack import CloudStackBuilderConfig
from .lxc import LXCBuilderConfig
from .lxd import LXDBuilderConfig
from .triton import TritonBuilderConfig
from .virtualbox import VirtualBoxOVFBuilderConfig
from .vmware import VMwareVMXBuilderConfig

BUILDERS: dict[str, type[BuilderConfig]] = {
    cls.builder_type: cls
    for cls in (
        AmazonEBSConfig,
        AlicloudECSConfig,
        CloudStackBuilderConfig,
        LXCBuilderConfig,
        LXDBuilderConfig,
        TritonBuilderConfig,
        VirtualBoxOVFBuilderConfig,
        VMwareVMXBuilderConfig,
    )
}


def get_builder(name: str) -> type[BuilderConfig]:
    """Return the configuration class registered under *name*.

    Raises:
        ConfigurationError: If no builder is registered under *name*.
    """
    try:
        return BUILDERS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown builder type {name!r}",
            hint=f"Registered builders: {', '.join(sorted(BUILDERS))}",
        ) from None


__all__ = [
    "BUILDERS",
    "AlicloudECSConfig",
    "AmazonEBSConfig",
    "BuilderConfig",
    "CloudStackBuilderConfig",
    "LXCBuilderConfig",
    "LXDBuilderConfig",
    "TritonBuilderConfig",
    "VMwareVMXBuilderConfig",
    "VirtualBoxOVFBuilderConfig",
    "get_builder",
]
