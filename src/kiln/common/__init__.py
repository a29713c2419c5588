"""Sub-configurations embedded by more than one builder."""

from .build import BuildConfig
from .communicator import CommunicatorConfig
from .export import ExportConfig
from .output import OutputConfig
from .shutdown import ShutdownConfig
from .vmx import VMXConfig

__all__ = [
    "BuildConfig",
    "CommunicatorConfig",
    "ExportConfig",
    "OutputConfig",
    "ShutdownConfig",
    "VMXConfig",
]
