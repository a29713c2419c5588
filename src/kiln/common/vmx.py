"""Arbitrary ``.vmx`` entries applied before and after a VMware build."""

from __future__ import annotations

from typing import ClassVar

from pydantic import Field

from kiln.config.schema import Section


class VMXConfig(Section):
    label: ClassVar[str] = "vmx"

    vmx_data: dict[str, str] = Field(default_factory=dict)
    vmx_data_post: dict[str, str] = Field(default_factory=dict)
    vmx_remove_ethernet_interfaces: bool = False
    display_name: str = ""
