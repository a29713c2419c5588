"""The ``alicloud-ecs`` builder: a custom image on Alibaba Cloud ECS."""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import TYPE_CHECKING, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from kiln import rules
from kiln.builders.base import BuilderConfig
from kiln.common.communicator import CommunicatorConfig
from kiln.config.schema import Section
from kiln.config.utils import env_fallback
from kiln.errors import ValidationError

if TYPE_CHECKING:
    from kiln.errors import KilnError
    from kiln.interpolate import InterpolationContext

_WHITESPACE = re.compile(r"\s+")


class AlicloudAccessConfig(Section):
    label: ClassVar[str] = "access"

    access_key: str = ""
    secret_key: str = ""
    region: str = ""
    security_token: str = ""

    def apply_defaults(self, context: InterpolationContext) -> None:  # noqa: ARG002
        self.access_key = env_fallback(self.access_key, ["ALICLOUD_ACCESS_KEY"])
        self.secret_key = env_fallback(self.secret_key, ["ALICLOUD_SECRET_KEY"])
        self.region = env_fallback(self.region, ["ALICLOUD_REGION"])

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        return [
            *rules.required(self.access_key, "access_key", "access_key must be specified"),
            *rules.required(self.secret_key, "secret_key", "secret_key must be specified"),
            *rules.required(self.region, "region", "region must be specified"),
        ]


class AlicloudDiskDevice(BaseModel):
    model_config = ConfigDict(extra="forbid")

    disk_name: str = ""
    disk_category: str = ""
    disk_size: int = 0
    disk_snapshot_id: str = ""
    disk_description: str = ""
    disk_delete_with_instance: bool = False
    disk_device: str = ""
    disk_encrypted: bool | None = None


class AlicloudImageConfig(Section):
    """Naming, sharing and copying of the produced image."""

    label: ClassVar[str] = "image"

    image_name: str = ""
    image_version: str = ""
    image_description: str = ""
    image_share_account: list[str] = Field(default_factory=list)
    image_unshare_account: list[str] = Field(default_factory=list)
    image_copy_regions: list[str] = Field(default_factory=list)
    image_copy_names: list[str] = Field(default_factory=list)
    image_encrypted: bool | None = None
    image_force_delete: bool = False
    image_force_delete_snapshots: bool = False
    image_force_delete_instances: bool = False
    image_ignore_data_disks: bool = False
    skip_region_validation: bool = False
    tags: dict[str, str] = Field(default_factory=dict)
    system_disk_mapping: AlicloudDiskDevice = Field(default_factory=AlicloudDiskDevice)
    image_disk_mappings: list[AlicloudDiskDevice] = Field(default_factory=list)

    def apply_defaults(self, context: InterpolationContext) -> None:  # noqa: ARG002
        self.image_copy_regions = rules.unique(self.image_copy_regions)

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        errs: list[KilnError] = []
        name = self.image_name
        if not name:
            errs.append(ValidationError("image_name must be specified", field="image_name"))
        elif not 2 <= len(name) <= 128:
            errs.append(
                ValidationError(
                    "image_name must less than 128 letters and more than 1 letters",
                    field="image_name",
                )
            )
        elif name.startswith(("http://", "https://")):
            errs.append(
                ValidationError(
                    "image_name can't start with 'http://' or 'https://'",
                    field="image_name",
                )
            )
        if _WHITESPACE.search(name):
            errs.append(
                ValidationError("image_name can't include spaces", field="image_name")
            )
        return errs


class AlicloudRunConfig(Section):
    label: ClassVar[str] = "run"
    raw_fields: ClassVar[frozenset[str]] = frozenset({"user_data"})

    instance_type: str = ""
    source_image: str = ""
    zone_id: str = ""
    io_optimized: bool = False
    vpc_id: str = ""
    vswitch_id: str = ""
    security_group_id: str = ""
    instance_name: str = ""
    user_data: str = ""
    user_data_file: str = ""

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        errs: list[KilnError] = []
        errs += rules.required(
            self.source_image, "source_image", "A source_image must be specified"
        )
        errs += rules.required(
            self.instance_type, "instance_type", "An instance_type must be specified"
        )
        errs += rules.mutually_exclusive(
            ("user_data", self.user_data), ("user_data_file", self.user_data_file)
        )
        if not self.user_data:
            errs += rules.file_exists(self.user_data_file, "user_data_file")
        return errs


@dataclass
class AlicloudECSConfig(BuilderConfig):
    builder_type = "alicloud-ecs"

    access: AlicloudAccessConfig = field(default_factory=AlicloudAccessConfig)
    image: AlicloudImageConfig = field(default_factory=AlicloudImageConfig)
    run: AlicloudRunConfig = field(default_factory=AlicloudRunConfig)
    communicator: CommunicatorConfig = field(default_factory=CommunicatorConfig)
