"""The ``triton`` builder: an image captured from a Triton machine."""

from __future__ import annotations

from dataclasses import dataclass, field
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

DEFAULT_TRITON_URL = "https://us-east-1.api.joyent.com"


class TritonAccessConfig(Section):
    label: ClassVar[str] = "access"

    triton_url: str = ""
    triton_account: str = ""
    triton_user: str = ""
    triton_key_id: str = ""
    triton_key_material: str = ""
    insecure_skip_tls_verify: bool = False

    def apply_defaults(self, context: InterpolationContext) -> None:  # noqa: ARG002
        self.triton_url = env_fallback(self.triton_url, ["SDC_URL"]) or DEFAULT_TRITON_URL
        self.triton_account = env_fallback(self.triton_account, ["SDC_ACCOUNT"])
        self.triton_key_id = env_fallback(self.triton_key_id, ["SDC_KEY_ID"])

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        return [
            *rules.required(
                self.triton_account,
                "triton_account",
                "triton_account is required to use the triton builder",
            ),
            *rules.required(
                self.triton_key_id,
                "triton_key_id",
                "triton_key_id is required to use the triton builder",
            ),
        ]


class MachineImageFilter(BaseModel):
    model_config = ConfigDict(extra="forbid")

    most_recent: bool = False
    name: str = ""
    os: str = ""
    version: str = ""
    public: bool = False
    state: str = ""
    owner: str = ""
    type: str = ""


class SourceMachineConfig(Section):
    """The machine the image is captured from."""

    label: ClassVar[str] = "source_machine"

    source_machine_name: str = ""
    source_machine_package: str = ""
    source_machine_image: str = ""
    source_machine_networks: list[str] = Field(default_factory=list)
    source_machine_metadata: dict[str, str] = Field(default_factory=dict)
    source_machine_tags: dict[str, str] = Field(default_factory=dict)
    source_machine_firewall_enabled: bool = False
    source_machine_image_filter: MachineImageFilter = Field(
        default_factory=MachineImageFilter
    )

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        errs: list[KilnError] = []
        errs += rules.required(
            self.source_machine_package,
            "source_machine_package",
            "A source_machine_package must be specified",
        )
        if self.source_machine_image and self.source_machine_image_filter.name:
            errs.append(
                ValidationError(
                    "You cannot specify a Machine Image and also Machine Name filter",
                    field="source_machine_image",
                )
            )
        return errs


class TargetImageConfig(Section):
    """Metadata for the image that is created."""

    label: ClassVar[str] = "target_image"

    image_name: str = ""
    image_version: str = ""
    image_description: str = ""
    image_homepage: str = ""
    image_eula_url: str = ""
    image_acls: list[str] = Field(default_factory=list)
    image_tags: dict[str, str] = Field(default_factory=dict)

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        return [
            *rules.required(self.image_name, "image_name", "An image_name must be specified"),
            *rules.required(
                self.image_version, "image_version", "An image_version must be specified"
            ),
        ]


@dataclass
class TritonBuilderConfig(BuilderConfig):
    builder_type = "triton"

    access: TritonAccessConfig = field(default_factory=TritonAccessConfig)
    source_machine: SourceMachineConfig = field(default_factory=SourceMachineConfig)
    target_image: TargetImageConfig = field(default_factory=TargetImageConfig)
    communicator: CommunicatorConfig = field(default_factory=CommunicatorConfig)
