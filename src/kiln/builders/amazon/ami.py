"""Settings for the AMI produced by an Amazon build."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, ClassVar

from pydantic import Field

from kiln import rules
from kiln.config.schema import Section
from kiln.errors import ValidationError

if TYPE_CHECKING:
    from kiln.errors import KilnError
    from kiln.interpolate import InterpolationContext

_AMI_NAME = re.compile(r"^[a-zA-Z0-9()\[\] ./\-'@_]+$")


class AMIConfig(Section):
    label: ClassVar[str] = "ami"
    union_fields: ClassVar[frozenset[str]] = frozenset({"tags", "snapshot_tags"})

    ami_name: str = ""
    ami_description: str = ""
    ami_virtualization_type: str = ""
    ami_users: list[str] = Field(default_factory=list)
    ami_groups: list[str] = Field(default_factory=list)
    ami_product_codes: list[str] = Field(default_factory=list)
    ami_regions: list[str] = Field(default_factory=list)
    tags: dict[str, str] = Field(default_factory=dict)
    ena_support: bool | None = None
    sriov_support: bool = False
    force_deregister: bool = False
    force_delete_snapshot: bool = False
    encrypt_boot: bool | None = None
    kms_key_id: str = ""
    region_kms_key_ids: dict[str, str] = Field(default_factory=dict)
    snapshot_tags: dict[str, str] = Field(default_factory=dict)
    snapshot_users: list[str] = Field(default_factory=list)
    snapshot_groups: list[str] = Field(default_factory=list)

    def apply_defaults(self, context: InterpolationContext) -> None:  # noqa: ARG002
        self.ami_regions = rules.unique(self.ami_regions)

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        errs: list[KilnError] = []
        if not self.ami_name:
            errs += rules.required(self.ami_name, "ami_name", "ami_name must be specified")
        else:
            errs += rules.length_between(self.ami_name, "ami_name", 3, 128)
            if not _AMI_NAME.match(self.ami_name):
                errs.append(
                    ValidationError(
                        "ami_name should only contain alphanumeric characters, "
                        "parentheses (()), square brackets ([]), spaces ( ), "
                        "periods (.), slashes (/), dashes (-), single quotes ('), "
                        "at-signs (@), or underscores (_)",
                        field="ami_name",
                    )
                )

        if self.kms_key_id and self.encrypt_boot is not True:
            errs.append(
                ValidationError(
                    "kms_key_id requires encrypt_boot to be set to true",
                    field="kms_key_id",
                )
            )
        if self.region_kms_key_ids:
            if self.encrypt_boot is not True:
                errs.append(
                    ValidationError(
                        "region_kms_key_ids requires encrypt_boot to be set to true",
                        field="region_kms_key_ids",
                    )
                )
            for region in self.ami_regions:
                if region not in self.region_kms_key_ids:
                    errs.append(
                        ValidationError(
                            f"Region {region} is in ami_regions but not in "
                            "region_kms_key_ids",
                            field="region_kms_key_ids",
                        )
                    )
        return errs
