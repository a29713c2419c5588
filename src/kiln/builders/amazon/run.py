"""Settings for the temporary instance an Amazon build runs on."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, ClassVar

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from kiln import rules
from kiln.config.schema import Section
from kiln.errors import ValidationError

if TYPE_CHECKING:
    from kiln.errors import KilnError
    from kiln.interpolate import InterpolationContext

SHUTDOWN_BEHAVIORS = ("stop", "terminate")
DEFAULT_CIDRS = ("0.0.0.0/0",)
DEFAULT_WINDOWS_PASSWORD_TIMEOUT = "20m"


class _Filter(BaseModel):
    model_config = ConfigDict(extra="forbid")

    filters: dict[str, str] = Field(default_factory=dict)

    @property
    def empty(self) -> bool:
        return not self.filters


class AmiFilterOptions(_Filter):
    owners: list[str] = Field(default_factory=list)
    most_recent: bool = False

    @property
    def empty(self) -> bool:
        return not self.owners and not self.filters


class SubnetFilterOptions(_Filter):
    most_free: bool = False
    random: bool = False


class VpcFilterOptions(_Filter):
    pass


class SecurityGroupFilterOptions(_Filter):
    pass


class RunConfig(Section):
    """Instance type, networking, spot pricing and user data."""

    label: ClassVar[str] = "run"
    raw_fields: ClassVar[frozenset[str]] = frozenset({"user_data"})

    associate_public_ip_address: bool = False
    availability_zone: str = ""
    block_duration_minutes: int = 0
    disable_stop_instance: bool = False
    ebs_optimized: bool = False
    enable_t2_unlimited: bool = False
    iam_instance_profile: str = ""
    shutdown_behavior: str = ""
    instance_type: str = ""
    security_group_filter: SecurityGroupFilterOptions = Field(
        default_factory=SecurityGroupFilterOptions
    )
    run_tags: dict[str, str] = Field(default_factory=dict)
    security_group_id: str = ""
    security_group_ids: list[str] = Field(default_factory=list)
    source_ami: str = ""
    source_ami_filter: AmiFilterOptions = Field(default_factory=AmiFilterOptions)
    spot_instance_types: list[str] = Field(default_factory=list)
    spot_price: str = ""
    spot_price_auto_product: str = ""
    spot_tags: dict[str, str] = Field(default_factory=dict)
    subnet_filter: SubnetFilterOptions = Field(default_factory=SubnetFilterOptions)
    subnet_id: str = ""
    temporary_key_pair_name: str = ""
    temporary_security_group_source_cidrs: list[str] = Field(default_factory=list)
    user_data: str = ""
    user_data_file: str = ""
    vpc_filter: VpcFilterOptions = Field(default_factory=VpcFilterOptions)
    vpc_id: str = ""
    raw_windows_password_timeout: str = Field(
        default="", alias="windows_password_timeout"
    )

    _windows_password_timeout: timedelta | None = PrivateAttr(default=None)

    @property
    def windows_password_timeout(self) -> timedelta | None:
        return self._windows_password_timeout

    @property
    def is_spot_instance(self) -> bool:
        return self.spot_price not in {"", "0"}

    def apply_defaults(self, context: InterpolationContext) -> None:  # noqa: ARG002
        if not self.raw_windows_password_timeout:
            self.raw_windows_password_timeout = DEFAULT_WINDOWS_PASSWORD_TIMEOUT
        if not self.shutdown_behavior:
            self.shutdown_behavior = "stop"
        if not self.temporary_security_group_source_cidrs:
            self.temporary_security_group_source_cidrs = list(DEFAULT_CIDRS)
        # A lone security_group_id is folded into the list form.
        if self.security_group_id and not self.security_group_ids:
            self.security_group_ids = [self.security_group_id]
            self.security_group_id = ""

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        errs: list[KilnError] = []

        self._windows_password_timeout, parse_errs = rules.parse_duration_field(
            self.raw_windows_password_timeout, "windows_password_timeout"
        )
        errs += parse_errs

        errs += self._source_rules()
        errs += self._instance_type_rules()
        errs += rules.multiple_of(
            self.block_duration_minutes, "block_duration_minutes", 60
        )
        errs += self._spot_rules()

        errs += rules.mutually_exclusive(
            ("user_data", self.user_data), ("user_data_file", self.user_data_file)
        )
        if not self.user_data:
            errs += rules.file_exists(self.user_data_file, "user_data_file")

        errs += rules.mutually_exclusive(
            ("security_group_id", self.security_group_id),
            ("security_group_ids", self.security_group_ids),
        )
        errs += rules.parse_cidrs(
            self.temporary_security_group_source_cidrs,
            "temporary_security_group_source_cidrs",
        )
        if self.shutdown_behavior not in SHUTDOWN_BEHAVIORS:
            errs.append(
                ValidationError(
                    "shutdown_behavior only accepts 'stop' or 'terminate' values "
                    f"(got {self.shutdown_behavior!r})",
                    field="shutdown_behavior",
                )
            )
        errs += self._t2_unlimited_rules()
        return errs

    def _source_rules(self) -> list[KilnError]:
        errs: list[KilnError] = []
        filter_set = not self.source_ami_filter.empty
        if not self.source_ami and not filter_set:
            errs.append(
                ValidationError(
                    "A source_ami or source_ami_filter must be specified",
                    field="source_ami",
                )
            )
        elif self.source_ami and filter_set:
            errs.append(
                ValidationError(
                    "source_ami and source_ami_filter are mutually exclusive; "
                    "only one can be specified",
                    field="source_ami",
                )
            )
        elif filter_set and not self.source_ami_filter.owners:
            errs.append(
                ValidationError(
                    "For security reasons, your source AMI filter must declare an owner.",
                    field="source_ami_filter",
                )
            )
        return errs

    def _instance_type_rules(self) -> list[KilnError]:
        if not self.instance_type and not self.spot_instance_types:
            return [
                ValidationError(
                    "either instance_type or spot_instance_types must be specified",
                    field="instance_type",
                )
            ]
        if self.instance_type and self.spot_instance_types:
            return [
                ValidationError(
                    "either instance_type or spot_instance_types must be "
                    "specified, not both",
                    field="instance_type",
                )
            ]
        return []

    def _spot_rules(self) -> list[KilnError]:
        errs: list[KilnError] = []
        if self.spot_price == "auto" and not self.spot_price_auto_product:
            errs.append(
                ValidationError(
                    "spot_price_auto_product must be specified when spot_price is auto",
                    field="spot_price_auto_product",
                )
            )
        if self.spot_price_auto_product and self.spot_price != "auto":
            errs.append(
                ValidationError(
                    "spot_price should be set to auto when spot_price_auto_product "
                    "is specified",
                    field="spot_price",
                )
            )
        if self.spot_tags and not self.is_spot_instance:
            errs.append(
                ValidationError(
                    "spot_tags should not be set when not requesting a spot instance",
                    field="spot_tags",
                )
            )
        return errs

    def _t2_unlimited_rules(self) -> list[KilnError]:
        if not self.enable_t2_unlimited:
            return []
        errs: list[KilnError] = []
        if self.spot_price:
            errs.append(
                ValidationError(
                    "T2 Unlimited cannot be used in conjunction with Spot Instances",
                    field="enable_t2_unlimited",
                )
            )
        family, dot, _ = self.instance_type.partition(".")
        if not dot:
            errs.append(
                ValidationError(
                    f"Error determining main Instance Type from: {self.instance_type!r}",
                    field="instance_type",
                )
            )
        elif family != "t2":
            errs.append(
                ValidationError(
                    "T2 Unlimited enabled with a non-T2 Instance Type: "
                    f"{self.instance_type}",
                    field="instance_type",
                )
            )
        return errs
