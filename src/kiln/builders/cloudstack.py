"""The ``cloudstack`` builder: a template on an Apache CloudStack cloud."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, ClassVar

from pydantic import Field, PrivateAttr

from kiln import rules
from kiln.builders.base import BuilderConfig
from kiln.common.communicator import CommunicatorConfig
from kiln.config.schema import Section
from kiln.config.utils import env_fallback
from kiln.errors import InterpolationError, KilnError, ValidationError
from kiln.interpolate import render

if TYPE_CHECKING:
    from kiln.interpolate import InterpolationContext

DEFAULT_ASYNC_TIMEOUT = "30m"
DEFAULT_TEMPLATE_NAME = "kiln-{{ timestamp }}"


class CloudStackConfig(Section):
    """API access, instance placement and the template to register."""

    label: ClassVar[str] = "cloudstack"
    raw_fields: ClassVar[frozenset[str]] = frozenset({"user_data"})

    api_url: str = ""
    api_key: str = ""
    secret_key: str = ""
    raw_async_timeout: str = Field(default="", alias="async_timeout")
    http_get_only: bool = False
    ssl_no_verify: bool = False

    cidr_list: list[str] = Field(default_factory=list)
    create_security_group: bool = False
    disk_offering: str = ""
    disk_size: int = 0
    expunge: bool = False
    hypervisor: str = ""
    instance_name: str = ""
    network: str = ""
    project: str = ""
    public_ip_address: str = ""
    public_port: int = 0
    security_groups: list[str] = Field(default_factory=list)
    service_offering: str = ""
    prevent_firewall_changes: bool = False
    source_iso: str = ""
    source_template: str = ""
    temporary_keypair_name: str = ""
    use_local_ip_address: bool = False
    user_data: str = ""
    user_data_file: str = ""
    zone: str = ""

    template_name: str = ""
    template_display_text: str = ""
    template_os: str = ""
    template_featured: bool = False
    template_public: bool = False
    template_password_enabled: bool = False
    template_requires_hvm: bool = False
    template_scalable: bool = False
    template_tag: str = ""

    _async_timeout: timedelta | None = PrivateAttr(default=None)
    _template_name_errors: list[KilnError] = PrivateAttr(default_factory=list)

    @property
    def async_timeout(self) -> timedelta | None:
        return self._async_timeout

    def apply_defaults(self, context: InterpolationContext) -> None:
        self.api_url = env_fallback(self.api_url, ["CLOUDSTACK_API_URL"])
        self.api_key = env_fallback(self.api_key, ["CLOUDSTACK_API_KEY"])
        self.secret_key = env_fallback(self.secret_key, ["CLOUDSTACK_SECRET_KEY"])
        if not self.raw_async_timeout:
            self.raw_async_timeout = DEFAULT_ASYNC_TIMEOUT
        if not self.cidr_list:
            self.cidr_list = ["0.0.0.0/0"]
        if not self.instance_name:
            self.instance_name = f"kiln-{context.build_uuid}"
        self._template_name_errors = []
        if not self.template_name:
            try:
                self.template_name = render(DEFAULT_TEMPLATE_NAME, context)
            except InterpolationError as e:
                self._template_name_errors.append(
                    ValidationError(
                        f"Unable to parse template name: {e.message}",
                        field="template_name",
                    )
                )
        if not self.template_display_text:
            self.template_display_text = self.template_name

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        errs: list[KilnError] = list(self._template_name_errors)

        self._async_timeout, parse_errs = rules.parse_duration_field(
            self.raw_async_timeout, "async_timeout"
        )
        errs += parse_errs

        errs += rules.required(self.api_url, "api_url")
        errs += rules.required(self.api_key, "api_key")
        errs += rules.required(self.secret_key, "secret_key")
        errs += rules.required(self.network, "network")
        if self.create_security_group and not self.expunge:
            errs.append(
                ValidationError(
                    "auto creating a temporary security group requires expunge",
                    field="create_security_group",
                )
            )
        errs += rules.required(self.service_offering, "service_offering")
        errs += rules.exactly_one(
            ("source_iso", self.source_iso), ("source_template", self.source_template)
        )
        errs += rules.required_when(
            bool(self.source_iso),
            self.disk_offering,
            "disk_offering",
            "a disk_offering must be specified when using source_iso",
        )
        errs += rules.required_when(
            bool(self.source_iso),
            self.hypervisor,
            "hypervisor",
            "a hypervisor must be specified when using source_iso",
        )
        errs += rules.required(self.template_os, "template_os")
        errs += rules.mutually_exclusive(
            ("user_data", self.user_data), ("user_data_file", self.user_data_file)
        )
        errs += rules.file_exists(self.user_data_file, "user_data_file")
        errs += rules.required(self.zone, "zone")
        errs += rules.parse_cidrs(self.cidr_list, "cidr_list")
        return errs


@dataclass
class CloudStackBuilderConfig(BuilderConfig):
    builder_type = "cloudstack"

    communicator: CommunicatorConfig = field(default_factory=CommunicatorConfig)
    cloudstack: CloudStackConfig = field(default_factory=CloudStackConfig)

    def apply_defaults(self, context: InterpolationContext) -> None:
        comm = self.communicator
        if not (
            comm.ssh_keypair_name
            or comm.ssh_temporary_key_pair_name
            or comm.ssh_private_key_file
            or comm.ssh_password
        ):
            comm.ssh_temporary_key_pair_name = f"kiln_{context.build_uuid}"
