"""Connection settings consumed by the communicator layer.

Only the shape and the self-contained rules live here; rules that depend on a
backend (how a keypair is created, which interface is reachable) belong to the
backend's own ``validate_rules``.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, ClassVar

from pydantic import Field, PrivateAttr

from kiln import rules
from kiln.config.schema import Section

if TYPE_CHECKING:
    from kiln.errors import KilnError
    from kiln.interpolate import InterpolationContext

COMMUNICATOR_TYPES = ("ssh", "winrm", "none")


class CommunicatorConfig(Section):
    label: ClassVar[str] = "communicator"

    communicator: str = ""

    ssh_host: str = ""
    ssh_port: int = 0
    ssh_username: str = ""
    ssh_password: str = ""
    ssh_private_key_file: str = ""
    ssh_keypair_name: str = ""
    ssh_temporary_key_pair_name: str = ""
    ssh_agent_auth: bool = False
    ssh_interface: str = ""
    ssh_pty: bool = False
    ssh_handshake_attempts: int = 0
    raw_ssh_timeout: str = Field(default="", alias="ssh_timeout")

    winrm_host: str = ""
    winrm_port: int = 0
    winrm_username: str = ""
    winrm_password: str = ""
    winrm_use_ssl: bool = False
    winrm_insecure: bool = False
    raw_winrm_timeout: str = Field(default="", alias="winrm_timeout")

    _ssh_timeout: timedelta | None = PrivateAttr(default=None)
    _winrm_timeout: timedelta | None = PrivateAttr(default=None)

    @property
    def ssh_timeout(self) -> timedelta | None:
        return self._ssh_timeout

    @property
    def winrm_timeout(self) -> timedelta | None:
        return self._winrm_timeout

    @property
    def uses_ssh(self) -> bool:
        return self.communicator == "ssh"

    @property
    def uses_winrm(self) -> bool:
        return self.communicator == "winrm"

    def apply_defaults(self, context: InterpolationContext) -> None:  # noqa: ARG002
        if not self.communicator:
            self.communicator = "ssh"
        if self.ssh_port == 0:
            self.ssh_port = 22
        if self.ssh_handshake_attempts == 0:
            self.ssh_handshake_attempts = 10
        if not self.raw_ssh_timeout:
            self.raw_ssh_timeout = "5m"
        if self.winrm_port == 0:
            self.winrm_port = 5986 if self.winrm_use_ssl else 5985
        if not self.raw_winrm_timeout:
            self.raw_winrm_timeout = "30m"

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        errs: list[KilnError] = []
        errs += rules.one_of(self.communicator, "communicator", COMMUNICATOR_TYPES)

        self._ssh_timeout, parse_errs = rules.parse_duration_field(
            self.raw_ssh_timeout, "ssh_timeout"
        )
        errs += parse_errs
        self._winrm_timeout, parse_errs = rules.parse_duration_field(
            self.raw_winrm_timeout, "winrm_timeout"
        )
        errs += parse_errs

        if self.uses_ssh:
            errs += rules.required(
                self.ssh_username, "ssh_username", "an ssh_username must be specified"
            )
            errs += rules.file_exists(
                self.ssh_private_key_file,
                "ssh_private_key_file",
                "ssh_private_key_file is invalid",
            )
        elif self.uses_winrm:
            errs += rules.required(
                self.winrm_username,
                "winrm_username",
                "winrm_username must be specified",
            )
        return errs
