"""AWS credentials and endpoint selection."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from kiln import rules
from kiln.config.schema import Section
from kiln.config.utils import env_fallback, field_spec_hint
from kiln.errors import ValidationError

if TYPE_CHECKING:
    from kiln.errors import KilnError
    from kiln.interpolate import InterpolationContext


class AccessConfig(Section):
    """Credentials, region and endpoint overrides.

    Empty credential fields fall back to the standard ``AWS_*`` environment
    variables at resolution time; explicit values always win.
    """

    label: ClassVar[str] = "access"

    access_key: str = ""
    secret_key: str = ""
    token: str = ""
    region: str = ""
    profile: str = ""
    custom_endpoint_ec2: str = ""
    mfa_code: str = ""
    skip_metadata_api_check: bool = False

    def apply_defaults(self, context: InterpolationContext) -> None:  # noqa: ARG002
        self.access_key = env_fallback(self.access_key, ["AWS_ACCESS_KEY_ID"])
        self.secret_key = env_fallback(self.secret_key, ["AWS_SECRET_ACCESS_KEY"])
        self.token = env_fallback(self.token, ["AWS_SESSION_TOKEN"])
        self.region = env_fallback(self.region, ["AWS_REGION", "AWS_DEFAULT_REGION"])
        self.profile = env_fallback(self.profile, ["AWS_PROFILE"])

    def validate_rules(self, context: InterpolationContext) -> list[KilnError]:  # noqa: ARG002
        errs: list[KilnError] = []
        if bool(self.access_key) != bool(self.secret_key):
            errs.append(
                ValidationError(
                    "`access_key` and `secret_key` must both be either set or not set.",
                    field="access_key" if not self.access_key else "secret_key",
                )
            )
        if not rules.is_set(self.region):
            errs.append(
                ValidationError(
                    "a region must be specified",
                    field="region",
                    hint=field_spec_hint("region") + " AWS_REGION is also honoured.",
                )
            )
        return errs
