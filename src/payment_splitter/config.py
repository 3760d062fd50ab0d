"""Construction-time configuration for a PaymentSplitter."""

import os

from pydantic import BaseModel, Field, ValidationError, field_validator

from ._exceptions import ConfigurationError
from .constants import DEFAULT_FEE_PERCENT, ENV_ADMIN, ENV_FEE_PERCENT, MAX_FEE_PERCENT
from .helpers import to_identifier


class SplitterConfig(BaseModel):
    """
    Immutable splitter settings.

    admin is the only identity allowed to withdraw fees. fee_percent is a
    percentage scaled by 10**18 (10% is 10 * 10**18).

    Example:
        SplitterConfig(admin="0xAdmin...")                      # 10% fee
        SplitterConfig(admin="0xAdmin...", fee_percent=10**17)  # 0.1% fee
    """

    admin: str
    fee_percent: int = Field(default=DEFAULT_FEE_PERCENT, ge=0, le=MAX_FEE_PERCENT)

    model_config = {"frozen": True}

    @field_validator("admin")
    @classmethod
    def normalize_admin(cls, value: str) -> str:
        return to_identifier(value)

    @classmethod
    def from_env(cls, admin: str | None = None, fee_percent: int | None = None) -> "SplitterConfig":
        """
        Build a config, falling back to environment variables.

        Args:
            admin: Admin address. Falls back to SPLITTER_ADMIN env var.
            fee_percent: Fee scaled by 10**18. Falls back to SPLITTER_FEE_PERCENT,
                then to the 10% default.

        Raises:
            ConfigurationError: If admin is missing or a value is invalid
        """
        resolved_admin = admin or os.environ.get(ENV_ADMIN)
        if not resolved_admin:
            raise ConfigurationError(f"admin required (or set {ENV_ADMIN})")

        resolved_fee = fee_percent
        if resolved_fee is None:
            raw = os.environ.get(ENV_FEE_PERCENT)
            if raw:
                try:
                    resolved_fee = int(raw)
                except ValueError as e:
                    raise ConfigurationError(f"{ENV_FEE_PERCENT} must be an integer, got {raw!r}") from e
            else:
                resolved_fee = DEFAULT_FEE_PERCENT

        try:
            return cls(admin=resolved_admin, fee_percent=resolved_fee)
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e
