"""Type definitions for payment-splitter."""

from pydantic import BaseModel, Field, model_validator

from .constants import UINT256_MAX


class PaymentRequest(BaseModel):
    """
    A single incoming payment to be split.

    attached_value is only meaningful for the native asset, where it must
    equal amount exactly.

    Example:
        PaymentRequest(recipients=["0xAlice...", "0xBob..."], asset=NATIVE_ASSET, amount=10, attached_value=10)
    """

    recipients: list[str]
    asset: str
    amount: int = Field(ge=0, le=UINT256_MAX)
    attached_value: int = Field(default=0, ge=0, le=UINT256_MAX)

    model_config = {"frozen": True}


class DistributionPlan(BaseModel):
    """
    Fee and equal share for a payment, before any funds move.

    The truncation remainder of the equal split is reported as dust:
    distributed + fee + dust == amount, with dust < recipient_count.
    """

    amount: int = Field(ge=0)
    fee: int = Field(ge=0)
    share: int = Field(ge=0)
    recipient_count: int = Field(ge=1)
    dust: int = Field(ge=0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_conservation(self) -> "DistributionPlan":
        if self.share * self.recipient_count + self.fee + self.dust != self.amount:
            raise ValueError("distributed + fee + dust must equal amount")
        if self.dust >= self.recipient_count:
            raise ValueError("dust must be smaller than recipient_count")
        return self

    @property
    def distributed(self) -> int:
        """Total paid out to recipients."""
        return self.share * self.recipient_count


class PaymentReceipt(BaseModel):
    """Result of a committed send_payment call."""

    payer: str
    asset: str
    amount: int
    fee: int
    share: int
    dust: int
    recipients: list[str]

    model_config = {"frozen": True}


class AssetBalance(BaseModel):
    """Snapshot of the fee ledger entry for one asset."""

    asset: str
    fees: int = 0
    dust: int = 0

    model_config = {"frozen": True}

    @property
    def held(self) -> int:
        """Everything custody holds for this asset on the ledger's books."""
        return self.fees + self.dust
