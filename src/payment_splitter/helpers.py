"""Helper functions for payment-splitter."""

from eth_typing import ChecksumAddress
from web3 import Web3

from ._exceptions import AmountMismatchError, InvalidAssetError, InvalidRecipientsError
from .constants import FEE_DENOMINATOR, MIN_RECIPIENTS, NATIVE_ASSET
from .types import DistributionPlan


def to_identifier(value: str) -> ChecksumAddress:
    """
    Normalize an account or asset identifier to a checksummed address.

    Raises:
        ValueError: If value is not a valid address
    """
    if not isinstance(value, str) or not Web3.is_address(value):
        raise ValueError(f"Not a valid address: {value!r}")
    return Web3.to_checksum_address(value)


def to_asset(value: str) -> ChecksumAddress:
    """
    Normalize an asset identifier (NATIVE_ASSET or a token address).

    Raises:
        InvalidAssetError: If value is not a valid address
    """
    try:
        return to_identifier(value)
    except ValueError as e:
        raise InvalidAssetError(value) from e


def is_native_asset(asset: str) -> bool:
    """Check if an asset identifier refers to the native currency."""
    return to_identifier(asset) == NATIVE_ASSET


def calculate_fee(amount: int, fee_percent: int) -> int:
    """
    Compute the platform fee on the total amount.

    fee_percent is a percentage scaled by 10**18, so 10% is 10 * 10**18.
    Integer arithmetic only, truncating toward zero.

    Example:
        >>> calculate_fee(250, 10 * 10**18)
        25
    """
    if amount < 0:
        raise ValueError(f"Amount must be non-negative, got {amount}")
    if not 0 <= fee_percent <= FEE_DENOMINATOR:
        raise ValueError(f"Fee percent out of range: {fee_percent}")
    return amount * fee_percent // FEE_DENOMINATOR


def split_amount(amount: int, recipient_count: int) -> tuple[int, int]:
    """
    Split amount equally, returning (share, dust).

    dust is the truncation remainder that no recipient receives.
    """
    if recipient_count < MIN_RECIPIENTS:
        raise ValueError(f"Need at least {MIN_RECIPIENTS} recipient, got {recipient_count}")
    share = amount // recipient_count
    return share, amount - share * recipient_count


def plan_distribution(amount: int, recipient_count: int, fee_percent: int) -> DistributionPlan:
    """Compute fee, per-recipient share and retained dust for a payment."""
    fee = calculate_fee(amount, fee_percent)
    share, dust = split_amount(amount - fee, recipient_count)
    return DistributionPlan(
        amount=amount,
        fee=fee,
        share=share,
        recipient_count=recipient_count,
        dust=dust,
    )


def validate_recipients(recipients: list[str]) -> list[ChecksumAddress]:
    """
    Normalize a recipient list, preserving order.

    Raises:
        InvalidRecipientsError: If the list is empty, holds a malformed
            address, or names the same recipient twice
    """
    recipients = list(recipients)
    if len(recipients) < MIN_RECIPIENTS:
        raise InvalidRecipientsError("Recipients: expected at least 1, got 0", recipients)

    normalized: list[ChecksumAddress] = []
    for recipient in recipients:
        try:
            address = to_identifier(recipient)
        except ValueError as e:
            raise InvalidRecipientsError(str(e), recipients) from e
        if address in normalized:
            raise InvalidRecipientsError(f"Duplicate recipient: {address}", recipients)
        normalized.append(address)
    return normalized


def check_attached_value(asset: str, amount: int, attached_value: int) -> None:
    """
    Native payments must attach exactly the declared amount.

    Raises:
        AmountMismatchError: If asset is native and attached_value != amount
    """
    if is_native_asset(asset) and attached_value != amount:
        raise AmountMismatchError(amount, attached_value)
