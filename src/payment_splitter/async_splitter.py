"""Async facade over PaymentSplitter."""

import asyncio
from collections.abc import Sequence

from .splitter import PaymentSplitter
from .types import AssetBalance, DistributionPlan, PaymentReceipt


class AsyncPaymentSplitter:
    """
    Async wrapper for a PaymentSplitter.

    Each call runs on a worker thread, so the per-asset locks keep
    serializing writers. The caller bound with acting_as() travels with the
    task's context.

    Example:
        >>> import asyncio
        >>> from payment_splitter import AsyncPaymentSplitter, NATIVE_ASSET, acting_as
        >>>
        >>> async def main():
        ...     splitter = AsyncPaymentSplitter(sync_splitter)
        ...     with acting_as("0xPayer..."):
        ...         await splitter.send_payment(["0xAlice..."], NATIVE_ASSET, 100, attached_value=100)
        >>>
        >>> asyncio.run(main())
    """

    def __init__(self, splitter: PaymentSplitter) -> None:
        self.splitter = splitter

    @property
    def admin(self) -> str:
        return self.splitter.admin

    def preview_payment(self, recipient_count: int, amount: int) -> DistributionPlan:
        return self.splitter.preview_payment(recipient_count, amount)

    async def send_payment(
        self,
        recipients: Sequence[str],
        asset: str,
        amount: int,
        attached_value: int = 0,
    ) -> PaymentReceipt:
        """See PaymentSplitter.send_payment."""
        return await asyncio.to_thread(
            self.splitter.send_payment, list(recipients), asset, amount, attached_value
        )

    async def withdraw_fees(self, asset: str, destination: str) -> int:
        """See PaymentSplitter.withdraw_fees."""
        return await asyncio.to_thread(self.splitter.withdraw_fees, asset, destination)

    async def withdraw_all_fees(self, destination: str) -> dict[str, int]:
        """See PaymentSplitter.withdraw_all_fees."""
        return await asyncio.to_thread(self.splitter.withdraw_all_fees, destination)

    async def balance(self, asset: str) -> AssetBalance:
        return await asyncio.to_thread(self.splitter.balance, asset)
