"""Payment distribution engine and admin-gated fee withdrawal."""

import logging
from collections.abc import Callable, Sequence

from ._exceptions import PaymentSplitterError, TransferFailedError, UnauthorizedError
from .config import SplitterConfig
from .constants import NATIVE_ASSET
from .helpers import check_attached_value, plan_distribution, to_asset, to_identifier, validate_recipients
from .identity import ContextIdentity, IdentityService
from .ledger import FeeLedger
from .transfers import TransferService
from .types import AssetBalance, DistributionPlan, PaymentReceipt, PaymentRequest

logger = logging.getLogger(__name__)


class PaymentSplitter:
    """
    Splits each incoming payment equally among its recipients after a fee.

    Fees accrue per asset in a FeeLedger until the admin withdraws them.
    Every operation is one atomic unit: the ledger is updated before any
    funds move, and a failed transfer rolls back both ledger and transfers.

    Example:
        >>> from payment_splitter import (
        ...     NATIVE_ASSET, ContextIdentity, InMemoryTransferService,
        ...     PaymentSplitter, SplitterConfig, acting_as,
        ... )
        >>>
        >>> bank = InMemoryTransferService()
        >>> splitter = PaymentSplitter(
        ...     SplitterConfig(admin="0xAdmin..."),
        ...     transfers=bank,
        ...     identity=ContextIdentity(),
        ... )
        >>>
        >>> with acting_as("0xPayer..."):
        ...     receipt = splitter.send_payment(
        ...         ["0xAlice...", "0xBob..."], NATIVE_ASSET, 10**18, attached_value=10**18
        ...     )
        >>>
        >>> with acting_as("0xAdmin..."):
        ...     splitter.withdraw_fees(NATIVE_ASSET, "0xTreasury...")
    """

    def __init__(
        self,
        config: SplitterConfig,
        transfers: TransferService,
        identity: IdentityService | None = None,
        ledger: FeeLedger | None = None,
    ) -> None:
        """
        Initialize the splitter.

        Args:
            config: Admin identity and fee rate
            transfers: Moves funds in and out of custody
            identity: Resolves the caller (defaults to ContextIdentity)
            ledger: Fee ledger to book into (a fresh one if not provided)
        """
        self.config = config
        self.transfers = transfers
        self.identity = identity or ContextIdentity()
        self.ledger = ledger or FeeLedger()

    @property
    def admin(self) -> str:
        """The only identity allowed to withdraw fees."""
        return self.config.admin

    @property
    def fee_percent(self) -> int:
        return self.config.fee_percent

    def preview_payment(self, recipient_count: int, amount: int) -> DistributionPlan:
        """Fee, share and dust a payment would produce, without moving funds."""
        return plan_distribution(amount, recipient_count, self.config.fee_percent)

    def send_payment(
        self,
        recipients: Sequence[str],
        asset: str,
        amount: int,
        attached_value: int = 0,
    ) -> PaymentReceipt:
        """
        Split a payment from the caller among recipients.

        Native payments must attach exactly amount. Token payments pull
        amount from the caller against a prior approval of custody.

        Args:
            recipients: Distinct recipient addresses, paid in list order
            asset: NATIVE_ASSET or a token address
            amount: Total amount in the asset's smallest unit
            attached_value: Native value sent with the call

        Returns:
            PaymentReceipt with the fee, share and retained dust

        Raises:
            InvalidRecipientsError: If recipients is empty, malformed or repeats an address
            InvalidAssetError: If asset is not a valid address
            AmountMismatchError: If a native payment attaches the wrong value
            TransferFailedError: If any movement of funds fails (nothing is committed)
        """
        payees = validate_recipients(recipients)
        asset = to_asset(asset)
        request = PaymentRequest(
            recipients=payees,
            asset=asset,
            amount=amount,
            attached_value=attached_value,
        )
        check_attached_value(asset, request.amount, request.attached_value)
        plan = plan_distribution(request.amount, len(payees), self.config.fee_percent)
        payer = self.identity.caller_identity()

        with self.ledger.locked(asset):
            try:
                with self.ledger.atomic(), self.transfers.atomic():
                    self.ledger.accrue(asset, plan.fee, plan.dust)
                    self._collect(asset, payer, request)
                    for payee in payees:
                        self._send(asset, payee, plan.share)
            except PaymentSplitterError as e:
                logger.info("Payment of %d %s from %s rolled back: %s", plan.amount, asset, payer, e)
                raise

        logger.info(
            "Split %d %s from %s: fee=%d share=%d x %d dust=%d",
            plan.amount,
            asset,
            payer,
            plan.fee,
            plan.share,
            plan.recipient_count,
            plan.dust,
        )
        return PaymentReceipt(
            payer=payer,
            asset=asset,
            amount=plan.amount,
            fee=plan.fee,
            share=plan.share,
            dust=plan.dust,
            recipients=list(payees),
        )

    def withdraw_fees(self, asset: str, destination: str) -> int:
        """
        Move the accrued fee for one asset to destination (admin only).

        The balance is reset before the transfer, so a withdrawal re-entering
        from the destination sees zero. A zero balance is withdrawn as a no-op.

        Returns:
            Amount withdrawn

        Raises:
            UnauthorizedError: If the caller is not the admin
            InvalidAssetError: If asset is not a valid address
            TransferFailedError: If destination is malformed or the transfer fails
                (the balance is restored)
        """
        self._require_admin()
        destination = self._destination(destination)
        asset = to_asset(asset)

        with self.ledger.locked(asset):
            try:
                with self.ledger.atomic(), self.transfers.atomic():
                    amount = self.ledger.take_fees(asset)
                    if amount:
                        self._send(asset, destination, amount)
            except PaymentSplitterError as e:
                logger.info("Fee withdrawal of %s to %s rolled back: %s", asset, destination, e)
                raise

        logger.info("Withdrew %d %s in fees to %s", amount, asset, destination)
        return amount

    def withdraw_all_fees(self, destination: str) -> dict[str, int]:
        """
        Sweep the accrued fees of every asset to destination (admin only).

        All assets are withdrawn as one unit: if any transfer fails, no
        balance is reset.

        Returns:
            Mapping of asset to amount withdrawn, for assets with a non-zero fee
        """
        self._require_admin()
        destination = self._destination(destination)

        withdrawn: dict[str, int] = {}
        with self.ledger.locked_all() as assets:
            try:
                with self.ledger.atomic(), self.transfers.atomic():
                    for asset in assets:
                        amount = self.ledger.take_fees(asset)
                        if amount:
                            self._send(asset, destination, amount)
                            withdrawn[asset] = amount
            except PaymentSplitterError as e:
                logger.info("Fee sweep to %s rolled back: %s", destination, e)
                raise

        logger.info("Swept fees for %d asset(s) to %s", len(withdrawn), destination)
        return withdrawn

    def fees_of(self, asset: str) -> int:
        return self.ledger.fees_of(asset)

    def dust_of(self, asset: str) -> int:
        return self.ledger.dust_of(asset)

    def balance(self, asset: str) -> AssetBalance:
        return self.ledger.balance(asset)

    def _require_admin(self) -> str:
        caller = self.identity.caller_identity()
        if caller != self.config.admin:
            logger.warning("Rejected admin operation from %s", caller)
            raise UnauthorizedError(caller)
        return caller

    @staticmethod
    def _destination(destination: str) -> str:
        try:
            return to_identifier(destination)
        except ValueError as e:
            raise TransferFailedError(
                f"Cannot withdraw to {destination!r}: {e}",
                holder=str(destination),
            ) from e

    def _collect(self, asset: str, payer: str, request: PaymentRequest) -> None:
        """Bring the payment into custody."""
        if asset == NATIVE_ASSET:
            value = request.attached_value
            self._transfer(asset, payer, value, self.transfers.receive_native, payer, value)
        else:
            amount = request.amount
            self._transfer(asset, payer, amount, self.transfers.pull_token, asset, payer, amount)

    def _send(self, asset: str, to: str, amount: int) -> None:
        """Pay out of custody."""
        if asset == NATIVE_ASSET:
            self._transfer(asset, to, amount, self.transfers.transfer_native, to, amount)
        else:
            self._transfer(asset, to, amount, self.transfers.transfer_token, asset, to, amount)

    @staticmethod
    def _transfer(asset: str, holder: str, amount: int, action: Callable[..., None], *args: object) -> None:
        """Run a transfer, mapping unexpected failures to TransferFailedError."""
        try:
            action(*args)
        except PaymentSplitterError:
            raise
        except Exception as e:
            raise TransferFailedError(
                f"Transfer of {amount} {asset} involving {holder} failed: {e}",
                asset=asset,
                holder=holder,
                amount=amount,
            ) from e
