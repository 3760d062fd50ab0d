"""Tests for PaymentSplitter.send_payment.

These tests verify fee and share arithmetic, validation order, and that a
failed payment leaves every balance as if the call never happened.
"""

import pytest
from eth_account import Account
from pydantic import ValidationError

from payment_splitter import (
    NATIVE_ASSET,
    AmountMismatchError,
    InMemoryTransferService,
    InvalidAssetError,
    InvalidRecipientsError,
    PaymentSplitter,
    SplitterConfig,
    TransferFailedError,
    UnauthorizedError,
    acting_as,
)

from .conftest import HALF_ETHER, pay_native, pay_token


class TestNativePayments:
    """Tests for native currency payments."""

    def test_shares_native_among_four(self, splitter, bank, payer, payees) -> None:
        """0.5 native among 4 at 10%: each gets 0.1125, custody keeps 0.05."""
        recipients = payees[:4]

        receipt = pay_native(splitter, bank, payer, recipients, HALF_ETHER)

        fee = 5 * 10**16
        share = 1125 * 10**14
        assert receipt.fee == fee
        assert receipt.share == share
        assert receipt.dust == 0
        for recipient in recipients:
            assert bank.balance_of(recipient, NATIVE_ASSET) == share
        assert bank.balance_of(bank.custody, NATIVE_ASSET) == fee
        assert bank.balance_of(payer, NATIVE_ASSET) == 0
        assert splitter.fees_of(NATIVE_ASSET) == fee

    def test_receipt_records_payer_and_order(self, splitter, bank, payer, payees) -> None:
        """Receipt lists recipients in the order they were paid."""
        recipients = [payees[2], payees[0].lower(), payees[1]]

        receipt = pay_native(splitter, bank, payer, recipients, 300)

        assert receipt.payer == payer
        assert receipt.asset == NATIVE_ASSET
        assert receipt.amount == 300
        assert receipt.recipients == [payees[2], payees[0], payees[1]]

    def test_attached_value_mismatch(self, splitter, bank, payer, payees) -> None:
        """Attaching 99 for an amount of 100 fails and moves nothing."""
        bank.mint(payer, NATIVE_ASSET, 100)

        with acting_as(payer), pytest.raises(AmountMismatchError):
            splitter.send_payment(payees, NATIVE_ASSET, 100, attached_value=99)

        assert bank.balance_of(payer, NATIVE_ASSET) == 100
        assert splitter.fees_of(NATIVE_ASSET) == 0

    def test_payer_without_funds(self, splitter, bank, payer, payees) -> None:
        """Attaching value the payer does not have fails the transfer."""
        with acting_as(payer), pytest.raises(TransferFailedError):
            splitter.send_payment(payees, NATIVE_ASSET, 100, attached_value=100)

        assert splitter.fees_of(NATIVE_ASSET) == 0
        assert all(bank.balance_of(p, NATIVE_ASSET) == 0 for p in payees)


class TestTokenPayments:
    """Tests for token payments."""

    def test_shares_token_among_five(self, splitter, bank, payer, payees, token) -> None:
        """250 tokens among 5 at 10%: fee 25, each 45."""
        receipt = pay_token(splitter, bank, payer, payees, token, 250)

        assert (receipt.fee, receipt.share, receipt.dust) == (25, 45, 0)
        for payee in payees:
            assert bank.balance_of(payee, token) == 45
        assert bank.balance_of(bank.custody, token) == 25
        assert bank.balance_of(payer, token) == 0
        assert bank.allowance(token, payer) == 0
        assert splitter.fees_of(token) == 25
        assert splitter.fees_of(NATIVE_ASSET) == 0

    def test_attached_value_ignored_for_tokens(self, splitter, bank, payer, payees, token) -> None:
        """Token payments do not check attached value."""
        bank.mint(payer, token, 100)
        bank.approve(token, payer, 100)

        with acting_as(payer):
            receipt = splitter.send_payment(payees, token, 100, attached_value=7)

        assert receipt.fee == 10

    def test_missing_allowance(self, splitter, bank, payer, payees, token) -> None:
        """Without approval the pull fails and nothing is booked."""
        bank.mint(payer, token, 250)

        with acting_as(payer), pytest.raises(TransferFailedError):
            splitter.send_payment(payees, token, 250)

        assert bank.balance_of(payer, token) == 250
        assert splitter.fees_of(token) == 0


class TestValidation:
    """Tests for request validation."""

    def test_empty_recipients(self, splitter, payer, token) -> None:
        """No recipients is InvalidRecipientsError."""
        with acting_as(payer), pytest.raises(InvalidRecipientsError):
            splitter.send_payment([], token, 100)

    def test_recipients_checked_before_amount(self, splitter, payer) -> None:
        """An empty list is reported even if the value also mismatches."""
        with acting_as(payer), pytest.raises(InvalidRecipientsError):
            splitter.send_payment([], NATIVE_ASSET, 100, attached_value=99)

    def test_duplicate_recipients(self, splitter, payer, payees) -> None:
        """Paying the same recipient twice is rejected."""
        with acting_as(payer), pytest.raises(InvalidRecipientsError, match="Duplicate"):
            splitter.send_payment([payees[0], payees[1], payees[0]], NATIVE_ASSET, 0)

    def test_malformed_recipient(self, splitter, payer) -> None:
        """Recipients must be addresses."""
        with acting_as(payer), pytest.raises(InvalidRecipientsError):
            splitter.send_payment(["alice"], NATIVE_ASSET, 0)

    def test_non_string_recipient(self, splitter, payer, payees) -> None:
        """Any malformed entry is an invalid recipient, not a type error."""
        with acting_as(payer), pytest.raises(InvalidRecipientsError):
            splitter.send_payment([payees[0], 12345], NATIVE_ASSET, 0)

    def test_malformed_asset(self, splitter, payer, payees) -> None:
        """Assets must be NATIVE_ASSET or a token address."""
        with acting_as(payer), pytest.raises(InvalidAssetError) as exc_info:
            splitter.send_payment(payees, "0xnotanasset", 100)

        assert exc_info.value.asset == "0xnotanasset"
        assert isinstance(exc_info.value, ValueError)

    def test_negative_amount(self, splitter, payer, payees) -> None:
        """Amounts are unsigned."""
        with acting_as(payer), pytest.raises(ValidationError):
            splitter.send_payment(payees, NATIVE_ASSET, -1, attached_value=-1)

    def test_amount_above_uint256(self, splitter, payer, payees, token) -> None:
        """Amounts fit in 256 bits."""
        with acting_as(payer), pytest.raises(ValidationError):
            splitter.send_payment(payees, token, 2**256)

    def test_no_caller_bound(self, splitter, payees, token) -> None:
        """A payment needs a caller to pull funds from."""
        with pytest.raises(UnauthorizedError):
            splitter.send_payment(payees, token, 100)


class TestRoundingDust:
    """Tests for the truncation remainder of the equal split."""

    def test_dust_stays_in_custody(self, splitter, bank, payer, payees) -> None:
        """1003 among 4: fee 100, each 225, 3 left undistributed."""
        recipients = payees[:4]

        receipt = pay_native(splitter, bank, payer, recipients, 1003)

        assert (receipt.fee, receipt.share, receipt.dust) == (100, 225, 3)
        assert splitter.fees_of(NATIVE_ASSET) == 100
        assert splitter.dust_of(NATIVE_ASSET) == 3
        assert bank.balance_of(bank.custody, NATIVE_ASSET) == 103

    def test_dust_is_not_withdrawn(self, splitter, bank, payer, payees, admin, treasury) -> None:
        """Fee withdrawal leaves the dust behind."""
        pay_native(splitter, bank, payer, payees[:4], 1003)

        with acting_as(admin):
            assert splitter.withdraw_fees(NATIVE_ASSET, treasury) == 100

        assert bank.balance_of(bank.custody, NATIVE_ASSET) == 3
        assert splitter.balance(NATIVE_ASSET).held == 3

    def test_amount_smaller_than_recipients(self, splitter, bank, payer, payees, token) -> None:
        """Tiny payments are all dust."""
        receipt = pay_token(splitter, bank, payer, payees[:4], token, 3)

        assert (receipt.fee, receipt.share, receipt.dust) == (0, 0, 3)
        assert bank.balance_of(bank.custody, token) == 3

    def test_deficit_below_recipient_count(self, splitter, bank, payer, payees) -> None:
        """distributed + fee falls short of amount by less than the recipient count."""
        for amount in (1, 17, 999, 10**18 + 3):
            for count in range(1, 6):
                payer_i = Account.create().address
                receipt = pay_native(splitter, bank, payer_i, payees[:count], amount)
                shortfall = amount - (receipt.share * count + receipt.fee)
                assert shortfall == receipt.dust
                assert 0 <= shortfall < count


class TestRollback:
    """Tests for all-or-nothing payments."""

    def test_rejected_recipient_rolls_back_everything(self, splitter, bank, payer, payees) -> None:
        """If the third recipient rejects, the first two are not paid."""
        bank.reject(payees[2])
        bank.mint(payer, NATIVE_ASSET, 1_000)

        with acting_as(payer), pytest.raises(TransferFailedError):
            splitter.send_payment(payees, NATIVE_ASSET, 1_000, attached_value=1_000)

        assert bank.balance_of(payer, NATIVE_ASSET) == 1_000
        assert all(bank.balance_of(p, NATIVE_ASSET) == 0 for p in payees)
        assert bank.balance_of(bank.custody, NATIVE_ASSET) == 0
        assert splitter.balance(NATIVE_ASSET).held == 0

    def test_rollback_restores_allowance(self, splitter, bank, payer, payees, token) -> None:
        """A failed token payment leaves the approval in place."""
        bank.mint(payer, token, 250)
        bank.approve(token, payer, 250)
        bank.reject(payees[-1])

        with acting_as(payer), pytest.raises(TransferFailedError):
            splitter.send_payment(payees, token, 250)

        assert bank.allowance(token, payer) == 250
        assert bank.balance_of(payer, token) == 250

    def test_earlier_fees_survive_failed_payment(self, splitter, bank, payer, payees, token) -> None:
        """Only the failed payment is undone."""
        pay_token(splitter, bank, payer, payees, token, 250)
        bank.reject(payees[0])

        with pytest.raises(TransferFailedError):
            pay_token(splitter, bank, payer, payees, token, 500)

        assert splitter.fees_of(token) == 25
        assert bank.balance_of(bank.custody, token) == 25

    def test_unexpected_transfer_error_is_wrapped(self, admin, payer, payees) -> None:
        """Non-splitter exceptions from a transfer service become TransferFailedError."""

        class BrokenBank(InMemoryTransferService):
            def transfer_native(self, to: str, amount: int) -> None:
                raise ConnectionError("node unreachable")

        bank = BrokenBank()
        splitter = PaymentSplitter(SplitterConfig(admin=admin), transfers=bank)
        bank.mint(payer, NATIVE_ASSET, 100)

        with acting_as(payer), pytest.raises(TransferFailedError, match="node unreachable") as exc_info:
            splitter.send_payment(payees, NATIVE_ASSET, 100, attached_value=100)

        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert bank.balance_of(payer, NATIVE_ASSET) == 100
        assert splitter.fees_of(NATIVE_ASSET) == 0


class TestReentrancy:
    """Tests for recipients that run code on receipt."""

    def test_recipient_observes_committed_fee(self, splitter, bank, payer, payees, token) -> None:
        """The fee is booked before any recipient is paid."""
        observed: list[int] = []
        bank.on_receive(payees[0], lambda asset, amount: observed.append(splitter.fees_of(asset)))

        pay_token(splitter, bank, payer, payees, token, 250)

        assert observed == [25]

    def test_recipient_can_pay_forward(self, splitter, bank, payer, payees, token) -> None:
        """A recipient re-entering send_payment on the same asset does not deadlock."""
        forwarded: list[int] = []

        def forward(asset: str, amount: int) -> None:
            if forwarded:
                return
            bank.approve(asset, payees[0], amount)
            with acting_as(payees[0]):
                forwarded.append(splitter.send_payment([payees[1]], asset, amount).fee)

        bank.on_receive(payees[0], forward)

        pay_token(splitter, bank, payer, payees, token, 250)

        # 25 from the outer payment, 4 from forwarding 45
        assert forwarded == [4]
        assert splitter.fees_of(token) == 29
        assert bank.balance_of(payees[1], token) == 45 + 41

    def test_failed_payment_undoes_reentrant_withdrawal(
        self, splitter, bank, payer, payees, admin, treasury
    ) -> None:
        """A withdrawal made from a hook is undone when the payment fails."""
        pay_native(splitter, bank, payer, payees, 1_000)
        assert splitter.fees_of(NATIVE_ASSET) == 100

        withdrawn: list[int] = []

        def withdraw(asset: str, amount: int) -> None:
            with acting_as(admin):
                withdrawn.append(splitter.withdraw_fees(asset, treasury))

        bank.on_receive(payees[0], withdraw)
        bank.reject(payees[-1])

        with pytest.raises(TransferFailedError):
            pay_native(splitter, bank, payer, payees, 2_000)

        assert withdrawn == [300]
        assert splitter.fees_of(NATIVE_ASSET) == 100
        assert bank.balance_of(treasury, NATIVE_ASSET) == 0
        assert bank.balance_of(bank.custody, NATIVE_ASSET) == 100

    def test_payment_in_other_asset_from_hook_is_refused(
        self, splitter, bank, payer, payees, admin, treasury, token
    ) -> None:
        """A recipient cannot open a payment in a second asset mid-payment."""
        bank.mint(payees[0], NATIVE_ASSET, 1_000)

        def pay_native_from_hook(asset: str, amount: int) -> None:
            with acting_as(payees[0]):
                splitter.send_payment([payees[2]], NATIVE_ASSET, 1_000, attached_value=1_000)

        bank.on_receive(payees[0], pay_native_from_hook)
        bank.reject(payees[1])

        with pytest.raises(TransferFailedError, match="in progress"):
            pay_token(splitter, bank, payer, payees[:2], token, 250)

        assert splitter.fees_of(NATIVE_ASSET) == 0
        assert splitter.fees_of(token) == 0
        assert bank.balance_of(payees[0], NATIVE_ASSET) == 1_000
        assert bank.balance_of(payees[2], NATIVE_ASSET) == 0
        assert bank.balance_of(bank.custody, NATIVE_ASSET) == 0

        with acting_as(admin):
            assert splitter.withdraw_fees(NATIVE_ASSET, treasury) == 0
        assert splitter.fees_of(NATIVE_ASSET) >= 0
