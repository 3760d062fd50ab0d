"""Transfer service interface and an in-memory reference implementation."""

import logging
import threading
from collections.abc import Callable
from contextlib import AbstractContextManager
from typing import Protocol, runtime_checkable

from eth_account import Account

from ._exceptions import TransferFailedError
from .constants import NATIVE_ASSET
from .helpers import to_identifier
from .journal import Journal

logger = logging.getLogger(__name__)

# Called after a holder is credited: hook(asset, amount)
ReceiveHook = Callable[[str, int], None]


@runtime_checkable
class TransferService(Protocol):
    """
    Moves assets in and out of the splitter's custody.

    Every method raises TransferFailedError when the movement cannot
    complete. Transfers issued inside atomic() commit or roll back together.
    """

    @property
    def custody(self) -> str:
        """Holder address under which the splitter keeps funds."""
        ...

    def transfer_native(self, to: str, amount: int) -> None: ...

    def transfer_token(self, token: str, to: str, amount: int) -> None: ...

    def pull_token(self, token: str, from_: str, amount: int) -> None: ...

    def receive_native(self, from_: str, amount: int) -> None: ...

    def atomic(self) -> AbstractContextManager[None]: ...


class InMemoryTransferService:
    """
    Balance book implementing TransferService in process.

    Holders and assets are addresses. Tokens are pulled into custody against
    allowances granted with approve(). Receive hooks run arbitrary code when a
    holder is credited, which lets callers re-enter the splitter mid-transfer.

    Example:
        >>> bank = InMemoryTransferService()
        >>> bank.mint(alice, NATIVE_ASSET, 10**18)
        >>> bank.receive_native(alice, 10**18)
        >>> bank.balance_of(bank.custody, NATIVE_ASSET)
        1000000000000000000
    """

    def __init__(self, custody: str | None = None) -> None:
        self._custody = to_identifier(custody) if custody else Account.create().address
        self._balances: dict[tuple[str, str], int] = {}
        self._allowances: dict[tuple[str, str], int] = {}
        self._rejected: set[str] = set()
        self._hooks: dict[str, list[ReceiveHook]] = {}
        self._lock = threading.RLock()
        self._journal = Journal("transfers")

    @property
    def custody(self) -> str:
        return self._custody

    def atomic(self) -> AbstractContextManager[None]:
        return self._journal.atomic()

    # Setup and inspection

    def mint(self, holder: str, asset: str, amount: int) -> None:
        """Credit a holder out of thin air (test and bootstrap funding)."""
        if amount < 0:
            raise ValueError(f"Cannot mint a negative amount: {amount}")
        self._adjust(to_identifier(holder), to_identifier(asset), amount)

    def approve(self, token: str, owner: str, amount: int) -> None:
        """Allow custody to pull up to amount of token from owner."""
        if amount < 0:
            raise ValueError(f"Allowance must be non-negative, got {amount}")
        key = (to_identifier(token), to_identifier(owner))
        with self._lock:
            self._allowances[key] = amount

    def reject(self, holder: str, rejected: bool = True) -> None:
        """Make every transfer to holder fail (or stop failing)."""
        holder = to_identifier(holder)
        with self._lock:
            if rejected:
                self._rejected.add(holder)
            else:
                self._rejected.discard(holder)

    def on_receive(self, holder: str, hook: ReceiveHook) -> None:
        """Run hook(asset, amount) each time holder is credited."""
        with self._lock:
            self._hooks.setdefault(to_identifier(holder), []).append(hook)

    def balance_of(self, holder: str, asset: str) -> int:
        return self._balances.get((to_identifier(holder), to_identifier(asset)), 0)

    def allowance(self, token: str, owner: str) -> int:
        return self._allowances.get((to_identifier(token), to_identifier(owner)), 0)

    # TransferService

    def transfer_native(self, to: str, amount: int) -> None:
        self._move(NATIVE_ASSET, self._custody, to, amount)

    def transfer_token(self, token: str, to: str, amount: int) -> None:
        self._move(self._token(token), self._custody, to, amount)

    def pull_token(self, token: str, from_: str, amount: int) -> None:
        token = self._token(token)
        owner = to_identifier(from_)
        with self.atomic():
            self._spend_allowance(token, owner, amount)
            self._move(token, owner, self._custody, amount)

    def receive_native(self, from_: str, amount: int) -> None:
        self._move(NATIVE_ASSET, from_, self._custody, amount)

    # Internals

    @staticmethod
    def _token(token: str) -> str:
        token = to_identifier(token)
        if token == NATIVE_ASSET:
            raise TransferFailedError("Native currency is not a token", asset=token)
        return token

    def _spend_allowance(self, token: str, owner: str, amount: int) -> None:
        key = (token, owner)
        with self._lock:
            current = self._allowances.get(key, 0)
            if current < amount:
                raise TransferFailedError(
                    f"Allowance {current} below {amount}",
                    asset=token,
                    holder=owner,
                    amount=amount,
                )
            self._allowances[key] = current - amount

        def undo() -> None:
            with self._lock:
                self._allowances[key] = self._allowances.get(key, 0) + amount

        self._journal.record(undo)

    def _adjust(self, holder: str, asset: str, delta: int) -> None:
        key = (holder, asset)
        with self._lock:
            updated = self._balances.get(key, 0) + delta
            if updated < 0:
                raise TransferFailedError(
                    f"Insufficient balance for {holder}",
                    asset=asset,
                    holder=holder,
                    amount=-delta,
                )
            self._balances[key] = updated

        def undo() -> None:
            with self._lock:
                self._balances[key] = self._balances.get(key, 0) - delta

        self._journal.record(undo)

    def _move(self, asset: str, from_: str, to: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Transfer amount must be non-negative, got {amount}")
        sender = to_identifier(from_)
        receiver = to_identifier(to)
        if receiver in self._rejected:
            raise TransferFailedError(
                f"{receiver} rejected transfer",
                asset=asset,
                holder=receiver,
                amount=amount,
            )

        with self.atomic():
            self._adjust(sender, asset, -amount)
            self._adjust(receiver, asset, amount)
            logger.debug("Moved %d of %s from %s to %s", amount, asset, sender, receiver)
            for hook in list(self._hooks.get(receiver, [])):
                try:
                    hook(asset, amount)
                except Exception as e:
                    raise TransferFailedError(
                        f"{receiver} reverted on receipt: {e}",
                        asset=asset,
                        holder=receiver,
                        amount=amount,
                    ) from e
