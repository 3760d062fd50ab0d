"""Per-asset fee accrual ledger."""

import logging
import threading
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager

from ._exceptions import TransferFailedError
from .helpers import to_identifier
from .journal import Journal
from .types import AssetBalance

logger = logging.getLogger(__name__)


class FeeLedger:
    """
    Accumulated platform fees and retained rounding dust, keyed by asset.

    Entries are created lazily and read as zero until the first payment in an
    asset. Mutations must happen while holding locked(asset); wrap them in
    atomic() so a failure further down the call rolls them back. Once a unit
    is open, the thread may only re-enter locks it already holds.

    Example:
        >>> ledger = FeeLedger()
        >>> with ledger.locked(asset), ledger.atomic():
        ...     ledger.accrue(asset, fee=25, dust=0)
        >>> ledger.fees_of(asset)
        25
    """

    def __init__(self) -> None:
        self._fees: dict[str, int] = {}
        self._dust: dict[str, int] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._table_lock = threading.Lock()
        self._owned = threading.local()
        self._journal = Journal("fee-ledger")

    def _lock_for(self, asset: str) -> threading.RLock:
        with self._table_lock:
            lock = self._locks.get(asset)
            if lock is None:
                lock = self._locks[asset] = threading.RLock()
            return lock

    def _held(self) -> dict[str, int]:
        held = getattr(self._owned, "depths", None)
        if held is None:
            held = self._owned.depths = {}
        return held

    def holds(self, asset: str) -> bool:
        """True if the current thread holds the lock for asset."""
        return self._held().get(to_identifier(asset), 0) > 0

    def _refuse_new_locks(self, assets: list[str]) -> None:
        # Inside a unit, a newly taken asset lock would be released before the
        # unit commits, and could be taken out of sorted order.
        if not self._journal.active:
            return
        missing = [asset for asset in assets if not self.holds(asset)]
        if missing:
            logger.warning("Refused lock on %s inside an open unit", ", ".join(missing))
            raise TransferFailedError(
                f"Cannot lock {', '.join(missing)} while another operation is in progress",
                asset=missing[0],
            )

    @contextmanager
    def _hold(self, asset: str) -> Iterator[None]:
        held = self._held()
        with self._lock_for(asset):
            held[asset] = held.get(asset, 0) + 1
            try:
                yield
            finally:
                held[asset] -= 1
                if not held[asset]:
                    del held[asset]

    @contextmanager
    def locked(self, asset: str) -> Iterator[str]:
        """
        Hold the single-writer lock for one asset. Yields the normalized asset.

        Raises:
            TransferFailedError: If called inside an open atomic() unit for an
                asset this thread does not already hold
        """
        asset = to_identifier(asset)
        self._refuse_new_locks([asset])
        with self._hold(asset):
            yield asset

    @contextmanager
    def locked_all(self) -> Iterator[list[str]]:
        """Hold the locks of every known asset, acquired in sorted order."""
        with self._table_lock:
            assets = sorted(self._locks)
        self._refuse_new_locks(assets)
        with ExitStack() as stack:
            for asset in assets:
                stack.enter_context(self._hold(asset))
            logger.debug("Holding locks for %d asset(s)", len(assets))
            yield assets

    def atomic(self):
        """Context manager grouping ledger mutations into one unit."""
        return self._journal.atomic()

    def accrue(self, asset: str, fee: int, dust: int = 0) -> None:
        """Book a payment's fee and retained dust for an asset."""
        if fee < 0 or dust < 0:
            raise ValueError(f"Cannot accrue negative amounts (fee={fee}, dust={dust})")
        asset = to_identifier(asset)
        self._fees[asset] = self._fees.get(asset, 0) + fee
        self._dust[asset] = self._dust.get(asset, 0) + dust

        def undo() -> None:
            self._fees[asset] -= fee
            self._dust[asset] -= dust

        self._journal.record(undo)

    def take_fees(self, asset: str) -> int:
        """Read the accrued fee for an asset and reset it to zero."""
        asset = to_identifier(asset)
        amount = self._fees.get(asset, 0)
        if amount == 0:
            return 0
        self._fees[asset] = 0

        def undo() -> None:
            self._fees[asset] += amount

        self._journal.record(undo)
        return amount

    def fees_of(self, asset: str) -> int:
        return self._fees.get(to_identifier(asset), 0)

    def dust_of(self, asset: str) -> int:
        return self._dust.get(to_identifier(asset), 0)

    def held(self, asset: str) -> int:
        """Fees plus dust: what custody should hold for this asset."""
        return self.fees_of(asset) + self.dust_of(asset)

    def balance(self, asset: str) -> AssetBalance:
        asset = to_identifier(asset)
        return AssetBalance(asset=asset, fees=self.fees_of(asset), dust=self.dust_of(asset))

    def assets(self) -> list[str]:
        """Assets that have ever been booked, sorted."""
        return sorted(set(self._fees) | set(self._dust))
