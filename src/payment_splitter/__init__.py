# Suppress websockets deprecation warning from web3.py (ethereum/web3.py#3530)
# web3.py unconditionally imports LegacyWebSocketProvider even for HTTP-only usage.
# This will be fixed in web3.py v8. Remove this filter after upgrading.
import warnings

warnings.filterwarnings(
    "ignore",
    message="websockets.legacy is deprecated",
    category=DeprecationWarning,
    module=r"websockets\.legacy",
)

"""
Payment Splitter

Split a single payment, in native currency or a token, equally among a list
of recipients after deducting a platform fee. Fees accrue per asset until
the admin withdraws them.

Usage (sync):
    from payment_splitter import (
        NATIVE_ASSET,
        InMemoryTransferService,
        PaymentSplitter,
        SplitterConfig,
        acting_as,
    )

    bank = InMemoryTransferService()
    splitter = PaymentSplitter(SplitterConfig(admin="0xAdmin..."), transfers=bank)

    with acting_as("0xPayer..."):
        receipt = splitter.send_payment(
            recipients=["0xAlice...", "0xBob..."],
            asset=NATIVE_ASSET,
            amount=10**18,
            attached_value=10**18,
        )

    with acting_as("0xAdmin..."):
        splitter.withdraw_fees(NATIVE_ASSET, "0xTreasury...")

Usage (async):
    from payment_splitter import AsyncPaymentSplitter

    async_splitter = AsyncPaymentSplitter(splitter)
    with acting_as("0xPayer..."):
        await async_splitter.send_payment(["0xAlice..."], token, 250)
"""

from ._exceptions import (
    AmountMismatchError,
    ConfigurationError,
    InvalidAssetError,
    InvalidRecipientsError,
    PaymentSplitterError,
    TransferFailedError,
    UnauthorizedError,
)
from ._version import __version__

# Async facade
from .async_splitter import AsyncPaymentSplitter
from .config import SplitterConfig

# Constants
from .constants import (
    DEFAULT_FEE_PERCENT,
    FEE_DENOMINATOR,
    FEE_SCALE,
    MIN_RECIPIENTS,
    NATIVE_ASSET,
)

# Arithmetic and validation helpers
from .helpers import (
    calculate_fee,
    is_native_asset,
    plan_distribution,
    split_amount,
    to_identifier,
    validate_recipients,
)

# Collaborators
from .identity import (
    AccountIdentity,
    ContextIdentity,
    IdentityService,
    acting_as,
    acting_as_signer,
    recover_caller,
)
from .ledger import FeeLedger
from .splitter import PaymentSplitter
from .transfers import InMemoryTransferService, TransferService

# Types
from .types import (
    AssetBalance,
    DistributionPlan,
    PaymentReceipt,
    PaymentRequest,
)

__all__ = [
    # Version
    "__version__",
    # Engine
    "PaymentSplitter",
    "AsyncPaymentSplitter",
    "SplitterConfig",
    "FeeLedger",
    # Collaborators
    "TransferService",
    "InMemoryTransferService",
    "IdentityService",
    "ContextIdentity",
    "AccountIdentity",
    "acting_as",
    "acting_as_signer",
    "recover_caller",
    # Types
    "PaymentRequest",
    "DistributionPlan",
    "PaymentReceipt",
    "AssetBalance",
    # Constants
    "NATIVE_ASSET",
    "FEE_SCALE",
    "FEE_DENOMINATOR",
    "DEFAULT_FEE_PERCENT",
    "MIN_RECIPIENTS",
    # Helpers
    "calculate_fee",
    "split_amount",
    "plan_distribution",
    "to_identifier",
    "is_native_asset",
    "validate_recipients",
    # Exceptions
    "PaymentSplitterError",
    "ConfigurationError",
    "InvalidRecipientsError",
    "InvalidAssetError",
    "AmountMismatchError",
    "UnauthorizedError",
    "TransferFailedError",
]
