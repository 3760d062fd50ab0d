"""Asset and fee constants for payment-splitter."""

# Reserved asset identifier for the chain's native currency.
NATIVE_ASSET = "0x0000000000000000000000000000000000000000"

# Fee percentages are fixed-point values scaled by 10**18.
FEE_SCALE = 10**18
FEE_DENOMINATOR = 100 * FEE_SCALE
DEFAULT_FEE_PERCENT = 10 * FEE_SCALE  # 10%
MAX_FEE_PERCENT = FEE_DENOMINATOR

# Amounts are unsigned 256-bit integers at the boundary.
UINT256_MAX = 2**256 - 1

MIN_RECIPIENTS = 1

# Environment fallbacks for SplitterConfig.from_env()
ENV_ADMIN = "SPLITTER_ADMIN"
ENV_FEE_PERCENT = "SPLITTER_FEE_PERCENT"
