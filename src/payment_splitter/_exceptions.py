"""Custom exceptions for payment-splitter."""


class PaymentSplitterError(Exception):
    """Base exception for payment-splitter."""


class ConfigurationError(PaymentSplitterError):
    """Invalid configuration (missing admin, fee out of range, etc.)."""


class InvalidRecipientsError(PaymentSplitterError):
    """Recipient list is empty, malformed or contains duplicates."""

    def __init__(self, message: str, recipients: list[str] | None = None) -> None:
        super().__init__(message)
        self.recipients = list(recipients or [])


class AmountMismatchError(PaymentSplitterError):
    """Attached native value does not equal the declared amount."""

    def __init__(self, amount: int, attached_value: int) -> None:
        super().__init__(f"Attached value {attached_value} does not match amount {amount}")
        self.amount = amount
        self.attached_value = attached_value


class UnauthorizedError(PaymentSplitterError):
    """Caller is not allowed to invoke an admin-only operation."""

    def __init__(self, caller: str | None, message: str | None = None) -> None:
        super().__init__(message or f"Caller {caller} is not authorized")
        self.caller = caller


class TransferFailedError(PaymentSplitterError):
    """An underlying asset movement did not complete."""

    def __init__(
        self,
        message: str,
        asset: str | None = None,
        holder: str | None = None,
        amount: int | None = None,
    ) -> None:
        super().__init__(message)
        self.asset = asset
        self.holder = holder
        self.amount = amount


class InvalidAssetError(PaymentSplitterError, ValueError):
    """Asset identifier is neither the native sentinel nor a valid token address."""

    def __init__(self, asset: object) -> None:
        super().__init__(f"Not a valid asset: {asset!r}")
        self.asset = asset
