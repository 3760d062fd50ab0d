"""Caller identity for authorization checks."""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Protocol, runtime_checkable

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount

from ._exceptions import UnauthorizedError
from .helpers import to_identifier

_current_caller: ContextVar[str | None] = ContextVar("payment_splitter_caller", default=None)


@runtime_checkable
class IdentityService(Protocol):
    """Answers "who is calling" for the current operation."""

    def caller_identity(self) -> str: ...


class ContextIdentity:
    """
    Identity bound to the current context with acting_as().

    Works across threads and asyncio tasks because the caller lives in a
    ContextVar.

    Example:
        >>> identity = ContextIdentity()
        >>> with acting_as("0xAlice..."):
        ...     splitter.send_payment(...)
    """

    def caller_identity(self) -> str:
        caller = _current_caller.get()
        if caller is None:
            raise UnauthorizedError(None, "No caller identity bound to this context")
        return caller


class AccountIdentity:
    """Fixed identity of a local signing account."""

    def __init__(self, account: LocalAccount) -> None:
        self.account = account

    def caller_identity(self) -> str:
        return self.account.address


@contextmanager
def acting_as(address: str) -> Iterator[str]:
    """Bind address as the caller for the duration of the block."""
    token = _current_caller.set(to_identifier(address))
    try:
        yield _current_caller.get()
    finally:
        _current_caller.reset(token)


def recover_caller(message: str, signature: bytes | str) -> str:
    """
    Recover the address that signed message (EIP-191 personal_sign).

    Raises:
        UnauthorizedError: If the signature cannot be recovered
    """
    try:
        return Account.recover_message(encode_defunct(text=message), signature=signature)
    except Exception as e:
        raise UnauthorizedError(None, f"Invalid signature: {e}") from e


@contextmanager
def acting_as_signer(message: str, signature: bytes | str) -> Iterator[str]:
    """Bind the signer of message as the caller for the duration of the block."""
    with acting_as(recover_caller(message, signature)) as caller:
        yield caller
