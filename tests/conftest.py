"""Pytest configuration and fixtures for payment-splitter tests."""

import pytest
from eth_account import Account

from payment_splitter import (
    NATIVE_ASSET,
    ContextIdentity,
    InMemoryTransferService,
    PaymentSplitter,
    SplitterConfig,
    acting_as,
)

# 0.5 native units in wei (18 decimals)
HALF_ETHER = 5 * 10**17


@pytest.fixture
def admin_account():
    """Signing account of the splitter admin."""
    return Account.create()


@pytest.fixture
def admin(admin_account):
    """Admin address."""
    return admin_account.address


@pytest.fixture
def payer():
    """Address sending payments."""
    return Account.create().address


@pytest.fixture
def treasury():
    """Destination for withdrawn fees."""
    return Account.create().address


@pytest.fixture
def token():
    """Identifier of a fungible token."""
    return Account.create().address


@pytest.fixture
def payees():
    """Five distinct recipient addresses."""
    return [Account.create().address for _ in range(5)]


@pytest.fixture
def bank():
    """In-memory transfer service with a fresh custody address."""
    return InMemoryTransferService()


@pytest.fixture
def splitter(admin, bank):
    """Splitter charging the default 10% fee."""
    return PaymentSplitter(SplitterConfig(admin=admin), transfers=bank, identity=ContextIdentity())


def pay_native(splitter, bank, payer, recipients, amount, attached_value=None):
    """Fund payer and send a native payment on their behalf."""
    bank.mint(payer, NATIVE_ASSET, amount if attached_value is None else attached_value)
    with acting_as(payer):
        return splitter.send_payment(
            recipients,
            NATIVE_ASSET,
            amount,
            attached_value=amount if attached_value is None else attached_value,
        )


def pay_token(splitter, bank, payer, recipients, token, amount):
    """Fund and approve payer, then send a token payment on their behalf."""
    bank.mint(payer, token, amount)
    bank.approve(token, payer, amount)
    with acting_as(payer):
        return splitter.send_payment(recipients, token, amount)
