"""
Pytest fixtures for refund persistence tests.

Async ORM calls run in a worker thread outside the test transaction,
so tests using these fixtures mark themselves
@pytest.mark.django_db(transaction=True).

Usage:
    async def test_create(refund_store, create_refund):
        refund = await create_refund(amount=4000)
        assert await refund_store.get(refund.refund_id) is not None
"""

import pytest
from asgiref.sync import sync_to_async

from payments.stores import DjangoPaymentLookup, DjangoRefundStore
from payments.tests.factories import PaymentFactory, RefundFactory


@pytest.fixture
def refund_store():
    return DjangoRefundStore(currency="INR")


@pytest.fixture
def payment_lookup():
    return DjangoPaymentLookup(currency="INR")


@pytest.fixture
def create_refund():
    """Async wrapper around RefundFactory.create."""
    return sync_to_async(RefundFactory.create)


@pytest.fixture
def create_payment():
    """Async wrapper around PaymentFactory.create."""
    return sync_to_async(PaymentFactory.create)
