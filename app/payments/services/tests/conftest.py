"""
Pytest fixtures for refund service tests.

Services are wired to the in-memory collaborators from
payments.tests.fakes, so these tests need no database or network.
"""

import pytest

from payments.services import (
    RefundReconciliationService,
    RefundService,
    RefundTransitioner,
    SideEffectDispatcher,
)
from payments.tests.fakes import (
    FakeGateway,
    FakeUser,
    FakeUserLookup,
    InMemoryPaymentLookup,
    InMemoryRefundStore,
    RecordingEmailSender,
    RecordingNotificationSender,
    RecordingSleep,
    ScriptedCanceller,
    make_payment,
)


@pytest.fixture
def payment():
    """A verified ₹100.00 payment."""
    return make_payment("pay_test_1", 10000, user_email="customer@example.com")


@pytest.fixture
def store():
    return InMemoryRefundStore()


@pytest.fixture
def payment_lookup(payment):
    return InMemoryPaymentLookup([payment])


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def push_sender():
    return RecordingNotificationSender()


@pytest.fixture
def email_sender():
    return RecordingEmailSender()


@pytest.fixture
def canceller():
    return ScriptedCanceller()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def side_effects(payment, push_sender, email_sender, canceller, sleep):
    return SideEffectDispatcher(
        user_lookup=FakeUserLookup([FakeUser(payment.user_email)]),
        notification_sender=push_sender,
        email_sender=email_sender,
        subscription_canceller=canceller,
        cancel_attempts=2,
        cancel_delay=0.5,
        sleep=sleep,
    )


@pytest.fixture
def transitioner(store, payment_lookup, side_effects):
    return RefundTransitioner(store, payment_lookup, side_effects)


@pytest.fixture
def refund_service(store, payment_lookup, gateway, side_effects):
    return RefundService(store, payment_lookup, gateway, side_effects, currency="INR")


@pytest.fixture
def reconciliation(store, payment_lookup, gateway, transitioner, refund_service):
    return RefundReconciliationService(
        store, payment_lookup, gateway, transitioner, refund_service
    )
