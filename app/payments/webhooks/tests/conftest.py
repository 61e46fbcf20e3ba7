"""
Pytest fixtures for refund webhook tests.

Provides a RefundWebhookHandler wired to in-memory collaborators and a
helper for producing correctly signed webhook bodies.
"""

import json

import pytest

from payments.services import RefundTransitioner, SideEffectDispatcher
from payments.tests.fakes import (
    DictSecretsProvider,
    FakeUser,
    FakeUserLookup,
    InMemoryPaymentLookup,
    InMemoryRefundStore,
    RecordingEmailSender,
    RecordingNotificationSender,
    make_payment,
)
from payments.webhooks import RefundWebhookHandler, WebhookVerifier
from payments.webhooks.verification import compute_signature

WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture
def secrets():
    return DictSecretsProvider({"razorpay-webhook-secret": WEBHOOK_SECRET})


@pytest.fixture
def store():
    return InMemoryRefundStore()


@pytest.fixture
def push_sender():
    return RecordingNotificationSender()


@pytest.fixture
def email_sender():
    return RecordingEmailSender()


@pytest.fixture
def handler(secrets, store, push_sender, email_sender):
    side_effects = SideEffectDispatcher(
        user_lookup=FakeUserLookup([FakeUser("customer@example.com")]),
        notification_sender=push_sender,
        email_sender=email_sender,
    )
    transitioner = RefundTransitioner(
        store,
        InMemoryPaymentLookup([make_payment("pay_test_1", 10000)]),
        side_effects,
    )
    return RefundWebhookHandler(
        WebhookVerifier(secrets, secret_name="razorpay-webhook-secret"),
        transitioner,
    )


@pytest.fixture
def webhook_body():
    """Build a refund webhook body; returns (signature, body_bytes)."""

    def _build(event="refund.processed", refund_id="rfnd_1", status="processed", **entity):
        payload = {
            "entity": "event",
            "account_id": "acc_test",
            "event": event,
            "contains": ["refund"],
            "payload": {
                "refund": {
                    "entity": {
                        "id": refund_id,
                        "entity": "refund",
                        "amount": 4000,
                        "currency": "INR",
                        "payment_id": "pay_test_1",
                        "notes": [],
                        "acquirer_data": [],
                        "created_at": 1735725600,
                        "status": status,
                        **entity,
                    }
                }
            },
            "created_at": 1735729200,
        }
        body = json.dumps(payload).encode("utf-8")
        return compute_signature(body, WEBHOOK_SECRET), body

    return _build
