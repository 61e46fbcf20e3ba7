"""
Tests for SideEffectDispatcher and push message templates.
"""

from __future__ import annotations

import pytest

from core.services import ServiceResult
from payments.money import Money
from payments.services.side_effects import SideEffectDispatcher, build_push_message
from payments.state_machines import RefundStatus
from payments.tests.factories import RefundFactory
from payments.tests.fakes import (
    FakeUser,
    FakeUserLookup,
    RecordingEmailSender,
    RecordingNotificationSender,
)


@pytest.fixture
def refund():
    return RefundFactory.build(
        refund_id="rfnd_1",
        amount=4000,
        user_email="customer@example.com",
        processed=True,
    )


class TestBuildPushMessage:
    @pytest.mark.parametrize(
        "status, title, body",
        [
            (
                RefundStatus.PENDING,
                "Refund Initiated",
                "Your refund of ₹40.00 is being processed. You'll be notified once completed.",
            ),
            (
                RefundStatus.PROCESSED,
                "Refund Completed",
                "Your refund of ₹40.00 has been processed successfully.",
            ),
            (
                RefundStatus.FAILED,
                "Refund Failed",
                "Your refund of ₹40.00 could not be processed. Please contact support.",
            ),
        ],
    )
    def test_templates(self, status, title, body):
        assert build_push_message(status, Money(4000)) == (title, body)

    def test_unknown_status_falls_back(self):
        assert build_push_message("REVERSED", Money(4000)) == (
            "Refund Update",
            "Your refund of ₹40.00 status: REVERSED",
        )


class TestNotifyRefundStatus:
    async def test_skips_push_without_token(self, refund):
        sender = RecordingNotificationSender()
        email_sender = RecordingEmailSender()
        dispatcher = SideEffectDispatcher(
            user_lookup=FakeUserLookup([FakeUser("customer@example.com", fcm_token=None)]),
            notification_sender=sender,
            email_sender=email_sender,
        )

        await dispatcher.notify_refund_status(refund)

        assert sender.sent == []
        # Email does not depend on a push token
        assert len(email_sender.sent) == 1

    async def test_push_failure_is_swallowed(self, refund):
        """A failing push must not fail the refund operation."""
        sender = RecordingNotificationSender(result=ServiceResult.failure("FCM unavailable"))
        dispatcher = SideEffectDispatcher(
            user_lookup=FakeUserLookup([FakeUser("customer@example.com")]),
            notification_sender=sender,
        )

        await dispatcher.notify_refund_status(refund)

        assert len(sender.sent) == 1

    async def test_lookup_exception_is_swallowed(self, refund):
        class BrokenLookup:
            async def find_by_email(self, email):
                raise ConnectionError("user service down")

        email_sender = RecordingEmailSender()
        dispatcher = SideEffectDispatcher(
            user_lookup=BrokenLookup(),
            notification_sender=RecordingNotificationSender(),
            email_sender=email_sender,
        )

        await dispatcher.notify_refund_status(refund)

        assert len(email_sender.sent) == 1

    async def test_nothing_configured(self, refund):
        dispatcher = SideEffectDispatcher()

        await dispatcher.notify_refund_status(refund)

        outcome = await dispatcher.cancel_subscription("admin@example.com", refund.user_email)
        assert outcome.attempted is False
