"""
Best-effort side effects of refund state changes.

SideEffectDispatcher runs the actions that follow a refund being
recorded or changing status:
- Push notification to the user (skipped when no push token is on file)
- Refund status email
- Subscription cancellation after a successful initiation, retried

None of these can fail the refund operation that triggered them.
Notification failures are only logged; the subscription outcome is
returned so the caller can tell the operator to cancel manually.

Usage:
    dispatcher = SideEffectDispatcher(
        user_lookup=DjangoUserLookup(),
        notification_sender=push_sender,
        email_sender=DjangoRefundEmailSender(),
        subscription_canceller=subscriptions,
    )
    await dispatcher.notify_refund_status(refund)
    outcome = await dispatcher.cancel_subscription(admin_email, refund.user_email)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings

from core.retry import retry_async
from core.services import BaseService
from payments.state_machines import RefundStatus

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from payments.models import Refund
    from payments.money import Money
    from payments.protocols import (
        NotificationSender,
        RefundEmailSender,
        SubscriptionCanceller,
        UserLookup,
    )


# =============================================================================
# Push Templates
# =============================================================================


def build_push_message(status: str, amount: Money) -> tuple[str, str]:
    """
    Title and body of the push notification for a refund status.

    Example:
        build_push_message(RefundStatus.PROCESSED, Money(4000))
        # ("Refund Completed", "Your refund of ₹40.00 has been processed successfully.")
    """
    if status == RefundStatus.PENDING:
        return (
            "Refund Initiated",
            f"Your refund of {amount} is being processed. You'll be notified once completed.",
        )
    if status == RefundStatus.PROCESSED:
        return "Refund Completed", f"Your refund of {amount} has been processed successfully."
    if status == RefundStatus.FAILED:
        return (
            "Refund Failed",
            f"Your refund of {amount} could not be processed. Please contact support.",
        )
    return "Refund Update", f"Your refund of {amount} status: {status}"


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class CancellationOutcome:
    """
    Result of the post-refund subscription cancellation.

    Attributes:
        attempted: False when no canceller is configured
        succeeded: Whether any attempt succeeded
        attempts: Attempts actually made
        last_error: Reason of the last failed attempt
    """

    attempted: bool
    succeeded: bool = False
    attempts: int = 0
    last_error: str | None = None


# =============================================================================
# Dispatcher
# =============================================================================


class SideEffectDispatcher(BaseService):
    """Runs notification and subscription side effects for refunds."""

    def __init__(
        self,
        user_lookup: UserLookup | None = None,
        notification_sender: NotificationSender | None = None,
        email_sender: RefundEmailSender | None = None,
        subscription_canceller: SubscriptionCanceller | None = None,
        *,
        cancel_attempts: int | None = None,
        cancel_delay: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.user_lookup = user_lookup
        self.notification_sender = notification_sender
        self.email_sender = email_sender
        self.subscription_canceller = subscription_canceller
        self.cancel_attempts = (
            cancel_attempts
            if cancel_attempts is not None
            else settings.REFUND_SUBSCRIPTION_CANCEL_ATTEMPTS
        )
        self.cancel_delay = (
            cancel_delay
            if cancel_delay is not None
            else settings.REFUND_SUBSCRIPTION_CANCEL_DELAY_SECONDS
        )
        self.sleep = sleep

    # =========================================================================
    # Notifications
    # =========================================================================

    async def notify_refund_status(self, refund: Refund) -> None:
        """
        Send push and email notifications for the refund's current status.

        Never raises; every failure is logged and dropped.
        """
        await self._send_push(refund)
        await self._send_email(refund)

    async def _send_push(self, refund: Refund) -> None:
        logger = self.get_logger()
        if self.user_lookup is None or self.notification_sender is None:
            logger.debug("Push notifications not configured, skipping")
            return

        log_context = {"refund_id": refund.refund_id, "status": refund.status}
        try:
            user = await self.user_lookup.find_by_email(refund.user_email)
            if user is None or not user.fcm_token:
                logger.info("No push token on file, skipping push notification", extra=log_context)
                return

            title, body = build_push_message(refund.status, refund.money)
            result = await self.notification_sender.send(user.fcm_token, title, body)
            if result.success:
                logger.info("Refund push notification sent", extra=log_context)
            else:
                logger.warning(
                    f"Refund push notification failed: {result.error}",
                    extra=log_context,
                )
        except Exception as e:
            logger.warning(
                f"Error sending refund push notification: {e}",
                extra=log_context,
                exc_info=True,
            )

    async def _send_email(self, refund: Refund) -> None:
        logger = self.get_logger()
        if self.email_sender is None:
            return

        log_context = {"refund_id": refund.refund_id, "status": refund.status}
        try:
            result = await self.email_sender.send_refund_notification(
                refund.user_email,
                refund.refund_id,
                refund.money,
                refund.status,
            )
            if not result.success:
                logger.warning(f"Refund email failed: {result.error}", extra=log_context)
        except Exception as e:
            logger.warning(
                f"Error sending refund email: {e}",
                extra=log_context,
                exc_info=True,
            )

    # =========================================================================
    # Subscription Cancellation
    # =========================================================================

    async def cancel_subscription(self, admin_email: str, user_email: str) -> CancellationOutcome:
        """
        Cancel the user's subscription, retrying on failure.

        Both a failed ServiceResult and an exception count as a failed
        attempt. Attempts and delay come from
        REFUND_SUBSCRIPTION_CANCEL_ATTEMPTS / _DELAY_SECONDS.

        Returns:
            CancellationOutcome; never raises
        """
        logger = self.get_logger()
        if self.subscription_canceller is None:
            logger.debug("No subscription canceller configured, skipping cancellation")
            return CancellationOutcome(attempted=False)

        canceller = self.subscription_canceller
        retry = await retry_async(
            lambda: canceller.cancel_user_subscription(admin_email, user_email),
            attempts=self.cancel_attempts,
            delay=self.cancel_delay,
            is_success=lambda result: bool(result and result.success),
            describe_failure=lambda result: f"Failed to cancel subscription: {result.error}",
            sleep=self.sleep,
            label="subscription cancellation",
        )

        if not retry.succeeded:
            logger.error(
                f"Subscription for {user_email} still active after {retry.attempts} attempts",
                extra={"user_email": user_email, "last_error": retry.last_error},
            )
        return CancellationOutcome(
            attempted=True,
            succeeded=retry.succeeded,
            attempts=retry.attempts,
            last_error=retry.last_error,
        )
