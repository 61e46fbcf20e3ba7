"""
Default implementations of the user and email collaborators.

DjangoUserLookup reads the configured user model; a push token is taken
from the attribute named by REFUND_PUSH_TOKEN_FIELD (default
"fcm_token") when the user model has one.

DjangoRefundEmailSender sends a plain-text status email through
Django's mail framework (EMAIL_BACKEND / DEFAULT_FROM_EMAIL).

Push delivery and subscription cancellation are owned by other
systems; they are plugged in through the REFUND_NOTIFICATION_SENDER and
REFUND_SUBSCRIPTION_CANCELLER settings (dotted paths).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from asgiref.sync import sync_to_async
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import EmailMultiAlternatives

from core.services import ServiceResult
from payments.state_machines import RefundStatus

if TYPE_CHECKING:
    from payments.money import Money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserContact:
    email: str
    fcm_token: str | None = None


class DjangoUserLookup:
    """UserLookup over the configured auth user model."""

    def __init__(self, token_field: str | None = None):
        self.token_field = token_field or getattr(
            settings, "REFUND_PUSH_TOKEN_FIELD", "fcm_token"
        )

    async def find_by_email(self, email: str) -> UserContact | None:
        user = await get_user_model().objects.filter(email__iexact=email).afirst()
        if user is None:
            return None
        return UserContact(email=user.email, fcm_token=getattr(user, self.token_field, None))


REFUND_EMAIL_SUBJECTS = {
    RefundStatus.PENDING: "Your refund has been initiated",
    RefundStatus.PROCESSED: "Your refund has been processed",
    RefundStatus.FAILED: "Your refund could not be processed",
}


class DjangoRefundEmailSender:
    """
    RefundEmailSender using django.core.mail.

    Usage:
        sender = DjangoRefundEmailSender()
        await sender.send_refund_notification(
            "user@example.com", "rfnd_123", Money(4000), RefundStatus.PROCESSED
        )
    """

    def __init__(self, from_email: str | None = None):
        self.from_email = from_email or settings.DEFAULT_FROM_EMAIL

    def _build_body(self, refund_id: str, amount: Money, status: str) -> str:
        if status == RefundStatus.PROCESSED:
            summary = f"Your refund of {amount} has been processed successfully."
        elif status == RefundStatus.FAILED:
            summary = f"Your refund of {amount} could not be processed. Please contact support."
        else:
            summary = f"Your refund of {amount} is being processed."
        return f"{summary}\n\nRefund reference: {refund_id}\n"

    async def send_refund_notification(
        self,
        email: str,
        refund_id: str,
        amount: Money,
        status: str,
    ) -> ServiceResult[None]:
        message = EmailMultiAlternatives(
            subject=REFUND_EMAIL_SUBJECTS.get(status, "Refund update"),
            body=self._build_body(refund_id, amount, status),
            from_email=self.from_email,
            to=[email],
        )
        sent = await sync_to_async(message.send)(fail_silently=False)
        if not sent:
            return ServiceResult.failure(f"Refund email to {email} was not sent")
        logger.info(
            f"Refund email sent for {refund_id}",
            extra={"refund_id": refund_id, "status": status},
        )
        return ServiceResult.success(None)
