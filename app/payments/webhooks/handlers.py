"""
Refund webhook ingestion.

RefundWebhookHandler takes the raw signature header and the raw body of
a gateway callback and applies the refund status it reports:

1. Verify the HMAC signature over the exact body bytes
2. Normalize `[]` map fields and decode the envelope
3. Pick the target status from the event name (entity status as fallback)
4. Apply it through RefundTransitioner (idempotent, notifies on terminal states)

Nothing in the payload is looked at before the signature is verified.

Usage:
    handler = RefundWebhookHandler(WebhookVerifier(secrets), transitioner)
    result = await handler.handle_refund_webhook(
        request.headers.get(SIGNATURE_HEADER),
        request.body,
    )
    if not result.success:
        status = 401 if result.error_code == "WEBHOOK_SIGNATURE_INVALID" else 400
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from core.services import BaseService, ServiceResult
from payments.adapters.gateway_client import GatewayRefund, normalize_gateway_body
from payments.exceptions import RefundStoreError, SecretNotFoundError, WebhookVerificationError
from payments.mappers import status_from_webhook_event
from payments.serializers import WebhookEnvelopeSerializer
from payments.services.transitions import TransitionOutcome

if TYPE_CHECKING:
    from typing import Any

    from payments.services.transitions import RefundTransitioner
    from payments.webhooks.verification import WebhookVerifier

# Entity fields needed to insert a refund that is unknown locally
_FULL_ENTITY_FIELDS = ("amount", "currency", "payment_id", "created_at")


def _gateway_refund_from_entity(entity: dict[str, Any]) -> GatewayRefund | None:
    if any(entity.get(name) is None for name in _FULL_ENTITY_FIELDS):
        return None
    return GatewayRefund.from_validated(entity, dict(entity))


class RefundWebhookHandler(BaseService):
    """Verifies and applies refund webhooks."""

    def __init__(self, verifier: WebhookVerifier, transitioner: RefundTransitioner):
        self.verifier = verifier
        self.transitioner = transitioner

    async def handle_refund_webhook(
        self,
        signature: str | None,
        body: bytes | str,
    ) -> ServiceResult[bool]:
        """
        Process one refund webhook delivery.

        Args:
            signature: X-Razorpay-Signature header value
            body: Raw request body, exactly as received

        Returns:
            ServiceResult[bool]: True when the status is recorded (including
            duplicate deliveries), False when the refund is unknown and
            could not be created. Failure codes: WEBHOOK_SECRET_MISSING,
            WEBHOOK_SIGNATURE_INVALID, WEBHOOK_PAYLOAD_INVALID,
            STORE_ERROR, INTERNAL_ERROR.
        """
        logger = self.get_logger()

        try:
            self.verifier.verify(body, signature)
        except SecretNotFoundError as e:
            logger.error("Webhook secret unavailable, rejecting webhook")
            return ServiceResult.failure(
                f"Webhook secret unavailable: {e.message}",
                error_code="WEBHOOK_SECRET_MISSING",
            )
        except WebhookVerificationError as e:
            return ServiceResult.failure(e.message, error_code="WEBHOOK_SIGNATURE_INVALID")

        envelope = self._decode(body)
        if isinstance(envelope, ServiceResult):
            return envelope

        event = envelope["event"]
        entity = envelope["payload"]["refund"]["entity"]
        refund_id = entity["id"]
        target = status_from_webhook_event(event, entity.get("status"))
        log_context = {"event": event, "refund_id": refund_id, "target_status": target}
        logger.info("Processing refund webhook", extra=log_context)

        try:
            result = await self.transitioner.apply(
                refund_id,
                target,
                gateway_refund=_gateway_refund_from_entity(entity),
                source="webhook",
            )
        except RefundStoreError as e:
            return self.handle_exception(e, "Failed to process refund webhook", error_code="STORE_ERROR")
        except Exception as e:
            return self.handle_exception(
                e, "Failed to process refund webhook", error_code="INTERNAL_ERROR"
            )

        logger.info(
            f"Refund webhook handled: {result.outcome.value}",
            extra={**log_context, "outcome": result.outcome.value},
        )
        return ServiceResult.success(result.outcome is not TransitionOutcome.NOT_FOUND)

    def _decode(self, body: bytes | str) -> dict[str, Any] | ServiceResult[bool]:
        try:
            text = body.decode("utf-8") if isinstance(body, bytes) else body
            data = json.loads(normalize_gateway_body(text))
        except ValueError as e:
            self.get_logger().warning(f"Webhook body is not valid JSON: {e}")
            return ServiceResult.failure(
                f"Invalid webhook payload: {e}",
                error_code="WEBHOOK_PAYLOAD_INVALID",
            )

        serializer = WebhookEnvelopeSerializer(data=data)
        if not serializer.is_valid():
            self.get_logger().warning(
                "Webhook payload failed validation",
                extra={"errors": serializer.errors},
            )
            return ServiceResult.failure(
                "Invalid webhook payload",
                error_code="WEBHOOK_PAYLOAD_INVALID",
                errors=dict(serializer.errors),
            )
        return serializer.validated_data
