"""
Translation between gateway refund data and the Refund model.

Gateway statuses and speeds are lower-case strings; the model stores
the RefundStatus / RefundSpeed choices. Unknown gateway statuses map to
PENDING so that a refund is never marked settled on a value this code
does not understand.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from payments.models import Refund
from payments.state_machines import RefundSpeed, RefundStatus

if TYPE_CHECKING:
    from payments.adapters.gateway_client import GatewayRefund

SYSTEM_ACTOR = "system"
AUTO_SYNC_REASON = "auto-synced from gateway"

_STATUS_MAP = {
    "pending": RefundStatus.PENDING,
    "processed": RefundStatus.PROCESSED,
    "failed": RefundStatus.FAILED,
}

_EVENT_STATUS_MAP = (
    ("refund.processed", RefundStatus.PROCESSED),
    ("refund.failed", RefundStatus.FAILED),
    ("refund.created", RefundStatus.PENDING),
)


def status_from_gateway(value: str | None) -> RefundStatus:
    return _STATUS_MAP.get((value or "").lower(), RefundStatus.PENDING)


def speed_requested_from_gateway(value: str | None) -> RefundSpeed:
    return RefundSpeed.OPTIMUM if (value or "").lower() == "optimum" else RefundSpeed.NORMAL


def speed_processed_from_gateway(value: str | None) -> RefundSpeed | None:
    value = (value or "").lower()
    if value == "instant":
        return RefundSpeed.OPTIMUM
    if value == "normal":
        return RefundSpeed.NORMAL
    return None


def speed_to_gateway(speed: str | None) -> str:
    return "normal" if speed == RefundSpeed.NORMAL else "optimum"


def status_from_webhook_event(event: str, entity_status: str | None) -> RefundStatus:
    """
    Target status for a webhook.

    The event name wins over the entity's status field; the entity
    status is used only when the event is not a known refund event.
    """
    event = (event or "").lower()
    for name, status in _EVENT_STATUS_MAP:
        if name in event:
            return status
    return status_from_gateway(entity_status)


def timestamp_to_datetime(value: int) -> datetime:
    return datetime.fromtimestamp(value, tz=UTC)


def refund_from_gateway(
    gateway_refund: GatewayRefund,
    *,
    user_email: str,
    user_id: str | None,
    processed_by: str,
    reason: str | None,
    requested_speed: str | None = None,
    receipt: str | None = None,
) -> Refund:
    """
    Build an unsaved Refund from a gateway refund.

    A refund that is already PROCESSED or FAILED at the gateway gets its
    terminal timestamp from the gateway's created_at. The receipt is
    cut to the column width; gateways accept longer merchant receipts.
    """
    created_at = timestamp_to_datetime(gateway_refund.created_at)
    status = status_from_gateway(gateway_refund.status)

    if gateway_refund.speed_requested:
        speed_requested = speed_requested_from_gateway(gateway_refund.speed_requested)
    else:
        speed_requested = requested_speed or RefundSpeed.NORMAL

    notes = gateway_refund.notes or {}
    receipt = gateway_refund.receipt or receipt
    if receipt:
        receipt = receipt[: Refund._meta.get_field("receipt").max_length]

    return Refund(
        refund_id=gateway_refund.id,
        payment_id=gateway_refund.payment_id,
        amount=gateway_refund.amount,
        currency=gateway_refund.currency.upper(),
        status=status,
        speed_requested=speed_requested,
        speed_processed=speed_processed_from_gateway(gateway_refund.speed_processed),
        user_email=user_email,
        user_id=user_id,
        processed_by=processed_by,
        reason=reason,
        notes=notes.get("comment"),
        receipt=receipt,
        created_at=created_at,
        processed_at=created_at if status == RefundStatus.PROCESSED else None,
        failed_at=created_at if status == RefundStatus.FAILED else None,
        acquirer_data=gateway_refund.acquirer_data,
        batch_id=gateway_refund.batch_id,
    )
