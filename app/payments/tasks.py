"""
Celery tasks for refund reconciliation.

This module provides background tasks for:
- Sweeping refunds stuck in PENDING and resyncing them from the gateway
- Resyncing one payment's refunds on demand

The engine is async; tasks run it to completion with async_to_sync and
build a fresh engine per run so no HTTP client outlives its event loop.

Usage:
    from payments.tasks import resync_payment_refunds

    # Queue a resync after an admin action
    resync_payment_refunds.delay("pay_123")

    # sync_pending_refunds is scheduled by celery-beat (see config/celery.py)
"""

from __future__ import annotations

import logging
from datetime import timedelta

from asgiref.sync import async_to_sync
from celery import shared_task
from django.conf import settings

logger = logging.getLogger(__name__)


async def _sweep_pending(older_than: timedelta):
    from payments.engine import RefundEngine

    engine = RefundEngine.from_settings()
    try:
        return await engine.reconciliation.sync_pending_refunds(older_than)
    finally:
        await engine.aclose()


async def _resync_payment(payment_id: str):
    from payments.engine import RefundEngine

    engine = RefundEngine.from_settings()
    try:
        return await engine.check_payment_refund_status(payment_id)
    finally:
        await engine.aclose()


# =============================================================================
# Reconciliation Tasks
# =============================================================================


@shared_task
def sync_pending_refunds() -> dict:
    """
    Resync payments whose refunds are still PENDING after
    REFUND_PENDING_SYNC_AFTER_MINUTES.

    Returns:
        Dict with sweep counts, or the error
    """
    older_than = timedelta(minutes=settings.REFUND_PENDING_SYNC_AFTER_MINUTES)
    logger.info(
        "Starting pending refund sweep",
        extra={"older_than_minutes": settings.REFUND_PENDING_SYNC_AFTER_MINUTES},
    )

    result = async_to_sync(_sweep_pending)(older_than)
    if not result.success:
        logger.error(f"Pending refund sweep failed: {result.error}")
        return {"status": "error", "error": result.error}

    sweep = result.data
    return {
        "status": "completed",
        "payments_checked": sweep.payments_checked,
        "refunds_created": sweep.refunds_created,
        "refunds_updated": sweep.refunds_updated,
        "errors": sweep.errors,
    }


@shared_task(acks_late=True)
def resync_payment_refunds(payment_id: str) -> dict:
    """
    Resync one payment's refunds from the gateway.

    Args:
        payment_id: Gateway payment ID

    Returns:
        Dict with the refreshed summary, or the error
    """
    logger.info("Resyncing payment refunds", extra={"payment_id": payment_id})

    result = async_to_sync(_resync_payment)(payment_id)
    if not result.success:
        logger.warning(
            f"Refund resync failed for {payment_id}: {result.error}",
            extra={"payment_id": payment_id, "error_code": result.error_code},
        )
        return {"status": "error", "payment_id": payment_id, "error": result.error}

    return {"status": "completed", **result.data.to_dict()}
