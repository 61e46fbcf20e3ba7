"""
Tests for refund Celery tasks.

The engine is replaced with a mock so the tasks' own behavior is
tested: settings handling, result shaping and engine cleanup.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from core.services import ServiceResult
from payments.services.reconciliation_service import SweepResult
from payments.tasks import resync_payment_refunds, sync_pending_refunds
from payments.types import PaymentRefundSummary


@pytest.fixture
def engine():
    engine = MagicMock()
    engine.aclose = AsyncMock()
    engine.reconciliation.sync_pending_refunds = AsyncMock()
    engine.check_payment_refund_status = AsyncMock()
    with patch("payments.engine.RefundEngine.from_settings", return_value=engine):
        yield engine


class TestSyncPendingRefunds:
    def test_returns_sweep_counts(self, engine, settings):
        settings.REFUND_PENDING_SYNC_AFTER_MINUTES = 30
        engine.reconciliation.sync_pending_refunds.return_value = ServiceResult.success(
            SweepResult(payments_checked=2, refunds_updated=1, errors=["pay_x: timeout"])
        )

        result = sync_pending_refunds()

        engine.reconciliation.sync_pending_refunds.assert_awaited_once_with(timedelta(minutes=30))
        engine.aclose.assert_awaited_once()
        assert result == {
            "status": "completed",
            "payments_checked": 2,
            "refunds_created": 0,
            "refunds_updated": 1,
            "errors": ["pay_x: timeout"],
        }

    def test_store_failure(self, engine):
        engine.reconciliation.sync_pending_refunds.return_value = ServiceResult.failure(
            "Failed to list pending refunds: db down", "STORE_ERROR"
        )

        result = sync_pending_refunds()

        assert result["status"] == "error"
        engine.aclose.assert_awaited_once()

    def test_engine_closed_when_sweep_raises(self, engine):
        engine.reconciliation.sync_pending_refunds.side_effect = RuntimeError("boom")

        with pytest.raises(RuntimeError):
            sync_pending_refunds()

        engine.aclose.assert_awaited_once()


class TestResyncPaymentRefunds:
    def test_returns_summary(self, engine):
        engine.check_payment_refund_status.return_value = ServiceResult.success(
            PaymentRefundSummary(
                payment_id="pay_1",
                original_amount=Decimal("100.00"),
                total_refunded=Decimal("40.00"),
                remaining_refundable=Decimal("60.00"),
            )
        )

        result = resync_payment_refunds("pay_1")

        assert result["status"] == "completed"
        assert result["payment_id"] == "pay_1"
        assert result["remaining_refundable"] == "60.00"

    def test_unknown_payment(self, engine):
        engine.check_payment_refund_status.return_value = ServiceResult.failure(
            "Payment not found: pay_1", "NOT_FOUND"
        )

        result = resync_payment_refunds("pay_1")

        assert result == {
            "status": "error",
            "payment_id": "pay_1",
            "error": "Payment not found: pay_1",
        }
