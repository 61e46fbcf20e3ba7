"""
Tests for RefundReconciliationService.

Covers on-demand payment resync, the gateway-unreachable fallback to
local data, auto-sync of refunds missing locally and the periodic
pending-refund sweep.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.utils import timezone

from payments.exceptions import GatewayUnavailableError
from payments.state_machines import RefundStatus
from payments.tests.factories import RefundFactory
from payments.tests.fakes import gateway_refund


class TestCheckPaymentRefundStatus:
    async def test_inserts_refunds_missing_locally(self, reconciliation, gateway, store):
        """Should auto-sync gateway refunds the store has never seen."""
        gateway.listed["pay_test_1"] = [
            gateway_refund("rfnd_remote", "pay_test_1", 2500, status="processed"),
        ]

        result = await reconciliation.check_payment_refund_status("pay_test_1")

        assert result.success is True
        assert result.data.total_refunded == Decimal("25.00")
        refund = store.refunds["rfnd_remote"]
        assert refund.processed_by == "system"
        assert refund.reason == "auto-synced from gateway"

    async def test_updates_known_pending_refund(self, reconciliation, gateway, store, push_sender):
        store.refunds["rfnd_1"] = RefundFactory.build(
            refund_id="rfnd_1", payment_id="pay_test_1", amount=4000
        )
        gateway.listed["pay_test_1"] = [
            gateway_refund("rfnd_1", "pay_test_1", 4000, status="processed"),
        ]

        result = await reconciliation.check_payment_refund_status("pay_test_1")

        assert result.data.refunds[0].status == RefundStatus.PROCESSED
        assert push_sender.sent[0][1] == "Refund Completed"

    async def test_gateway_unreachable_returns_local_summary(self, reconciliation, gateway, store):
        """Stale local data is returned instead of an error."""
        store.refunds["rfnd_1"] = RefundFactory.build(
            refund_id="rfnd_1", payment_id="pay_test_1", amount=4000
        )
        gateway.list_error = GatewayUnavailableError("Could not connect to gateway")

        result = await reconciliation.check_payment_refund_status("pay_test_1")

        assert result.success is True
        assert result.data.remaining_refundable == Decimal("60.00")
        assert store.refunds["rfnd_1"].status == RefundStatus.PENDING

    async def test_unknown_payment(self, reconciliation, gateway):
        result = await reconciliation.check_payment_refund_status("pay_missing")

        assert result.error_code == "NOT_FOUND"
        assert gateway.list_calls == []

    async def test_store_failure(self, reconciliation, gateway, store):
        gateway.listed["pay_test_1"] = [gateway_refund("rfnd_remote", "pay_test_1")]
        store.fail_on.add("get")

        result = await reconciliation.check_payment_refund_status("pay_test_1")

        assert result.success is False
        assert result.error_code == "STORE_ERROR"


class TestSyncPendingRefunds:
    async def test_sweeps_payments_with_old_pending_refunds(self, reconciliation, gateway, store):
        two_hours_ago = timezone.now() - timedelta(hours=2)
        store.refunds["rfnd_old"] = RefundFactory.build(
            refund_id="rfnd_old", payment_id="pay_test_1", created_at=two_hours_ago
        )
        store.refunds["rfnd_fresh"] = RefundFactory.build(
            refund_id="rfnd_fresh", payment_id="pay_other"
        )
        gateway.listed["pay_test_1"] = [
            gateway_refund("rfnd_old", "pay_test_1", status="processed"),
        ]

        result = await reconciliation.sync_pending_refunds(timedelta(hours=1))

        assert gateway.list_calls == ["pay_test_1"]
        assert result.data.payments_checked == 1
        assert result.data.refunds_updated == 1
        assert store.refunds["rfnd_old"].status == RefundStatus.PROCESSED
        assert store.refunds["rfnd_fresh"].status == RefundStatus.PENDING

    async def test_one_failing_payment_does_not_stop_sweep(self, reconciliation, gateway, store):
        old = timezone.now() - timedelta(hours=3)
        for refund_id, payment_id in [("rfnd_a", "pay_a"), ("rfnd_b", "pay_b")]:
            store.refunds[refund_id] = RefundFactory.build(
                refund_id=refund_id, payment_id=payment_id, created_at=old
            )

        list_refunds = gateway.list_refunds

        async def flaky_list(payment_id):
            if payment_id == "pay_a":
                raise GatewayUnavailableError("Gateway returned 503")
            return await list_refunds(payment_id)

        gateway.list_refunds = flaky_list

        result = await reconciliation.sync_pending_refunds(timedelta(hours=1))

        assert result.success is True
        assert result.data.payments_checked == 1
        assert result.data.errors == ["pay_a: Gateway returned 503"]
