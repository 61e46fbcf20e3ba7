"""
Tests for DjangoRefundStore and DjangoPaymentLookup.

These run the async ORM against the test database and cover the
conditional status update that keeps duplicate webhook deliveries from
transitioning a refund twice.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from unittest.mock import patch

import pytest
from django.db import OperationalError
from django.utils import timezone
from django_fsm import TransitionNotAllowed

from payments.exceptions import DuplicateRefundError, RefundStoreError
from payments.models import PaymentStatus, Refund
from payments.money import Money
from payments.state_machines import RefundSpeed, RefundStatus

pytestmark = pytest.mark.django_db(transaction=True)


class TestCreateAndGet:
    async def test_round_trip(self, refund_store):
        refund = Refund(
            refund_id="rfnd_1",
            payment_id="pay_1",
            amount=4000,
            user_email="customer@example.com",
            processed_by="admin@example.com",
        )

        await refund_store.create(refund)
        stored = await refund_store.get("rfnd_1")

        assert stored.amount == 4000
        assert stored.status == RefundStatus.PENDING

    async def test_get_missing(self, refund_store):
        assert await refund_store.get("rfnd_missing") is None

    async def test_duplicate_refund_id(self, refund_store, create_refund):
        await create_refund(refund_id="rfnd_1")

        with pytest.raises(DuplicateRefundError):
            await refund_store.create(
                Refund(
                    refund_id="rfnd_1",
                    payment_id="pay_1",
                    amount=4000,
                    user_email="customer@example.com",
                    processed_by="system",
                )
            )

    async def test_database_errors_are_translated(self, refund_store):
        with patch.object(Refund.objects, "filter", side_effect=OperationalError("db down")):
            with pytest.raises(RefundStoreError) as exc_info:
                await refund_store.get("rfnd_1")

        assert exc_info.value.details == {"operation": "get"}


class TestUpdateStatus:
    async def test_pending_to_processed_stamps_processed_at(self, refund_store, create_refund):
        await create_refund(refund_id="rfnd_1")

        changed = await refund_store.update_status(
            "rfnd_1", RefundStatus.PROCESSED, speed_processed=RefundSpeed.NORMAL
        )

        refund = await refund_store.get("rfnd_1")
        assert changed is True
        assert refund.status == RefundStatus.PROCESSED
        assert refund.processed_at is not None
        assert refund.speed_processed == RefundSpeed.NORMAL

    async def test_failed_records_error_details(self, refund_store, create_refund):
        await create_refund(refund_id="rfnd_1")

        await refund_store.update_status(
            "rfnd_1",
            RefundStatus.FAILED,
            error_code="BAD_REQUEST_ERROR",
            error_description="Bank account closed",
        )

        refund = await refund_store.get("rfnd_1")
        assert refund.failed_at is not None
        assert refund.error_code == "BAD_REQUEST_ERROR"
        assert refund.error_description == "Bank account closed"

    async def test_same_status_changes_nothing(self, refund_store, create_refund):
        await create_refund(refund_id="rfnd_1", processed=True)

        assert await refund_store.update_status("rfnd_1", RefundStatus.PROCESSED) is False

    async def test_concurrent_updates_change_one_row(self, refund_store, create_refund):
        """Only one of several simultaneous identical updates reports a change."""
        await create_refund(refund_id="rfnd_1")

        results = await asyncio.gather(
            *(refund_store.update_status("rfnd_1", RefundStatus.PROCESSED) for _ in range(3))
        )

        assert sorted(results) == [False, False, True]

    async def test_unknown_refund(self, refund_store):
        assert await refund_store.update_status("rfnd_missing", RefundStatus.FAILED) is False

    async def test_correction_clears_previous_terminal_timestamp(self, refund_store, create_refund):
        """PROCESSED -> FAILED must not leave a processed date behind."""
        await create_refund(refund_id="rfnd_1", processed=True)

        changed = await refund_store.update_status("rfnd_1", RefundStatus.FAILED)

        refund = await refund_store.get("rfnd_1")
        assert changed is True
        assert refund.status == RefundStatus.FAILED
        assert refund.failed_at is not None
        assert refund.processed_at is None

    async def test_settled_refund_cannot_return_to_pending(self, refund_store, create_refund):
        await create_refund(refund_id="rfnd_1", failed=True)

        with pytest.raises(TransitionNotAllowed):
            await refund_store.update_status("rfnd_1", RefundStatus.PENDING)

        refund = await refund_store.get("rfnd_1")
        assert refund.status == RefundStatus.FAILED


class TestPaymentQueries:
    async def test_total_refunded_excludes_failed(self, refund_store, create_refund):
        await create_refund(payment_id="pay_1", amount=3000, processed=True)
        await create_refund(payment_id="pay_1", amount=2000)
        await create_refund(payment_id="pay_1", amount=5000, failed=True)
        await create_refund(payment_id="pay_2", amount=9000)

        assert await refund_store.total_refunded_for_payment("pay_1") == Money(5000)

    async def test_list_by_payment_newest_first(self, refund_store, create_refund):
        now = timezone.now()
        await create_refund(refund_id="rfnd_old", payment_id="pay_1", created_at=now - timedelta(days=1))
        await create_refund(refund_id="rfnd_new", payment_id="pay_1", created_at=now)

        refunds = await refund_store.list_by_payment("pay_1")

        assert [r.refund_id for r in refunds] == ["rfnd_new", "rfnd_old"]

    async def test_payment_ids_with_pending_refunds(self, refund_store, create_refund):
        old = timezone.now() - timedelta(hours=2)
        await create_refund(payment_id="pay_b", created_at=old)
        await create_refund(payment_id="pay_a", created_at=old)
        await create_refund(payment_id="pay_a", created_at=old)
        await create_refund(payment_id="pay_c", created_at=old, processed=True)
        await create_refund(payment_id="pay_d")

        payment_ids = await refund_store.payment_ids_with_pending_refunds(
            timezone.now() - timedelta(hours=1)
        )

        assert payment_ids == ["pay_a", "pay_b"]


class TestPaymentLookup:
    async def test_get_by_gateway_id(self, payment_lookup, create_payment):
        await create_payment(gateway_payment_id="pay_1", amount=10000)

        payment = await payment_lookup.get_by_gateway_id("pay_1")

        assert payment.amount == 10000
        assert await payment_lookup.get_by_gateway_id("pay_missing") is None

    async def test_total_revenue_counts_verified_payments(self, payment_lookup, create_payment):
        await create_payment(amount=10000)
        await create_payment(amount=5000)
        await create_payment(amount=None)
        await create_payment(amount=7000, status=PaymentStatus.FAILED)

        assert await payment_lookup.total_revenue() == Money(15000)
