"""
Refund reconciliation engine.

This app handles:
- Initiating refunds against the payment gateway
- Recording refunds and their status locally
- Applying gateway webhooks and polling results idempotently
- Notifying users and cancelling subscriptions after refunds
- Refund history, dashboard metrics and CSV export

Usage:
    from payments.engine import RefundEngine
    from payments.types import InitiateRefundRequest

    engine = RefundEngine.from_settings()
    result = await engine.initiate_refund(
        "admin@example.com",
        InitiateRefundRequest(payment_id="pay_123", amount=4000),
    )
"""
