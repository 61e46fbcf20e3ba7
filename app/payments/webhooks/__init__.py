"""
Refund webhook verification and handling.

Usage:
    from payments.webhooks import RefundWebhookHandler, WebhookVerifier, SIGNATURE_HEADER
"""

from payments.webhooks.handlers import RefundWebhookHandler
from payments.webhooks.verification import (
    SIGNATURE_HEADER,
    WebhookVerifier,
    compute_signature,
    verify_signature,
)

__all__ = [
    "SIGNATURE_HEADER",
    "RefundWebhookHandler",
    "WebhookVerifier",
    "compute_signature",
    "verify_signature",
]
