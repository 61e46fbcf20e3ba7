"""
HMAC-SHA256 verification of gateway webhooks.

The gateway signs the exact request body with the shared webhook secret
and sends the hex digest in the X-Razorpay-Signature header. The digest
must be computed over the raw bytes before any JSON parsing.

Usage:
    verifier = WebhookVerifier(SettingsSecretsProvider())
    verifier.verify(request.body, request.headers.get(SIGNATURE_HEADER))
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import TYPE_CHECKING

from django.conf import settings

from payments.exceptions import WebhookVerificationError

if TYPE_CHECKING:
    from payments.protocols import SecretsProvider

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Razorpay-Signature"


def _to_bytes(body: bytes | str) -> bytes:
    return body.encode("utf-8") if isinstance(body, str) else body


def compute_signature(body: bytes | str, secret: str) -> str:
    """Hex-encoded HMAC-SHA256 of `body` keyed with `secret`."""
    return hmac.new(secret.encode("utf-8"), _to_bytes(body), hashlib.sha256).hexdigest()


def verify_signature(body: bytes | str, signature: str | None, secret: str) -> bool:
    """Constant-time, case-insensitive comparison against the expected digest."""
    if not signature:
        return False
    expected = compute_signature(body, secret)
    return hmac.compare_digest(expected, signature.strip().lower())


class WebhookVerifier:
    """
    Verifies webhook signatures with a secret from the secrets provider.

    The secret is looked up on every call so rotations take effect
    without a restart.
    """

    def __init__(self, secrets: SecretsProvider, secret_name: str | None = None):
        self.secrets = secrets
        self.secret_name = secret_name or settings.REFUND_WEBHOOK_SECRET_NAME

    def verify(self, body: bytes | str, signature: str | None) -> None:
        """
        Raise unless `signature` matches `body`.

        Raises:
            SecretNotFoundError: Webhook secret is not configured
            WebhookVerificationError: Signature missing or mismatched
        """
        secret = self.secrets.get_secret(self.secret_name)
        if verify_signature(body, signature, secret):
            return

        logger.warning(
            "Webhook signature mismatch",
            extra={"signature_preview": (signature or "")[:20]},
        )
        raise WebhookVerificationError("Invalid webhook signature")
