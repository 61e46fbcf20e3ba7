"""
Tests for webhook signature verification.
"""

import hashlib
import hmac

import pytest

from payments.exceptions import SecretNotFoundError, WebhookVerificationError
from payments.tests.fakes import DictSecretsProvider
from payments.webhooks.verification import (
    WebhookVerifier,
    compute_signature,
    verify_signature,
)

BODY = b'{"event":"refund.processed"}'
SECRET = "whsec_test_secret"


class TestComputeSignature:
    def test_hex_hmac_sha256(self):
        expected = hmac.new(SECRET.encode(), BODY, hashlib.sha256).hexdigest()

        assert compute_signature(BODY, SECRET) == expected

    def test_str_and_bytes_agree(self):
        assert compute_signature(BODY.decode(), SECRET) == compute_signature(BODY, SECRET)


class TestVerifySignature:
    def test_valid(self):
        assert verify_signature(BODY, compute_signature(BODY, SECRET), SECRET)

    def test_upper_case_hex_accepted(self):
        assert verify_signature(BODY, compute_signature(BODY, SECRET).upper(), SECRET)

    @pytest.mark.parametrize("signature", [None, "", "deadbeef"])
    def test_invalid(self, signature):
        assert verify_signature(BODY, signature, SECRET) is False

    def test_body_is_signed_byte_for_byte(self):
        """Re-serialized JSON with different spacing must not verify."""
        signature = compute_signature(BODY, SECRET)

        assert verify_signature(b'{"event": "refund.processed"}', signature, SECRET) is False


class TestWebhookVerifier:
    def test_accepts_valid_signature(self):
        verifier = WebhookVerifier(DictSecretsProvider({"wh": SECRET}), secret_name="wh")

        verifier.verify(BODY, compute_signature(BODY, SECRET))

    def test_rejects_mismatch(self):
        verifier = WebhookVerifier(DictSecretsProvider({"wh": SECRET}), secret_name="wh")

        with pytest.raises(WebhookVerificationError):
            verifier.verify(BODY, compute_signature(BODY, "other-secret"))

    def test_missing_secret(self):
        verifier = WebhookVerifier(DictSecretsProvider(), secret_name="wh")

        with pytest.raises(SecretNotFoundError):
            verifier.verify(BODY, "anything")

    def test_default_secret_name_from_settings(self, settings):
        settings.REFUND_WEBHOOK_SECRET_NAME = "custom-webhook-secret"

        verifier = WebhookVerifier(DictSecretsProvider())

        assert verifier.secret_name == "custom-webhook-secret"
