"""
Secrets provider backed by Django settings and the process environment.

Secret names are looked up first as Django settings, then as
environment variables. Names may contain dashes ("razorpay-key-id");
they are matched against settings/env with dashes turned into
underscores and upper-cased ("RAZORPAY_KEY_ID").
"""

from __future__ import annotations

import logging
import os

from django.conf import settings

from payments.exceptions import SecretNotFoundError

logger = logging.getLogger(__name__)


def _setting_name(name: str) -> str:
    return name.replace("-", "_").replace(".", "_").upper()


class SettingsSecretsProvider:
    """
    Default SecretsProvider.

    Usage:
        secrets = SettingsSecretsProvider()
        webhook_secret = secrets.get_secret(settings.REFUND_WEBHOOK_SECRET_NAME)
    """

    def __init__(self, environ: dict[str, str] | None = None):
        self._environ = os.environ if environ is None else environ

    def get_secret(self, name: str) -> str:
        key = _setting_name(name)
        value = getattr(settings, key, None) or self._environ.get(key)
        if not value or not str(value).strip():
            logger.error(f"Secret not configured: {name}", extra={"secret_name": name})
            raise SecretNotFoundError(
                f"Secret not configured: {name}",
                details={"name": name},
            )
        return str(value)
