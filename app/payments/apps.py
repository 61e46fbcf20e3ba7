"""
Payments app configuration.

This app provides the refund reconciliation engine:
- Gateway refund creation and listing
- Webhook verification and status transitions
- Refund reporting
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
