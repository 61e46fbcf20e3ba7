"""
Wiring of the refund engine.

RefundEngine builds every service from one set of collaborators and
exposes the engine's public operations. from_settings() wires the
Django-backed defaults; tests pass fakes to the constructor helpers.

Settings read:
    REFUND_USER_LOOKUP, REFUND_NOTIFICATION_SENDER, REFUND_EMAIL_SENDER,
    REFUND_SUBSCRIPTION_CANCELLER: dotted paths to collaborator classes
    (None disables that collaborator)

Usage:
    engine = RefundEngine.from_settings()
    try:
        result = await engine.initiate_refund(admin_email, request)
    finally:
        await engine.aclose()
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings
from django.utils.module_loading import import_string

from payments.adapters.gateway_client import GatewayClient, GatewayConfig
from payments.secrets import SettingsSecretsProvider
from payments.services import (
    RefundMetricsService,
    RefundReconciliationService,
    RefundService,
    RefundTransitioner,
    SideEffectDispatcher,
)
from payments.stores import DjangoPaymentLookup, DjangoRefundStore
from payments.webhooks.handlers import RefundWebhookHandler
from payments.webhooks.verification import WebhookVerifier

if TYPE_CHECKING:
    import httpx

    from payments.protocols import PaymentLookup, RefundStore, SecretsProvider


def _load_collaborator(setting_name: str):
    path = getattr(settings, setting_name, None)
    if not path:
        return None
    return import_string(path)()


@dataclass
class RefundEngine:
    """The refund engine's services, wired together."""

    refunds: RefundService
    reconciliation: RefundReconciliationService
    webhooks: RefundWebhookHandler
    metrics: RefundMetricsService
    gateway: GatewayClient

    @classmethod
    def build(
        cls,
        *,
        store: RefundStore,
        payments: PaymentLookup,
        gateway: GatewayClient,
        secrets: SecretsProvider,
        side_effects: SideEffectDispatcher,
    ) -> RefundEngine:
        transitioner = RefundTransitioner(store, payments, side_effects)
        refunds = RefundService(store, payments, gateway, side_effects)
        return cls(
            refunds=refunds,
            reconciliation=RefundReconciliationService(
                store, payments, gateway, transitioner, refunds
            ),
            webhooks=RefundWebhookHandler(WebhookVerifier(secrets), transitioner),
            metrics=RefundMetricsService(store, payments),
            gateway=gateway,
        )

    @classmethod
    def from_settings(
        cls,
        *,
        secrets: SecretsProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> RefundEngine:
        """
        Build the engine with Django-backed persistence and configured collaborators.

        Raises:
            SecretNotFoundError: If the gateway keys are not configured
        """
        secrets = secrets or SettingsSecretsProvider()
        gateway = GatewayClient(GatewayConfig.from_secrets(secrets), transport=transport)
        side_effects = SideEffectDispatcher(
            user_lookup=_load_collaborator("REFUND_USER_LOOKUP"),
            notification_sender=_load_collaborator("REFUND_NOTIFICATION_SENDER"),
            email_sender=_load_collaborator("REFUND_EMAIL_SENDER"),
            subscription_canceller=_load_collaborator("REFUND_SUBSCRIPTION_CANCELLER"),
        )
        return cls.build(
            store=DjangoRefundStore(),
            payments=DjangoPaymentLookup(),
            gateway=gateway,
            secrets=secrets,
            side_effects=side_effects,
        )

    async def aclose(self) -> None:
        await self.gateway.aclose()

    # =========================================================================
    # Public Operations
    # =========================================================================

    async def initiate_refund(self, admin_email, request):
        return await self.refunds.initiate_refund(admin_email, request)

    async def get_refund(self, refund_id):
        return await self.refunds.get_refund(refund_id)

    async def get_refunds_for_payment(self, payment_id):
        return await self.refunds.get_refunds_for_payment(payment_id)

    async def get_bill_types(self, payment_id):
        return await self.refunds.get_bill_types(payment_id)

    async def check_payment_refund_status(self, payment_id):
        return await self.reconciliation.check_payment_refund_status(payment_id)

    async def get_refund_history(self, **filters):
        return await self.metrics.get_refund_history(**filters)

    async def get_refund_metrics(self):
        return await self.metrics.get_refund_metrics()

    async def export_refunds(self, start_date, end_date):
        return await self.metrics.export_refunds(start_date, end_date)

    async def handle_refund_webhook(self, signature, body):
        return await self.webhooks.handle_refund_webhook(signature, body)
