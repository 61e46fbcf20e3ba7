"""
Async HTTP client for the refund gateway (Razorpay-compatible API).

This module wraps the two gateway calls the refund engine needs:
- POST /payments/{payment_id}/refund   create a refund
- GET  /payments/{payment_id}/refunds  list refunds of a payment

Features:
- HTTP Basic auth from an explicit GatewayConfig (no module-level credentials)
- Finite transport timeout on every call
- `[]` → null normalization of notes/acquirer_data before decoding
- Error envelopes parsed into readable messages, never raising while parsing
- Structured logging with timing metrics

Usage:
    from payments.adapters import GatewayClient, GatewayConfig

    config = GatewayConfig.from_secrets(SettingsSecretsProvider())
    async with GatewayClient(config) as client:
        refund = await client.create_refund("pay_123", Money(4000), RefundSpeed.OPTIMUM)
        refunds = await client.list_refunds("pay_123")
"""

from __future__ import annotations

import json
import logging
import math
import re
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx
from django.conf import settings

from payments.exceptions import (
    GatewayDecodeError,
    GatewayError,
    GatewayTimeoutError,
    GatewayUnavailableError,
)
from payments.mappers import speed_to_gateway
from payments.serializers import GatewayRefundCollectionSerializer, GatewayRefundSerializer
from payments.state_machines import RefundSpeed

if TYPE_CHECKING:
    from payments.money import Money
    from payments.protocols import SecretsProvider

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.razorpay.com/v1"


# =============================================================================
# Response Normalization & Error Parsing
# =============================================================================

EMPTY_ARRAY_FIELDS = ("notes", "acquirer_data")

_EMPTY_ARRAY_PATTERNS = [
    (re.compile(rf'"{name}"\s*:\s*\[\s*\]'), f'"{name}":null') for name in EMPTY_ARRAY_FIELDS
]

_DESCRIPTION_PATTERN = re.compile(r'"description"\s*:\s*"([^"]+)"')


def normalize_gateway_body(body: str) -> str:
    """
    Replace `"notes": []` and `"acquirer_data": []` with null.

    The gateway uses an empty array where it means "no map". Applied to
    the raw text so single objects, collections and webhook envelopes
    are all handled the same way.
    """
    for pattern, replacement in _EMPTY_ARRAY_PATTERNS:
        body = pattern.sub(replacement, body)
    return body


def parse_gateway_error(body: str | None) -> str:
    """
    Extract a readable message from a gateway error body.

    Tries the JSON envelope {"error": {"code", "description", "field"}}
    first, then a regex for "description", then echoes the raw body.
    Never raises.

    Example:
        parse_gateway_error('{"error": {"description": "Invalid amount", "field": "amount"}}')
        # "Invalid amount (Field: amount)"
    """
    body = body or ""
    try:
        data = json.loads(body)
    except ValueError:
        data = None

    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict):
        description = error.get("description")
        error_field = error.get("field")
        code = error.get("code")
        if description and error_field:
            return f"{description} (Field: {error_field})"
        if description:
            return str(description)
        if code:
            return f"Gateway error: {code}"

    match = _DESCRIPTION_PATTERN.search(body)
    if match:
        return match.group(1)
    return f"Gateway API error: {body}"


# =============================================================================
# Data Types
# =============================================================================


@dataclass(frozen=True)
class GatewayConfig:
    """
    Connection settings for the gateway.

    Attributes:
        key_id: API key id (Basic auth username)
        key_secret: API key secret (Basic auth password)
        base_url: API root, without trailing slash
        timeout_seconds: Transport timeout for every request (finite, > 0)
    """

    key_id: str
    key_secret: str = field(repr=False)
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = 10.0

    def __post_init__(self) -> None:
        if not self.key_id or not self.key_secret:
            raise ValueError("Gateway key id and secret are required")
        if not math.isfinite(self.timeout_seconds) or self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be a finite positive number")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @classmethod
    def from_secrets(
        cls,
        secrets: SecretsProvider,
        *,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
    ) -> GatewayConfig:
        """
        Build the config from the secrets provider and settings.

        Raises:
            SecretNotFoundError: If a key is not configured
        """
        return cls(
            key_id=secrets.get_secret(settings.REFUND_GATEWAY_KEY_ID_SECRET_NAME),
            key_secret=secrets.get_secret(settings.REFUND_GATEWAY_KEY_SECRET_SECRET_NAME),
            base_url=base_url or settings.REFUND_GATEWAY_BASE_URL,
            timeout_seconds=float(timeout_seconds or settings.REFUND_GATEWAY_TIMEOUT_SECONDS),
        )


@dataclass
class GatewayRefund:
    """
    A refund as reported by the gateway.

    Attributes:
        id: Gateway refund ID (rfnd_xxx)
        amount: Amount in minor units
        status: Raw gateway status (pending/processed/failed)
        created_at: Unix timestamp in seconds
        raw_response: Decoded JSON object as received
    """

    id: str
    amount: int
    currency: str
    payment_id: str
    status: str
    created_at: int
    entity: str = "refund"
    notes: dict[str, Any] | None = None
    receipt: str | None = None
    acquirer_data: dict[str, Any] | None = None
    batch_id: str | None = None
    speed_processed: str | None = None
    speed_requested: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_validated(cls, data: dict[str, Any], raw: dict[str, Any] | None = None) -> GatewayRefund:
        return cls(
            id=data["id"],
            amount=data["amount"],
            currency=data["currency"],
            payment_id=data["payment_id"],
            status=data["status"],
            created_at=data["created_at"],
            entity=data.get("entity") or "refund",
            notes=data.get("notes"),
            receipt=data.get("receipt") or None,
            acquirer_data=data.get("acquirer_data"),
            batch_id=data.get("batch_id") or None,
            speed_processed=data.get("speed_processed") or None,
            speed_requested=data.get("speed_requested") or None,
            raw_response=raw or {},
        )


# =============================================================================
# Client
# =============================================================================


class GatewayClient:
    """
    Gateway refund API client.

    One instance owns one httpx.AsyncClient; close it with aclose() or
    use the client as an async context manager.
    """

    def __init__(
        self,
        config: GatewayConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self._http = httpx.AsyncClient(
            base_url=config.base_url,
            auth=httpx.BasicAuth(config.key_id, config.key_secret),
            timeout=httpx.Timeout(config.timeout_seconds),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> GatewayClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def create_refund(
        self,
        payment_id: str,
        amount: Money,
        speed: str = RefundSpeed.OPTIMUM,
        notes: str | None = None,
        receipt: str | None = None,
    ) -> GatewayRefund:
        """
        Create a refund for a payment.

        The amount is always sent explicitly, including for full refunds.

        Raises:
            GatewayError: Gateway rejected the request (4xx)
            GatewayUnavailableError: Connection failure or 5xx
            GatewayTimeoutError: Request timed out
            GatewayDecodeError: Response is not a refund entity
        """
        if not amount.is_positive:
            raise ValueError("Refund amount must be positive")

        payload: dict[str, Any] = {
            "amount": amount.minor,
            "speed": speed_to_gateway(speed),
        }
        if notes:
            payload["notes"] = {"comment": notes}
        if receipt:
            payload["receipt"] = receipt

        log_context = {
            "operation": "create_refund",
            "payment_id": payment_id,
            "amount": amount.minor,
            "speed": payload["speed"],
        }
        body = await self._request("POST", f"/payments/{payment_id}/refund", log_context, payload)
        data = self._decode(body, GatewayRefundSerializer, log_context)
        refund = GatewayRefund.from_validated(data, json.loads(normalize_gateway_body(body)))
        logger.info(
            "Gateway refund created",
            extra={**log_context, "refund_id": refund.id, "status": refund.status},
        )
        return refund

    async def list_refunds(self, payment_id: str) -> list[GatewayRefund]:
        """
        List all refunds the gateway holds for a payment.

        Raises:
            Same as create_refund()
        """
        log_context = {"operation": "list_refunds", "payment_id": payment_id}
        body = await self._request("GET", f"/payments/{payment_id}/refunds", log_context)
        data = self._decode(body, GatewayRefundCollectionSerializer, log_context)
        raw_items = json.loads(normalize_gateway_body(body)).get("items", [])
        return [
            GatewayRefund.from_validated(item, raw)
            for item, raw in zip(data["items"], raw_items, strict=False)
        ]

    # =========================================================================
    # Internals
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        log_context: dict[str, Any],
        payload: dict[str, Any] | None = None,
    ) -> str:
        start_time = time.time()
        logger.info("Starting gateway operation", extra=log_context)

        try:
            response = await self._http.request(method, path, json=payload)
        except httpx.TimeoutException as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                "Gateway request timed out",
                extra={**log_context, "duration_ms": duration_ms},
            )
            raise GatewayTimeoutError(
                f"Gateway request timed out after {self.config.timeout_seconds:g}s"
            ) from e
        except httpx.TransportError as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                "Connection error to gateway",
                extra={**log_context, "duration_ms": duration_ms},
                exc_info=True,
            )
            raise GatewayUnavailableError(f"Could not connect to gateway: {e}") from e

        duration_ms = (time.time() - start_time) * 1000
        body = response.text

        if response.is_success:
            logger.info(
                "Gateway operation completed",
                extra={**log_context, "status_code": response.status_code, "duration_ms": duration_ms},
            )
            return body

        message = parse_gateway_error(body)
        logger.warning(
            f"Gateway returned {response.status_code}: {message}",
            extra={**log_context, "status_code": response.status_code, "duration_ms": duration_ms},
        )
        error_class = GatewayUnavailableError if response.status_code >= 500 else GatewayError
        raise error_class(message, raw_body=body, status_code=response.status_code)

    def _decode(self, body: str, serializer_class, log_context: dict[str, Any]) -> dict[str, Any]:
        try:
            data = json.loads(normalize_gateway_body(body))
        except ValueError as e:
            logger.error("Gateway response is not JSON", extra=log_context)
            raise GatewayDecodeError(
                f"Failed to decode gateway response: {e}",
                raw_body=body,
            ) from e

        serializer = serializer_class(data=data)
        if not serializer.is_valid():
            logger.error(
                "Gateway response failed validation",
                extra={**log_context, "errors": serializer.errors},
            )
            raise GatewayDecodeError(
                "Gateway response did not match the refund schema",
                details={"errors": serializer.errors},
                raw_body=body,
            )
        return serializer.validated_data
