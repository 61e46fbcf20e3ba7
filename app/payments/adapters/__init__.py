"""
External service adapters for the payments app.

Adapters wrap third-party APIs and translate their failures into the
payments exception hierarchy.
"""

from payments.adapters.gateway_client import (
    GatewayClient,
    GatewayConfig,
    GatewayRefund,
    normalize_gateway_body,
    parse_gateway_error,
)

__all__ = [
    "GatewayClient",
    "GatewayConfig",
    "GatewayRefund",
    "normalize_gateway_body",
    "parse_gateway_error",
]
