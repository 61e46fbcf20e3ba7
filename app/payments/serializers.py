"""
DRF serializers for decoding gateway payloads.

These serializers validate the structure of refund entities returned by
the gateway's REST API and delivered in refund webhooks. They run on
bodies that have already been through normalize_gateway_body(): the
gateway sends `[]` instead of null for empty `notes` and
`acquirer_data` maps, which DictField would otherwise reject.

Related files:
    - adapters/gateway_client.py: REST responses
    - webhooks/handlers.py: Webhook envelopes

Usage:
    serializer = GatewayRefundSerializer(data=json.loads(body))
    if not serializer.is_valid():
        raise GatewayDecodeError("Invalid refund payload", details=serializer.errors)
    data = serializer.validated_data
"""

from __future__ import annotations

from rest_framework import serializers


def _string_map(**kwargs) -> serializers.DictField:
    return serializers.DictField(
        child=serializers.CharField(allow_blank=True, allow_null=True),
        allow_null=True,
        required=False,
        **kwargs,
    )


class GatewayRefundSerializer(serializers.Serializer):
    """
    Refund entity as returned by the gateway.

    Fields:
        id: Gateway refund ID (rfnd_xxx)
        amount: Amount in minor units
        payment_id: Gateway payment ID
        notes: Free-form key/value notes (e.g. {"comment": "..."})
        acquirer_data: Bank references such as arn/rrn
        created_at: Unix timestamp (seconds)
        status: pending | processed | failed
        speed_processed: instant | normal (once known)
        speed_requested: optimum | normal
    """

    id = serializers.CharField()
    entity = serializers.CharField(required=False, default="refund")
    amount = serializers.IntegerField(min_value=0)
    currency = serializers.CharField(max_length=3)
    payment_id = serializers.CharField()
    notes = _string_map()
    receipt = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    acquirer_data = _string_map()
    created_at = serializers.IntegerField(min_value=0)
    batch_id = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    status = serializers.CharField()
    speed_processed = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    speed_requested = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class GatewayRefundCollectionSerializer(serializers.Serializer):
    """Response of the list-refunds endpoint: {entity, count, items}."""

    entity = serializers.CharField(required=False, default="collection")
    count = serializers.IntegerField(required=False, min_value=0)
    items = GatewayRefundSerializer(many=True)


class WebhookRefundEntitySerializer(GatewayRefundSerializer):
    """
    Refund entity inside a webhook.

    Only id and status are needed to apply a transition to a known
    refund; the rest is required only to create a missing local record.
    """

    amount = serializers.IntegerField(min_value=0, required=False)
    currency = serializers.CharField(max_length=3, required=False)
    payment_id = serializers.CharField(required=False)
    created_at = serializers.IntegerField(min_value=0, required=False)


class WebhookRefundSerializer(serializers.Serializer):
    entity = WebhookRefundEntitySerializer()


class WebhookPayloadSerializer(serializers.Serializer):
    refund = WebhookRefundSerializer()


class WebhookEnvelopeSerializer(serializers.Serializer):
    """
    Webhook envelope: {"event": "refund.processed", "payload": {"refund": {"entity": {...}}}}.

    Other envelope keys (account_id, contains, created_at) are ignored.
    """

    event = serializers.CharField()
    payload = WebhookPayloadSerializer()
