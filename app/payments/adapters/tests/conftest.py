"""
Pytest fixtures for gateway client tests.

The client is pointed at an httpx.MockTransport whose responses each
test scripts through the `respond` fixture.
"""

import httpx
import pytest

from payments.adapters import GatewayClient, GatewayConfig


@pytest.fixture
def config():
    return GatewayConfig(
        key_id="rzp_test_key",
        key_secret="rzp_test_secret",
        base_url="https://gateway.test/v1/",
        timeout_seconds=5,
    )


@pytest.fixture
def requests_seen():
    return []


@pytest.fixture
def respond():
    """Holder for the response factory used by the mock transport."""

    class Responder:
        handler = staticmethod(lambda request: httpx.Response(500, text="unscripted"))

    return Responder


@pytest.fixture
async def client(config, respond, requests_seen):
    def handler(request):
        requests_seen.append(request)
        return respond.handler(request)

    async with GatewayClient(config, transport=httpx.MockTransport(handler)) as client:
        yield client
