"""
Root pytest configuration for the Django project.

This module configures pytest-django and provides project-wide fixtures.
App-specific fixtures are defined in each app's tests/conftest.py.
"""

import os

import pytest

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")


def pytest_configure():
    """Configure Django settings before tests run."""
    from django.conf import settings

    # Never talk to a real gateway or mail server from tests
    settings.EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
    settings.REFUND_GATEWAY_BASE_URL = "https://gateway.test/v1"
    settings.CELERY_TASK_ALWAYS_EAGER = True


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    """
    Replace the django_redis connection used by payments.locks.

    Every test gets an empty in-memory Redis; refund initiation takes
    its per-payment lock there instead of on a real server.
    """
    from payments.tests.fakes import FakeRedis

    redis = FakeRedis()
    monkeypatch.setattr("payments.locks.get_redis_connection", lambda alias="default": redis)
    return redis


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_stores.py, test_tasks.py, test_*_service.py, etc. → integration
    - test_money.py, test_mappers.py, test_verification.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    integration_patterns = [
        "test_stores.py",
        "test_tasks.py",
        "test_handlers.py",
        "test_refund_service.py",
        "test_reconciliation_service.py",
        "test_metrics_service.py",
        "test_engine.py",
    ]

    unit_patterns = [
        "test_money.py",
        "test_mappers.py",
        "test_periods.py",
        "test_bill_policy.py",
        "test_verification.py",
        "test_gateway_client.py",
        "test_retry.py",
        "test_services.py",
        "test_state_transitions.py",
        "test_locks.py",
    ]

    for item in items:
        # Skip if test already has unit/integration marker
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            # Default: integration (safe for Django where most tests hit DB)
            item.add_marker(pytest.mark.integration)
