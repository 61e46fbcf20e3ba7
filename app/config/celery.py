"""
Celery configuration for the Django application.

Celery runs the refund engine's background work:
- Periodic sweep of refunds stuck in PENDING (celery-beat)
- On-demand resync of a payment's refunds from the gateway

This configuration uses Redis as both the message broker and result backend.
Tasks are auto-discovered from all installed Django apps.

Usage:
    # Queue a resync
    from payments.tasks import resync_payment_refunds
    resync_payment_refunds.delay("pay_123")

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

# Create Celery application instance
app = Celery("config")

# Load configuration from Django settings
# All Celery settings should be prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Auto-discover tasks from all registered Django apps
app.autodiscover_tasks()

app.conf.beat_schedule = {
    "sync-pending-refunds": {
        "task": "payments.tasks.sync_pending_refunds",
        # Every 15 minutes; the task itself only picks refunds older than
        # REFUND_PENDING_SYNC_AFTER_MINUTES
        "schedule": crontab(minute="*/15"),
    },
}
