"""
Django settings for the application.

This is the single settings file for all environments. Configuration is driven
by environment variables using django-environ, following the 12-factor app
methodology.

Environment files:
    - .env.development: Development settings (DEBUG=True, relaxed security)
    - .env.production: Production settings (DEBUG=False, hardened security)

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/topics/settings/

For the full list of settings and their values, see:
https://docs.djangoproject.com/en/5.2/ref/settings/
"""

import os
from pathlib import Path

import environ

# =============================================================================
# Path Configuration
# =============================================================================
# Build paths inside the project: BASE_DIR / 'subdir'
BASE_DIR = Path(__file__).resolve().parent.parent

# =============================================================================
# Environment Configuration
# =============================================================================
# Initialize django-environ
env = environ.Env(
    # Set default values and casting for common settings
    DEBUG=(bool, False),  # Default to False for safety
    ALLOWED_HOSTS=(list, []),
    LOG_LEVEL=(str, "INFO"),
)

# Read environment file based on DJANGO_ENV or default to development
# Note: In Docker, env vars are passed directly; .env files are for local dev
env_file = os.environ.get("ENV_FILE", BASE_DIR.parent / ".env.development")
if Path(env_file).exists():
    environ.Env.read_env(env_file)

# =============================================================================
# Core Settings
# =============================================================================
# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = env("SECRET_KEY", default="django-insecure-refund-engine-dev-key")

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = env("DEBUG")

ALLOWED_HOSTS = env("ALLOWED_HOSTS")

# =============================================================================
# Application Definition
# =============================================================================
INSTALLED_APPS = [
    # Django core
    "django.contrib.contenttypes",
    "django.contrib.auth",
    # Third-party
    "rest_framework",
    # Local apps
    "core",
    "payments",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

# =============================================================================
# Database Configuration
# =============================================================================
# https://docs.djangoproject.com/en/5.2/ref/settings/#databases
# DATABASE_URL, e.g. postgres://user:pass@db:5432/refunds; SQLite for local runs
DATABASES = {
    "default": env.db("DATABASE_URL", default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
}

# =============================================================================
# Django REST Framework Configuration
# =============================================================================
# Serializers are used to validate gateway payloads; no API views are mounted
REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "DEFAULT_PARSER_CLASSES": ["rest_framework.parsers.JSONParser"],
    "UNAUTHENTICATED_USER": None,
}

# =============================================================================
# Cache Configuration (Redis)
# =============================================================================
# Also backs payments.locks.DistributedLock through django_redis
CACHES = {
    "default": {
        "BACKEND": "django_redis.cache.RedisCache",
        "LOCATION": env("REDIS_URL", default="redis://redis:6379/0"),
        "OPTIONS": {
            "CLIENT_CLASS": "django_redis.client.DefaultClient",
        },
    }
}

# =============================================================================
# Celery Configuration
# =============================================================================
CELERY_BROKER_URL = env("CELERY_BROKER_URL", default="redis://redis:6379/1")
CELERY_RESULT_BACKEND = env("CELERY_RESULT_BACKEND", default="redis://redis:6379/1")
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = "UTC"
CELERY_TASK_TRACK_STARTED = True
CELERY_TASK_TIME_LIMIT = 30 * 60  # 30 minutes

# =============================================================================
# Refund Gateway Configuration
# =============================================================================
# Razorpay-compatible REST API root
REFUND_GATEWAY_BASE_URL = env("REFUND_GATEWAY_BASE_URL", default="https://api.razorpay.com/v1")

# Transport timeout for every gateway call, in seconds (must be finite)
REFUND_GATEWAY_TIMEOUT_SECONDS = env.float("REFUND_GATEWAY_TIMEOUT_SECONDS", default=10.0)

# Names looked up in the secrets provider. SettingsSecretsProvider maps
# "razorpay-key-id" to the RAZORPAY_KEY_ID setting / environment variable.
REFUND_GATEWAY_KEY_ID_SECRET_NAME = env(
    "REFUND_GATEWAY_KEY_ID_SECRET_NAME", default="razorpay-key-id"
)
REFUND_GATEWAY_KEY_SECRET_SECRET_NAME = env(
    "REFUND_GATEWAY_KEY_SECRET_SECRET_NAME", default="razorpay-key-secret"
)
REFUND_WEBHOOK_SECRET_NAME = env("REFUND_WEBHOOK_SECRET_NAME", default="razorpay-webhook-secret")

RAZORPAY_KEY_ID = env("RAZORPAY_KEY_ID", default="")
RAZORPAY_KEY_SECRET = env("RAZORPAY_KEY_SECRET", default="")
RAZORPAY_WEBHOOK_SECRET = env("RAZORPAY_WEBHOOK_SECRET", default="")

# =============================================================================
# Refund Engine Configuration
# =============================================================================
REFUND_DEFAULT_CURRENCY = env("REFUND_DEFAULT_CURRENCY", default="INR")

# Subscription cancellation after a refund: attempts and fixed delay between them
REFUND_SUBSCRIPTION_CANCEL_ATTEMPTS = env.int("REFUND_SUBSCRIPTION_CANCEL_ATTEMPTS", default=2)
REFUND_SUBSCRIPTION_CANCEL_DELAY_SECONDS = env.float(
    "REFUND_SUBSCRIPTION_CANCEL_DELAY_SECONDS", default=0.5
)

# Per-payment initiation lock; the TTL must outlast one gateway call
REFUND_LOCK_TTL_SECONDS = env.int("REFUND_LOCK_TTL_SECONDS", default=30)
REFUND_LOCK_TIMEOUT_SECONDS = env.float("REFUND_LOCK_TIMEOUT_SECONDS", default=15.0)

# Refunds still PENDING after this long are resynced by sync_pending_refunds
REFUND_PENDING_SYNC_AFTER_MINUTES = env.int("REFUND_PENDING_SYNC_AFTER_MINUTES", default=60)

# Collaborators (dotted paths, empty to disable)
REFUND_USER_LOOKUP = env("REFUND_USER_LOOKUP", default="payments.collaborators.DjangoUserLookup")
REFUND_NOTIFICATION_SENDER = env("REFUND_NOTIFICATION_SENDER", default="")
REFUND_EMAIL_SENDER = env(
    "REFUND_EMAIL_SENDER", default="payments.collaborators.DjangoRefundEmailSender"
)
REFUND_SUBSCRIPTION_CANCELLER = env("REFUND_SUBSCRIPTION_CANCELLER", default="")

# User model attribute holding the push (FCM) token
REFUND_PUSH_TOKEN_FIELD = env("REFUND_PUSH_TOKEN_FIELD", default="fcm_token")

# =============================================================================
# Internationalization
# =============================================================================
# https://docs.djangoproject.com/en/5.2/topics/i18n/
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# =============================================================================
# Default Primary Key Field Type
# =============================================================================
# https://docs.djangoproject.com/en/5.2/ref/settings/#default-auto-field
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# =============================================================================
# Email Configuration
# =============================================================================
EMAIL_BACKEND = env(
    "EMAIL_BACKEND",
    default="django.core.mail.backends.console.EmailBackend",
)
EMAIL_HOST = env("EMAIL_HOST", default="localhost")
EMAIL_PORT = env.int("EMAIL_PORT", default=587)
EMAIL_USE_TLS = env.bool("EMAIL_USE_TLS", default=True)
EMAIL_HOST_USER = env("EMAIL_HOST_USER", default="")
EMAIL_HOST_PASSWORD = env("EMAIL_HOST_PASSWORD", default="")
DEFAULT_FROM_EMAIL = env("DEFAULT_FROM_EMAIL", default="noreply@example.com")

# =============================================================================
# Logging Configuration
# =============================================================================
LOG_LEVEL = env("LOG_LEVEL")

# Log file name determined by service (web, celery-worker, celery-beat)
# Set via LOG_FILE_NAME environment variable in docker-compose.yaml
LOG_FILE_NAME = env("LOG_FILE_NAME", default="django.log")
LOG_DIR = BASE_DIR / "logs"

# Ensure log directory exists (handles local development without Docker)
LOG_DIR.mkdir(parents=True, exist_ok=True)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {process:d} {thread:d} {message}",
            "style": "{",
        },
        "simple": {
            "format": "{levelname} {message}",
            "style": "{",
        },
        "file": {
            # Detailed format for persistent logs with timestamp, level, logger name, and location
            "format": "[{asctime}] {levelname} {name} {module}:{lineno} - {message}",
            "style": "{",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
        "file": {
            # Rotating file handler prevents unbounded disk usage
            # Max 10MB per file, keeps 5 backups (60MB total per log type)
            "level": "DEBUG",
            "class": "logging.handlers.RotatingFileHandler",
            "filename": LOG_DIR / LOG_FILE_NAME,
            "maxBytes": 10 * 1024 * 1024,  # 10MB
            "backupCount": 5,
            "formatter": "file",
            "encoding": "utf-8",
        },
    },
    "root": {
        "handlers": ["console", "file"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "payments": {
            "handlers": ["console", "file"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "django": {
            "handlers": ["console", "file"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "celery": {
            "handlers": ["console", "file"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
    },
}

# =============================================================================
# Security Settings (Production Only)
# =============================================================================
# These settings are enforced only when DEBUG=False
if not DEBUG:
    SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
    SECURE_CONTENT_TYPE_NOSNIFF = True
