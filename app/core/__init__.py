"""
Core Application - Infrastructure & Base Classes

This app contains infrastructure code shared by the domain apps:

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ValidationError: Input validation failures
    - ConflictError: State conflicts (duplicates, etc.)
    - ExternalServiceError: Third-party service failures

Helpers (import from core.helpers):
    - calculate_pagination: Pagination metadata calculation

Retry (import from core.retry):
    - retry_async: Bounded fixed-delay retry for coroutines

Note:
    - Business logic should NOT go here. Extend core classes in your domain apps.
    - Django models are NOT imported here to avoid AppRegistryNotReady
      errors. Import them directly from their modules.
"""

# Services (no Django model dependencies)
from .services import BaseService, ServiceResult

# Exceptions (no Django dependencies)
from .exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    ValidationError,
)

# Helpers (no Django model dependencies)
from .helpers import calculate_pagination

# Retry (no Django dependencies)
from .retry import RetryOutcome, retry_async

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Exceptions
    "BaseApplicationError",
    "ValidationError",
    "ConflictError",
    "ExternalServiceError",
    # Helpers
    "calculate_pagination",
    # Retry
    "RetryOutcome",
    "retry_async",
]
