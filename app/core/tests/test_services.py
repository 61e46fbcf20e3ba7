"""
Tests for ServiceResult and BaseService.
"""

from __future__ import annotations

import logging

from core.exceptions import ConflictError, ValidationError
from core.services import BaseService, ServiceResult


class TestServiceResult:
    def test_success_is_truthy(self):
        result = ServiceResult.success({"id": 1})

        assert result
        assert result.data == {"id": 1}
        assert result.error is None

    def test_failure_is_falsy(self):
        result = ServiceResult.failure("Payment not found", "NOT_FOUND")

        assert not result
        assert result.error_code == "NOT_FOUND"

    def test_from_application_error_keeps_code_and_details(self):
        """Should carry message, code and details of application errors."""
        exc = ValidationError("Invalid date: 2025-13-01", details={"value": "2025-13-01"})

        result = ServiceResult.from_exception(exc)

        assert result.error == "Invalid date: 2025-13-01"
        assert result.error_code == "VALIDATION_ERROR"
        assert result.errors == {"value": "2025-13-01"}

    def test_from_plain_exception_uses_class_name(self):
        result = ServiceResult.from_exception(KeyError("refund_id"))

        assert result.error_code == "KEYERROR"

    def test_error_code_override(self):
        result = ServiceResult.from_exception(ConflictError("duplicate"), error_code="STORE_ERROR")

        assert result.error_code == "STORE_ERROR"


class ExampleService(BaseService):
    pass


class TestBaseService:
    def test_logger_is_named_after_service(self):
        assert ExampleService.get_logger().name.endswith("test_services.ExampleService")

    def test_handle_exception_prefixes_context_and_logs(self, caplog):
        """Should prefix the message with context and log at the given level."""
        with caplog.at_level(logging.WARNING):
            result = ExampleService.handle_exception(
                RuntimeError("disk full"),
                "Failed to store refund",
                log_level=logging.WARNING,
                error_code="STORE_ERROR",
            )

        assert result.success is False
        assert result.error == "Failed to store refund: disk full"
        assert result.error_code == "STORE_ERROR"
        assert "Failed to store refund: disk full" in caplog.text
