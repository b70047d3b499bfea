"""
Tests for the application exceptions and their error bodies.
"""

import pytest

from app.core.exceptions import ConsistencyError, NotFoundError, StoreError, UploadError, ValidationError


class TestAppExceptions:
    """Tests for status codes and structured details."""

    @pytest.mark.parametrize(
        "exc_class, status_code, code",
        [
            (ValidationError, 422, "VALIDATION_ERROR"),
            (ConsistencyError, 409, "CONSISTENCY_ERROR"),
            (UploadError, 400, "UPLOAD_FAILED"),
            (StoreError, 503, "STORE_UNAVAILABLE"),
        ],
    )
    def test_exception_when_raised_then_status_and_code_match(self, exc_class, status_code, code):
        exc = exc_class("Something went wrong", details={"column": "ta"})

        assert exc.status_code == status_code
        assert exc.detail == {
            "success": False,
            "error": {"code": code, "message": "Something went wrong", "details": {"column": "ta"}},
        }

    def test_validation_error_when_no_message_then_default_used(self):
        exc = ValidationError()
        assert str(exc) == "Validation error"
        assert exc.details == {}

    def test_not_found_when_identifier_given_then_in_details(self):
        exc = NotFoundError("Subject", "s1")
        assert exc.status_code == 404
        assert exc.message == "Subject not found"
        assert exc.detail["error"]["details"] == {"identifier": "s1"}
