"""
Unit Tests for the AchievR exception hierarchy
Tests for: HTTP status mapping, error codes, response envelope
"""
import pytest

from app.core.exceptions import (
    AchievrError,
    ActivityNotFoundError,
    ActivityStateError,
    ArtifactMissingError,
    AuthorizationError,
    CertificateNotFoundError,
    ChainConflictError,
    DuplicateCertificateError,
    ImmutableFieldError,
    MissingDraftFieldsError,
    RenderError,
    RenderTimeoutError,
    ValidationError,
    error_response,
)


class TestStatusMapping:
    """Each error class carries the HTTP status it maps to"""

    @pytest.mark.parametrize("error, status", [
        (AuthorizationError(), 403),
        (ActivityNotFoundError("a1"), 404),
        (CertificateNotFoundError("CERT-1"), 404),
        (ArtifactMissingError("CERT-1"), 404),
        (ValidationError("bad"), 400),
        (MissingDraftFieldsError(["title"]), 400),
        (ActivityStateError("a1", "pending", "approved"), 400),
        (DuplicateCertificateError("a1"), 409),
        (ChainConflictError("s1", 3), 409),
        (RenderError("boom"), 502),
        (RenderTimeoutError(5), 502),
        (ImmutableFieldError("block_number", "CERT-1"), 500),
    ])
    def test_status_codes(self, error, status):
        assert error.status_code == status
        assert isinstance(error, AchievrError)


class TestErrorDetails:
    """Test codes and details carried by specific errors"""

    def test_not_found_code_and_details(self):
        """Test resource type is reflected in the code"""
        error = CertificateNotFoundError("CERT-20250301-ABCDEF12")

        assert error.code == "CERTIFICATE_NOT_FOUND"
        assert error.details["resource_id"] == "CERT-20250301-ABCDEF12"
        assert "CERT-20250301-ABCDEF12" in error.message

    def test_missing_draft_fields_lists_fields(self):
        """Test the missing field names are reported"""
        error = MissingDraftFieldsError(["file_path", "student_email"])

        assert error.code == "MISSING_DRAFT_FIELDS"
        assert error.details == {"fields": ["file_path", "student_email"]}
        assert "file_path, student_email" in error.message

    def test_render_timeout_is_render_error(self):
        """Test a timeout can be caught as a generic render failure"""
        error = RenderTimeoutError(2.5, "CERT-1")

        assert isinstance(error, RenderError)
        assert error.code == "RENDER_TIMEOUT"
        assert error.details["timeout_seconds"] == 2.5
        assert error.details["certificate_id"] == "CERT-1"

    def test_validation_error_field(self):
        """Test the offending field is included when given"""
        assert ValidationError("x", field="reason").details == {"field": "reason"}
        assert ValidationError("x").details == {}


class TestErrorResponse:
    """Test the API error envelope"""

    def test_error_response_envelope(self):
        error = DuplicateCertificateError("a1", "CERT-1")

        body = error_response(error)

        assert body["success"] is False
        assert body["error"]["code"] == "CERTIFICATE_ALREADY_ISSUED"
        assert body["error"]["details"] == {"activity_id": "a1", "certificate_id": "CERT-1"}
