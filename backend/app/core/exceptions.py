"""
Custom Exceptions for AchievR
=============================

Use these instead of generic Exception to:
1. Make errors more specific and debuggable
2. Enable proper error handling at API layer (each class carries its HTTP status)
3. Provide meaningful error messages to users

Usage:
    from app.core.exceptions import ActivityNotFoundError, RenderError

    if not activity:
        raise ActivityNotFoundError(activity_id)

    try:
        rendered = await renderer.render(fields)
    except RenderError as e:
        logger.error(f"Certificate rendering failed: {e}")
        raise

Delivery failures and tamper detection are deliberately NOT raised to the
client: delivery failure becomes a partial-success response and tampering is
an ordinary verification outcome.
"""

from typing import Optional, Any, Dict


class AchievrError(Exception):
    """Base exception for all AchievR errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(AchievrError):
    """User authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class AuthorizationError(AchievrError):
    """User not authorized for this action"""

    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="NOT_AUTHORIZED")


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(AchievrError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class ActivityNotFoundError(ResourceNotFoundError):
    """Activity not found"""

    def __init__(self, activity_id: str):
        super().__init__("Activity", activity_id)


class CertificateNotFoundError(ResourceNotFoundError):
    """Certificate not found"""

    def __init__(self, certificate_id: str):
        super().__init__("Certificate", certificate_id)


class UserNotFoundError(ResourceNotFoundError):
    """User not found"""

    def __init__(self, user_id: str):
        super().__init__("User", user_id)


class ArtifactMissingError(AchievrError):
    """Rendered certificate PDF is not on storage"""

    status_code = 404

    def __init__(self, certificate_id: str, path: Optional[str] = None):
        super().__init__(
            f"Certificate file for '{certificate_id}' not found on storage",
            code="ARTIFACT_MISSING",
            details={"certificate_id": certificate_id, "path": path}
        )


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(AchievrError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class MissingDraftFieldsError(ValidationError):
    """Draft descriptor submitted without required fields"""

    def __init__(self, fields: list):
        super().__init__(f"Missing required certificate fields: {', '.join(fields)}")
        self.code = "MISSING_DRAFT_FIELDS"
        self.details = {"fields": fields}


class ActivityStateError(ValidationError):
    """Activity is not in a state that allows the operation"""

    def __init__(self, activity_id: str, status: str, expected: str):
        super().__init__(
            f"Activity '{activity_id}' is '{status}', expected '{expected}'"
        )
        self.code = "INVALID_ACTIVITY_STATE"
        self.details = {"activity_id": activity_id, "status": status, "expected": expected}


# ============================================
# Conflict Errors (409-type)
# ============================================

class DuplicateCertificateError(AchievrError):
    """A certificate already exists for this activity"""

    status_code = 409

    def __init__(self, activity_id: str, certificate_id: Optional[str] = None):
        super().__init__(
            f"Activity '{activity_id}' already has a certificate",
            code="CERTIFICATE_ALREADY_ISSUED",
            details={"activity_id": activity_id, "certificate_id": certificate_id}
        )


class ChainConflictError(AchievrError):
    """Concurrent issuance claimed the same block number for a student"""

    status_code = 409

    def __init__(self, student_id: str, attempts: int):
        super().__init__(
            f"Could not append certificate to chain for student '{student_id}' after {attempts} attempts",
            code="CHAIN_CONFLICT",
            details={"student_id": student_id, "attempts": attempts}
        )


# ============================================
# Certificate Artifact Errors
# ============================================

class RenderError(AchievrError):
    """PDF/QR generation failed; nothing was persisted"""

    status_code = 502

    def __init__(self, message: str, certificate_id: Optional[str] = None):
        super().__init__(message, code="RENDER_FAILED")
        if certificate_id:
            self.details["certificate_id"] = certificate_id


class RenderTimeoutError(RenderError):
    """PDF rendering exceeded its time budget"""

    def __init__(self, timeout_seconds: float, certificate_id: Optional[str] = None):
        super().__init__(f"Certificate rendering timed out after {timeout_seconds}s", certificate_id)
        self.code = "RENDER_TIMEOUT"
        self.details["timeout_seconds"] = timeout_seconds


class StorageError(AchievrError):
    """Storage operation failed"""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, code="STORAGE_ERROR")
        if path:
            self.details["path"] = path


class DeliveryError(AchievrError):
    """Email delivery failed after the certificate was persisted"""

    status_code = 502

    def __init__(self, message: str, recipient: Optional[str] = None):
        super().__init__(message, code="DELIVERY_FAILED")
        if recipient:
            self.details["recipient"] = recipient


class ImmutableFieldError(AchievrError):
    """Attempt to change a chain field of a persisted certificate"""

    def __init__(self, field: str, certificate_id: str):
        super().__init__(
            f"Field '{field}' of certificate '{certificate_id}' cannot change after issuance",
            code="IMMUTABLE_FIELD",
            details={"field": field, "certificate_id": certificate_id}
        )


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: AchievrError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "error": error.to_dict()
    }
