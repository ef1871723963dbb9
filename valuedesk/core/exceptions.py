"""
Custom Exceptions for ValueDesk
===============================

Use these instead of generic Exception to:
1. Make errors more specific and debuggable
2. Let callers tell recoverable failures from fatal ones
3. Provide meaningful error messages to users

Usage:
    from valuedesk.core.exceptions import SessionExpiredError, DocumentGenerationError

    try:
        result = await export_service.export_pdf(record)
    except DocumentGenerationError as e:
        logger.error(f"Export failed: {e}")
        raise
"""

from typing import Optional, Any, Dict


class ValueDeskError(Exception):
    """Base exception for all ValueDesk errors"""

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
# Authentication Errors
# ============================================

class AuthenticationError(ValueDeskError):
    """User authentication failed"""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class SessionExpiredError(AuthenticationError):
    """Access token could not be refreshed; the stored session was cleared"""

    def __init__(self, message: str = "Session expired"):
        super().__init__(message)
        self.code = "SESSION_EXPIRED"


class MissingRefreshTokenError(AuthenticationError):
    """No refresh token is stored for the current session"""

    def __init__(self):
        super().__init__("No refresh token available")
        self.code = "NO_REFRESH_TOKEN"


# ============================================
# Gateway Errors
# ============================================

class GatewayError(ValueDeskError):
    """Upstream API answered with a non-success status"""

    def __init__(self, status_code: int, message: str = "", payload: Any = None):
        super().__init__(
            message or f"Request failed with status {status_code}",
            code="GATEWAY_ERROR",
            details={"status_code": status_code}
        )
        self.status_code = status_code
        self.payload = payload


class NetworkError(ValueDeskError):
    """Request could not reach the upstream API"""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message, code="NETWORK_ERROR")
        if url:
            self.details["url"] = url


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(ValueDeskError):
    """Base class for not found errors"""

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class RecordNotFoundError(ResourceNotFoundError):
    """Valuation record not found"""

    def __init__(self, unique_id: str):
        super().__init__("Record", unique_id)


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(ValueDeskError):
    """Input validation failed"""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class UnknownFormTypeError(ValidationError):
    """Record carries a form type with no registered collection"""

    def __init__(self, form_type: str):
        super().__init__(f"Unknown form type '{form_type}'", field="formType")
        self.code = "UNKNOWN_FORM_TYPE"


# ============================================
# Document Generation Errors
# ============================================

class DocumentGenerationError(ValueDeskError):
    """Document generation failed"""

    def __init__(self, message: str, doc_type: Optional[str] = None):
        super().__init__(message, code="DOCUMENT_GENERATION_FAILED")
        if doc_type:
            self.details["doc_type"] = doc_type


class RasterizationError(DocumentGenerationError):
    """Off-screen page surface could not be constructed"""

    def __init__(self, message: str = "Rasterization failed"):
        super().__init__(message, doc_type="pdf")
        self.code = "RASTERIZATION_FAILED"


class DocumentAssemblyError(DocumentGenerationError):
    """Rendered pages could not be assembled into the final artifact"""

    def __init__(self, message: str, doc_type: str = "pdf"):
        super().__init__(message, doc_type=doc_type)
        self.code = "DOCUMENT_ASSEMBLY_FAILED"


# ============================================
# Storage Errors
# ============================================

class StorageError(ValueDeskError):
    """Storage operation failed"""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, code="STORAGE_ERROR")
        if path:
            self.details["path"] = path

