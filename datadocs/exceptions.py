"""Error types raised by datadocs.

Every error the API can report is a ``DataDocsException``: it knows its
HTTP status and serializes to ``{"error", "message", "details"}``.
"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Machine-readable ``error`` values in API responses."""

    # Texts
    TEXT_NOT_FOUND = "TEXT_NOT_FOUND"
    DECODE_ERROR = "DECODE_ERROR"
    KEYWORD_RESOURCE_MISSING = "KEYWORD_RESOURCE_MISSING"
    TRANSLATION_FAILED = "TRANSLATION_FAILED"

    # Requests
    VALIDATION_ERROR = "VALIDATION_ERROR"
    FORBIDDEN = "FORBIDDEN"

    # Storage
    DATABASE_ERROR = "DATABASE_ERROR"
    CONFLICT = "CONFLICT"


class DataDocsException(Exception):
    """Base class for datadocs errors.

    Args:
        message: Shown to the client as ``message``.
        error_code: Shown as ``error``.
        status_code: HTTP status used by the exception handler.
        details: Extra context (ids, field names). Never plaintext content.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Response body for the exception handler."""
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details,
        }


class TextNotFoundError(DataDocsException):
    """No text row for the requested (id, lang) or section."""

    def __init__(self, text_id: str, lang: Optional[str] = None, key: str = "text_id"):
        details: Dict[str, Any] = {key: text_id}
        if lang:
            details["lang"] = lang
        super().__init__(
            f"Text not found: {text_id}" + (f" ({lang})" if lang else ""),
            ErrorCode.TEXT_NOT_FOUND,
            status_code=404,
            details=details
        )


class TextDecodeError(DataDocsException):
    """A stored revision could not be decrypted (wrong key or corrupted token)."""

    def __init__(self, message: str = "Unable to decrypt stored text"):
        super().__init__(
            message,
            ErrorCode.DECODE_ERROR,
            status_code=500,
        )


class KeywordResourceError(DataDocsException):
    """The stopword list needed for keyword extraction could not be loaded."""

    def __init__(self, path: str, original_error: Optional[Exception] = None):
        details: Dict[str, Any] = {"path": path}
        if original_error:
            details["original_error"] = str(original_error)
        super().__init__(
            f"Unable to load stopword list: {path}",
            ErrorCode.KEYWORD_RESOURCE_MISSING,
            status_code=500,
            details=details
        )


class TranslationError(DataDocsException):
    """The machine translation provider failed or returned nothing."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)
        super().__init__(
            message,
            ErrorCode.TRANSLATION_FAILED,
            status_code=502,
            details=details
        )


class ValidationError(DataDocsException):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class ForbiddenError(DataDocsException):
    """Caller's role does not allow the requested action."""

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(
            message,
            ErrorCode.FORBIDDEN,
            status_code=403,
        )


class ConflictError(DataDocsException):
    """A concurrent append claimed the same revision slot."""

    def __init__(self, text_id: str, lang: str, message: str = "Text was modified by another user"):
        super().__init__(
            message,
            ErrorCode.CONFLICT,
            status_code=409,
            details={"text_id": text_id, "lang": lang}
        )


class DatabaseError(DataDocsException):
    """Database operation failed."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            message,
            ErrorCode.DATABASE_ERROR,
            status_code=500,
            details=details
        )


# Storage failures are reported as DatabaseError; the alias keeps the
# storage-level name available to callers that think in those terms.
StorageError = DatabaseError
