"""
Custom Exceptions for SGC Admin
===============================

Every failure a page can show the user is one of these. Request errors are
mapped from the HTTP status by ``error_for_status``; local validation
failures are raised by forms before anything is sent.

Usage:
    from sgcadmin.exceptions import LocalValidationError, SGCAdminError

    try:
        await form.submit(executor)
    except SGCAdminError as e:
        banner.error(e.message)
"""

from enum import Enum
from typing import Optional, Any, Dict


class ErrorKind(str, Enum):
    """What went wrong, as far as the user is concerned"""
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    VALIDATION_FAILED = "validation_failed"
    SERVER_ERROR = "server_error"
    LOCAL_VALIDATION_FAILED = "local_validation_failed"


class SGCAdminError(Exception):
    """Base exception for all SGC Admin errors"""

    kind: ErrorKind = ErrorKind.SERVER_ERROR
    default_message: str = "Something went wrong"

    def __init__(
        self,
        message: Optional[str] = None,
        status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        # False when the caller (usually the backend) supplied no message
        self.has_message = bool(message)
        self.message = message or self.default_message
        self.status = status
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "status": self.status,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Request errors
# ============================================

class UnauthorizedError(SGCAdminError):
    """Token missing, expired or rejected; the user must log in again"""
    kind = ErrorKind.UNAUTHORIZED
    default_message = "Authentication required. Please log in again."


class ForbiddenError(SGCAdminError):
    """Action not permitted for the current role"""
    kind = ErrorKind.FORBIDDEN
    default_message = "You do not have permission to perform this action"


class NotFoundError(SGCAdminError):
    """Resource does not exist"""
    kind = ErrorKind.NOT_FOUND
    default_message = "Resource not found"


class ValidationFailedError(SGCAdminError):
    """Backend rejected the payload (400/422)"""
    kind = ErrorKind.VALIDATION_FAILED
    default_message = "Validation failed"


class ServerError(SGCAdminError):
    """5xx, unexpected status or transport failure"""
    kind = ErrorKind.SERVER_ERROR
    default_message = "Server error"


# ============================================
# Local errors
# ============================================

class LocalValidationError(SGCAdminError):
    """Input rejected before any request was sent"""
    kind = ErrorKind.LOCAL_VALIDATION_FAILED
    default_message = "Please fill in all required fields"

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None):
        super().__init__(message, details={"field": field} if field else None)
        self.field = field


_STATUS_MAP = {
    400: ValidationFailedError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
    422: ValidationFailedError,
}


def error_for_status(status: int, message: Optional[str] = None,
                     details: Optional[Dict[str, Any]] = None) -> SGCAdminError:
    """Build the exception matching an HTTP status code"""
    error_cls = _STATUS_MAP.get(status, ServerError)
    return error_cls(message, status=status, details=details)


def banner_text(error: SGCAdminError, fallback: str) -> str:
    """Backend message verbatim when there is one, otherwise the page fallback"""
    return error.message if error.has_message else fallback
