"""
Business Exception Hierarchy

Defines the error taxonomy of the storefront services and the Flask error handlers
that serialize it. Every exception carries a user-facing message, a stable error code
and the HTTP status it maps to; responses share one shape::

    {"error": {"message": ..., "code": ..., "timestamp": ..., "request_id": ..., "context": {...}}}

Key Features:
- ``BaseBusinessException`` with severity driven structured logging
- Lookup, conflict, credential, lockout, validation and operation failures
- marshmallow ``ValidationError`` mapped onto the same 400 response shape
- Opaque 500 response for anything unexpected
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

import structlog
from flask import jsonify
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from storefront.monitoring.logging import get_correlation_id


logger = structlog.get_logger(__name__)


class ErrorSeverity(Enum):
    """Severity levels controlling how an exception is logged."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class BaseBusinessException(Exception):
    """
    Base exception class for all business logic failures.

    Attributes:
        message (str): User-facing error message
        error_code (str): Stable identifier for client handling
        http_status_code (int): HTTP status code for the Flask response
        severity (ErrorSeverity): Log severity
        context (Dict[str, Any]): Additional client-safe details
        timestamp (datetime): Error occurrence timestamp
        request_id (Optional[str]): Correlation ID of the failing request
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        http_status_code: int = 400,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ) -> None:
        """
        Initialize business exception.

        Args:
            message: User-facing error message
            error_code: Unique error identifier for client handling
            http_status_code: HTTP status code for Flask response (default: 400)
            severity: Error severity level for logging
            context: Additional error context exposed to the client
            cause: Original exception that caused this business exception
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.http_status_code = http_status_code
        self.severity = severity
        self.context = dict(context or {})
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)
        self.request_id = get_correlation_id()

        self._log_exception()

    def _log_exception(self) -> None:
        log_data = {
            'exception_class': self.__class__.__name__,
            'error_code': self.error_code,
            'http_status_code': self.http_status_code,
            'context': self.context,
        }
        if self.cause is not None:
            log_data['cause'] = repr(self.cause)

        if self.severity in (ErrorSeverity.HIGH, ErrorSeverity.CRITICAL):
            logger.error("Business exception", **log_data)
        elif self.severity == ErrorSeverity.MEDIUM:
            logger.warning("Business exception", **log_data)
        else:
            logger.info("Business exception", **log_data)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for JSON serialization.

        Returns:
            Dictionary representation safe for client exposure
        """
        return {
            'error': {
                'message': self.message,
                'code': self.error_code,
                'timestamp': self.timestamp.isoformat(),
                'request_id': self.request_id,
                'context': self.context,
            }
        }

    def to_flask_response(self) -> tuple:
        """Convert exception to a Flask ``(response, status)`` tuple."""
        return jsonify(self.to_dict()), self.http_status_code


class ResourceNotFoundError(BaseBusinessException):
    """
    Raised when a requested user, product or purchase does not exist.

    Example:
        product = product_service.get(product_id)
        if product is None:
            raise ResourceNotFoundError("Product not found", resource_type="product",
                                        resource_id=product_id)
    """

    def __init__(
        self,
        message: str,
        error_code: str = "RESOURCE_NOT_FOUND",
        resource_type: Optional[str] = None,
        resource_id: Optional[Union[str, int]] = None,
        **kwargs
    ) -> None:
        kwargs.setdefault('http_status_code', 404)
        kwargs.setdefault('severity', ErrorSeverity.LOW)

        context = kwargs.get('context') or {}
        if resource_type:
            context['resource_type'] = resource_type
        if resource_id is not None:
            context['resource_id'] = str(resource_id)
        kwargs['context'] = context

        super().__init__(message, error_code, **kwargs)
        self.resource_type = resource_type
        self.resource_id = resource_id


class ConflictError(BaseBusinessException):
    """Raised when a write would duplicate a unique field (email, product name, sku)."""

    def __init__(self, message: str, error_code: str = "RESOURCE_CONFLICT",
                 field: Optional[str] = None, **kwargs) -> None:
        kwargs.setdefault('http_status_code', 409)
        kwargs.setdefault('severity', ErrorSeverity.LOW)
        context = kwargs.get('context') or {}
        if field:
            context['field'] = field
        kwargs['context'] = context
        super().__init__(message, error_code, **kwargs)
        self.field = field


class InvalidCredentialsError(BaseBusinessException):
    """
    Raised for a wrong password or an unknown email.

    Both cases share the same message and code so responses do not reveal
    whether an account exists.
    """

    def __init__(self, message: str = "Wrong email or password",
                 error_code: str = "INVALID_CREDENTIALS", **kwargs) -> None:
        kwargs.setdefault('http_status_code', 401)
        kwargs.setdefault('severity', ErrorSeverity.MEDIUM)
        super().__init__(message, error_code, **kwargs)


class LockedOutError(BaseBusinessException):
    """
    Raised while an account is locked after too many failed logins.

    Attributes:
        remaining_minutes (int): Whole minutes until the lock expires (rounded up)
    """

    def __init__(self, remaining_minutes: int, error_code: str = "ACCOUNT_LOCKED", **kwargs) -> None:
        kwargs.setdefault('http_status_code', 403)
        kwargs.setdefault('severity', ErrorSeverity.HIGH)
        context = kwargs.get('context') or {}
        context['remaining_minutes'] = remaining_minutes
        kwargs['context'] = context
        message = f"Too many failed login attempts, Try again in {remaining_minutes} minute(s)"
        super().__init__(message, error_code, **kwargs)
        self.remaining_minutes = remaining_minutes


class DataValidationError(BaseBusinessException):
    """Raised for malformed input that passed schema parsing, e.g. ``page_size=0``."""

    def __init__(self, message: str, error_code: str = "VALIDATION_ERROR",
                 field_errors: Optional[Dict[str, Any]] = None, **kwargs) -> None:
        kwargs.setdefault('http_status_code', 400)
        kwargs.setdefault('severity', ErrorSeverity.LOW)
        context = kwargs.get('context') or {}
        if field_errors:
            context['field_errors'] = field_errors
        kwargs['context'] = context
        super().__init__(message, error_code, **kwargs)
        self.field_errors = field_errors or {}


class OperationFailedError(BaseBusinessException):
    """Raised by views when a service reports a failed create, update or delete."""

    def __init__(self, message: str, error_code: str = "OPERATION_FAILED", **kwargs) -> None:
        kwargs.setdefault('http_status_code', 422)
        kwargs.setdefault('severity', ErrorSeverity.MEDIUM)
        super().__init__(message, error_code, **kwargs)


BUSINESS_EXCEPTIONS = (
    ResourceNotFoundError,
    ConflictError,
    InvalidCredentialsError,
    LockedOutError,
    DataValidationError,
    OperationFailedError,
)


def create_flask_error_handlers(app):
    """
    Register Flask error handlers for business exceptions.

    Args:
        app: Flask application instance for error handler registration
    """

    @app.errorhandler(BaseBusinessException)
    def handle_business_exception(error: BaseBusinessException):
        return error.to_flask_response()

    @app.errorhandler(ValidationError)
    def handle_schema_validation_error(error: ValidationError):
        messages = error.messages if isinstance(error.messages, dict) else {'_schema': error.messages}
        return DataValidationError(
            "Request validation failed",
            field_errors=messages
        ).to_flask_response()

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        response_data = {
            'error': {
                'message': error.description,
                'code': (error.name or 'HTTP_ERROR').upper().replace(' ', '_'),
                'timestamp': datetime.now(timezone.utc).isoformat(),
                'request_id': get_correlation_id(),
                'context': {},
            }
        }
        return jsonify(response_data), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_exception(error: Exception):
        logger.exception("Unhandled exception", exception_class=type(error).__name__)
        return BaseBusinessException(
            message="An unexpected error occurred. Please try again later.",
            error_code="INTERNAL_ERROR",
            http_status_code=500,
            severity=ErrorSeverity.CRITICAL,
            cause=error
        ).to_flask_response()


__all__ = [
    'ErrorSeverity',
    'BaseBusinessException',
    'ResourceNotFoundError',
    'ConflictError',
    'InvalidCredentialsError',
    'LockedOutError',
    'DataValidationError',
    'OperationFailedError',
    'BUSINESS_EXCEPTIONS',
    'create_flask_error_handlers',
]
