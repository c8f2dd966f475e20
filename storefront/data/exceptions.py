"""
Database Exception Handling and Error Management

This module implements database-specific exception handling for PyMongo operations.
Driver errors are translated into a small exception hierarchy, read operations are
retried with tenacity exponential backoff when the failure is transient, and a Flask
error handler turns any escaped database exception into an opaque 503 response.

Features:
- Custom exception hierarchy for database operations
- Tenacity exponential backoff retry logic for idempotent reads
- Prometheus counter for database errors
- Structured error logging
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, Optional, Type

import structlog
import pymongo.errors
from tenacity import (
    Retrying,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from storefront.monitoring.metrics import DATABASE_ERRORS


logger = structlog.get_logger(__name__)


class DatabaseOperationType(Enum):
    """Database operation types for error classification"""
    READ = "read"
    WRITE = "write"
    DELETE = "delete"
    HEALTH_CHECK = "health_check"


class DatabaseException(Exception):
    """
    Base exception class for all database-related errors.

    Carries the operation and collection involved plus the original driver
    error so callers can log it without exposing it to clients.
    """

    def __init__(
        self,
        message: str,
        operation: Optional[DatabaseOperationType] = None,
        database: Optional[str] = None,
        collection: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.database = database
        self.collection = collection
        self.original_error = original_error
        self.timestamp = datetime.now(timezone.utc)

        DATABASE_ERRORS.labels(
            error_type=self.__class__.__name__,
            operation=operation.value if operation else "unknown"
        ).inc()

        logger.error(
            "Database exception occurred",
            error_type=self.__class__.__name__,
            message=message,
            operation=operation.value if operation else None,
            database=database,
            collection=collection,
            original_error=str(original_error) if original_error else None
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "operation": self.operation.value if self.operation else None,
            "database": self.database,
            "collection": self.collection,
            "timestamp": self.timestamp.isoformat(),
        }


class ConnectionException(DatabaseException):
    """Server unreachable or connection dropped; transient and retryable."""


class TimeoutException(DatabaseException):
    """Operation exceeded its driver timeout; transient and retryable."""


class QueryException(DatabaseException):
    """Query or write rejected by the server."""


class DuplicateKeyException(QueryException):
    """Unique index violation."""


# Error classification mapping (most specific first)
PYMONGO_ERROR_MAPPING: Dict[Type[Exception], Type[DatabaseException]] = {
    pymongo.errors.DuplicateKeyError: DuplicateKeyException,
    pymongo.errors.ServerSelectionTimeoutError: ConnectionException,
    pymongo.errors.AutoReconnect: ConnectionException,
    pymongo.errors.ConnectionFailure: ConnectionException,
    pymongo.errors.ExecutionTimeout: TimeoutException,
    pymongo.errors.WTimeoutError: TimeoutException,
    pymongo.errors.OperationFailure: QueryException,
    pymongo.errors.WriteError: QueryException,
    pymongo.errors.InvalidOperation: QueryException,
}


def classify_pymongo_error(error: Exception) -> Type[DatabaseException]:
    """
    Classify PyMongo errors into appropriate custom exception types.

    Args:
        error: The original PyMongo exception

    Returns:
        Appropriate custom exception class
    """
    for error_type, exception_class in PYMONGO_ERROR_MAPPING.items():
        if isinstance(error, error_type):
            return exception_class
    return DatabaseException


def handle_database_error(
    error: Exception,
    operation: DatabaseOperationType,
    database: Optional[str] = None,
    collection: Optional[str] = None
) -> DatabaseException:
    """
    Translate a driver error into the matching custom database exception.

    Args:
        error: The original exception
        operation: Type of database operation
        database: Database name
        collection: Collection name (optional)

    Returns:
        Appropriate custom database exception (not raised)
    """
    if isinstance(error, DatabaseException):
        return error

    exception_class = classify_pymongo_error(error)
    return exception_class(
        f"Database operation failed: {error}",
        operation=operation,
        database=database,
        collection=collection,
        original_error=error
    )


class DatabaseRetryConfig:
    """Configuration for database operation retry logic"""

    def __init__(self, max_attempts: int = 3, min_wait: float = 0.5, max_wait: float = 5.0,
                 multiplier: float = 2.0):
        self.max_attempts = max_attempts
        self.min_wait = min_wait
        self.max_wait = max_wait
        self.multiplier = multiplier


READ_RETRY_CONFIG = DatabaseRetryConfig()

RETRYABLE_EXCEPTIONS = (ConnectionException, TimeoutException)


def with_read_retry(config: Optional[DatabaseRetryConfig] = None) -> Callable:
    """
    Decorator adding exponential backoff retries to idempotent read operations.

    The wrapped function is expected to raise ``DatabaseException`` subclasses;
    only connection and timeout failures are retried. Writes are never wrapped
    because counter updates are not idempotent.

    Args:
        config: Retry configuration, defaults to ``READ_RETRY_CONFIG``

    Returns:
        Configured retry decorator
    """
    config = config or READ_RETRY_CONFIG

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            retrying = Retrying(
                stop=stop_after_attempt(config.max_attempts),
                wait=wait_exponential(
                    multiplier=config.multiplier,
                    min=config.min_wait,
                    max=config.max_wait
                ),
                retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
                before_sleep=before_sleep_log(logging.getLogger(__name__), logging.WARNING),
                reraise=True,
            )
            for attempt in retrying:
                with attempt:
                    return func(*args, **kwargs)
        return wrapper
    return decorator


def register_database_error_handlers(app) -> None:
    """
    Register Flask error handlers for database exceptions.

    Details of the failure are logged by the exception itself; clients only
    receive an opaque message.

    Args:
        app: Flask application instance
    """
    from flask import jsonify

    @app.errorhandler(DatabaseException)
    def handle_database_exception(error: DatabaseException):
        response_data = {
            "error": {
                "message": "The service is temporarily unavailable. Please try again later.",
                "code": "DATABASE_UNAVAILABLE",
                "timestamp": error.timestamp.isoformat()
            }
        }
        return jsonify(response_data), 503


__all__ = [
    'DatabaseOperationType',
    'DatabaseException',
    'ConnectionException',
    'TimeoutException',
    'QueryException',
    'DuplicateKeyException',
    'classify_pymongo_error',
    'handle_database_error',
    'DatabaseRetryConfig',
    'with_read_retry',
    'register_database_error_handlers',
]
