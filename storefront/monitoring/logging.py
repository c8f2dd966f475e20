"""
Structured Logging Implementation using structlog

This module configures structlog on top of the standard library logging module and
wires request correlation into the Flask request lifecycle. Every module in the
package obtains its logger through ``structlog.get_logger(__name__)``; the
configuration applied here decides how those events are rendered.

Key Features:
- JSON log rendering for log aggregation, console rendering for development
- Correlation ID tracking through a ContextVar and the ``X-Request-ID`` header
- Request start/completion logging with duration and status code
- Security event helper used by the authentication flow
"""

import logging
import logging.config
import time
import uuid
from contextvars import ContextVar
from typing import Any, Callable, Dict, Optional

import structlog
from flask import Flask, g, has_request_context, request


# Correlation ID of the request currently being served
correlation_id_context: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)

CORRELATION_HEADER = 'X-Request-ID'


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for request tracking."""
    return uuid.uuid4().hex


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """
    Set correlation ID for the current context.

    Args:
        correlation_id: Optional correlation ID, generated if None

    Returns:
        The correlation ID that was set
    """
    if correlation_id is None:
        correlation_id = generate_correlation_id()

    correlation_id_context.set(correlation_id)
    if has_request_context():
        g.correlation_id = correlation_id

    return correlation_id


def get_correlation_id() -> Optional[str]:
    """Get current correlation ID from context or Flask g."""
    correlation_id = correlation_id_context.get()
    if correlation_id:
        return correlation_id

    if has_request_context():
        return getattr(g, 'correlation_id', None)

    return None


def clear_correlation_id() -> None:
    correlation_id_context.set(None)


def add_correlation_id(logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """structlog processor enriching events with the active correlation ID."""
    correlation_id = get_correlation_id()
    if correlation_id and 'correlation_id' not in event_dict:
        event_dict['correlation_id'] = correlation_id
    return event_dict


def add_request_context(logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """structlog processor adding method and path of the current request."""
    if has_request_context():
        event_dict.setdefault('method', request.method)
        event_dict.setdefault('path', request.path)
    return event_dict


def setup_structured_logging(
    log_level: str = 'INFO',
    log_format: str = 'json',
    app_name: str = 'storefront'
) -> structlog.stdlib.BoundLogger:
    """
    Configure structlog and the standard library logging backend.

    Args:
        log_level: Minimum level emitted by the root logger
        log_format: ``json`` for machine readable output, ``console`` for development
        app_name: Name of the logger returned to the caller

    Returns:
        Configured structured logger instance
    """
    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="ISO"),
        add_correlation_id,
        add_request_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == 'console':
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig({
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'plain': {'format': '%(message)s'}
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'plain',
                'stream': 'ext://sys.stdout'
            }
        },
        'loggers': {
            '': {
                'handlers': ['console'],
                'level': log_level.upper(),
            }
        }
    })

    logger = structlog.get_logger(app_name)
    logger.debug(
        "Structured logging initialized",
        log_level=log_level,
        log_format=log_format
    )
    return logger


def init_request_logging(app: Flask) -> None:
    """
    Register request lifecycle hooks for correlation and access logging.

    Incoming ``X-Request-ID`` headers are reused, otherwise a new ID is
    generated; the ID is echoed back on the response.

    Args:
        app: Flask application instance
    """
    logger = structlog.get_logger('storefront.request')

    @app.before_request
    def start_request_logging():
        correlation_id = request.headers.get(CORRELATION_HEADER) or generate_correlation_id()
        set_correlation_id(correlation_id)
        g.request_start_time = time.perf_counter()

    @app.after_request
    def finish_request_logging(response):
        start_time = getattr(g, 'request_start_time', None)
        duration_ms = (time.perf_counter() - start_time) * 1000 if start_time else 0.0

        logger.info(
            "Request completed",
            endpoint=request.endpoint,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2)
        )

        correlation_id = get_correlation_id()
        if correlation_id:
            response.headers[CORRELATION_HEADER] = correlation_id
        return response

    @app.teardown_request
    def clear_request_logging(exc):
        clear_correlation_id()


def log_security_event(event_type: str, severity: str = 'info', **additional_data) -> None:
    """
    Convenience function for logging security events.

    Args:
        event_type: Type of security event (e.g. ``auth.login_failed``)
        severity: Event severity level name
        **additional_data: Additional event data
    """
    logger = structlog.get_logger('storefront.security')
    log_method: Callable = getattr(logger, severity.lower(), logger.info)
    log_method(
        "Security event",
        event_category='security',
        event_type=event_type,
        **additional_data
    )


__all__ = [
    'correlation_id_context',
    'setup_structured_logging',
    'init_request_logging',
    'generate_correlation_id',
    'set_correlation_id',
    'get_correlation_id',
    'clear_correlation_id',
    'log_security_event',
]
