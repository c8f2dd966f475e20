"""
Monitoring package: structlog configuration, request correlation and
Prometheus collectors.
"""

from flask import Flask

from storefront.monitoring.logging import (
    setup_structured_logging,
    init_request_logging,
    get_correlation_id,
    set_correlation_id,
    log_security_event,
)
from storefront.monitoring.metrics import init_request_metrics


def init_monitoring(app: Flask) -> None:
    """
    Configure logging and metrics for a Flask application.

    Args:
        app: Flask application instance
    """
    setup_structured_logging(
        log_level=app.config.get('LOG_LEVEL', 'INFO'),
        log_format=app.config.get('LOG_FORMAT', 'json'),
        app_name=app.config.get('APP_NAME', 'storefront')
    )
    init_request_logging(app)
    init_request_metrics(app)


__all__ = [
    'init_monitoring',
    'setup_structured_logging',
    'init_request_logging',
    'init_request_metrics',
    'get_correlation_id',
    'set_correlation_id',
    'log_security_event',
]
