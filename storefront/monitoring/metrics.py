"""
Prometheus Metrics for the storefront application

Module-level collectors are registered once with the default prometheus-client
registry and updated from request hooks, the query pipeline and the login flow.
The ``/metrics`` endpoint in ``storefront.blueprints.health`` renders them.
"""

import time

from flask import Flask, g, request
from prometheus_client import Counter, Histogram, CONTENT_TYPE_LATEST, generate_latest


# ============================================================================
# HTTP METRICS
# ============================================================================

REQUEST_COUNT = Counter(
    'storefront_http_requests_total',
    'Total number of HTTP requests',
    ['method', 'endpoint', 'status_code']
)

REQUEST_DURATION = Histogram(
    'storefront_http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint']
)

# ============================================================================
# BUSINESS METRICS
# ============================================================================

LOGIN_ATTEMPTS = Counter(
    'storefront_login_attempts_total',
    'Login attempts by outcome',
    ['outcome']
)

LIST_QUERIES = Counter(
    'storefront_list_queries_total',
    'List queries served by the search/sort/paginate pipeline',
    ['resource', 'paginated']
)

DATABASE_ERRORS = Counter(
    'storefront_database_errors_total',
    'Database errors by exception type and operation',
    ['error_type', 'operation']
)


def init_request_metrics(app: Flask) -> None:
    """
    Register request hooks that feed the HTTP collectors.

    Args:
        app: Flask application instance
    """

    @app.before_request
    def start_request_timer():
        g.metrics_start_time = time.perf_counter()

    @app.after_request
    def record_request_metrics(response):
        endpoint = request.endpoint or 'unknown'
        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code
        ).inc()

        start_time = getattr(g, 'metrics_start_time', None)
        if start_time is not None:
            REQUEST_DURATION.labels(
                method=request.method,
                endpoint=endpoint
            ).observe(time.perf_counter() - start_time)
        return response


def render_latest():
    """Return the current exposition payload and its content type."""
    return generate_latest(), CONTENT_TYPE_LATEST


__all__ = [
    'REQUEST_COUNT',
    'REQUEST_DURATION',
    'LOGIN_ATTEMPTS',
    'LIST_QUERIES',
    'DATABASE_ERRORS',
    'init_request_metrics',
    'render_latest',
]
