"""
Health Monitoring Blueprint

Liveness and readiness probes for load balancers and container orchestration, plus
the Prometheus exposition endpoint.

- ``/health/live``: process is up and serving requests
- ``/health/ready``: MongoDB answers a ping
- ``/metrics``: prometheus-client text format
"""

import os
from datetime import datetime, timezone

import structlog
from flask import Blueprint, Response, current_app, jsonify

from storefront.data.mongodb import get_mongodb_manager
from storefront.monitoring.metrics import render_latest


logger = structlog.get_logger(__name__)

health_bp = Blueprint('health', __name__)


class HealthStatus:
    HEALTHY = 'healthy'
    UNHEALTHY = 'unhealthy'


@health_bp.route('/health/live', methods=['GET'])
def liveness_probe():
    """
    Liveness probe.

    Returns:
        200 with process information while the application is running
    """
    return jsonify({
        'status': HealthStatus.HEALTHY,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'probe_type': 'liveness',
        'application': {
            'name': current_app.config.get('APP_NAME'),
            'version': current_app.config.get('APP_VERSION'),
            'pid': os.getpid(),
        }
    }), 200


@health_bp.route('/health/ready', methods=['GET'])
def readiness_probe():
    """
    Readiness probe.

    Returns:
        200 when MongoDB is reachable, 503 otherwise
    """
    database = get_mongodb_manager().health_check()
    ready = database['status'] == HealthStatus.HEALTHY

    if not ready:
        logger.warning("Readiness probe failed", database=database)

    return jsonify({
        'status': HealthStatus.HEALTHY if ready else HealthStatus.UNHEALTHY,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'probe_type': 'readiness',
        'ready': ready,
        'critical_dependencies': {'database': database},
    }), 200 if ready else 503


@health_bp.route('/metrics', methods=['GET'])
def prometheus_metrics():
    """Prometheus metrics in text exposition format."""
    payload, content_type = render_latest()
    response = Response(payload, content_type=content_type)
    response.headers['Cache-Control'] = 'no-cache'
    return response
