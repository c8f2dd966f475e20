"""
Flask extension instances shared across blueprints.

The limiter is created unbound and attached in the application factory so that
route decorators can reference it at import time.
"""

import structlog
from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address


logger = structlog.get_logger(__name__)

limiter = Limiter(key_func=get_remote_address)


def init_extensions(app: Flask) -> None:
    """
    Initialize Flask-CORS and Flask-Limiter from application configuration.

    Args:
        app: Flask application instance
    """
    CORS(
        app,
        origins=app.config.get('CORS_ORIGINS', ['*']),
        methods=['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS'],
        allow_headers=app.config.get('CORS_ALLOW_HEADERS', ['Content-Type']),
        expose_headers=app.config.get('CORS_EXPOSE_HEADERS', []),
        max_age=600,
    )

    limiter.init_app(app)

    logger.info(
        "Flask extensions initialized",
        cors_origins=app.config.get('CORS_ORIGINS'),
        rate_limiting_enabled=app.config.get('RATELIMIT_ENABLED'),
        login_rate_limit=app.config.get('LOGIN_RATE_LIMIT')
    )


__all__ = ['limiter', 'init_extensions']
