"""
Flask Application Factory

Builds the storefront WSGI application: configuration, monitoring, MongoDB access,
Flask extensions, blueprints, error handlers and CLI commands, in that order.

Usage Examples:
    # Development application
    app = create_app('development')

    # Tests inject a mongomock client
    app = create_app('testing', MONGODB_CLIENT=mongomock.MongoClient())

    # Auto-detect environment from FLASK_ENV
    app = create_app()
"""

import os
import sys
import time
from typing import Optional

import structlog
from flask import Flask

from storefront import __version__
from storefront.blueprints import register_all_blueprints
from storefront.business.exceptions import create_flask_error_handlers
from storefront.cli import register_cli_commands
from storefront.config.settings import create_app_config
from storefront.data.exceptions import register_database_error_handlers
from storefront.data.mongodb import init_database_app
from storefront.extensions import init_extensions
from storefront.monitoring import init_monitoring


logger = structlog.get_logger(__name__)


class FlaskApplicationFactory:
    """
    Flask application factory.

    Each step is a separate method so failures are logged with the step that
    raised them.
    """

    def create_application(self, config_name: Optional[str] = None, **config_overrides) -> Flask:
        """
        Create and configure a Flask application.

        Args:
            config_name: Environment name (development, testing, production)
            **config_overrides: Configuration values applied after the config class

        Returns:
            Flask: Configured application instance

        Raises:
            ValueError: If the selected configuration is invalid
        """
        creation_start_time = time.perf_counter()
        app = Flask(__name__.split('.')[0])

        config_class = self._configure_application(app, config_name, **config_overrides)
        init_monitoring(app)
        config_class.init_app(app)

        init_database_app(app)
        init_extensions(app)
        register_all_blueprints(app)
        self._configure_error_handlers(app)
        register_cli_commands(app)

        logger.info(
            "Flask application created",
            app_name=app.config.get('APP_NAME'),
            version=__version__,
            environment=app.config.get('ENVIRONMENT'),
            python_version=f"{sys.version_info.major}.{sys.version_info.minor}",
            creation_time_ms=round((time.perf_counter() - creation_start_time) * 1000, 2)
        )
        return app

    def _configure_application(self, app: Flask, config_name: Optional[str], **config_overrides):
        environment = config_name or os.getenv('FLASK_ENV', 'development')
        config_class = create_app_config(environment)
        app.config.from_object(config_class)

        if config_overrides:
            app.config.update(config_overrides)

        app.config['ENVIRONMENT'] = environment
        app.config['CONFIG_CLASS'] = config_class.__name__
        return config_class

    def _configure_error_handlers(self, app: Flask) -> None:
        create_flask_error_handlers(app)
        register_database_error_handlers(app)


_application_factory = FlaskApplicationFactory()


def create_app(config_name: Optional[str] = None, **config_overrides) -> Flask:
    """
    Create the storefront Flask application.

    Args:
        config_name: Environment configuration name (defaults to ``FLASK_ENV``)
        **config_overrides: Configuration overrides, e.g. ``MONGODB_CLIENT``

    Returns:
        Flask: Configured application instance
    """
    try:
        return _application_factory.create_application(config_name, **config_overrides)
    except Exception as e:
        logger.error(
            "Flask application creation failed",
            error_type=type(e).__name__,
            config_name=config_name
        )
        raise


__all__ = ['FlaskApplicationFactory', 'create_app']
