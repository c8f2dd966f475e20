"""
Flask Configuration Classes

This module implements environment-specific settings (Development, Testing, Production)
for the storefront application factory. Manages MongoDB connection settings, login
lockout policy, rate limiting, CORS and structured logging options, with environment
variable loading via python-dotenv.

Key Components:
- Environment-specific configuration classes selected through ``config_map``
- MongoDB connection and timeout settings consumed by ``storefront.data``
- Login lockout policy (attempt threshold and lockout window)
- Flask-Limiter settings for the login endpoint
- Flask-CORS origins
- structlog output level and format

Usage:
    from storefront.config.settings import get_config
    app.config.from_object(get_config('development'))
"""

import os
from typing import Dict, List, Optional, Type

from flask import Flask
from dotenv import load_dotenv
import structlog

# Load environment variables early
load_dotenv()

logger = structlog.get_logger(__name__)


def _env_bool(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).lower() in ('1', 'true', 'yes', 'on')


class BaseConfig:
    """
    Base configuration class providing common settings for all environments.

    Holds the Flask core settings plus the MongoDB, lockout, rate limiting,
    CORS and logging options shared by every deployment environment.
    """

    # Flask Core Configuration
    SECRET_KEY = os.getenv('SECRET_KEY', os.urandom(32).hex())

    # Application Metadata
    APP_NAME = os.getenv('APP_NAME', 'storefront')
    APP_VERSION = os.getenv('APP_VERSION', '1.0.0')
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')
    DEBUG = False
    TESTING = False

    # Request Parsing Configuration
    MAX_CONTENT_LENGTH = int(os.getenv('MAX_CONTENT_LENGTH', '1048576'))  # 1MB
    JSON_SORT_KEYS = False

    # MongoDB Configuration
    MONGODB_URI = os.getenv('MONGODB_URI', 'mongodb://localhost:27017')
    MONGODB_DATABASE = os.getenv('MONGODB_DATABASE', 'storefront')
    MONGODB_SERVER_SELECTION_TIMEOUT_MS = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))
    MONGODB_SOCKET_TIMEOUT_MS = int(os.getenv('MONGODB_SOCKET_TIMEOUT_MS', '10000'))
    MONGODB_MAX_POOL_SIZE = int(os.getenv('MONGODB_MAX_POOL_SIZE', '50'))
    # Pre-built client (tests inject a mongomock client here)
    MONGODB_CLIENT = None

    # Login Lockout Policy
    LOGIN_MAX_ATTEMPTS = int(os.getenv('LOGIN_MAX_ATTEMPTS', '5'))
    LOGIN_LOCKOUT_MINUTES = int(os.getenv('LOGIN_LOCKOUT_MINUTES', '30'))

    # Flask-Limiter Configuration
    RATELIMIT_ENABLED = _env_bool('RATELIMIT_ENABLED', 'true')
    RATELIMIT_STORAGE_URI = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')
    RATELIMIT_HEADERS_ENABLED = True
    LOGIN_RATE_LIMIT = os.getenv('LOGIN_RATE_LIMIT', '20 per minute')

    # Flask-CORS Configuration
    CORS_ORIGINS: List[str] = [
        origin.strip() for origin in os.getenv('CORS_ORIGINS', '*').split(',') if origin.strip()
    ]
    CORS_ALLOW_HEADERS = ['Content-Type', 'Authorization', 'X-Request-ID']
    CORS_EXPOSE_HEADERS = ['X-Request-ID', 'X-RateLimit-Remaining', 'Retry-After']

    # Structured Logging Configuration
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'json')  # json, console

    @classmethod
    def init_app(cls, app: Flask) -> None:
        """
        Initialize Flask application with base configuration.

        Args:
            app: Flask application instance
        """
        app.json.sort_keys = cls.JSON_SORT_KEYS

        logger.info(
            "Base configuration initialized",
            config_class=cls.__name__,
            app_name=cls.APP_NAME,
            app_version=cls.APP_VERSION,
            mongodb_database=app.config.get('MONGODB_DATABASE'),
            login_max_attempts=app.config.get('LOGIN_MAX_ATTEMPTS'),
            login_lockout_minutes=app.config.get('LOGIN_LOCKOUT_MINUTES'),
            rate_limiting_enabled=app.config.get('RATELIMIT_ENABLED')
        )


class DevelopmentConfig(BaseConfig):
    """
    Development environment configuration with debug features enabled.

    Uses a human readable console log renderer and verbose log level.
    """

    DEBUG = True
    FLASK_ENV = 'development'
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG').upper()
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'console')
    CORS_ORIGINS = ['http://localhost:3000', 'http://127.0.0.1:3000', 'http://localhost:8000']


class TestingConfig(BaseConfig):
    """
    Testing environment configuration optimized for automated testing.

    Rate limiting is disabled for consistent test results and the database
    name is isolated from development data.
    """

    TESTING = True
    DEBUG = True
    FLASK_ENV = 'testing'
    SECRET_KEY = 'testing-secret-key-with-at-least-32-characters'
    MONGODB_DATABASE = os.getenv('MONGODB_TEST_DATABASE', 'storefront_test')
    MONGODB_SERVER_SELECTION_TIMEOUT_MS = 2000
    RATELIMIT_ENABLED = False
    CORS_ORIGINS = ['*']
    LOG_LEVEL = 'WARNING'
    LOG_FORMAT = 'console'


class ProductionConfig(BaseConfig):
    """
    Production environment configuration.

    Requires an explicit SECRET_KEY and an explicit CORS origin list.
    """

    DEBUG = False
    FLASK_ENV = 'production'
    CORS_ORIGINS = [
        origin.strip() for origin in os.getenv('CORS_ORIGINS', '').split(',') if origin.strip()
    ]

    @classmethod
    def init_app(cls, app: Flask) -> None:
        """
        Initialize Flask application with production configuration.

        Args:
            app: Flask application instance

        Raises:
            ValueError: If SECRET_KEY is not provided through the environment
        """
        super().init_app(app)

        if not os.getenv('SECRET_KEY'):
            raise ValueError("SECRET_KEY environment variable must be set in production")

        if not app.config.get('CORS_ORIGINS'):
            logger.warning("No CORS origins configured for production")


# Configuration mapping for environment-based selection
config_map: Dict[str, Type[BaseConfig]] = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,

    # Aliases for convenience
    'dev': DevelopmentConfig,
    'test': TestingConfig,
    'prod': ProductionConfig
}


def get_config(environment: Optional[str] = None) -> Type[BaseConfig]:
    """
    Get configuration class for the specified environment.

    Args:
        environment: Target environment name (defaults to FLASK_ENV)

    Returns:
        Configuration class for the specified environment

    Raises:
        ValueError: If environment is not supported
    """
    if environment is None:
        environment = os.getenv('FLASK_ENV', 'development')

    environment = environment.lower()

    if environment not in config_map:
        raise ValueError(
            f"Unsupported environment '{environment}'. "
            f"Supported environments: {list(config_map.keys())}"
        )

    return config_map[environment]


def validate_configuration(config: BaseConfig) -> List[str]:
    """
    Validate configuration settings and return list of issues.

    Args:
        config: Configuration instance (or class) to validate

    Returns:
        List of validation error messages (empty if valid)
    """
    issues = []

    if not config.SECRET_KEY:
        issues.append("SECRET_KEY is required")
    elif len(config.SECRET_KEY) < 32:
        issues.append("SECRET_KEY should be at least 32 characters long")

    if config.CORS_ORIGINS == ['*'] and not config.DEBUG:
        issues.append("CORS origins should not use '*' in non-debug environments")

    if config.LOGIN_MAX_ATTEMPTS < 1:
        issues.append("LOGIN_MAX_ATTEMPTS must be a positive integer")

    if config.LOGIN_LOCKOUT_MINUTES < 1:
        issues.append("LOGIN_LOCKOUT_MINUTES must be a positive integer")

    if not config.MONGODB_DATABASE:
        issues.append("MONGODB_DATABASE is required")

    return issues


def create_app_config(environment: Optional[str] = None) -> Type[BaseConfig]:
    """
    Select and validate the configuration class for an environment.

    Args:
        environment: Target environment name

    Returns:
        Validated configuration class

    Raises:
        ValueError: If configuration validation fails outside debug mode
    """
    config_class = get_config(environment)
    issues = validate_configuration(config_class)

    if issues and not config_class.DEBUG:
        raise ValueError(f"Configuration validation failed: {'; '.join(issues)}")
    elif issues:
        logger.warning(
            "Configuration validation warnings (ignored in debug mode)",
            issues=issues
        )

    return config_class
