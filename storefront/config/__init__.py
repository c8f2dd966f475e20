"""Configuration package for the storefront application."""

from storefront.config.settings import (
    BaseConfig,
    DevelopmentConfig,
    TestingConfig,
    ProductionConfig,
    config_map,
    get_config,
    validate_configuration,
    create_app_config,
)

__all__ = [
    'BaseConfig',
    'DevelopmentConfig',
    'TestingConfig',
    'ProductionConfig',
    'config_map',
    'get_config',
    'validate_configuration',
    'create_app_config',
]
