"""
Configuration selection and application factory tests.
"""

import mongomock
import pytest

from storefront.app import create_app
from storefront.config.settings import (
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    get_config,
    validate_configuration,
)


pytestmark = pytest.mark.unit


class TestConfigSelection:

    @pytest.mark.parametrize('name, expected', [
        ('development', DevelopmentConfig),
        ('dev', DevelopmentConfig),
        ('TESTING', TestingConfig),
        ('prod', ProductionConfig),
    ])
    def test_environment_names(self, name, expected):
        assert get_config(name) is expected

    def test_unknown_environment(self):
        with pytest.raises(ValueError, match="Unsupported environment"):
            get_config('staging')

    def test_lockout_defaults(self):
        assert TestingConfig.LOGIN_MAX_ATTEMPTS == 5
        assert TestingConfig.LOGIN_LOCKOUT_MINUTES == 30
        assert TestingConfig.RATELIMIT_ENABLED is False


class TestValidateConfiguration:

    def test_testing_config_is_valid(self):
        assert validate_configuration(TestingConfig) == []

    def test_short_secret_and_bad_policy_are_reported(self):
        class BrokenConfig(TestingConfig):
            SECRET_KEY = 'short'
            LOGIN_MAX_ATTEMPTS = 0
            DEBUG = False
            CORS_ORIGINS = ['*']

        issues = validate_configuration(BrokenConfig)

        assert any('SECRET_KEY' in issue for issue in issues)
        assert any('LOGIN_MAX_ATTEMPTS' in issue for issue in issues)
        assert any('CORS' in issue for issue in issues)


class TestApplicationFactory:

    def test_testing_application(self):
        app = create_app('testing', MONGODB_CLIENT=mongomock.MongoClient())

        assert app.config['TESTING'] is True
        assert app.config['ENVIRONMENT'] == 'testing'
        assert app.config['CONFIG_CLASS'] == 'TestingConfig'
        assert 'mongodb' in app.extensions
        assert {'users', 'products', 'purchases', 'authentication', 'health'} <= set(app.blueprints)

    def test_overrides_are_applied(self):
        app = create_app('testing', MONGODB_CLIENT=mongomock.MongoClient(), LOGIN_MAX_ATTEMPTS=3)

        assert app.config['LOGIN_MAX_ATTEMPTS'] == 3

    def test_cli_command_is_registered(self):
        app = create_app('testing', MONGODB_CLIENT=mongomock.MongoClient())

        assert 'seed-defaults' in app.cli.commands
