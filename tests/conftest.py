"""
Global pytest Configuration and Fixtures

Application, client and storage fixtures shared by the unit and integration suites.
mongomock stands in for the MongoDB server so the suites run without external
services; factory_boy factories generate raw user, product and purchase documents.
"""

import mongomock
import pytest

from storefront.app import create_app
from storefront.data.mongodb import MongoDBManager, ResourceType

from tests.factories import ProductDocumentFactory, UserDocumentFactory


# =============================================================================
# Storage fixtures
# =============================================================================

@pytest.fixture
def mongo_client():
    """Fresh in-memory MongoDB client per test."""
    return mongomock.MongoClient()


@pytest.fixture
def db_manager(mongo_client):
    manager = MongoDBManager(mongo_client, 'storefront_test')
    manager.ensure_indexes()
    return manager


@pytest.fixture
def insert_user(db_manager):
    """Insert a user document and return its raw stored form."""

    def _insert(**overrides):
        user_id = db_manager.insert(ResourceType.USERS, UserDocumentFactory(**overrides))
        return db_manager.fetch_one(ResourceType.USERS, user_id)

    return _insert


@pytest.fixture
def insert_product(db_manager):
    def _insert(**overrides):
        product_id = db_manager.insert(ResourceType.PRODUCTS, ProductDocumentFactory(**overrides))
        return db_manager.fetch_one(ResourceType.PRODUCTS, product_id)

    return _insert


# =============================================================================
# Flask application fixtures
# =============================================================================

@pytest.fixture
def app(mongo_client):
    """Testing application bound to the per-test mongomock client."""
    application = create_app('testing', MONGODB_CLIENT=mongo_client)
    with application.app_context():
        yield application


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def app_db(app):
    """MongoDB manager registered on the testing application."""
    return app.extensions['mongodb']


@pytest.fixture
def insert_app_user(app_db):
    """Insert a user into the testing application's database."""

    def _insert(**overrides):
        user_id = app_db.insert(ResourceType.USERS, UserDocumentFactory(**overrides))
        return app_db.fetch_one(ResourceType.USERS, user_id)

    return _insert
