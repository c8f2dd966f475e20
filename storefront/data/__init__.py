"""
Data access package: PyMongo manager, driver error translation and the
login attempt repository.
"""

from storefront.data.exceptions import (
    DatabaseException,
    DatabaseOperationType,
    ConnectionException,
    TimeoutException,
    QueryException,
    DuplicateKeyException,
    register_database_error_handlers,
)
from storefront.data.mongodb import (
    MongoDBManager,
    ResourceType,
    to_object_id,
    init_database_app,
    get_mongodb_manager,
)
from storefront.data.repositories import LoginAttemptRepository


__all__ = [
    'DatabaseException',
    'DatabaseOperationType',
    'ConnectionException',
    'TimeoutException',
    'QueryException',
    'DuplicateKeyException',
    'register_database_error_handlers',
    'MongoDBManager',
    'ResourceType',
    'to_object_id',
    'init_database_app',
    'get_mongodb_manager',
    'LoginAttemptRepository',
]
