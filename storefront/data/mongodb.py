"""
MongoDB Database Access Layer

This module implements the storage collaborator used by the business services on top
of the PyMongo synchronous driver. The surface is intentionally small: whole-collection
reads, single-document lookups by id or by field, partial updates, inserts, deletes,
reference list push/pull for purchases, and ``find_one_and_update`` for the atomic
login attempt transitions.

Key Features:
- PyMongo driver errors translated into ``storefront.data.exceptions`` types
- Tenacity retries for idempotent reads on transient connection failures
- Invalid ObjectId strings treated as lookup misses instead of errors
- ``created_at`` / ``updated_at`` timestamps maintained on writes
- Flask integration through ``init_database_app`` and ``get_mongodb_manager``
"""

import time
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import structlog
from bson import ObjectId
from bson.errors import InvalidId
from flask import Flask, current_app
from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from storefront.data.exceptions import (
    DatabaseException,
    DatabaseOperationType,
    handle_database_error,
    with_read_retry,
)


logger = structlog.get_logger(__name__)

EXTENSION_KEY = 'mongodb'


class ResourceType(str, Enum):
    """Collections backing the public resources."""
    USERS = "users"
    PRODUCTS = "products"
    PURCHASES = "purchases"


def to_object_id(value: Union[str, ObjectId, None]) -> Optional[ObjectId]:
    """
    Convert an identifier to ObjectId.

    Args:
        value: ObjectId instance or its 24 character hex string

    Returns:
        ObjectId or None when the value is not a valid identifier
    """
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str):
        return None
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


class MongoDBManager:
    """
    MongoDB manager implementing the storage operations used by the services.

    Every operation translates ``PyMongoError`` into the custom exception
    hierarchy, so callers only ever need to handle ``DatabaseException``.
    """

    def __init__(self, client: MongoClient, database_name: str):
        """
        Initialize MongoDB manager.

        Args:
            client: Connected (lazily) PyMongo client
            database_name: Target database name
        """
        self._client = client
        self.database_name = database_name
        self._database = client[database_name]

    @property
    def client(self) -> MongoClient:
        """Get PyMongo client instance."""
        return self._client

    @property
    def database(self) -> Database:
        """Get PyMongo database instance."""
        return self._database

    def get_collection(self, resource: Union[ResourceType, str]) -> Collection:
        """
        Get MongoDB collection for a resource.

        Args:
            resource: Resource type or raw collection name

        Returns:
            Collection: PyMongo collection instance
        """
        name = resource.value if isinstance(resource, ResourceType) else resource
        return self._database[name]

    @contextmanager
    def _operation(self, operation: DatabaseOperationType, resource: Union[ResourceType, str], name: str):
        """Translate driver errors and log the duration of one storage call."""
        collection = resource.value if isinstance(resource, ResourceType) else resource
        start_time = time.perf_counter()
        try:
            yield
        except PyMongoError as e:
            raise handle_database_error(e, operation, self.database_name, collection) from e
        logger.debug(
            "Database operation completed",
            operation=name,
            collection=collection,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2)
        )

    # Reads

    @with_read_retry()
    def fetch_all(self, resource: ResourceType) -> List[Dict[str, Any]]:
        """
        Fetch every document of a collection in natural order.

        Args:
            resource: Resource type

        Returns:
            List of raw documents
        """
        with self._operation(DatabaseOperationType.READ, resource, 'fetch_all'):
            return list(self.get_collection(resource).find({}))

    @with_read_retry()
    def fetch_one(self, resource: ResourceType, document_id: Union[str, ObjectId]) -> Optional[Dict[str, Any]]:
        """
        Fetch a document by identifier.

        Args:
            resource: Resource type
            document_id: ObjectId or its hex string

        Returns:
            Document or None when absent or the identifier is malformed
        """
        object_id = to_object_id(document_id)
        if object_id is None:
            return None
        with self._operation(DatabaseOperationType.READ, resource, 'fetch_one'):
            return self.get_collection(resource).find_one({'_id': object_id})

    @with_read_retry()
    def fetch_by_field(self, resource: ResourceType, field: str, value: Any) -> Optional[Dict[str, Any]]:
        """
        Fetch the first document whose ``field`` equals ``value``.

        Args:
            resource: Resource type
            field: Field name
            value: Exact value to match

        Returns:
            Document or None
        """
        with self._operation(DatabaseOperationType.READ, resource, 'fetch_by_field'):
            return self.get_collection(resource).find_one({field: value})

    @with_read_retry()
    def fetch_many_by_ids(self, resource: ResourceType, ids: Iterable[Any]) -> List[Dict[str, Any]]:
        """
        Fetch documents whose identifiers are in ``ids``.

        Args:
            resource: Resource type
            ids: Identifiers; malformed ones are ignored

        Returns:
            Matching documents in unspecified order
        """
        object_ids = [oid for oid in (to_object_id(value) for value in ids) if oid is not None]
        if not object_ids:
            return []
        with self._operation(DatabaseOperationType.READ, resource, 'fetch_many_by_ids'):
            return list(self.get_collection(resource).find({'_id': {'$in': object_ids}}))

    # Writes

    def insert(self, resource: ResourceType, document: Mapping[str, Any]) -> str:
        """
        Insert a document.

        Args:
            resource: Resource type
            document: Document to insert (not mutated)

        Returns:
            Inserted identifier as hex string
        """
        now = datetime.now(timezone.utc)
        payload = dict(document)
        payload.setdefault('created_at', now)
        payload.setdefault('updated_at', now)
        with self._operation(DatabaseOperationType.WRITE, resource, 'insert'):
            result = self.get_collection(resource).insert_one(payload)
        logger.info("Document inserted", collection=resource.value, document_id=str(result.inserted_id))
        return str(result.inserted_id)

    def upsert(self, resource: ResourceType, document_id: Union[str, ObjectId, None],
               patch: Mapping[str, Any]) -> bool:
        """
        Apply a ``$set`` patch to a document, creating it when absent.

        Args:
            resource: Resource type
            document_id: Target identifier; None inserts a new document
            patch: Fields to set

        Returns:
            True when the write was acknowledged
        """
        if document_id is None:
            return bool(self.insert(resource, patch))

        object_id = to_object_id(document_id)
        if object_id is None:
            return False

        now = datetime.now(timezone.utc)
        update = {
            '$set': {**patch, 'updated_at': now},
            '$setOnInsert': {'created_at': now},
        }
        with self._operation(DatabaseOperationType.WRITE, resource, 'upsert'):
            result = self.get_collection(resource).update_one({'_id': object_id}, update, upsert=True)
        return bool(result.acknowledged)

    def update(self, resource: ResourceType, document_id: Union[str, ObjectId],
               patch: Mapping[str, Any]) -> bool:
        """
        Apply a ``$set`` patch to an existing document; never creates one.

        Returns:
            True when the target document exists
        """
        object_id = to_object_id(document_id)
        if object_id is None:
            return False
        update = {'$set': {**patch, 'updated_at': datetime.now(timezone.utc)}}
        with self._operation(DatabaseOperationType.WRITE, resource, 'update'):
            result = self.get_collection(resource).update_one({'_id': object_id}, update)
        return result.matched_count == 1

    def delete(self, resource: ResourceType, document_id: Union[str, ObjectId]) -> bool:
        """
        Delete a document by identifier.

        Returns:
            True when a document was removed
        """
        object_id = to_object_id(document_id)
        if object_id is None:
            return False
        with self._operation(DatabaseOperationType.DELETE, resource, 'delete'):
            result = self.get_collection(resource).delete_one({'_id': object_id})
        return result.deleted_count == 1

    def push_reference(self, resource: ResourceType, document_id: Union[str, ObjectId],
                       field: str, value: Any) -> bool:
        """
        Append ``value`` to the list stored in ``field``.

        Returns:
            True when the target document exists
        """
        object_id = to_object_id(document_id)
        if object_id is None:
            return False
        with self._operation(DatabaseOperationType.WRITE, resource, 'push_reference'):
            result = self.get_collection(resource).update_one(
                {'_id': object_id},
                {'$push': {field: value}, '$set': {'updated_at': datetime.now(timezone.utc)}}
            )
        return result.matched_count == 1

    def pull_reference(self, resource: ResourceType, document_id: Union[str, ObjectId],
                       field: str, value: Any) -> bool:
        """
        Remove every occurrence of ``value`` from the list stored in ``field``.

        Returns:
            True when the target document exists
        """
        object_id = to_object_id(document_id)
        if object_id is None:
            return False
        with self._operation(DatabaseOperationType.WRITE, resource, 'pull_reference'):
            result = self.get_collection(resource).update_one(
                {'_id': object_id},
                {'$pull': {field: value}, '$set': {'updated_at': datetime.now(timezone.utc)}}
            )
        return result.matched_count == 1

    def find_one_and_update(self, resource: ResourceType, match: Mapping[str, Any],
                            update: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Atomically apply ``update`` to the first document matching ``match``.

        This is the only conditional write primitive; the match acts as the
        compare part of a compare-and-swap.

        Args:
            resource: Resource type
            match: Filter that must hold at write time
            update: MongoDB update document

        Returns:
            The updated document, or None when nothing matched
        """
        with self._operation(DatabaseOperationType.WRITE, resource, 'find_one_and_update'):
            return self.get_collection(resource).find_one_and_update(
                dict(match), dict(update), return_document=ReturnDocument.AFTER
            )

    # Maintenance

    def ensure_indexes(self) -> None:
        """Create the indexes backing lookups and uniqueness rules."""
        with self._operation(DatabaseOperationType.WRITE, ResourceType.USERS, 'create_index'):
            self.get_collection(ResourceType.USERS).create_index([('email', ASCENDING)], unique=True)
        with self._operation(DatabaseOperationType.WRITE, ResourceType.PRODUCTS, 'create_index'):
            self.get_collection(ResourceType.PRODUCTS).create_index([('product_name', ASCENDING)], unique=True)
            self.get_collection(ResourceType.PRODUCTS).create_index([('sku', ASCENDING)])
        with self._operation(DatabaseOperationType.WRITE, ResourceType.PURCHASES, 'create_index'):
            self.get_collection(ResourceType.PURCHASES).create_index([('email', ASCENDING)])

    def ping(self) -> bool:
        """Round-trip the server; raises ``DatabaseException`` when unreachable."""
        with self._operation(DatabaseOperationType.HEALTH_CHECK, 'admin', 'ping'):
            self._client.admin.command('ping')
        return True

    def health_check(self) -> Dict[str, Any]:
        """
        Database health check with connection validation.

        Returns:
            Dict[str, Any]: Health status information
        """
        health_status = {
            'status': 'unknown',
            'database': self.database_name,
            'timestamp': datetime.now(timezone.utc).isoformat(),
        }

        start_time = time.perf_counter()
        try:
            self.ping()
            health_status['status'] = 'healthy'
            health_status['latency_ms'] = round((time.perf_counter() - start_time) * 1000, 2)
        except DatabaseException as e:
            health_status['status'] = 'unhealthy'
            health_status['error_type'] = type(e).__name__

        return health_status


def create_mongodb_client(config: Mapping[str, Any]) -> MongoClient:
    """
    Build a PyMongo client from Flask configuration values.

    Args:
        config: Flask config mapping

    Returns:
        MongoClient (connection is established lazily)
    """
    return MongoClient(
        config['MONGODB_URI'],
        serverSelectionTimeoutMS=config.get('MONGODB_SERVER_SELECTION_TIMEOUT_MS', 5000),
        socketTimeoutMS=config.get('MONGODB_SOCKET_TIMEOUT_MS', 10000),
        maxPoolSize=config.get('MONGODB_MAX_POOL_SIZE', 50),
        tz_aware=True,
    )


def init_database_app(app: Flask) -> MongoDBManager:
    """
    Attach a MongoDB manager to the Flask application.

    A client supplied through ``MONGODB_CLIENT`` is used as-is; otherwise one
    is built from the URI settings. Index creation failures are logged and do
    not prevent start-up.

    Args:
        app: Flask application instance

    Returns:
        MongoDBManager registered under ``app.extensions['mongodb']``
    """
    client = app.config.get('MONGODB_CLIENT') or create_mongodb_client(app.config)
    manager = MongoDBManager(client, app.config['MONGODB_DATABASE'])

    try:
        manager.ensure_indexes()
    except DatabaseException as e:
        logger.warning("Index creation skipped", error_type=type(e).__name__)

    app.extensions[EXTENSION_KEY] = manager
    logger.info("MongoDB manager initialized", database_name=manager.database_name)
    return manager


def get_mongodb_manager() -> MongoDBManager:
    """
    Get the MongoDB manager of the current application.

    Raises:
        RuntimeError: If the manager was not initialized
    """
    manager = current_app.extensions.get(EXTENSION_KEY)
    if manager is None:
        raise RuntimeError("MongoDB manager not initialized. Call init_database_app() first.")
    return manager


__all__ = [
    'ResourceType',
    'MongoDBManager',
    'to_object_id',
    'create_mongodb_client',
    'init_database_app',
    'get_mongodb_manager',
]
