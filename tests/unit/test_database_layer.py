"""
MongoDB access layer tests: identifier handling, timestamps, reference lists,
driver error translation and read retries.
"""

import pymongo.errors
import pytest
from bson import ObjectId

from storefront.data.exceptions import (
    ConnectionException,
    DatabaseException,
    DatabaseOperationType,
    DatabaseRetryConfig,
    DuplicateKeyException,
    QueryException,
    TimeoutException,
    classify_pymongo_error,
    handle_database_error,
    with_read_retry,
)
from storefront.data.mongodb import ResourceType, to_object_id


pytestmark = pytest.mark.unit

NO_WAIT = DatabaseRetryConfig(max_attempts=3, min_wait=0, max_wait=0, multiplier=0)


class TestIdentifiers:

    def test_to_object_id(self):
        oid = ObjectId()

        assert to_object_id(oid) is oid
        assert to_object_id(str(oid)) == oid
        assert to_object_id('zz' * 12) is None
        assert to_object_id(None) is None
        assert to_object_id(12345) is None


class TestMongoDBManager:

    def test_insert_sets_timestamps(self, db_manager):
        document_id = db_manager.insert(ResourceType.PRODUCTS, {'product_name': 'Lamp'})

        stored = db_manager.fetch_one(ResourceType.PRODUCTS, document_id)
        assert stored['created_at'] is not None
        assert stored['updated_at'] is not None
        assert isinstance(document_id, str)

    def test_insert_does_not_mutate_input(self, db_manager):
        document = {'product_name': 'Lamp'}
        db_manager.insert(ResourceType.PRODUCTS, document)

        assert document == {'product_name': 'Lamp'}

    def test_fetch_all_returns_natural_order(self, db_manager):
        for name in ('c', 'a', 'b'):
            db_manager.insert(ResourceType.PRODUCTS, {'product_name': name})

        assert [d['product_name'] for d in db_manager.fetch_all(ResourceType.PRODUCTS)] == ['c', 'a', 'b']

    def test_upsert_patches_existing_document(self, db_manager):
        document_id = db_manager.insert(ResourceType.PRODUCTS, {'product_name': 'Lamp', 'price': 5.0})

        assert db_manager.upsert(ResourceType.PRODUCTS, document_id, {'price': 7.5}) is True

        stored = db_manager.fetch_one(ResourceType.PRODUCTS, document_id)
        assert stored['price'] == 7.5
        assert stored['product_name'] == 'Lamp'

    def test_upsert_without_identifier_inserts(self, db_manager):
        assert db_manager.upsert(ResourceType.PRODUCTS, None, {'product_name': 'New'}) is True
        assert db_manager.fetch_by_field(ResourceType.PRODUCTS, 'product_name', 'New') is not None

    def test_update_patches_existing_document(self, db_manager):
        document_id = db_manager.insert(ResourceType.PRODUCTS, {'product_name': 'Lamp', 'price': 5.0})

        assert db_manager.update(ResourceType.PRODUCTS, document_id, {'price': 7.5}) is True
        assert db_manager.fetch_one(ResourceType.PRODUCTS, document_id)['price'] == 7.5

    def test_update_of_deleted_document_creates_nothing(self, db_manager):
        document_id = db_manager.insert(ResourceType.PRODUCTS, {'product_name': 'Lamp'})
        db_manager.delete(ResourceType.PRODUCTS, document_id)

        assert db_manager.update(ResourceType.PRODUCTS, document_id, {'price': 7.5}) is False
        assert db_manager.fetch_all(ResourceType.PRODUCTS) == []

    def test_push_and_pull_reference(self, db_manager):
        purchase_id = db_manager.insert(ResourceType.PURCHASES, {'name': 'Ann', 'items': []})
        product_id = ObjectId()

        assert db_manager.push_reference(ResourceType.PURCHASES, purchase_id, 'items', product_id)
        assert db_manager.push_reference(ResourceType.PURCHASES, purchase_id, 'items', product_id)
        assert db_manager.fetch_one(ResourceType.PURCHASES, purchase_id)['items'] == [product_id, product_id]

        assert db_manager.pull_reference(ResourceType.PURCHASES, purchase_id, 'items', product_id)
        assert db_manager.fetch_one(ResourceType.PURCHASES, purchase_id)['items'] == []

    def test_fetch_many_by_ids_ignores_malformed_ids(self, db_manager):
        first = db_manager.insert(ResourceType.PRODUCTS, {'product_name': 'A'})
        db_manager.insert(ResourceType.PRODUCTS, {'product_name': 'B'})

        found = db_manager.fetch_many_by_ids(ResourceType.PRODUCTS, [first, 'bogus'])

        assert [str(d['_id']) for d in found] == [first]
        assert db_manager.fetch_many_by_ids(ResourceType.PRODUCTS, ['bogus']) == []

    def test_unique_email_index_maps_to_duplicate_key(self, db_manager):
        db_manager.insert(ResourceType.USERS, {'email': 'amy@example.com'})

        with pytest.raises(DuplicateKeyException):
            db_manager.insert(ResourceType.USERS, {'email': 'amy@example.com'})

    def test_find_one_and_update_returns_none_without_match(self, db_manager):
        result = db_manager.find_one_and_update(
            ResourceType.USERS, {'email': 'missing@example.com'}, {'$inc': {'login_attempt': 1}}
        )

        assert result is None

    def test_health_check(self, db_manager, mocker):
        assert db_manager.health_check()['status'] == 'healthy'

        mocker.patch.object(db_manager, 'ping', side_effect=ConnectionException("unreachable"))
        health = db_manager.health_check()
        assert health['status'] == 'unhealthy'
        assert health['error_type'] == 'ConnectionException'


class TestErrorTranslation:

    @pytest.mark.parametrize('error, expected', [
        (pymongo.errors.DuplicateKeyError("dup"), DuplicateKeyException),
        (pymongo.errors.ServerSelectionTimeoutError("no server"), ConnectionException),
        (pymongo.errors.AutoReconnect("reconnect"), ConnectionException),
        (pymongo.errors.ExecutionTimeout("slow"), TimeoutException),
        (pymongo.errors.OperationFailure("bad query"), QueryException),
        (pymongo.errors.PyMongoError("other"), DatabaseException),
    ])
    def test_classification(self, error, expected):
        assert classify_pymongo_error(error) is expected

    def test_handle_database_error_keeps_context(self):
        original = pymongo.errors.AutoReconnect("reconnect")

        translated = handle_database_error(original, DatabaseOperationType.READ, 'db', 'users')

        assert isinstance(translated, ConnectionException)
        assert translated.original_error is original
        assert translated.to_dict()['collection'] == 'users'

    def test_already_translated_errors_pass_through(self):
        error = QueryException("rejected")

        assert handle_database_error(error, DatabaseOperationType.WRITE) is error


class TestReadRetry:

    def test_transient_failures_are_retried(self):
        calls = []

        @with_read_retry(NO_WAIT)
        def flaky_read():
            calls.append(1)
            if len(calls) < 3:
                raise ConnectionException("connection reset")
            return 'document'

        assert flaky_read() == 'document'
        assert len(calls) == 3

    def test_retries_stop_after_max_attempts(self):
        calls = []

        @with_read_retry(NO_WAIT)
        def down():
            calls.append(1)
            raise TimeoutException("timed out")

        with pytest.raises(TimeoutException):
            down()
        assert len(calls) == NO_WAIT.max_attempts

    def test_query_errors_are_not_retried(self):
        calls = []

        @with_read_retry(NO_WAIT)
        def rejected():
            calls.append(1)
            raise QueryException("bad filter")

        with pytest.raises(QueryException):
            rejected()
        assert len(calls) == 1
