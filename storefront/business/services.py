"""
Business Service Layer

Services coordinating storage, the list query pipeline and the login lockout guard for
the users, products and purchases resources.

Conventions shared by every service:
- reads return projected dictionaries or None for a lookup miss
- create/update/delete catch ``DatabaseException`` and report failure as None/False so
  views can answer with a uniform "Failed to ..." message
- uniqueness violations raise ``ConflictError``; credential failures raise
  ``InvalidCredentialsError`` / ``LockedOutError`` and are never swallowed

Example Usage:
    service = ProductService()
    result = service.list(load_query_request(request.args, PRODUCTS_QUERY))
    product_id = service.create({'product_name': 'Desk', ...})
"""

from typing import Any, Callable, Dict, Mapping, Optional

import structlog

from storefront.auth.lockout import LockoutPolicy, LoginLockoutGuard
from storefront.auth.security import hash_password, password_matched
from storefront.business.exceptions import ConflictError, InvalidCredentialsError
from storefront.business.models import (
    PurchaseDetail,
    ProductRecord,
    QueryRequest,
    QueryResult,
)
from storefront.business.query import (
    PRODUCTS_QUERY,
    PURCHASES_QUERY,
    USERS_QUERY,
    ResourceQuerySpec,
    run_query,
)
from storefront.data.exceptions import DatabaseException, DuplicateKeyException
from storefront.data.mongodb import MongoDBManager, ResourceType, get_mongodb_manager, to_object_id
from storefront.data.repositories import LoginAttemptRepository


logger = structlog.get_logger(__name__)


class BaseBusinessService:
    """
    Base class for resource services.

    Args:
        db_manager: Storage manager; defaults to the one registered on the current app
    """

    resource: ResourceType
    query_spec: ResourceQuerySpec

    def __init__(self, db_manager: Optional[MongoDBManager] = None):
        self._db_manager = db_manager

    @property
    def db_manager(self) -> MongoDBManager:
        """Get database manager instance."""
        if self._db_manager is None:
            self._db_manager = get_mongodb_manager()
        return self._db_manager

    def list(self, request: QueryRequest) -> QueryResult:
        """Run the list pipeline over the whole collection."""
        return run_query(self.db_manager.fetch_all(self.resource), request, self.query_spec)

    def get(self, document_id: str) -> Optional[Dict[str, Any]]:
        """Projected document or None."""
        document = self.db_manager.fetch_one(self.resource, document_id)
        if document is None:
            return None
        return self.query_spec.projector(document)

    def exists(self, document_id: str) -> bool:
        return self.db_manager.fetch_one(self.resource, document_id) is not None

    def delete(self, document_id: str) -> bool:
        return self._guarded_write('delete', False, self.db_manager.delete, self.resource, document_id)

    def _guarded_write(self, operation_name: str, failure: Any, func: Callable, *args) -> Any:
        """
        Run a storage write, converting storage failures into ``failure``.

        Duplicate key violations are re-raised as ``ConflictError`` because they
        describe the request, not the storage.
        """
        try:
            return func(*args)
        except DuplicateKeyException as e:
            raise ConflictError(
                f"{self.resource.value[:-1].capitalize()} already exists",
                cause=e
            ) from e
        except DatabaseException as e:
            logger.error(
                "Service write failed",
                operation=operation_name,
                service_type=self.__class__.__name__,
                error_type=type(e).__name__
            )
            return failure

    def _find_other(self, field: str, value: Any, document_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """Document with ``field == value`` other than ``document_id``."""
        found = self.db_manager.fetch_by_field(self.resource, field, value)
        if found is None:
            return None
        if document_id is not None and found['_id'] == to_object_id(document_id):
            return None
        return found


class UserService(BaseBusinessService):
    """User accounts: CRUD, password change."""

    resource = ResourceType.USERS
    query_spec = USERS_QUERY

    def _ensure_email_free(self, email: Optional[str], user_id: Optional[str] = None) -> None:
        if email and self._find_other('email', email, user_id) is not None:
            raise ConflictError("Email already in use", error_code="EMAIL_TAKEN", field='email')

    def create(self, data: Mapping[str, Any]) -> Optional[str]:
        """
        Register a user with a hashed password and a fresh attempt counter.

        Args:
            data: Validated ``CreateUserSchema`` payload

        Returns:
            New user id, or None when the write failed

        Raises:
            ConflictError: If the email is already registered
        """
        self._ensure_email_free(data['email'])
        document = {
            'name': data['name'],
            'email': data['email'],
            'password': hash_password(data['password']),
            LoginAttemptRepository.COUNT_FIELD: 0,
        }
        user_id = self._guarded_write('create_user', None, self.db_manager.insert, self.resource, document)
        if user_id:
            logger.info("User created", user_id=user_id)
        return user_id

    def update(self, user_id: str, data: Mapping[str, Any]) -> bool:
        """Update name and/or email of an existing user."""
        patch = {key: data[key] for key in ('name', 'email') if key in data}
        self._ensure_email_free(patch.get('email'), user_id)
        return self._guarded_write('update_user', False, self.db_manager.update, self.resource, user_id, patch)

    def change_password(self, user_id: str, password_old: str, password_new: str) -> bool:
        """
        Replace the password after verifying the current one.

        Returns:
            True on success, False when the user is missing or the write failed

        Raises:
            InvalidCredentialsError: If ``password_old`` is wrong
        """
        document = self.db_manager.fetch_one(self.resource, user_id)
        if document is None:
            return False
        if not password_matched(document.get('password'), password_old):
            raise InvalidCredentialsError("Current password is incorrect", error_code="WRONG_PASSWORD")
        return self._guarded_write(
            'change_password', False, self.db_manager.update,
            self.resource, user_id, {'password': hash_password(password_new)}
        )


class ProductService(BaseBusinessService):
    """Product catalog with unique product names and optional unique SKUs."""

    resource = ResourceType.PRODUCTS
    query_spec = PRODUCTS_QUERY

    def get_by_sku(self, sku: str) -> Optional[Dict[str, Any]]:
        document = self.db_manager.fetch_by_field(self.resource, 'sku', sku)
        return self.query_spec.projector(document) if document else None

    def _ensure_unique(self, data: Mapping[str, Any], product_id: Optional[str] = None) -> None:
        name = data.get('product_name')
        if name and self._find_other('product_name', name, product_id) is not None:
            raise ConflictError("Product already exists", error_code="PRODUCT_EXISTS", field='product_name')
        sku = data.get('sku')
        if sku and self._find_other('sku', sku, product_id) is not None:
            raise ConflictError("SKU already in use", error_code="SKU_TAKEN", field='sku')

    def create(self, data: Mapping[str, Any]) -> Optional[str]:
        """
        Add a product to the catalog.

        Raises:
            ConflictError: If the product name or SKU is taken
        """
        self._ensure_unique(data)
        return self._guarded_write('create_product', None, self.db_manager.insert, self.resource, dict(data))

    def update(self, product_id: str, data: Mapping[str, Any]) -> bool:
        """Update a product; renaming onto another product's name or SKU is a conflict."""
        self._ensure_unique(data, product_id)
        return self._guarded_write(
            'update_product', False, self.db_manager.update, self.resource, product_id, dict(data)
        )


class PurchaseService(BaseBusinessService):
    """Purchases and their ordered list of product references."""

    resource = ResourceType.PURCHASES
    query_spec = PURCHASES_QUERY
    ITEMS_FIELD = 'items'

    def create(self, data: Mapping[str, Any]) -> Optional[str]:
        document = {**data, self.ITEMS_FIELD: []}
        return self._guarded_write('create_purchase', None, self.db_manager.insert, self.resource, document)

    def get_detail(self, purchase_id: str) -> Optional[Dict[str, Any]]:
        """
        Purchase with ``products`` resolved from its item references.

        Items are returned in purchase order; references to deleted products
        are kept in ``items`` but have no entry in ``products``.
        """
        document = self.db_manager.fetch_one(self.resource, purchase_id)
        if document is None:
            return None

        references = document.get(self.ITEMS_FIELD) or []
        products = {
            str(product['_id']): ProductRecord.from_document(product)
            for product in self.db_manager.fetch_many_by_ids(ResourceType.PRODUCTS, references)
        }
        resolved = [products[str(ref)] for ref in references if str(ref) in products]

        detail = PurchaseDetail.from_document(document)
        return detail.model_copy(update={'products': resolved}).to_response()

    def add_item(self, purchase_id: str, product_id: str) -> bool:
        return self._guarded_write(
            'add_purchase_item', False, self.db_manager.push_reference,
            self.resource, purchase_id, self.ITEMS_FIELD, to_object_id(product_id)
        )

    def remove_item(self, purchase_id: str, product_id: str) -> bool:
        return self._guarded_write(
            'remove_purchase_item', False, self.db_manager.pull_reference,
            self.resource, purchase_id, self.ITEMS_FIELD, to_object_id(product_id)
        )


class AuthenticationService:
    """
    Login flow on top of ``LoginLockoutGuard``.

    No session or token is issued; a successful login returns the public
    identity of the account.
    """

    def __init__(self, guard: LoginLockoutGuard):
        self.guard = guard

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """
        Authenticate ``email`` / ``password``.

        Raises:
            LockedOutError: Too many failed attempts within the lockout window
            InvalidCredentialsError: Unknown email or wrong password
        """
        account = self.guard.attempt_login(email, password)
        return {
            'user_id': str(account['_id']),
            'email': account.get('email'),
            'name': account.get('name'),
        }


def create_authentication_service(config: Mapping[str, Any],
                                  db_manager: Optional[MongoDBManager] = None,
                                  clock: Optional[Callable] = None) -> AuthenticationService:
    """
    Build the authentication service from Flask configuration.

    Args:
        config: Flask config mapping providing the lockout policy
        db_manager: Storage manager; defaults to the current app's
        clock: Optional time source for the lockout guard
    """
    policy = LockoutPolicy(
        max_attempts=config.get('LOGIN_MAX_ATTEMPTS', 5),
        window_minutes=config.get('LOGIN_LOCKOUT_MINUTES', 30),
    )
    repository = LoginAttemptRepository(db_manager or get_mongodb_manager())
    return AuthenticationService(LoginLockoutGuard(repository, policy, clock=clock))


__all__ = [
    'BaseBusinessService',
    'UserService',
    'ProductService',
    'PurchaseService',
    'AuthenticationService',
    'create_authentication_service',
]
