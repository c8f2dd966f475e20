"""
Business logic package: error taxonomy, domain models, the list query pipeline and
request validation schemas.

Services live in ``storefront.business.services`` and are imported from there
directly because they depend on the authentication package.
"""

from storefront.business.exceptions import (
    BaseBusinessException,
    ResourceNotFoundError,
    ConflictError,
    InvalidCredentialsError,
    LockedOutError,
    DataValidationError,
    OperationFailedError,
    create_flask_error_handlers,
)
from storefront.business.models import QueryRequest, QueryResult
from storefront.business.query import (
    ResourceQuerySpec,
    USERS_QUERY,
    PRODUCTS_QUERY,
    PURCHASES_QUERY,
    run_query,
)

__all__ = [
    'BaseBusinessException',
    'ResourceNotFoundError',
    'ConflictError',
    'InvalidCredentialsError',
    'LockedOutError',
    'DataValidationError',
    'OperationFailedError',
    'create_flask_error_handlers',
    'QueryRequest',
    'QueryResult',
    'ResourceQuerySpec',
    'USERS_QUERY',
    'PRODUCTS_QUERY',
    'PURCHASES_QUERY',
    'run_query',
]
