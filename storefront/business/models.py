"""
Business Data Models

Pydantic models for the values flowing through the business layer: the immutable
list query request, the paginated result envelope, and the public projections of
user, product and purchase documents returned by the API.

Public projections never include internal fields such as password hashes or
login attempt counters.
"""

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ============================================================================
# QUERY MODELS
# ============================================================================

class QueryRequest(BaseModel):
    """
    Search, sort and pagination parameters of one list request.

    ``page_number`` and ``page_size`` are either both set or both None; a
    request carrying only one of them is treated as unpaginated.
    """

    model_config = ConfigDict(frozen=True)

    search: str = ""
    sort_field: str
    sort_order: str = "asc"
    page_number: Optional[int] = None
    page_size: Optional[int] = None

    @field_validator('search', mode='before')
    @classmethod
    def coerce_search(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @field_validator('sort_order', mode='before')
    @classmethod
    def coerce_sort_order(cls, value: Any) -> str:
        return value if isinstance(value, str) and value else "asc"

    @model_validator(mode='before')
    @classmethod
    def pair_page_values(cls, data: Any) -> Any:
        if isinstance(data, dict):
            if data.get('page_number') is None or data.get('page_size') is None:
                data = {**data, 'page_number': None, 'page_size': None}
        return data

    @property
    def paginated(self) -> bool:
        return self.page_number is not None and self.page_size is not None

    @property
    def ascending(self) -> bool:
        return self.sort_order == 'asc'


class QueryResult(BaseModel):
    """Result envelope returned by every list endpoint."""

    page_number: Optional[int] = None
    page_size: Optional[int] = None
    count: int
    total_pages: int
    has_previous_page: bool
    has_next_page: bool
    data: List[Dict[str, Any]] = Field(default_factory=list)


# ============================================================================
# PUBLIC RECORD MODELS
# ============================================================================

class PublicRecord(BaseModel):
    """Base for public projections built from raw MongoDB documents."""

    model_config = ConfigDict(extra='ignore')

    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> 'PublicRecord':
        payload = {key: value for key, value in document.items() if key != '_id'}
        payload['id'] = str(document.get('_id'))
        return cls.model_validate(payload)

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(mode='json')


class UserRecord(PublicRecord):
    name: Optional[str] = None
    email: Optional[str] = None


class ProductRecord(PublicRecord):
    sku: Optional[str] = None
    product_name: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = None


class PurchaseRecord(PublicRecord):
    name: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    items: List[str] = Field(default_factory=list)

    @field_validator('items', mode='before')
    @classmethod
    def stringify_items(cls, value: Any) -> List[str]:
        if not value:
            return []
        return [str(item) for item in value]


class PurchaseDetail(PurchaseRecord):
    """Purchase with its item references resolved to product projections."""

    products: List[ProductRecord] = Field(default_factory=list)


def project_user(document: Mapping[str, Any]) -> Dict[str, Any]:
    return UserRecord.from_document(document).to_response()


def project_product(document: Mapping[str, Any]) -> Dict[str, Any]:
    return ProductRecord.from_document(document).to_response()


def project_purchase(document: Mapping[str, Any]) -> Dict[str, Any]:
    return PurchaseRecord.from_document(document).to_response()


__all__ = [
    'QueryRequest',
    'QueryResult',
    'PublicRecord',
    'UserRecord',
    'ProductRecord',
    'PurchaseRecord',
    'PurchaseDetail',
    'project_user',
    'project_product',
    'project_purchase',
]
