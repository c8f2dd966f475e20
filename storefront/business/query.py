"""
List Query Pipeline

One search, sort and paginate implementation shared by the users, products and
purchases list endpoints. A ``ResourceQuerySpec`` supplies what differs per
resource (searchable fields, public projection, default sort field); the pipeline
itself is a pure function of the full record set and an immutable ``QueryRequest``.

Policy:
- ``count`` is always the size of the full collection, before filtering
- ``total_pages`` is derived from that same count
- sorting is stable in both directions
"""

import math
from dataclasses import dataclass
from numbers import Number
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import structlog

from storefront.business.exceptions import DataValidationError
from storefront.business.models import (
    QueryRequest,
    QueryResult,
    project_product,
    project_purchase,
    project_user,
)
from storefront.monitoring.metrics import LIST_QUERIES


logger = structlog.get_logger(__name__)

Record = Mapping[str, Any]
Projector = Callable[[Record], Dict[str, Any]]
SearchExtractor = Callable[[Record], Iterable[Any]]


def field_extractor(*field_names: str) -> SearchExtractor:
    """Build an extractor returning the values of ``field_names`` present on a record."""

    def extract(record: Record) -> Iterable[Any]:
        return [record[name] for name in field_names if record.get(name) is not None]

    return extract


@dataclass(frozen=True)
class ResourceQuerySpec:
    """Per-resource parameters of the list pipeline."""

    name: str
    searchable: SearchExtractor
    projector: Projector
    default_sort_field: str
    # Public field names accepted for sorting; None accepts any field
    sortable: Optional[Tuple[str, ...]] = None

    def request(self, **params: Any) -> QueryRequest:
        """Build a ``QueryRequest`` falling back to this resource's default sort field."""
        params['sort_field'] = params.get('sort_field') or self.default_sort_field
        return QueryRequest(**params)

    def storage_sort_field(self, field: str) -> str:
        """
        Map a public sort field to the stored document key.

        ``id`` sorts by ``_id``. Fields outside ``sortable`` fall back to the
        default sort field.
        """
        if self.sortable is not None and field not in self.sortable:
            field = self.default_sort_field
        return '_id' if field == 'id' else field


USERS_QUERY = ResourceQuerySpec(
    name='users',
    searchable=field_extractor('name', 'email'),
    projector=project_user,
    default_sort_field='email',
    sortable=('id', 'name', 'email', 'created_at', 'updated_at'),
)

PRODUCTS_QUERY = ResourceQuerySpec(
    name='products',
    searchable=field_extractor('product_name', 'brand', 'category'),
    projector=project_product,
    default_sort_field='product_name',
    sortable=('id', 'sku', 'product_name', 'brand', 'category', 'price', 'created_at', 'updated_at'),
)

PURCHASES_QUERY = ResourceQuerySpec(
    name='purchases',
    searchable=field_extractor('name', 'email', 'address'),
    projector=project_purchase,
    default_sort_field='email',
    sortable=('id', 'name', 'email', 'address', 'created_at', 'updated_at'),
)


def normalize_search(search: Any) -> str:
    """Lower-cased search term, or empty string when there is nothing to search for."""
    if isinstance(search, str) and search:
        return search.lower()
    return ""


def matches_search(record: Record, term: str, spec: ResourceQuerySpec) -> bool:
    if not term:
        return True
    return any(term in str(value).lower() for value in spec.searchable(record))


def sort_key(record: Record, field: str) -> Tuple[int, Any]:
    """
    Comparable key for ``record[field]``.

    Missing values sort as the empty string and come first, then numbers,
    then everything else compared as lower-cased text.
    """
    value = record.get(field)
    if value is None or value == "":
        return (0, "")
    if isinstance(value, Number) and not isinstance(value, bool):
        return (1, value)
    if isinstance(value, str):
        return (2, value.lower())
    if hasattr(value, 'isoformat'):
        return (2, value.isoformat())
    return (2, str(value).lower())


def sort_records(records: Iterable[Record], field: str, ascending: bool) -> List[Record]:
    # sorted() keeps ties in input order even with reverse=True
    return sorted(records, key=lambda record: sort_key(record, field), reverse=not ascending)


def total_pages_for(count: int, page_size: int) -> int:
    return math.ceil(count / page_size)


def run_query(records: Sequence[Record], request: QueryRequest, spec: ResourceQuerySpec) -> QueryResult:
    """
    Filter, sort, project and paginate ``records``.

    Args:
        records: Full collection as fetched from storage
        request: Search, sort and pagination parameters
        spec: Resource specific searchable fields and projection

    Returns:
        QueryResult envelope

    Raises:
        DataValidationError: If a non-positive page size is requested
    """
    if request.paginated and request.page_size <= 0:
        raise DataValidationError(
            "page_size must be a positive integer",
            error_code="INVALID_PAGE_SIZE",
            field_errors={'page_size': ["Must be greater than 0."]}
        )

    term = normalize_search(request.search)
    filtered = [record for record in records if matches_search(record, term, spec)]
    ordered = sort_records(filtered, spec.storage_sort_field(request.sort_field), request.ascending)
    projected = [spec.projector(record) for record in ordered]
    count = len(records)

    LIST_QUERIES.labels(resource=spec.name, paginated=str(request.paginated).lower()).inc()

    if not request.paginated:
        return QueryResult(
            count=count,
            total_pages=1 if count else 0,
            has_previous_page=False,
            has_next_page=False,
            data=projected,
        )

    offset = max(0, (request.page_number - 1) * request.page_size)
    total_pages = total_pages_for(count, request.page_size)

    logger.debug(
        "List query paginated",
        resource=spec.name,
        matched=len(projected),
        offset=offset,
        page_size=request.page_size
    )

    return QueryResult(
        page_number=request.page_number,
        page_size=request.page_size,
        count=count,
        total_pages=total_pages,
        has_previous_page=request.page_number > 1,
        has_next_page=request.page_number < total_pages,
        data=projected[offset:offset + request.page_size],
    )


__all__ = [
    'ResourceQuerySpec',
    'USERS_QUERY',
    'PRODUCTS_QUERY',
    'PURCHASES_QUERY',
    'field_extractor',
    'normalize_search',
    'matches_search',
    'sort_key',
    'sort_records',
    'total_pages_for',
    'run_query',
]
