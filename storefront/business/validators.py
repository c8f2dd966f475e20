"""
Request Validation Schemas

marshmallow schemas for every JSON body and list query string accepted by the API.
Unknown fields are excluded, strings are stripped before validation and emails are
lower-cased so uniqueness checks are case insensitive.

Schemas raise ``marshmallow.ValidationError``; the Flask error handlers render it as a
400 response. Password confirmation mismatches are reported through
``DataValidationError`` so they share the business error codes.
"""

from typing import Any, Dict, Mapping, Optional

import structlog
from marshmallow import EXCLUDE, Schema, fields, pre_load, validate, validates_schema

from storefront.business.exceptions import DataValidationError
from storefront.business.models import QueryRequest
from storefront.business.query import ResourceQuerySpec


logger = structlog.get_logger(__name__)

OBJECT_ID_PATTERN = r'^[0-9a-fA-F]{24}$'
SKU_PATTERN = r'^[a-zA-Z0-9]{6,12}$'

TEXT_LENGTH = validate.Length(min=1, max=100)
PASSWORD_LENGTH = validate.Length(min=6, max=32)


class LenientInteger(fields.Field):
    """Integer field that loads non-numeric input as None instead of failing."""

    def _deserialize(self, value: Any, attr: Optional[str], data: Optional[Mapping], **kwargs) -> Optional[int]:
        if value is None or isinstance(value, bool):
            return None
        try:
            return int(str(value).strip())
        except (TypeError, ValueError):
            return None


class BaseSchema(Schema):
    """Common schema behaviour: drop unknown keys and strip string values other than passwords."""

    UNSTRIPPED_FIELDS = frozenset({'password', 'password_confirm', 'password_old', 'password_new'})

    class Meta:
        unknown = EXCLUDE

    @pre_load
    def strip_strings(self, data, **kwargs):
        if not isinstance(data, Mapping):
            return data
        cleaned = {}
        for key, value in data.items():
            if isinstance(value, str) and key not in self.UNSTRIPPED_FIELDS:
                value = value.strip()
            cleaned[key] = value
        if isinstance(cleaned.get('email'), str):
            cleaned['email'] = cleaned['email'].lower()
        return cleaned


class ListQuerySchema(BaseSchema):
    """Query string of the list endpoints."""

    search = fields.String(load_default="")
    sort_field = fields.String(data_key='sortField', load_default=None)
    sort_order = fields.String(data_key='sortOrder', load_default="asc")
    page_number = LenientInteger(load_default=None)
    page_size = LenientInteger(load_default=None)


def load_query_request(args: Mapping[str, Any], spec: ResourceQuerySpec) -> QueryRequest:
    """
    Parse list query parameters into an immutable ``QueryRequest``.

    Args:
        args: Request query string mapping
        spec: Resource whose default sort field applies when ``sortField`` is absent

    Returns:
        QueryRequest
    """
    return spec.request(**ListQuerySchema().load(dict(args)))


class LoginSchema(BaseSchema):
    email = fields.Email(required=True)
    password = fields.String(required=True, validate=validate.Length(min=1))


class CreateUserSchema(BaseSchema):
    name = fields.String(required=True, validate=TEXT_LENGTH)
    email = fields.Email(required=True)
    password = fields.String(required=True, validate=PASSWORD_LENGTH, load_only=True)
    password_confirm = fields.String(required=True, load_only=True)

    @validates_schema
    def passwords_match(self, data, **kwargs):
        if data.get('password') != data.get('password_confirm'):
            raise DataValidationError(
                "Password confirmation does not match",
                error_code="PASSWORD_MISMATCH",
                field_errors={'password_confirm': ["Passwords do not match."]}
            )


class UpdateUserSchema(BaseSchema):
    name = fields.String(validate=TEXT_LENGTH)
    email = fields.Email()

    @validates_schema
    def not_empty(self, data, **kwargs):
        if not data:
            raise DataValidationError(
                "Nothing to update",
                error_code="EMPTY_UPDATE",
                field_errors={'_schema': ["Provide name or email."]}
            )


class ChangePasswordSchema(BaseSchema):
    password_old = fields.String(required=True, validate=validate.Length(min=1), load_only=True)
    password_new = fields.String(required=True, validate=PASSWORD_LENGTH, load_only=True)
    password_confirm = fields.String(required=True, load_only=True)

    @validates_schema
    def passwords_match(self, data, **kwargs):
        if data.get('password_new') != data.get('password_confirm'):
            raise DataValidationError(
                "Password confirmation does not match",
                error_code="PASSWORD_MISMATCH",
                field_errors={'password_confirm': ["Passwords do not match."]}
            )


class ProductSchema(BaseSchema):
    sku = fields.String(validate=validate.Regexp(SKU_PATTERN, error="SKU must be 6-12 letters or digits."))
    product_name = fields.String(required=True, validate=TEXT_LENGTH)
    brand = fields.String(required=True, validate=TEXT_LENGTH)
    category = fields.String(required=True, validate=TEXT_LENGTH)
    price = fields.Float(required=True, validate=validate.Range(min=0, min_inclusive=False))


class PurchaseSchema(BaseSchema):
    name = fields.String(required=True, validate=TEXT_LENGTH)
    email = fields.Email(required=True)
    address = fields.String(required=True, validate=TEXT_LENGTH)


class PurchaseItemSchema(BaseSchema):
    product_id = fields.String(
        required=True,
        validate=validate.Regexp(OBJECT_ID_PATTERN, error="Must be a 24 character hex identifier.")
    )


def validate_payload(schema: Schema, payload: Any, partial: bool = False) -> Dict[str, Any]:
    """
    Load ``payload`` with ``schema``.

    Non-object bodies are rejected before schema processing.

    Raises:
        DataValidationError: Body is not a JSON object
        marshmallow.ValidationError: Field validation failed
    """
    if not isinstance(payload, Mapping):
        raise DataValidationError(
            "Request body must be a JSON object",
            error_code="INVALID_BODY"
        )
    return schema.load(payload, partial=partial)


__all__ = [
    'LenientInteger',
    'ListQuerySchema',
    'load_query_request',
    'LoginSchema',
    'CreateUserSchema',
    'UpdateUserSchema',
    'ChangePasswordSchema',
    'ProductSchema',
    'PurchaseSchema',
    'PurchaseItemSchema',
    'validate_payload',
]
