"""
Request validation tests for the marshmallow schemas and list query parsing.
"""

import pytest
from marshmallow import ValidationError

from storefront.business.exceptions import DataValidationError
from storefront.business.query import PRODUCTS_QUERY, USERS_QUERY
from storefront.business.validators import (
    ChangePasswordSchema,
    CreateUserSchema,
    LenientInteger,
    ListQuerySchema,
    LoginSchema,
    ProductSchema,
    PurchaseItemSchema,
    PurchaseSchema,
    UpdateUserSchema,
    load_query_request,
    validate_payload,
)


pytestmark = pytest.mark.unit


def valid_user(**overrides):
    payload = {
        'name': 'Amy Adams',
        'email': 'amy@example.com',
        'password': 'secret123',
        'password_confirm': 'secret123',
    }
    payload.update(overrides)
    return payload


def valid_product(**overrides):
    payload = {
        'sku': 'ABC12345',
        'product_name': 'Standing Desk',
        'brand': 'Acme',
        'category': 'Office',
        'price': 249.5,
    }
    payload.update(overrides)
    return payload


class TestListQueryParsing:

    def test_defaults(self):
        request = load_query_request({}, USERS_QUERY)

        assert request.search == ""
        assert request.sort_field == 'email'
        assert request.sort_order == 'asc'
        assert request.paginated is False

    def test_camel_case_sort_parameters(self):
        request = load_query_request(
            {'sortField': 'brand', 'sortOrder': 'desc', 'search': 'acme'}, PRODUCTS_QUERY
        )

        assert request.sort_field == 'brand'
        assert request.ascending is False
        assert request.search == 'acme'

    def test_page_values_are_parsed_from_strings(self):
        request = load_query_request({'page_number': '2', 'page_size': ' 10 '}, USERS_QUERY)

        assert request.page_number == 2
        assert request.page_size == 10

    @pytest.mark.parametrize('raw', ['abc', '', '1.5', None])
    def test_non_numeric_page_values_disable_pagination(self, raw):
        request = load_query_request({'page_number': raw, 'page_size': '5'}, USERS_QUERY)

        assert request.paginated is False

    def test_unknown_parameters_are_ignored(self):
        data = ListQuerySchema().load({'search': 'x', 'debug': 'true'})

        assert 'debug' not in data

    def test_lenient_integer_field(self):
        field = LenientInteger()

        assert field.deserialize('7') == 7
        assert field.deserialize(True) is None
        assert field.deserialize('seven') is None


class TestUserSchemas:

    def test_create_user_normalizes_email(self):
        data = CreateUserSchema().load(valid_user(email='  Amy@Example.COM '))

        assert data['email'] == 'amy@example.com'
        assert data['name'] == 'Amy Adams'

    def test_password_mismatch_raises_business_error(self):
        with pytest.raises(DataValidationError) as exc_info:
            CreateUserSchema().load(valid_user(password_confirm='different1'))

        assert exc_info.value.error_code == 'PASSWORD_MISMATCH'
        assert 'password_confirm' in exc_info.value.field_errors

    @pytest.mark.parametrize('password', ['short', 'x' * 33])
    def test_password_length_bounds(self, password):
        with pytest.raises(ValidationError) as exc_info:
            CreateUserSchema().load(valid_user(password=password, password_confirm=password))

        assert 'password' in exc_info.value.messages

    def test_missing_fields_are_reported_together(self):
        with pytest.raises(ValidationError) as exc_info:
            CreateUserSchema().load({})

        assert set(exc_info.value.messages) == {'name', 'email', 'password', 'password_confirm'}

    def test_invalid_email(self):
        with pytest.raises(ValidationError) as exc_info:
            LoginSchema().load({'email': 'not-an-email', 'password': 'x'})

        assert 'email' in exc_info.value.messages

    def test_update_requires_a_field(self):
        with pytest.raises(DataValidationError) as exc_info:
            UpdateUserSchema().load({})

        assert exc_info.value.error_code == 'EMPTY_UPDATE'

    def test_update_accepts_partial_body(self):
        assert UpdateUserSchema().load({'name': ' New Name '}) == {'name': 'New Name'}

    def test_passwords_are_not_stripped(self):
        data = CreateUserSchema().load(valid_user(password=' secret123 ', password_confirm=' secret123 '))

        assert data['password'] == ' secret123 '
        assert LoginSchema().load({'email': 'amy@example.com', 'password': ' pw '})['password'] == ' pw '

    def test_change_password_keeps_surrounding_whitespace(self):
        data = ChangePasswordSchema().load({
            'password_old': ' secret123',
            'password_new': 'newsecret ',
            'password_confirm': 'newsecret ',
        })

        assert data['password_old'] == ' secret123'
        assert data['password_new'] == 'newsecret '

    def test_change_password_confirmation(self):
        with pytest.raises(DataValidationError):
            ChangePasswordSchema().load({
                'password_old': 'secret123',
                'password_new': 'newsecret',
                'password_confirm': 'newsecreT',
            })


class TestProductSchemas:

    def test_valid_product(self):
        data = ProductSchema().load(valid_product())

        assert data['price'] == 249.5
        assert data['sku'] == 'ABC12345'

    def test_sku_is_optional(self):
        payload = valid_product()
        del payload['sku']

        assert 'sku' not in ProductSchema().load(payload)

    @pytest.mark.parametrize('sku', ['ABC', 'ABC-12345', 'A' * 13])
    def test_sku_format(self, sku):
        with pytest.raises(ValidationError) as exc_info:
            ProductSchema().load(valid_product(sku=sku))

        assert 'sku' in exc_info.value.messages

    @pytest.mark.parametrize('price', [0, -1, 'free'])
    def test_price_must_be_positive_number(self, price):
        with pytest.raises(ValidationError) as exc_info:
            ProductSchema().load(valid_product(price=price))

        assert 'price' in exc_info.value.messages

    def test_text_fields_reject_blank_values(self):
        with pytest.raises(ValidationError) as exc_info:
            ProductSchema().load(valid_product(brand='   '))

        assert 'brand' in exc_info.value.messages


class TestPurchaseSchemas:

    def test_purchase_requires_address(self):
        with pytest.raises(ValidationError) as exc_info:
            PurchaseSchema().load({'name': 'Ann', 'email': 'ann@example.com'})

        assert list(exc_info.value.messages) == ['address']

    def test_item_reference_must_be_object_id(self):
        assert PurchaseItemSchema().load({'product_id': '65a4f1c2e4b0a1b2c3d4e5f6'})

        with pytest.raises(ValidationError):
            PurchaseItemSchema().load({'product_id': 'not-an-id'})


class TestValidatePayload:

    @pytest.mark.parametrize('payload', [None, [], 'text', 42])
    def test_non_object_body_is_rejected(self, payload):
        with pytest.raises(DataValidationError) as exc_info:
            validate_payload(LoginSchema(), payload)

        assert exc_info.value.error_code == 'INVALID_BODY'

    def test_object_body_is_loaded(self):
        data = validate_payload(LoginSchema(), {'email': 'A@B.io', 'password': 'pw'})

        assert data == {'email': 'a@b.io', 'password': 'pw'}
