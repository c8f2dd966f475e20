"""
End-to-end API workflow tests through the Flask test client.

Covers the users, products and purchases blueprints: response envelopes, list
query parameters, uniqueness conflicts, lookup misses, body validation and the
``seed-defaults`` CLI command.
"""

import pytest
from bson import ObjectId


pytestmark = pytest.mark.integration


def create_user(client, **overrides):
    payload = {
        'name': 'Amy Adams',
        'email': 'amy@example.com',
        'password': 'secret123',
        'password_confirm': 'secret123',
    }
    payload.update(overrides)
    return client.post('/api/users', json=payload)


def create_product(client, **overrides):
    payload = {
        'sku': 'DESK0001',
        'product_name': 'Standing Desk',
        'brand': 'Acme',
        'category': 'Office',
        'price': 249.0,
    }
    payload.update(overrides)
    return client.post('/api/products', json=payload)


def create_purchase(client):
    return client.post('/api/purchases', json={
        'name': 'Ann Buyer',
        'email': 'ann@example.com',
        'address': '1 Elm Road',
    })


class TestUserWorkflow:

    def test_user_crud_lifecycle(self, client):
        response = create_user(client)
        assert response.status_code == 201
        body = response.get_json()
        assert body['success'] is True
        user_id = body['data']['id']
        assert body['data']['email'] == 'amy@example.com'
        assert 'password' not in body['data']

        response = client.get(f'/api/users/{user_id}')
        assert response.status_code == 200
        assert response.get_json()['data']['name'] == 'Amy Adams'

        response = client.put(f'/api/users/{user_id}', json={'name': 'Amy B'})
        assert response.status_code == 200
        assert response.get_json()['data']['name'] == 'Amy B'

        response = client.delete(f'/api/users/{user_id}')
        assert response.status_code == 200
        assert response.get_json()['message'] == 'User deleted'

        response = client.get(f'/api/users/{user_id}')
        assert response.status_code == 404
        assert response.get_json()['error']['code'] == 'USER_NOT_FOUND'

    def test_duplicate_email_is_a_conflict(self, client):
        create_user(client)

        response = create_user(client, email='AMY@example.com', name='Another Amy')

        assert response.status_code == 409
        assert response.get_json()['error']['code'] == 'EMAIL_TAKEN'

    def test_password_confirmation_mismatch(self, client):
        response = create_user(client, password_confirm='different')

        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'PASSWORD_MISMATCH'

    def test_field_errors_are_reported(self, client):
        response = client.post('/api/users', json={'email': 'bad'})

        assert response.status_code == 400
        error = response.get_json()['error']
        assert error['code'] == 'VALIDATION_ERROR'
        assert {'name', 'email', 'password'} <= set(error['context']['field_errors'])

    def test_non_object_body_is_rejected(self, client):
        response = client.post('/api/users', data='not json', content_type='application/json')

        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'INVALID_BODY'

    def test_update_missing_user(self, client):
        response = client.put(f'/api/users/{ObjectId()}', json={'name': 'Nobody'})

        assert response.status_code == 404

    def test_malformed_identifier_is_not_found(self, client):
        assert client.get('/api/users/not-an-id').status_code == 404

    def test_change_password(self, client):
        user_id = create_user(client).get_json()['data']['id']

        response = client.post(f'/api/users/{user_id}/change-password', json={
            'password_old': 'secret123',
            'password_new': 'newsecret',
            'password_confirm': 'newsecret',
        })
        assert response.status_code == 200

        response = client.post('/api/authentication/login',
                               json={'email': 'amy@example.com', 'password': 'newsecret'})
        assert response.status_code == 200

    def test_change_password_with_wrong_current_password(self, client):
        user_id = create_user(client).get_json()['data']['id']

        response = client.post(f'/api/users/{user_id}/change-password', json={
            'password_old': 'incorrect',
            'password_new': 'newsecret',
            'password_confirm': 'newsecret',
        })

        assert response.status_code == 401
        assert response.get_json()['error']['code'] == 'WRONG_PASSWORD'


class TestListQueries:

    @pytest.fixture
    def three_users(self, client):
        for name, email in (('Cara', 'cara@x.com'), ('Abe', 'abe@x.com'), ('Bea', 'bea@x.com')):
            assert create_user(client, name=name, email=email).status_code == 201

    def test_default_listing_sorted_by_email(self, client, three_users):
        body = client.get('/api/users').get_json()

        assert body['success'] is True
        data = body['data']
        assert [user['email'] for user in data['data']] == ['abe@x.com', 'bea@x.com', 'cara@x.com']
        assert data['count'] == 3
        assert data['page_number'] is None
        assert data['total_pages'] == 1

    def test_paginated_listing_envelope(self, client, three_users):
        data = client.get('/api/users?sortField=name&sortOrder=desc&page_number=1&page_size=2').get_json()['data']

        assert [user['name'] for user in data['data']] == ['Cara', 'Bea']
        assert data['page_number'] == 1
        assert data['page_size'] == 2
        assert data['total_pages'] == 2
        assert data['has_next_page'] is True
        assert data['has_previous_page'] is False

    def test_search_filters_but_count_is_total(self, client, three_users):
        data = client.get('/api/users?search=BEA').get_json()['data']

        assert [user['name'] for user in data['data']] == ['Bea']
        assert data['count'] == 3

    def test_zero_page_size_is_rejected(self, client, three_users):
        response = client.get('/api/users?page_number=1&page_size=0')

        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'INVALID_PAGE_SIZE'

    def test_non_numeric_page_values_return_everything(self, client, three_users):
        data = client.get('/api/users?page_number=x&page_size=2').get_json()['data']

        assert len(data['data']) == 3

    def test_product_search_across_brand_and_category(self, client):
        create_product(client)
        create_product(client, sku='LAMP0001', product_name='Lamp', brand='Globex', category='Lighting')

        data = client.get('/api/products?search=light').get_json()['data']

        assert [product['product_name'] for product in data['data']] == ['Lamp']


class TestProductWorkflow:

    def test_product_crud_and_sku_lookup(self, client):
        response = create_product(client)
        assert response.status_code == 201
        product_id = response.get_json()['data']['id']

        response = client.get('/api/products/sku/DESK0001')
        assert response.status_code == 200
        assert response.get_json()['data']['id'] == product_id

        response = client.put(f'/api/products/{product_id}', json={
            'sku': 'DESK0001', 'product_name': 'Standing Desk', 'brand': 'Acme',
            'category': 'Office', 'price': 199.0,
        })
        assert response.status_code == 200
        assert response.get_json()['data']['price'] == 199.0

        assert client.delete(f'/api/products/{product_id}').status_code == 200
        assert client.get('/api/products/sku/DESK0001').status_code == 404

    def test_duplicate_product_name(self, client):
        create_product(client)

        response = create_product(client, sku='DESK0002')

        assert response.status_code == 409
        assert response.get_json()['error']['context']['field'] == 'product_name'

    def test_invalid_price(self, client):
        response = create_product(client, price=0)

        assert response.status_code == 400
        assert 'price' in response.get_json()['error']['context']['field_errors']


class TestPurchaseWorkflow:

    def test_purchase_items_flow(self, client):
        product_id = create_product(client).get_json()['data']['id']
        response = create_purchase(client)
        assert response.status_code == 201
        purchase_id = response.get_json()['data']['id']

        response = client.put(f'/api/purchases/{purchase_id}/items', json={'product_id': product_id})
        assert response.status_code == 200
        detail = response.get_json()['data']
        assert detail['items'] == [product_id]
        assert detail['products'][0]['product_name'] == 'Standing Desk'

        response = client.delete(f'/api/purchases/{purchase_id}/items', json={'product_id': product_id})
        assert response.status_code == 200
        assert response.get_json()['data']['items'] == []

    def test_adding_unknown_product(self, client):
        purchase_id = create_purchase(client).get_json()['data']['id']

        response = client.put(f'/api/purchases/{purchase_id}/items', json={'product_id': str(ObjectId())})

        assert response.status_code == 404
        assert response.get_json()['error']['code'] == 'PRODUCT_NOT_FOUND'

    def test_adding_to_unknown_purchase(self, client):
        product_id = create_product(client).get_json()['data']['id']

        response = client.put(f'/api/purchases/{ObjectId()}/items', json={'product_id': product_id})

        assert response.status_code == 404
        assert response.get_json()['error']['code'] == 'PURCHASE_NOT_FOUND'

    def test_malformed_product_reference(self, client):
        purchase_id = create_purchase(client).get_json()['data']['id']

        response = client.put(f'/api/purchases/{purchase_id}/items', json={'product_id': '123'})

        assert response.status_code == 400

    def test_purchase_listing_searches_address(self, client):
        create_purchase(client)

        data = client.get('/api/purchases?search=elm').get_json()['data']

        assert data['data'][0]['address'] == '1 Elm Road'


class TestWriteFailures:

    def test_storage_failure_returns_operation_failed(self, client, app_db, mocker):
        from storefront.data.exceptions import QueryException

        mocker.patch.object(app_db, 'insert', side_effect=QueryException("write rejected"))

        response = create_product(client)

        assert response.status_code == 422
        assert response.get_json()['error']['message'] == 'Failed to create product'

    def test_storage_error_on_read(self, client, app_db, mocker):
        from storefront.data.exceptions import QueryException

        mocker.patch.object(app_db, 'fetch_all', side_effect=QueryException("cursor killed"))

        response = client.get('/api/products')

        assert response.status_code == 503
        assert response.get_json()['error']['code'] == 'DATABASE_UNAVAILABLE'


class TestSeedCommand:

    def test_seed_defaults_is_idempotent(self, runner, client):
        result = runner.invoke(args=['seed-defaults'])
        assert result.exit_code == 0
        assert 'Created user' in result.output
        assert 'Created product' in result.output

        result = runner.invoke(args=['seed-defaults'])
        assert result.exit_code == 0
        assert 'Default user already present' in result.output

        response = client.post('/api/authentication/login',
                               json={'email': 'admin@example.com', 'password': '123456'})
        assert response.status_code == 200
        assert client.get('/api/products/sku/SKU000001').status_code == 200
