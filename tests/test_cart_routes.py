"""
test_cart_routes.py
Cart endpoints through the Flask test client: auth enforcement, stock checks, ownership
and the guest cart merge.
"""
import uuid
from decimal import Decimal
from unittest.mock import patch

from conftest import auth

from autoparts.models import cart_item as cart_item_model


def test_cart_requires_token(client):
    resp = client.get('/api/cart')
    assert resp.status_code == 401
    assert resp.get_json()['error'] == 'Authentication required'


def test_cart_rejects_unknown_token(client, users):
    resp = client.get('/api/cart', headers=auth('forged-token'))
    assert resp.status_code == 401


def test_add_and_merge_into_existing_line(client, users, make_part):
    part_id = make_part(price='12.50', stock=5)

    resp = client.post('/api/cart/add', json={'spare_part_id': part_id, 'quantity': 2}, headers=auth('customer-token'))
    assert resp.status_code == 201
    assert resp.get_json()['cartItem']['quantity'] == 2

    resp = client.post('/api/cart/add', json={'spare_part_id': part_id, 'quantity': 1}, headers=auth('customer-token'))
    assert resp.status_code == 201
    assert resp.get_json()['cartItem']['quantity'] == 3

    resp = client.get('/api/cart', headers=auth('customer-token'))
    body = resp.get_json()
    assert body['itemCount'] == 1
    assert body['totalItems'] == 3
    assert body['subtotal'] == 37.5

    resp = client.get('/api/cart/count', headers=auth('customer-token'))
    assert resp.get_json() == {'itemCount': 1, 'totalItems': 3}


def test_add_beyond_stock_in_total(client, users, make_part):
    part_id = make_part(stock=3)
    client.post('/api/cart/add', json={'spare_part_id': part_id, 'quantity': 2}, headers=auth('customer-token'))
    resp = client.post('/api/cart/add', json={'spare_part_id': part_id, 'quantity': 2}, headers=auth('customer-token'))
    assert resp.status_code == 400
    body = resp.get_json()
    assert body['error'] == 'Insufficient stock for total quantity'
    assert body['available'] == 3


def test_add_more_than_stock(client, users, make_part):
    part_id = make_part(stock=1)
    resp = client.post('/api/cart/add', json={'spare_part_id': part_id, 'quantity': 2}, headers=auth('customer-token'))
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'Insufficient stock'


def test_add_inactive_part(client, users, make_part):
    part_id = make_part(stock=5, is_active=False)
    resp = client.post('/api/cart/add', json={'spare_part_id': part_id, 'quantity': 1}, headers=auth('customer-token'))
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'Part is not available'


def test_add_unknown_part(client, users):
    resp = client.post('/api/cart/add', json={'spare_part_id': str(uuid.uuid4()), 'quantity': 1},
                       headers=auth('customer-token'))
    assert resp.status_code == 404
    assert resp.get_json()['error'] == 'Part not found'


def test_add_validates_payload(client, users):
    resp = client.post('/api/cart/add', json={'spare_part_id': 'not-a-uuid', 'quantity': True},
                       headers=auth('customer-token'))
    assert resp.status_code == 400
    body = resp.get_json()
    assert body['error'] == 'Validation error'
    assert '"spare_part_id" must be a valid GUID' in body['details']
    assert '"quantity" must be an integer' in body['details']


def test_update_and_remove_own_line(client, users, make_part, add_to_cart):
    part_id = make_part(stock=5)
    item_id = add_to_cart(users['customer'], part_id, 1)

    resp = client.put(f'/api/cart/{item_id}', json={'quantity': 4}, headers=auth('customer-token'))
    assert resp.status_code == 200
    assert resp.get_json()['cartItem']['quantity'] == 4

    resp = client.put(f'/api/cart/{item_id}', json={'quantity': 6}, headers=auth('customer-token'))
    assert resp.status_code == 400

    resp = client.delete(f'/api/cart/{item_id}', headers=auth('customer-token'))
    assert resp.status_code == 200
    assert client.get('/api/cart/count', headers=auth('customer-token')).get_json()['itemCount'] == 0


def test_other_users_line_is_forbidden(client, users, make_part, add_to_cart):
    part_id = make_part(stock=5)
    item_id = add_to_cart(users['customer'], part_id, 1)
    assert client.put(f'/api/cart/{item_id}', json={'quantity': 2}, headers=auth('other-token')).status_code == 403
    assert client.delete(f'/api/cart/{item_id}', headers=auth('other-token')).status_code == 403


def test_missing_line_is_not_found(client, users):
    resp = client.delete(f'/api/cart/{uuid.uuid4()}', headers=auth('customer-token'))
    assert resp.status_code == 404
    assert resp.get_json()['error'] == 'Cart item not found'


def test_clear_cart(client, users, make_part, add_to_cart):
    add_to_cart(users['customer'], make_part(stock=5), 1)
    add_to_cart(users['customer'], make_part(stock=5), 2)
    add_to_cart(users['other'], make_part(stock=5), 1)
    resp = client.delete('/api/cart', headers=auth('customer-token'))
    assert resp.status_code == 200
    assert client.get('/api/cart/count', headers=auth('customer-token')).get_json()['itemCount'] == 0
    assert client.get('/api/cart/count', headers=auth('other-token')).get_json()['itemCount'] == 1


def test_cart_shows_sale_price(client, users, make_part, add_to_cart):
    part_id = make_part(price='75.00', stock=5, original_price=Decimal('100.00'),
                        discount_percentage=Decimal('25'), is_on_sale=True)
    add_to_cart(users['customer'], part_id, 2)
    body = client.get('/api/cart', headers=auth('customer-token')).get_json()
    assert body['items'][0]['price'] == 75.0
    assert body['items'][0]['sale']['savings'] == 25.0
    assert body['subtotal'] == 150.0


def test_merge_guest_cart(client, users, make_part, add_to_cart):
    stocked = make_part(stock=5)
    scarce = make_part(stock=2)
    inactive = make_part(stock=5, is_active=False)
    empty = make_part(stock=0)
    add_to_cart(users['customer'], stocked, 1)
    unknown = str(uuid.uuid4())

    resp = client.post('/api/cart/merge', json={'items': [
        {'spare_part_id': stocked, 'quantity': 2},
        {'spare_part_id': stocked, 'quantity': 1},
        {'spare_part_id': scarce, 'quantity': 5},
        {'spare_part_id': inactive, 'quantity': 1},
        {'spare_part_id': empty, 'quantity': 1},
        {'spare_part_id': unknown, 'quantity': 1},
    ]}, headers=auth('customer-token'))

    assert resp.status_code == 200
    body = resp.get_json()
    quantities = {item['spare_part_id']: item['quantity'] for item in body['items']}
    assert quantities == {stocked: 4, scarce: 2}
    skipped = {entry['spare_part_id']: entry['reason'] for entry in body['skipped']}
    assert skipped == {inactive: 'Part is not available', empty: 'Out of stock', unknown: 'Part not found'}


def test_merge_rejects_bad_payload(client, users):
    resp = client.post('/api/cart/merge', json={'items': 'nope'}, headers=auth('customer-token'))
    assert resp.status_code == 400
    resp = client.post('/api/cart/merge', json={'items': [{'spare_part_id': 'x', 'quantity': 1}]},
                       headers=auth('customer-token'))
    assert resp.status_code == 400
    assert resp.get_json()['details'] == ['items[0]: "spare_part_id" must be a valid GUID']


def test_add_folds_into_a_line_inserted_by_a_parallel_request(client, users, make_part, add_to_cart):
    part_id = make_part(stock=10)
    add_to_cart(users['customer'], part_id, 2)
    lookups = []

    def line_not_yet_visible(user_id, spare_part_id):
        lookups.append(spare_part_id)
        if len(lookups) == 1:
            return None
        return cart_item_model.find_cart_item(user_id, spare_part_id)

    with patch('autoparts.utils.cart.find_cart_item', side_effect=line_not_yet_visible):
        resp = client.post('/api/cart/add', json={'spare_part_id': part_id, 'quantity': 3},
                           headers=auth('customer-token'))

    assert resp.status_code == 201
    assert resp.get_json()['cartItem']['quantity'] == 5
    body = client.get('/api/cart', headers=auth('customer-token')).get_json()
    assert body['itemCount'] == 1
    assert body['totalItems'] == 5
