"""
test_parts_routes.py
Catalog endpoints: listing filters, admin-only low stock, part creation and stock adjustment.
"""
import uuid
from decimal import Decimal

from conftest import auth

NEW_PART = {
    'name': 'Spark Plug Set',
    'part_number': 'SP-4X',
    'category': 'engine',
    'brand': 'Ignito',
    'price': 32.5,
    'stock_quantity': 40,
}


def test_listing_hides_inactive_and_out_of_stock(client, make_part):
    visible = make_part(stock=3)
    make_part(stock=0)
    make_part(stock=5, is_active=False)
    body = client.get('/api/parts').get_json()
    assert [p['id'] for p in body['parts']] == [visible]
    assert body['total'] == 1


def test_listing_filters_and_sort(client, make_part):
    make_part(price='15.00', name='Brake Hose', category='brakes', brand='AutoPro')
    make_part(price='45.00', name='Brake Caliper', category='brakes', brand='StopCo')
    make_part(price='90.00', name='Water Pump', category='cooling', brand='AutoPro')

    body = client.get('/api/parts?category=brakes&sort=-price').get_json()
    assert [p['name'] for p in body['parts']] == ['Brake Caliper', 'Brake Hose']

    body = client.get('/api/parts?search=pump').get_json()
    assert [p['name'] for p in body['parts']] == ['Water Pump']

    body = client.get('/api/parts?min_price=20&max_price=50').get_json()
    assert [p['name'] for p in body['parts']] == ['Brake Caliper']

    body = client.get('/api/parts?brand=autopro&limit=1').get_json()
    assert body['total'] == 2
    assert body['limit'] == 1
    assert len(body['parts']) == 1


def test_listing_rejects_bad_filters(client):
    resp = client.get('/api/parts?category=rockets&limit=0')
    assert resp.status_code == 400
    details = resp.get_json()['details']
    assert any('category' in d for d in details)
    assert any('limit' in d for d in details)


def test_admin_can_list_everything(client, users, make_part):
    make_part(stock=0)
    make_part(stock=5, is_active=False)
    assert client.get('/api/parts?in_stock_only=false').get_json()['total'] == 1
    assert client.get('/api/parts?in_stock_only=false', headers=auth('admin-token')).get_json()['total'] == 2


def test_part_detail_includes_sale_state(client, make_part):
    part_id = make_part(price='75.00', original_price=Decimal('100.00'), discount_percentage=Decimal('25'),
                        is_on_sale=True)
    part = client.get(f'/api/parts/{part_id}').get_json()['part']
    assert part['effective_price'] == 75.0
    assert part['sale']['is_active'] is True
    assert client.get(f'/api/parts/{uuid.uuid4()}').status_code == 404


def test_category_and_search_shortcuts(client, make_part):
    make_part(name='Oil Filter', category='engine')
    make_part(name='Cabin Filter', category='interior')
    assert [p['name'] for p in client.get('/api/parts/category/engine').get_json()['parts']] == ['Oil Filter']
    assert len(client.get('/api/parts/search/filter').get_json()['parts']) == 2


def test_low_stock_is_admin_only(client, users, make_part):
    make_part(stock=2, name='Fan Belt')
    make_part(stock=50)
    assert client.get('/api/parts/admin/low-stock').status_code == 401
    assert client.get('/api/parts/admin/low-stock', headers=auth('customer-token')).status_code == 403
    body = client.get('/api/parts/admin/low-stock', headers=auth('admin-token')).get_json()
    assert [p['name'] for p in body['parts']] == ['Fan Belt']
    assert body['threshold'] == 10


def test_create_part(client, users):
    resp = client.post('/api/parts', json=NEW_PART, headers=auth('admin-token'))
    assert resp.status_code == 201
    part = resp.get_json()['part']
    assert part['price'] == 32.5
    assert part['stock_quantity'] == 40

    resp = client.post('/api/parts', json=NEW_PART, headers=auth('admin-token'))
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'Part number already exists'

    assert client.post('/api/parts', json=NEW_PART, headers=auth('customer-token')).status_code == 403


def test_create_part_validation(client, users):
    bad = dict(NEW_PART, price=-1, category='rockets', stock_quantity=1.5, discount_percentage=120)
    resp = client.post('/api/parts', json=bad, headers=auth('admin-token'))
    assert resp.status_code == 400
    details = resp.get_json()['details']
    assert '"price" must be a positive number' in details
    assert '"stock_quantity" must be an integer greater than or equal to 0' in details
    assert '"discount_percentage" must be a number between 0 and 100' in details


def test_stock_adjustment(client, users, make_part):
    part_id = make_part(stock=5)
    url = f'/api/parts/{part_id}/stock'

    resp = client.patch(url, json={'quantity': 5}, headers=auth('admin-token'))
    assert resp.status_code == 200
    assert resp.get_json()['part']['stock_quantity'] == 10

    resp = client.patch(url, json={'quantity': -11}, headers=auth('admin-token'))
    assert resp.status_code == 400
    assert resp.get_json()['available'] == 10

    resp = client.patch(url, json={'quantity': -10}, headers=auth('admin-token'))
    assert resp.get_json()['part']['stock_quantity'] == 0

    assert client.patch(url, json={'quantity': 0}, headers=auth('admin-token')).status_code == 400
    assert client.patch(url, json={'quantity': True}, headers=auth('admin-token')).status_code == 400
    assert client.patch(url, json={'quantity': 1}, headers=auth('customer-token')).status_code == 403
    assert client.patch(f'/api/parts/{uuid.uuid4()}/stock', json={'quantity': 1},
                        headers=auth('admin-token')).status_code == 404
