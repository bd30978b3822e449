"""
test_settings_routes.py
Store settings: defaults when unset, admin-only updates, and the pricing fallback rules.
"""
from decimal import Decimal

from conftest import auth

from autoparts.models.app_settings import get_pricing_settings


def test_defaults_when_store_is_unconfigured(client):
    settings = client.get('/api/settings').get_json()['settings']
    assert settings['tax_rate'] == 0.08
    assert settings['shipping_cost'] == 9.99
    assert settings['free_shipping_threshold'] == 100.0
    assert settings['currency'] == 'AED'


def test_update_requires_admin(client, users):
    assert client.put('/api/settings', json={'tax_rate': 0.05}).status_code == 401
    assert client.put('/api/settings', json={'tax_rate': 0.05}, headers=auth('customer-token')).status_code == 403


def test_admin_update(client, users):
    resp = client.put('/api/settings', json={'tax_rate': 0.05, 'shipping_cost': 0, 'currency': 'usd',
                                             'business_email': 'sales@autoparts.example'},
                      headers=auth('admin-token'))
    assert resp.status_code == 200
    settings = resp.get_json()['settings']
    assert settings['tax_rate'] == 0.05
    assert settings['shipping_cost'] == 0.0
    assert settings['currency'] == 'USD'
    assert settings['free_shipping_threshold'] == 100.0
    assert client.get('/api/settings').get_json()['settings']['business_email'] == 'sales@autoparts.example'


def test_update_validation(client, users):
    resp = client.put('/api/settings', json={'tax_rate': 1.5, 'currency': 'DIRHAM', 'maintenance_mode': 'yes'},
                      headers=auth('admin-token'))
    assert resp.status_code == 400
    details = resp.get_json()['details']
    assert '"tax_rate" must be a number between 0 and 1' in details
    assert '"currency" length must be 3 characters long' in details
    assert '"maintenance_mode" must be a boolean' in details


def test_stored_zero_is_not_replaced_by_default(ctx, store_settings):
    store_settings(tax_rate=Decimal('0'), shipping_cost=None, free_shipping_threshold=Decimal('0'))
    settings = get_pricing_settings()
    assert settings.tax_rate == Decimal('0')
    assert settings.shipping_cost == Decimal('9.99')
    assert settings.free_shipping_threshold == Decimal('0')
