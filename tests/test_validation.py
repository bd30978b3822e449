import pytest

from autoparts.errors import ValidationError
from autoparts.utils import validation


def test_checkout_payload_is_trimmed():
    cleaned = validation.validate_checkout({'shipping_address': '  1 Main St  ', 'payment_method': 'bank transfer',
                                            'billing_address': '', 'notes': ' '})
    assert cleaned == {'shipping_address': '1 Main St', 'billing_address': None,
                       'payment_method': 'bank transfer', 'notes': None}


def test_checkout_collects_every_problem():
    with pytest.raises(ValidationError) as exc:
        validation.validate_checkout({'shipping_address': '   ', 'payment_method': 7})
    assert exc.value.details == ['"shipping_address" is not allowed to be empty', '"payment_method" must be a string']


def test_body_must_be_an_object():
    with pytest.raises(ValidationError):
        validation.validate_cart_update(None)


@pytest.mark.parametrize("quantity", [0, -1, 1.0, '2', True, 1001])
def test_cart_quantity_rejects(quantity):
    with pytest.raises(ValidationError):
        validation.validate_cart_update({'quantity': quantity})


def test_stock_delta_accepts_negative_integers():
    assert validation.validate_stock_delta({'quantity': -3}) == {'quantity': -3}


def test_part_sale_window_order():
    payload = {'name': 'Clutch Kit', 'part_number': 'CK-1', 'category': 'transmission', 'brand': 'GearCo',
               'price': 210, 'stock_quantity': 4, 'is_on_sale': True, 'discount_percentage': 10,
               'sale_start_date': '2024-06-10T00:00:00Z', 'sale_end_date': '2024-06-01T00:00:00Z'}
    with pytest.raises(ValidationError) as exc:
        validation.validate_part(payload)
    assert exc.value.details == ['"sale_end_date" must be after "sale_start_date"']


def test_catalog_query_parsing():
    params = validation.parse_catalog_query({'min_price': '5', 'in_stock_only': 'false', 'offset': '10'})
    assert params['in_stock_only'] is False
    assert params['offset'] == 10
    assert params['limit'] is None
    assert str(params['min_price']) == '5'
    with pytest.raises(ValidationError):
        validation.parse_catalog_query({'min_price': '9', 'max_price': '3'})
