#validation.py
#Payload checks for the JSON API. Each validator collects every problem it finds
#and raises one ValidationError carrying the full list in `details`.

import re
import uuid
from decimal import Decimal, InvalidOperation

from autoparts.errors import ValidationError
from autoparts.models.order import ORDER_STATUSES
from autoparts.models.spare_part import CATEGORIES
from autoparts.utils.dates import parse_timestamp

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
MAX_CART_QUANTITY = 1000
MAX_MERGE_LINES = 200


def _require_object(data):
    if not isinstance(data, dict):
        raise ValidationError(['Request body must be a JSON object'])
    return data


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value):
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _as_decimal(value):
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def _is_uuid(value):
    if not isinstance(value, str):
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def _string(data, field, errors, required=False, min_length=None, max_length=None):
    value = data.get(field)
    if value is None:
        if required:
            errors.append(f'"{field}" is required')
        return None
    if not isinstance(value, str):
        errors.append(f'"{field}" must be a string')
        return None
    value = value.strip()
    if required and not value:
        errors.append(f'"{field}" is not allowed to be empty')
        return None
    if min_length is not None and len(value) < min_length:
        errors.append(f'"{field}" length must be at least {min_length} characters long')
    if max_length is not None and len(value) > max_length:
        errors.append(f'"{field}" length must be less than or equal to {max_length} characters long')
    return value


def _positive_quantity(data, errors, field='quantity'):
    value = data.get(field)
    if value is None:
        errors.append(f'"{field}" is required')
        return None
    if not _is_int(value):
        errors.append(f'"{field}" must be an integer')
        return None
    if value <= 0:
        errors.append(f'"{field}" must be a positive number')
        return None
    if value > MAX_CART_QUANTITY:
        errors.append(f'"{field}" must be less than or equal to {MAX_CART_QUANTITY}')
        return None
    return value


def validate_checkout(data):
    data = _require_object(data)
    errors = []
    shipping_address = _string(data, 'shipping_address', errors, required=True)
    billing_address = _string(data, 'billing_address', errors)
    payment_method = _string(data, 'payment_method', errors, required=True, max_length=50)
    notes = _string(data, 'notes', errors)
    if errors:
        raise ValidationError(errors)
    return {
        'shipping_address': shipping_address,
        'billing_address': billing_address or None,
        'payment_method': payment_method,
        'notes': notes or None,
    }


def validate_status_update(data):
    data = _require_object(data)
    errors = []
    status = data.get('status')
    if status is None:
        errors.append('"status" is required')
    elif status not in ORDER_STATUSES:
        errors.append(f'"status" must be one of [{", ".join(ORDER_STATUSES)}]')
    tracking_number = _string(data, 'tracking_number', errors, max_length=100)
    notes = _string(data, 'notes', errors)
    if errors:
        raise ValidationError(errors)
    return {'status': status, 'tracking_number': tracking_number or None, 'notes': notes or None}


def validate_cart_add(data):
    data = _require_object(data)
    errors = []
    spare_part_id = data.get('spare_part_id')
    if spare_part_id is None:
        errors.append('"spare_part_id" is required')
    elif not _is_uuid(spare_part_id):
        errors.append('"spare_part_id" must be a valid GUID')
    quantity = _positive_quantity(data, errors)
    if errors:
        raise ValidationError(errors)
    return {'spare_part_id': spare_part_id, 'quantity': quantity}


def validate_cart_update(data):
    data = _require_object(data)
    errors = []
    quantity = _positive_quantity(data, errors)
    if errors:
        raise ValidationError(errors)
    return {'quantity': quantity}


def validate_stock_delta(data):
    data = _require_object(data)
    quantity = data.get('quantity')
    if quantity is None:
        raise ValidationError(['"quantity" is required'])
    if not _is_int(quantity):
        raise ValidationError(['"quantity" must be an integer'])
    if quantity == 0:
        raise ValidationError(['"quantity" must not be zero'])
    return {'quantity': quantity}


def validate_part(data):
    data = _require_object(data)
    errors = []
    cleaned = {
        'name': _string(data, 'name', errors, required=True, min_length=2, max_length=255),
        'part_number': _string(data, 'part_number', errors, required=True, min_length=2, max_length=100),
        'description': _string(data, 'description', errors),
        'brand': _string(data, 'brand', errors, required=True, min_length=2, max_length=100),
    }

    category = data.get('category')
    if category is None:
        errors.append('"category" is required')
    elif category not in CATEGORIES:
        errors.append(f'"category" must be one of [{", ".join(CATEGORIES)}]')
    cleaned['category'] = category

    price = data.get('price')
    if price is None:
        errors.append('"price" is required')
    elif not _is_number(price) or _as_decimal(price) is None or _as_decimal(price) <= 0:
        errors.append('"price" must be a positive number')
    else:
        cleaned['price'] = _as_decimal(price)

    stock_quantity = data.get('stock_quantity')
    if stock_quantity is None:
        errors.append('"stock_quantity" is required')
    elif not _is_int(stock_quantity) or stock_quantity < 0:
        errors.append('"stock_quantity" must be an integer greater than or equal to 0')
    else:
        cleaned['stock_quantity'] = stock_quantity

    is_active = data.get('is_active', True)
    if not isinstance(is_active, bool):
        errors.append('"is_active" must be a boolean')
    cleaned['is_active'] = is_active

    is_on_sale = data.get('is_on_sale', False)
    if not isinstance(is_on_sale, bool):
        errors.append('"is_on_sale" must be a boolean')
    cleaned['is_on_sale'] = is_on_sale

    original_price = data.get('original_price')
    if original_price is not None:
        if not _is_number(original_price) or _as_decimal(original_price) <= 0:
            errors.append('"original_price" must be a positive number')
        else:
            cleaned['original_price'] = _as_decimal(original_price)

    discount = data.get('discount_percentage')
    if discount is not None:
        if not _is_number(discount) or not 0 <= _as_decimal(discount) <= 100:
            errors.append('"discount_percentage" must be a number between 0 and 100')
        else:
            cleaned['discount_percentage'] = _as_decimal(discount)

    for field in ('sale_start_date', 'sale_end_date'):
        value = data.get(field)
        if value is None:
            continue
        try:
            cleaned[field] = parse_timestamp(value)
        except (TypeError, ValueError):
            errors.append(f'"{field}" must be a valid ISO 8601 date')
    start, end = cleaned.get('sale_start_date'), cleaned.get('sale_end_date')
    if start and end and end < start:
        errors.append('"sale_end_date" must be after "sale_start_date"')

    if errors:
        raise ValidationError(errors)
    return cleaned


def validate_settings(data):
    data = _require_object(data)
    errors = []
    cleaned = {}
    if 'app_name' in data:
        cleaned['app_name'] = _string(data, 'app_name', errors, required=True, min_length=2, max_length=255)
    if 'currency' in data:
        currency = data['currency']
        if not isinstance(currency, str) or len(currency) != 3:
            errors.append('"currency" length must be 3 characters long')
        else:
            cleaned['currency'] = currency.upper()
    if 'tax_rate' in data:
        tax_rate = data['tax_rate']
        if not _is_number(tax_rate) or not 0 <= _as_decimal(tax_rate) <= 1:
            errors.append('"tax_rate" must be a number between 0 and 1')
        else:
            cleaned['tax_rate'] = _as_decimal(tax_rate)
    for field in ('shipping_cost', 'free_shipping_threshold'):
        if field in data:
            value = data[field]
            if not _is_number(value) or _as_decimal(value) < 0:
                errors.append(f'"{field}" must be greater than or equal to 0')
            else:
                cleaned[field] = _as_decimal(value)
    if 'business_email' in data:
        email = data['business_email']
        if not isinstance(email, str) or not EMAIL_RE.match(email):
            errors.append('"business_email" must be a valid email')
        else:
            cleaned['business_email'] = email
    for field in ('business_phone', 'business_address'):
        if field in data:
            cleaned[field] = _string(data, field, errors)
    if 'maintenance_mode' in data:
        if not isinstance(data['maintenance_mode'], bool):
            errors.append('"maintenance_mode" must be a boolean')
        else:
            cleaned['maintenance_mode'] = data['maintenance_mode']
    if errors:
        raise ValidationError(errors)
    return cleaned


def validate_guest_cart(data):
    data = _require_object(data)
    items = data.get('items')
    if not isinstance(items, list):
        raise ValidationError(['"items" must be an array'])
    if len(items) > MAX_MERGE_LINES:
        raise ValidationError([f'"items" must contain less than or equal to {MAX_MERGE_LINES} items'])
    errors = []
    cleaned = []
    for index, line in enumerate(items):
        if not isinstance(line, dict):
            errors.append(f'"items[{index}]" must be an object')
            continue
        line_errors = []
        spare_part_id = line.get('spare_part_id')
        if not _is_uuid(spare_part_id):
            line_errors.append('"spare_part_id" must be a valid GUID')
        quantity = _positive_quantity(line, line_errors)
        if line_errors:
            errors.extend(f'items[{index}]: {message}' for message in line_errors)
            continue
        cleaned.append({'spare_part_id': spare_part_id, 'quantity': quantity})
    if errors:
        raise ValidationError(errors)
    return cleaned


def _query_int(args, field, errors, minimum=0):
    raw = args.get(field)
    if raw in (None, ''):
        return None
    try:
        value = int(raw)
    except ValueError:
        errors.append(f'"{field}" must be an integer')
        return None
    if value < minimum:
        errors.append(f'"{field}" must be greater than or equal to {minimum}')
        return None
    return value


def _query_decimal(args, field, errors):
    raw = args.get(field)
    if raw in (None, ''):
        return None
    value = _as_decimal(raw)
    if value is None or not value.is_finite() or value < 0:
        errors.append(f'"{field}" must be a non-negative number')
        return None
    return value


def parse_pagination(args, errors=None):
    """limit/offset from a query string. Raises unless the caller collects errors itself."""
    collected = [] if errors is None else errors
    limit = _query_int(args, 'limit', collected, minimum=1)
    offset = _query_int(args, 'offset', collected) or 0
    if errors is None and collected:
        raise ValidationError(collected)
    return limit, offset


def parse_catalog_query(args):
    errors = []
    limit, offset = parse_pagination(args, errors)
    category = args.get('category') or None
    if category and category not in CATEGORIES:
        errors.append(f'"category" must be one of [{", ".join(CATEGORIES)}]')
    min_price = _query_decimal(args, 'min_price', errors)
    max_price = _query_decimal(args, 'max_price', errors)
    if min_price is not None and max_price is not None and min_price > max_price:
        errors.append('"min_price" must not exceed "max_price"')
    if errors:
        raise ValidationError(errors)
    return {
        'category': category,
        'brand': args.get('brand') or None,
        'search': args.get('search') or None,
        'min_price': min_price,
        'max_price': max_price,
        'in_stock_only': args.get('in_stock_only', 'true').lower() == 'true',
        'sort': args.get('sort') or 'name',
        'limit': limit,
        'offset': offset,
    }
