import logging

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user
from sqlalchemy.exc import IntegrityError

from autoparts import db
from autoparts.auth import admin_required
from autoparts.errors import ValidationError
from autoparts.models.spare_part import SparePart, adjust_stock, filter_parts, get_low_stock, get_part
from autoparts.utils.dates import utcnow
from autoparts.utils.validation import parse_catalog_query, validate_part, validate_stock_delta

parts_bp = Blueprint('parts', __name__, url_prefix='/api/parts')


def _is_admin():
    return current_user.is_authenticated and current_user.is_admin


# Public listing; a valid admin token also unlocks inactive parts
@parts_bp.route('', methods=['GET'])
def list_parts():
    params = parse_catalog_query(request.args)
    params['active_only'] = not (_is_admin() and not params['in_stock_only'])
    parts, total = filter_parts(**params)
    now = utcnow()
    return jsonify({
        "parts": [part.to_dict(now) for part in parts],
        "total": total,
        "offset": params['offset'],
        "limit": params['limit'] if params['limit'] is not None else total,
    })


@parts_bp.route('/category/<category>', methods=['GET'])
def parts_by_category(category):
    parts, _ = filter_parts(category=category, in_stock_only=False)
    now = utcnow()
    return jsonify({"parts": [part.to_dict(now) for part in parts]})


@parts_bp.route('/search/<term>', methods=['GET'])
def search_parts(term):
    parts, _ = filter_parts(search=term, in_stock_only=False)
    now = utcnow()
    return jsonify({"parts": [part.to_dict(now) for part in parts]})


@parts_bp.route('/<part_id>', methods=['GET'])
def get_single_part(part_id):
    return jsonify({"part": get_part(part_id).to_dict()})


@parts_bp.route('/admin/low-stock', methods=['GET'])
@admin_required
def low_stock():
    threshold = request.args.get('threshold', type=int) or current_app.config.get('LOW_STOCK_THRESHOLD', 10)
    parts = get_low_stock(threshold)
    now = utcnow()
    return jsonify({"parts": [part.to_dict(now) for part in parts], "threshold": threshold})


@parts_bp.route('', methods=['POST'])
@admin_required
def create_part():
    values = validate_part(request.get_json(silent=True))
    if SparePart.query.filter_by(part_number=values['part_number']).first() is not None:
        raise ValidationError(message='Part number already exists')
    part = SparePart(**values)
    db.session.add(part)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError(message='Part number already exists')
    logging.info(f"[STOCK] Part {part.part_number} created by admin {current_user.id} with stock {part.stock_quantity}")
    return jsonify({"message": "Part created successfully", "part": part.to_dict()}), 201


@parts_bp.route('/<part_id>/stock', methods=['PATCH'])
@admin_required
def update_stock(part_id):
    delta = validate_stock_delta(request.get_json(silent=True))['quantity']
    part = adjust_stock(part_id, delta)
    db.session.commit()
    return jsonify({"message": "Stock updated successfully", "part": part.to_dict()})
