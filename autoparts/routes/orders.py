from flask import Blueprint, jsonify, request
from flask_login import login_required

from autoparts.auth import admin_required, current_requester
from autoparts.errors import ForbiddenError, ValidationError
from autoparts.models.order import ORDER_STATUSES, get_order_with_items, get_user_orders, list_orders
from autoparts.utils.checkout import CheckoutRequest, cancel_order, place_order, update_order_status
from autoparts.utils.validation import parse_pagination, validate_checkout, validate_status_update

orders_bp = Blueprint('orders', __name__, url_prefix='/api/orders')


@orders_bp.route('', methods=['GET'])
@login_required
def my_orders():
    requester = current_requester()
    return jsonify({"orders": [order.to_dict() for order in get_user_orders(requester.id)]})


@orders_bp.route('/admin/all', methods=['GET'])
@admin_required
def all_orders():
    status = request.args.get('status') or None
    if status and status not in ORDER_STATUSES:
        raise ValidationError([f'"status" must be one of [{", ".join(ORDER_STATUSES)}]'])
    limit, offset = parse_pagination(request.args)
    orders, total = list_orders(status=status, limit=limit, offset=offset)
    return jsonify({
        "orders": [order.to_dict(include_items=False) for order in orders],
        "total": total,
        "offset": offset,
        "limit": limit if limit is not None else total,
    })


@orders_bp.route('/<order_id>', methods=['GET'])
@login_required
def get_single_order(order_id):
    requester = current_requester()
    order = get_order_with_items(order_id)
    if not requester.can_access(order.user_id):
        raise ForbiddenError()
    return jsonify({"order": order.to_dict()})


@orders_bp.route('/create', methods=['POST'])
@login_required
def create_order():
    data = validate_checkout(request.get_json(silent=True))
    idempotency_key = (request.headers.get('Idempotency-Key') or '').strip() or None
    if idempotency_key and len(idempotency_key) > 255:
        raise ValidationError(['"Idempotency-Key" header must be at most 255 characters'])
    order, created = place_order(current_requester(), CheckoutRequest(idempotency_key=idempotency_key, **data))
    if not created:
        return jsonify({"message": "Order already created", "order": order.to_dict()}), 200
    return jsonify({"message": "Order created successfully", "order": order.to_dict()}), 201


@orders_bp.route('/<order_id>/status', methods=['PUT'])
@admin_required
def change_status(order_id):
    data = validate_status_update(request.get_json(silent=True))
    order = update_order_status(current_requester(), order_id, data['status'],
                                tracking_number=data['tracking_number'], notes=data['notes'])
    return jsonify({"message": "Order status updated successfully", "order": order.to_dict()})


@orders_bp.route('/<order_id>/cancel', methods=['PUT'])
@login_required
def cancel(order_id):
    order = cancel_order(current_requester(), order_id)
    return jsonify({"message": "Order cancelled successfully", "order": order.to_dict()})
