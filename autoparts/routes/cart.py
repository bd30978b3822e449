from flask import Blueprint, jsonify, request
from flask_login import login_required

from autoparts.auth import current_requester
from autoparts.models.cart_item import CartItem, get_cart_with_details
from autoparts.utils import cart as cart_ops
from autoparts.utils.dates import utcnow
from autoparts.utils.validation import validate_cart_add, validate_cart_update, validate_guest_cart

cart_bp = Blueprint('cart', __name__, url_prefix='/api/cart')


@cart_bp.route('', methods=['GET'])
@login_required
def get_cart():
    requester = current_requester()
    return jsonify(cart_ops.cart_summary(get_cart_with_details(requester.id), utcnow()))


@cart_bp.route('/count', methods=['GET'])
@login_required
def cart_count():
    requester = current_requester()
    items = CartItem.query.filter_by(user_id=requester.id).all()
    return jsonify({"itemCount": len(items), "totalItems": sum(item.quantity for item in items)})


@cart_bp.route('/add', methods=['POST'])
@login_required
def add_item():
    data = validate_cart_add(request.get_json(silent=True))
    item, _ = cart_ops.add_to_cart(current_requester(), data['spare_part_id'], data['quantity'])
    return jsonify({"message": "Item added to cart successfully", "cartItem": item.to_dict()}), 201


@cart_bp.route('/<item_id>', methods=['PUT'])
@login_required
def update_item(item_id):
    data = validate_cart_update(request.get_json(silent=True))
    item = cart_ops.update_cart_item(current_requester(), item_id, data['quantity'])
    return jsonify({"message": "Cart item updated successfully", "cartItem": item.to_dict()})


@cart_bp.route('/<item_id>', methods=['DELETE'])
@login_required
def remove_item(item_id):
    cart_ops.remove_cart_item(current_requester(), item_id)
    return jsonify({"message": "Item removed from cart successfully"})


@cart_bp.route('', methods=['DELETE'])
@login_required
def clear():
    cart_ops.empty_cart(current_requester())
    return jsonify({"message": "Cart cleared successfully"})


@cart_bp.route('/merge', methods=['POST'])
@login_required
def merge():
    lines = validate_guest_cart(request.get_json(silent=True))
    items, skipped = cart_ops.merge_guest_cart(current_requester(), lines)
    summary = cart_ops.cart_summary(items, utcnow())
    summary["skipped"] = skipped
    return jsonify(summary)
