import logging
from collections import OrderedDict

from sqlalchemy.exc import IntegrityError

from autoparts import db
from autoparts.errors import ForbiddenError, InsufficientStockError, ValidationError
from autoparts.models.cart_item import CartItem, clear_cart, find_cart_item, get_cart_item, get_cart_with_details
from autoparts.models.spare_part import SparePart, get_part
from autoparts.utils import pricing


def cart_summary(items, now=None):
    """Cart lines plus storefront totals, priced at `now`."""
    subtotal = sum((pricing.effective_unit_price(item.part, now) * item.quantity for item in items), pricing.ZERO)
    return {
        "items": [item.to_dict(now) for item in items],
        "subtotal": pricing.money(subtotal),
        "totalItems": sum(item.quantity for item in items),
        "itemCount": len(items),
    }


def _merge_quantity(item, part, quantity):
    new_quantity = item.quantity + quantity
    if part.stock_quantity < new_quantity:
        raise InsufficientStockError(part.name, part.stock_quantity, new_quantity,
                                     message='Insufficient stock for total quantity')
    item.quantity = new_quantity


def add_to_cart(requester, spare_part_id, quantity):
    """Add `quantity` of a part, merging into an existing line. Returns (item, created)."""
    part = get_part(spare_part_id)
    if not part.is_active:
        raise ValidationError(message='Part is not available')
    if part.stock_quantity < quantity:
        raise InsufficientStockError(part.name, part.stock_quantity, quantity, message='Insufficient stock')

    item = find_cart_item(requester.id, part.id)
    created = item is None
    if created:
        item = CartItem(user_id=requester.id, user_email=requester.email, spare_part_id=part.id, quantity=quantity)
        db.session.add(item)
    else:
        _merge_quantity(item, part, quantity)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        if not created:
            raise
        # a parallel request inserted the line first; fold this quantity into it
        item = find_cart_item(requester.id, spare_part_id)
        if item is None:
            raise
        logging.info(f"[CART] user={requester.id} part={spare_part_id} line created concurrently; merging")
        _merge_quantity(item, get_part(spare_part_id), quantity)
        db.session.commit()
        created = False
    logging.info(f"[CART] user={requester.id} part={part.part_number} +{quantity} -> {item.quantity}")
    return item, created


def _owned_item(requester, item_id):
    item = get_cart_item(item_id)
    if item.user_id != requester.id:
        raise ForbiddenError()
    return item


def update_cart_item(requester, item_id, quantity):
    item = _owned_item(requester, item_id)
    part = item.part
    if part.stock_quantity < quantity:
        raise InsufficientStockError(part.name, part.stock_quantity, quantity, message='Insufficient stock')
    item.quantity = quantity
    db.session.commit()
    return item


def remove_cart_item(requester, item_id):
    item = _owned_item(requester, item_id)
    db.session.delete(item)
    db.session.commit()
    logging.info(f"[CART] user={requester.id} removed line {item_id}")


def empty_cart(requester):
    removed = clear_cart(requester.id)
    db.session.commit()
    logging.info(f"[CART] user={requester.id} cleared {removed} lines")
    return removed


def merge_guest_cart(requester, lines):
    """Fold a signed-out cart into the stored one.

    Quantities for the same part are summed and capped at current stock. Unknown,
    inactive and out-of-stock parts are left out and reported in the returned
    `skipped` list; an existing line is never touched for a skipped part.
    Returns (items, skipped).
    """
    wanted = OrderedDict()
    for line in lines:
        wanted[line['spare_part_id']] = wanted.get(line['spare_part_id'], 0) + line['quantity']

    skipped = []
    for spare_part_id, quantity in wanted.items():
        part = db.session.get(SparePart, spare_part_id)
        if part is None:
            skipped.append({"spare_part_id": spare_part_id, "reason": 'Part not found'})
            continue
        if not part.is_active:
            skipped.append({"spare_part_id": spare_part_id, "reason": 'Part is not available'})
            continue
        item = find_cart_item(requester.id, part.id)
        existing = item.quantity if item else 0
        combined = min(existing + quantity, part.stock_quantity)
        if combined < 1:
            skipped.append({"spare_part_id": spare_part_id, "reason": 'Out of stock'})
            continue
        if item is None:
            db.session.add(CartItem(user_id=requester.id, user_email=requester.email,
                                    spare_part_id=part.id, quantity=combined))
        else:
            item.quantity = combined
        if combined < existing + quantity:
            logging.info(f"[CART] merge capped {part.part_number} at stock {part.stock_quantity} for user={requester.id}")
    db.session.commit()
    logging.info(f"[CART] merged {len(wanted)} guest lines for user={requester.id}, skipped={len(skipped)}")
    return get_cart_with_details(requester.id), skipped
