#checkout.py
#Cart-to-order workflow and its inverse.
#place_order turns a user's cart into an immutable order: stock check, pricing,
#order number, order + item snapshots, conditional stock decrements and cart
#clear all commit together or not at all. cancel_order puts the stock back.

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from autoparts import db
from autoparts.errors import (
    EmptyCartError, ForbiddenError, InsufficientStockError, InvalidStateTransitionError,
    StorageError, StorefrontError, ValidationError,
)
from autoparts.models.app_settings import get_pricing_settings
from autoparts.models.cart_item import clear_cart, get_cart_with_details
from autoparts.models.order import (
    CANCELLABLE_STATUSES, CANCELLED, FULFILMENT_PATH, ORDER_STATUSES, PENDING, REFUNDED,
    TERMINAL_STATUSES, Order, OrderItem, find_by_idempotency_key,
    get_order_with_items, next_order_number,
)
from autoparts.models.spare_part import adjust_stock
from autoparts.utils import pricing
from autoparts.utils.dates import localize, utcnow
from autoparts.utils.email import send_order_confirmation


@dataclass
class CheckoutRequest:
    shipping_address: str
    payment_method: str
    billing_address: str = None
    notes: str = None
    idempotency_key: str = None


def _collect_lines(cart):
    """Fresh stock and availability check; the first bad line stops checkout."""
    lines = []
    for item in cart:
        part = item.part
        if not part.is_active:
            raise ValidationError([f"{part.name} is no longer available"], message='Part is not available')
        if part.stock_quantity < item.quantity:
            raise InsufficientStockError(part.name, part.stock_quantity, item.quantity)
        lines.append((part, item.quantity))
    return lines


def place_order(requester, checkout, now=None):
    """Create an order from the requester's cart. Returns (order, created).

    `created` is False when an order with the same idempotency key already
    exists for this user; that order is returned untouched.
    """
    now = now or datetime.now(timezone.utc)
    existing = find_by_idempotency_key(requester.id, checkout.idempotency_key)
    if existing is not None:
        logging.info(f"[ORDER] Replaying {existing.order_number} for idempotency key {checkout.idempotency_key}")
        return get_order_with_items(existing.id), False

    try:
        cart = get_cart_with_details(requester.id)
        if not cart:
            raise EmptyCartError()
        lines = _collect_lines(cart)
        priced = pricing.price_lines(lines, now)
        totals = pricing.calculate_totals(priced, get_pricing_settings()).rounded()

        year = localize(now, current_app.config['STORE_TIMEZONE']).year
        order = Order(
            user_id=requester.id,
            user_email=requester.email,
            order_number=next_order_number(year),
            subtotal=totals.subtotal,
            tax_amount=totals.tax_amount,
            shipping_cost=totals.shipping_cost,
            total_amount=totals.total_amount,
            status=PENDING,
            payment_status='pending',
            payment_method=checkout.payment_method,
            shipping_address=checkout.shipping_address,
            billing_address=checkout.billing_address or checkout.shipping_address,
            notes=checkout.notes,
            idempotency_key=checkout.idempotency_key,
        )
        db.session.add(order)
        for line in priced:
            order.items.append(OrderItem(
                spare_part_id=line.spare_part_id,
                quantity=line.quantity,
                unit_price=pricing.round_money(line.unit_price),
                total_price=pricing.round_money(line.line_total),
                part_name=line.part_name,
                part_number=line.part_number,
            ))
        db.session.flush()
        for line in priced:
            adjust_stock(line.spare_part_id, -line.quantity)
        cleared = clear_cart(requester.id)
        db.session.commit()
    except StorefrontError:
        db.session.rollback()
        raise
    except IntegrityError as e:
        db.session.rollback()
        # a concurrent request with the same key won the insert
        replay = find_by_idempotency_key(requester.id, checkout.idempotency_key)
        if replay is not None:
            logging.info(f"[ORDER] Concurrent duplicate for key {checkout.idempotency_key}; returning {replay.order_number}")
            return get_order_with_items(replay.id), False
        logging.error(f"[ORDER] Integrity failure placing order for user {requester.id}: {e}", exc_info=True)
        raise StorageError() from e
    except SQLAlchemyError as e:
        db.session.rollback()
        logging.error(f"[ORDER] Storage failure placing order for user {requester.id}: {e}", exc_info=True)
        raise StorageError() from e

    logging.info(f"[ORDER] Created {order.order_number} | user={requester.id} lines={len(priced)} "
                 f"cleared={cleared} total={totals.total_amount}")
    order = get_order_with_items(order.id)
    try:
        send_order_confirmation(order)
    except Exception as e:
        logging.error(f"[MAIL] Failed to send receipt for {order.order_number}: {e}", exc_info=True)
    return order, True


def can_transition(current, target):
    if target not in ORDER_STATUSES:
        return False
    if current == target:
        return True
    if target == REFUNDED:
        return current not in (CANCELLED, REFUNDED)
    if target == CANCELLED:
        return current in CANCELLABLE_STATUSES
    if current in TERMINAL_STATUSES:
        return False
    return FULFILMENT_PATH.index(target) > FULFILMENT_PATH.index(current)


def _append_note(notes, line):
    return f"{notes}\n{line}" if notes else line


def _cancel(order, actor, extra_notes=None):
    """Flip status and restore stock inside the caller's transaction."""
    notes = _append_note(order.notes, f"Order cancelled by {actor}")
    if extra_notes:
        notes = _append_note(notes, extra_notes)
    # Only one caller can move the order out of a cancellable status, so stock is restored once
    result = db.session.execute(
        update(Order)
        .where(Order.id == order.id, Order.status.in_(CANCELLABLE_STATUSES))
        .values(status=CANCELLED, notes=notes, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        current = db.session.get(Order, order.id, populate_existing=True)
        raise InvalidStateTransitionError(current.status, CANCELLED, 'Order cannot be cancelled')

    for item in order.items:
        if item.spare_part_id is None:
            logging.warning(f"[ORDER] {order.order_number}: part for '{item.part_name}' was deleted; stock not restored")
            continue
        adjust_stock(item.spare_part_id, item.quantity)


def _run_in_transaction(order, work):
    try:
        work()
        db.session.commit()
    except StorefrontError:
        db.session.rollback()
        raise
    except SQLAlchemyError as e:
        db.session.rollback()
        logging.error(f"[ORDER] Storage failure updating {order.order_number}: {e}", exc_info=True)
        raise StorageError() from e


def cancel_order(requester, order_id):
    order = get_order_with_items(order_id)
    if not requester.can_access(order.user_id):
        raise ForbiddenError()
    if order.status not in CANCELLABLE_STATUSES:
        raise InvalidStateTransitionError(order.status, CANCELLED, 'Order cannot be cancelled')

    actor = 'admin' if requester.is_admin else 'customer'
    _run_in_transaction(order, lambda: _cancel(order, actor))
    logging.info(f"[ORDER] Cancelled {order.order_number} by {actor} {requester.id}")
    return get_order_with_items(order_id)


def update_order_status(requester, order_id, status, tracking_number=None, notes=None):
    """Admin status change along the order state machine."""
    if not requester.is_admin:
        raise ForbiddenError('Admin access required')
    if status not in ORDER_STATUSES:
        raise ValidationError([f'"status" must be one of [{", ".join(ORDER_STATUSES)}]'])
    order = get_order_with_items(order_id)
    current = order.status
    if not can_transition(current, status):
        raise InvalidStateTransitionError(current, status)

    if status == CANCELLED and current != CANCELLED:
        def work():
            _cancel(order, 'admin', extra_notes=notes)
            if tracking_number:
                db.session.execute(
                    update(Order).where(Order.id == order.id)
                    .values(tracking_number=tracking_number)
                    .execution_options(synchronize_session=False)
                )
    else:
        def work():
            values = {'status': status, 'updated_at': utcnow()}
            if tracking_number:
                values['tracking_number'] = tracking_number
            if notes:
                values['notes'] = notes
            # a cancel that committed since the read above leaves nothing to match
            result = db.session.execute(
                update(Order)
                .where(Order.id == order.id, Order.status == current)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                latest = db.session.get(Order, order.id, populate_existing=True)
                raise InvalidStateTransitionError(latest.status, status)

    _run_in_transaction(order, work)
    logging.info(f"[ORDER] {order.order_number}: {current} -> {status} by admin {requester.id}")
    return get_order_with_items(order_id)
