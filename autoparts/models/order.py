import logging
import uuid

from flask import current_app
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from autoparts import db
from autoparts.errors import NotFoundError
from autoparts.utils import pricing
from autoparts.utils.dates import isoformat, localize, utcnow

PENDING = 'pending'
CONFIRMED = 'confirmed'
PROCESSING = 'processing'
SHIPPED = 'shipped'
DELIVERED = 'delivered'
CANCELLED = 'cancelled'
REFUNDED = 'refunded'

ORDER_STATUSES = [PENDING, CONFIRMED, PROCESSING, SHIPPED, DELIVERED, CANCELLED, REFUNDED]
FULFILMENT_PATH = [PENDING, CONFIRMED, PROCESSING, SHIPPED, DELIVERED]
CANCELLABLE_STATUSES = [PENDING, CONFIRMED, PROCESSING]
TERMINAL_STATUSES = [DELIVERED, CANCELLED, REFUNDED]


class Order(db.Model):
    __tablename__ = 'orders'
    id = db.Column(db.String(36), primary_key=True, nullable=False, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    user_email = db.Column(db.String(255), nullable=True)
    # Display number only; lookups always go through id
    order_number = db.Column(db.String(32), nullable=False, index=True)
    subtotal = db.Column(db.Numeric(10, 2), nullable=False)
    tax_amount = db.Column(db.Numeric(10, 2), nullable=False)
    shipping_cost = db.Column(db.Numeric(10, 2), nullable=False)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=PENDING, index=True)
    payment_status = db.Column(db.String(20), nullable=False, default='pending')
    payment_method = db.Column(db.String(50), nullable=False)
    shipping_address = db.Column(db.Text, nullable=False)
    billing_address = db.Column(db.Text, nullable=False)
    notes = db.Column(db.Text, nullable=True)
    tracking_number = db.Column(db.String(100), nullable=True)
    idempotency_key = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    items = db.relationship('OrderItem', backref='order', lazy=True, cascade='all, delete-orphan',
                            order_by='OrderItem.id')

    __table_args__ = (
        db.UniqueConstraint('user_id', 'idempotency_key', name='uq_orders_user_idempotency_key'),
    )

    def to_dict(self, include_items=True):
        local_created = localize(self.created_at, current_app.config['STORE_TIMEZONE'])
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "user_email": self.user_email,
            "order_number": self.order_number,
            "subtotal": pricing.money(self.subtotal),
            "tax_amount": pricing.money(self.tax_amount),
            "shipping_cost": pricing.money(self.shipping_cost),
            "total_amount": pricing.money(self.total_amount),
            "status": self.status,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "shipping_address": self.shipping_address,
            "billing_address": self.billing_address,
            "notes": self.notes,
            "tracking_number": self.tracking_number,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
            "local_purchase_date": local_created.isoformat() if local_created else None,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        else:
            data["item_count"] = len(self.items)
            data["total_quantity"] = sum(item.quantity for item in self.items)
        return data


class OrderItem(db.Model):
    __tablename__ = 'order_items'
    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(36), db.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    # Snapshot survives part deletion
    spare_part_id = db.Column(db.String(36), db.ForeignKey('spare_parts.id', ondelete='SET NULL'), nullable=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    total_price = db.Column(db.Numeric(10, 2), nullable=False)
    part_name = db.Column(db.String(255), nullable=False)
    part_number = db.Column(db.String(100), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "order_id": self.order_id,
            "spare_part_id": self.spare_part_id,
            "quantity": self.quantity,
            "unit_price": pricing.money(self.unit_price),
            "total_price": pricing.money(self.total_price),
            "part_name": self.part_name,
            "part_number": self.part_number,
        }


class OrderNumberSequence(db.Model):
    """Per-year counter behind ORD-<year>-<seq> numbers."""
    __tablename__ = 'order_number_sequences'
    year = db.Column(db.Integer, primary_key=True, autoincrement=False)
    last_value = db.Column(db.Integer, nullable=False, default=0)


def format_order_number(year, sequence):
    return f"ORD-{year}-{sequence:03d}"


def next_order_number(year):
    """Allocate the next sequence value for `year` inside the current transaction.

    The increment is one UPDATE, so the row lock it takes serialises concurrent
    checkouts until commit. The first allocation of a year seeds the counter from
    the orders already numbered for that year.
    """
    bump = (update(OrderNumberSequence)
            .where(OrderNumberSequence.year == year)
            .values(last_value=OrderNumberSequence.last_value + 1)
            .execution_options(synchronize_session=False))
    result = db.session.execute(bump)
    if result.rowcount == 0:
        existing = db.session.scalar(
            select(func.count(Order.id)).where(Order.order_number.like(f"ORD-{year}-%"))
        ) or 0
        try:
            with db.session.begin_nested():
                db.session.add(OrderNumberSequence(year=year, last_value=existing + 1))
        except IntegrityError:
            logging.info(f"[ORDER] Sequence row for {year} created concurrently; incrementing instead")
            db.session.execute(bump)
    sequence = db.session.scalar(
        select(OrderNumberSequence.last_value).where(OrderNumberSequence.year == year)
    )
    return format_order_number(year, sequence)


def get_order_with_items(order_id):
    """Re-read an order and its items from the database."""
    order = (Order.query
             .options(selectinload(Order.items))
             .filter(Order.id == order_id)
             .populate_existing()
             .first())
    if order is None:
        raise NotFoundError('Order', order_id)
    return order


def find_by_idempotency_key(user_id, idempotency_key):
    if not idempotency_key:
        return None
    return Order.query.filter_by(user_id=user_id, idempotency_key=idempotency_key).first()


def get_user_orders(user_id):
    return (Order.query
            .options(selectinload(Order.items))
            .filter(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.order_number.desc())
            .all())


def list_orders(status=None, limit=None, offset=0):
    query = Order.query.options(selectinload(Order.items))
    if status:
        query = query.filter(Order.status == status)
    query = query.order_by(Order.created_at.desc(), Order.order_number.desc())
    total = query.count()
    if offset:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return query.all(), total
