import uuid

from sqlalchemy import delete
from sqlalchemy.orm import joinedload

from autoparts import db
from autoparts.errors import NotFoundError
from autoparts.utils import pricing
from autoparts.utils.dates import isoformat, utcnow


class CartItem(db.Model):
    __tablename__ = 'cart_items'
    id = db.Column(db.String(36), primary_key=True, nullable=False, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    user_email = db.Column(db.String(255), nullable=True)
    spare_part_id = db.Column(db.String(36), db.ForeignKey('spare_parts.id', ondelete='CASCADE'), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    added_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    part = db.relationship('SparePart', lazy='joined')

    __table_args__ = (
        db.UniqueConstraint('user_id', 'spare_part_id', name='uq_cart_items_user_part'),
        db.CheckConstraint('quantity > 0', name='ck_cart_items_quantity_positive'),
    )

    def to_dict(self, now=None):
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "spare_part_id": self.spare_part_id,
            "quantity": self.quantity,
            "added_at": isoformat(self.added_at),
            "updated_at": isoformat(self.updated_at),
        }
        if self.part is not None:
            unit_price = pricing.effective_unit_price(self.part, now)
            data.update({
                "name": self.part.name,
                "part_number": self.part.part_number,
                "price": pricing.money(unit_price),
                "line_total": pricing.money(unit_price * self.quantity),
                "stock_quantity": self.part.stock_quantity,
                "is_active": self.part.is_active,
                "sale": pricing.sale_status(self.part, now),
            })
        return data


def get_cart_item(item_id):
    item = db.session.get(CartItem, item_id)
    if item is None:
        raise NotFoundError('Cart item', item_id)
    return item


def find_cart_item(user_id, spare_part_id):
    return CartItem.query.filter_by(user_id=user_id, spare_part_id=spare_part_id).first()


def get_cart_with_details(user_id):
    """Cart lines joined with their parts, re-read from the database rather than the identity map."""
    return (CartItem.query
            .options(joinedload(CartItem.part))
            .filter(CartItem.user_id == user_id)
            .order_by(CartItem.added_at.desc(), CartItem.id)
            .populate_existing()
            .all())


def clear_cart(user_id):
    result = db.session.execute(
        delete(CartItem).where(CartItem.user_id == user_id).execution_options(synchronize_session=False)
    )
    return result.rowcount
