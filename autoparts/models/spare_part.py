import logging
import uuid

from sqlalchemy import or_, update

from autoparts import db
from autoparts.errors import InsufficientStockError, NotFoundError
from autoparts.utils import pricing
from autoparts.utils.dates import isoformat, utcnow

CATEGORIES = [
    'engine', 'transmission', 'brakes', 'suspension',
    'electrical', 'body', 'interior', 'exhaust',
    'cooling', 'fuel_system', 'accessory'
]
SORT_FIELDS = ['name', 'price', 'stock_quantity', 'created_at', 'brand', 'part_number']


class SparePart(db.Model):
    __tablename__ = 'spare_parts'
    id = db.Column(db.String(36), primary_key=True, nullable=False, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(255), nullable=False)
    part_number = db.Column(db.String(100), unique=True, nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(50), nullable=False, index=True)
    brand = db.Column(db.String(100), nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    original_price = db.Column(db.Numeric(10, 2), nullable=True)
    discount_percentage = db.Column(db.Numeric(5, 2), nullable=True, default=0)
    is_on_sale = db.Column(db.Boolean, nullable=False, default=False)
    sale_start_date = db.Column(db.DateTime, nullable=True)
    sale_end_date = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.CheckConstraint('stock_quantity >= 0', name='ck_spare_parts_stock_non_negative'),
    )

    def to_dict(self, now=None):
        return {
            "id": self.id,
            "name": self.name,
            "part_number": self.part_number,
            "description": self.description,
            "category": self.category,
            "brand": self.brand,
            "price": pricing.money(self.price),
            "effective_price": pricing.money(pricing.effective_unit_price(self, now)),
            "stock_quantity": self.stock_quantity,
            "is_active": self.is_active,
            "original_price": pricing.money(self.original_price),
            "discount_percentage": float(self.discount_percentage or 0),
            "is_on_sale": self.is_on_sale,
            "sale_start_date": isoformat(self.sale_start_date),
            "sale_end_date": isoformat(self.sale_end_date),
            "sale": pricing.sale_status(self, now),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }


def get_part(part_id):
    part = db.session.get(SparePart, part_id)
    if part is None:
        raise NotFoundError('Part', part_id)
    return part


def filter_parts(category=None, brand=None, search=None, min_price=None, max_price=None,
                 in_stock_only=True, active_only=True, sort='name', limit=None, offset=0):
    """Catalog listing with the storefront's filters. Returns (parts, total)."""
    query = SparePart.query
    if category:
        query = query.filter(SparePart.category == category)
    if brand:
        query = query.filter(SparePart.brand.ilike(f"%{brand}%"))
    if search:
        term = f"%{search}%"
        query = query.filter(or_(
            SparePart.name.ilike(term),
            SparePart.description.ilike(term),
            SparePart.part_number.ilike(term),
        ))
    if min_price is not None:
        query = query.filter(SparePart.price >= min_price)
    if max_price is not None:
        query = query.filter(SparePart.price <= max_price)
    if active_only or in_stock_only:
        query = query.filter(SparePart.is_active.is_(True))
    if in_stock_only:
        query = query.filter(SparePart.stock_quantity > 0)

    descending = sort.startswith('-')
    field = sort.lstrip('-')
    if field not in SORT_FIELDS:
        field = 'name'
    column = getattr(SparePart, field)
    query = query.order_by(column.desc() if descending else column.asc(), SparePart.id)

    total = query.count()
    if offset:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return query.all(), total


def get_low_stock(threshold=10):
    return (SparePart.query
            .filter(SparePart.stock_quantity < threshold, SparePart.is_active.is_(True))
            .order_by(SparePart.stock_quantity.asc(), SparePart.name.asc())
            .all())


def adjust_stock(part_id, delta):
    """Apply stock_quantity += delta as a single UPDATE.

    Decrements carry `stock_quantity + delta >= 0` in the WHERE clause, so two
    requests racing for the last units cannot both win: the loser matches zero
    rows and gets InsufficientStockError. Increments are unconditional.
    Does not commit; the caller owns the transaction. Returns the refreshed part.
    """
    stmt = (update(SparePart)
            .where(SparePart.id == part_id)
            .values(stock_quantity=SparePart.stock_quantity + delta, updated_at=utcnow()))
    if delta < 0:
        stmt = stmt.where(SparePart.stock_quantity + delta >= 0)
    result = db.session.execute(stmt.execution_options(synchronize_session=False))

    part = db.session.get(SparePart, part_id, populate_existing=True)
    if result.rowcount == 0:
        if part is None:
            raise NotFoundError('Part', part_id)
        logging.warning(f"[STOCK] Conditional decrement rejected | part={part.part_number} available={part.stock_quantity} requested={-delta}")
        raise InsufficientStockError(part.name, part.stock_quantity, -delta)
    logging.info(f"[STOCK] part={part.part_number} delta={delta:+d} stock_now={part.stock_quantity}")
    return part
