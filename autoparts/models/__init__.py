from autoparts.models.user import User
from autoparts.models.spare_part import SparePart, CATEGORIES
from autoparts.models.cart_item import CartItem
from autoparts.models.order import Order, OrderItem, OrderNumberSequence, ORDER_STATUSES
from autoparts.models.app_settings import AppSettings

__all__ = [
    'User', 'SparePart', 'CATEGORIES', 'CartItem', 'Order', 'OrderItem',
    'OrderNumberSequence', 'ORDER_STATUSES', 'AppSettings',
]
