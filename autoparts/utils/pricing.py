#pricing.py
#Order pricing: sale-adjusted unit prices, subtotal, tax, shipping and totals.
#Pure functions over parts and settings; nothing here touches the database.

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP

from autoparts.utils.dates import as_utc

CENT = Decimal('0.01')
ZERO = Decimal('0')
HUNDRED = Decimal('100')


def to_decimal(value, default=ZERO):
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value):
    """Round half-up to currency minor units. Only applied where amounts are persisted or shown."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def money(value):
    """JSON-friendly money value."""
    if value is None:
        return None
    return float(round_money(value))


@dataclass(frozen=True)
class PricingSettings:
    tax_rate: Decimal = Decimal('0.08')
    shipping_cost: Decimal = Decimal('9.99')
    free_shipping_threshold: Decimal = Decimal('100.00')


@dataclass(frozen=True)
class PricedLine:
    spare_part_id: str
    part_name: str
    part_number: str
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self):
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    tax_amount: Decimal
    shipping_cost: Decimal
    total_amount: Decimal

    def rounded(self):
        # total is rebuilt from the rounded parts so the stored sum always balances
        subtotal = round_money(self.subtotal)
        tax_amount = round_money(self.tax_amount)
        shipping_cost = round_money(self.shipping_cost)
        return OrderTotals(subtotal, tax_amount, shipping_cost, subtotal + tax_amount + shipping_cost)

    def to_dict(self):
        return {
            "subtotal": money(self.subtotal),
            "tax_amount": money(self.tax_amount),
            "shipping_cost": money(self.shipping_cost),
            "total_amount": money(self.total_amount),
        }


def is_sale_active(sale_start_date, sale_end_date, now=None):
    """A sale with no window is always active; otherwise now must fall inside [start, end]."""
    if sale_start_date is None and sale_end_date is None:
        return True
    now = as_utc(now or datetime.now(timezone.utc))
    if sale_start_date is not None and now < as_utc(sale_start_date):
        return False
    if sale_end_date is not None and now > as_utc(sale_end_date):
        return False
    return True


def is_sale_ending_soon(sale_end_date, now=None, window=timedelta(hours=24)):
    if sale_end_date is None:
        return False
    now = as_utc(now or datetime.now(timezone.utc))
    remaining = as_utc(sale_end_date) - now
    return timedelta(0) < remaining <= window


def calculate_discounted_price(original_price, discount_percentage, is_on_sale=True):
    original_price = to_decimal(original_price)
    discount = to_decimal(discount_percentage)
    if not is_on_sale or discount <= 0:
        return original_price
    discount = min(discount, HUNDRED)
    return original_price * (1 - discount / HUNDRED)


def calculate_savings(original_price, sale_price):
    original_price = to_decimal(original_price)
    sale_price = to_decimal(sale_price)
    if not original_price or not sale_price or sale_price >= original_price:
        return ZERO
    return original_price - sale_price


def base_price(part):
    """Price before any discount: the recorded original price when present, else the list price."""
    if part.original_price is not None:
        return to_decimal(part.original_price)
    return to_decimal(part.price)


def effective_unit_price(part, now=None):
    """Unit price charged right now, at full precision.

    On-sale parts inside their window get the discounted original price. On-sale
    parts outside the window sell at the original price, whatever the discount says.
    """
    if not part.is_on_sale:
        return to_decimal(part.price)
    original = base_price(part)
    if not is_sale_active(part.sale_start_date, part.sale_end_date, now):
        return original
    return calculate_discounted_price(original, part.discount_percentage, True)


def sale_status(part, now=None):
    if not part.is_on_sale:
        return {
            "is_on_sale": False,
            "is_active": False,
            "discount_percentage": 0,
            "savings": 0.0,
            "original_price": money(base_price(part)),
            "sale_price": money(part.price),
        }
    active = is_sale_active(part.sale_start_date, part.sale_end_date, now)
    original = base_price(part)
    sale_price = effective_unit_price(part, now)
    return {
        "is_on_sale": True,
        "is_active": active,
        "discount_percentage": float(to_decimal(part.discount_percentage)),
        "savings": money(calculate_savings(original, sale_price)),
        "original_price": money(original),
        "sale_price": money(sale_price),
        "ending_soon": active and is_sale_ending_soon(part.sale_end_date, now),
    }


def price_lines(lines, now=None):
    """Turn (part, quantity) pairs into priced lines using the price in force at `now`."""
    now = now or datetime.now(timezone.utc)
    return [
        PricedLine(
            spare_part_id=part.id,
            part_name=part.name,
            part_number=part.part_number,
            quantity=quantity,
            unit_price=effective_unit_price(part, now),
        )
        for part, quantity in lines
    ]


def calculate_totals(priced_lines, settings):
    subtotal = sum((line.line_total for line in priced_lines), ZERO)
    tax_amount = subtotal * to_decimal(settings.tax_rate)
    if subtotal >= to_decimal(settings.free_shipping_threshold):
        shipping_cost = ZERO
    else:
        shipping_cost = to_decimal(settings.shipping_cost)
    totals = OrderTotals(subtotal, tax_amount, shipping_cost, subtotal + tax_amount + shipping_cost)
    logging.debug(f"calculate_totals: lines={len(priced_lines)} totals={totals}")
    return totals
