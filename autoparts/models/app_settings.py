from flask import current_app

from autoparts import db
from autoparts.utils import pricing
from autoparts.utils.dates import isoformat, utcnow

EDITABLE_FIELDS = [
    'app_name', 'currency', 'tax_rate', 'shipping_cost', 'free_shipping_threshold',
    'business_email', 'business_phone', 'business_address', 'maintenance_mode'
]


class AppSettings(db.Model):
    __tablename__ = 'app_settings'
    id = db.Column(db.Integer, primary_key=True)
    app_name = db.Column(db.String(255), nullable=False, default='AutoParts Store')
    currency = db.Column(db.String(3), nullable=False, default='AED')
    tax_rate = db.Column(db.Numeric(5, 4), nullable=True)
    shipping_cost = db.Column(db.Numeric(10, 2), nullable=True)
    free_shipping_threshold = db.Column(db.Numeric(10, 2), nullable=True)
    business_email = db.Column(db.String(255), nullable=True)
    business_phone = db.Column(db.String(50), nullable=True)
    business_address = db.Column(db.Text, nullable=True)
    maintenance_mode = db.Column(db.Boolean, nullable=False, default=False)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "app_name": self.app_name,
            "currency": self.currency,
            "tax_rate": float(self.tax_rate) if self.tax_rate is not None else None,
            "shipping_cost": pricing.money(self.shipping_cost),
            "free_shipping_threshold": pricing.money(self.free_shipping_threshold),
            "business_email": self.business_email,
            "business_phone": self.business_phone,
            "business_address": self.business_address,
            "maintenance_mode": self.maintenance_mode,
            "updated_at": isoformat(self.updated_at),
        }


def get_current_settings():
    """The singleton settings row, or None when the store was never configured."""
    return AppSettings.query.order_by(AppSettings.id.asc()).first()


def get_pricing_settings():
    """Pricing inputs from the settings row, falling back field by field to configured defaults.

    A stored zero is honoured (tax-free, free shipping); only a missing value falls back.
    """
    config = current_app.config
    defaults = pricing.PricingSettings(
        tax_rate=pricing.to_decimal(config.get('DEFAULT_TAX_RATE', '0.08')),
        shipping_cost=pricing.to_decimal(config.get('DEFAULT_SHIPPING_COST', '9.99')),
        free_shipping_threshold=pricing.to_decimal(config.get('DEFAULT_FREE_SHIPPING_THRESHOLD', '100.00')),
    )
    settings = get_current_settings()
    if settings is None:
        return defaults
    return pricing.PricingSettings(
        tax_rate=pricing.to_decimal(settings.tax_rate, defaults.tax_rate),
        shipping_cost=pricing.to_decimal(settings.shipping_cost, defaults.shipping_cost),
        free_shipping_threshold=pricing.to_decimal(settings.free_shipping_threshold, defaults.free_shipping_threshold),
    )


def settings_payload():
    """Settings as the storefront shows them, defaults filled in."""
    settings = get_current_settings()
    effective = get_pricing_settings()
    data = settings.to_dict() if settings else {
        "app_name": 'AutoParts Store',
        "currency": current_app.config.get('DEFAULT_CURRENCY', 'AED'),
        "maintenance_mode": False,
    }
    data.update({
        "tax_rate": float(effective.tax_rate),
        "shipping_cost": pricing.money(effective.shipping_cost),
        "free_shipping_threshold": pricing.money(effective.free_shipping_threshold),
    })
    return data


def update_settings(values):
    settings = get_current_settings()
    if settings is None:
        settings = AppSettings(currency=current_app.config.get('DEFAULT_CURRENCY', 'AED'))
        db.session.add(settings)
    for field in EDITABLE_FIELDS:
        if field in values:
            setattr(settings, field, values[field])
    db.session.commit()
    return settings
