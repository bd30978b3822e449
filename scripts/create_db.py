import argparse
import sys, os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from decimal import Decimal

from autoparts import db, create_app
from autoparts.models import AppSettings, SparePart, User

SAMPLE_PARTS = [
    {"name": "Brake Pads - Front Set", "part_number": "BP-001-F", "category": "brakes", "brand": "AutoPro",
     "price": Decimal('89.99'), "stock_quantity": 25,
     "description": "Ceramic brake pads for front wheels. Fits most sedan models."},
    {"name": "Engine Oil Filter", "part_number": "OF-205", "category": "engine", "brand": "FilterMax",
     "price": Decimal('24.99'), "stock_quantity": 50,
     "description": "Premium oil filter for engine protection."},
    {"name": "Transmission Fluid", "part_number": "ATF-500", "category": "transmission", "brand": "FluidTech",
     "price": Decimal('34.99'), "stock_quantity": 30,
     "description": "Automatic transmission fluid for smooth shifting."},
    {"name": "Shock Absorbers - Rear Pair", "part_number": "SA-300-R", "category": "suspension", "brand": "RideComfort",
     "price": Decimal('127.99'), "original_price": Decimal('159.99'), "discount_percentage": Decimal('20'),
     "is_on_sale": True, "stock_quantity": 15,
     "description": "Heavy-duty shock absorbers for ride comfort and handling."},
    {"name": "LED Headlight Bulbs", "part_number": "LED-H7", "category": "electrical", "brand": "BrightLite",
     "price": Decimal('79.99'), "stock_quantity": 8,
     "description": "LED headlight bulbs with long lifespan and low power draw."},
]


def seed(admin_clerk_id=None, admin_email=None):
    created = 0
    if AppSettings.query.first() is None:
        db.session.add(AppSettings(
            app_name='AutoParts Store', currency='AED', tax_rate=Decimal('0.08'),
            shipping_cost=Decimal('9.99'), free_shipping_threshold=Decimal('100.00'),
        ))
    for values in SAMPLE_PARTS:
        if SparePart.query.filter_by(part_number=values['part_number']).first() is None:
            db.session.add(SparePart(**values))
            created += 1
    if admin_clerk_id:
        admin = User.query.filter_by(clerk_user_id=admin_clerk_id).first()
        if admin is None:
            admin = User(clerk_user_id=admin_clerk_id, email=admin_email or '', name='Admin')
            db.session.add(admin)
        admin.role = 'admin'
    db.session.commit()
    return created


def main(argv=None):
    parser = argparse.ArgumentParser(description="Create the AutoParts tables and load sample data.")
    parser.add_argument('--drop', action='store_true', help="drop all tables first")
    parser.add_argument('--admin-clerk-id', help="Clerk user id to create or promote as admin")
    parser.add_argument('--admin-email')
    args = parser.parse_args(argv)

    app = create_app()
    with app.app_context():
        if args.drop:
            db.drop_all()
        db.create_all()
        created = seed(args.admin_clerk_id, args.admin_email)
        print(f"Database ready at {db.engine.url}. Sample parts added: {created}. "
              f"Total parts: {SparePart.query.count()}")


if __name__ == '__main__':
    main()
