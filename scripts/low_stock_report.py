import argparse
import sys, os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from tabulate import tabulate

from autoparts import create_app
from autoparts.models.spare_part import get_low_stock

HEADERS = ["Part number", "Name", "Brand", "Category", "Stock"]


def build_report(parts, threshold, tablefmt="grid"):
    if not parts:
        return f"No active parts below {threshold} units."
    rows = [[p.part_number, p.name, p.brand, p.category, p.stock_quantity] for p in parts]
    return f"Parts below {threshold} units: {len(parts)}\n" + tabulate(rows, headers=HEADERS, tablefmt=tablefmt)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Print active parts that are running low on stock.")
    parser.add_argument('--threshold', type=int, default=None)
    parser.add_argument('--format', default='grid', help="any tabulate table format")
    args = parser.parse_args(argv)

    app = create_app()
    with app.app_context():
        threshold = args.threshold or app.config['LOW_STOCK_THRESHOLD']
        print(build_report(get_low_stock(threshold), threshold, args.format))


if __name__ == '__main__':
    main()
