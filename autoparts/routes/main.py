import logging

from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from autoparts import db
from autoparts.utils.dates import isoformat, utcnow

main_bp = Blueprint('main', __name__)


@main_bp.route('/', methods=['GET'])
def index():
    return jsonify({"name": "AutoParts Storefront API", "status": "running"})


@main_bp.route('/health', methods=['GET'])
def health():
    try:
        db.session.execute(text('SELECT 1'))
    except SQLAlchemyError as e:
        db.session.rollback()
        logging.error(f"Health check failed: {e}", exc_info=True)
        return jsonify({"status": "unhealthy", "database": "disconnected", "timestamp": isoformat(utcnow())}), 503
    return jsonify({"status": "healthy", "database": "connected", "timestamp": isoformat(utcnow())})
