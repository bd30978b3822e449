import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user

from autoparts.auth import admin_required
from autoparts.models.app_settings import settings_payload, update_settings
from autoparts.utils.validation import validate_settings

settings_bp = Blueprint('settings', __name__, url_prefix='/api/settings')


@settings_bp.route('', methods=['GET'])
def get_settings():
    return jsonify({"settings": settings_payload()})


@settings_bp.route('', methods=['PUT'])
@admin_required
def put_settings():
    values = validate_settings(request.get_json(silent=True))
    update_settings(values)
    logging.info(f"Settings updated by admin {current_user.id}: {sorted(values)}")
    return jsonify({"message": "Settings updated successfully", "settings": settings_payload()})
