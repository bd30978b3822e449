from flask import Blueprint, jsonify
from flask_login import current_user, login_required

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


# Sign-in happens at Clerk; this only reports who the bearer token belongs to
@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify({"user": current_user.to_dict()}), 200
