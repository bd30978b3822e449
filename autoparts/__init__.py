# LOGGING MUST BE CONFIGURED BEFORE ANY OTHER IMPORTS OR LOGGING USAGE
import logging
import os
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler(os.environ.get('LOG_FILE', 'error.log'), encoding='utf-8')
    ]
)

import traceback

from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_login import LoginManager
from flask_mail import Mail
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from autoparts.errors import StorefrontError, StorageError

db = SQLAlchemy()
mail = Mail()
login_manager = LoginManager()


def create_app(config=None):
    app = Flask(__name__)
    app.config.from_object('autoparts.config')
    if config:
        app.config.update(config)
    logging.info(f"Database URI at app startup: {app.config['SQLALCHEMY_DATABASE_URI']}")

    CORS(app, supports_credentials=True, origins=app.config.get('CORS_ORIGINS') or '*')

    # Initialize extensions
    db.init_app(app)
    mail.init_app(app)
    login_manager.init_app(app)

    # Registers the request loader and unauthorized handler on login_manager
    from autoparts import auth  # noqa: F401

    register_error_handlers(app)

    # Register blueprints
    from .routes.main import main_bp
    app.register_blueprint(main_bp)
    from .routes.auth import auth_bp
    app.register_blueprint(auth_bp)
    from .routes.parts import parts_bp
    app.register_blueprint(parts_bp)
    from .routes.cart import cart_bp
    app.register_blueprint(cart_bp)
    from .routes.orders import orders_bp
    app.register_blueprint(orders_bp)
    from .routes.settings import settings_bp
    app.register_blueprint(settings_bp)

    for rule in app.url_map.iter_rules():
        logging.debug(f"Registered route: {rule.rule} | methods={rule.methods} | endpoint={rule.endpoint}")
    logging.info(f"Registered blueprints: {list(app.blueprints.keys())}")

    return app


def register_error_handlers(app):
    # Business-rule failures are expected outcomes, not server errors
    @app.errorhandler(StorefrontError)
    def handle_storefront_error(e):
        logging.info(f"[API] {request.method} {request.path} -> {e.status_code} {type(e).__name__}: {e}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_storage_error(e):
        db.session.rollback()
        logging.error(f"Storage error on {request.method} {request.path}: {e}", exc_info=True)
        err = StorageError()
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return jsonify({'error': e.description, 'path': request.path, 'method': request.method}), e.code

    @app.errorhandler(Exception)
    def handle_exception(e):
        tb = traceback.format_exc()
        logging.error(f"Exception: {e}\nTraceback:\n{tb}")
        body = {'error': 'Internal server error'}
        if app.debug:
            body['detail'] = str(e)
        return jsonify(body), 500
