import logging
from decimal import Decimal

import jwt
import pytest
from sqlalchemy.pool import StaticPool

from autoparts import create_app, db as _db
from autoparts.auth import Requester
from autoparts.models import AppSettings, CartItem, SparePart, User

TOKENS = {
    'customer-token': {'sub': 'user_customer', 'email': 'customer@example.com', 'name': 'Casey Customer'},
    'other-token': {'sub': 'user_other', 'email': 'other@example.com', 'name': 'Olive Other'},
    'admin-token': {'sub': 'user_admin', 'email': 'admin@example.com', 'name': 'Avery Admin'},
}


def fake_verifier(token):
    if token not in TOKENS:
        raise jwt.InvalidTokenError('unknown test token')
    return dict(TOKENS[token])


def build_app(database_uri='sqlite://', engine_options=None):
    return create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'SQLALCHEMY_DATABASE_URI': database_uri,
        'SQLALCHEMY_ENGINE_OPTIONS': engine_options or {
            'connect_args': {'check_same_thread': False},
            'poolclass': StaticPool,
        },
        'AUTH_TOKEN_VERIFIER': fake_verifier,
        'STORE_TIMEZONE': 'Asia/Dubai',
        'MAIL_DEFAULT_SENDER': 'orders@autoparts.test',
    })


# Log all test failures to error.log alongside the app's own records
@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    rep = outcome.get_result()
    if rep.when == 'call' and rep.failed and rep.longrepr:
        logging.getLogger().error(f"Test {item.nodeid} FAILED\n{rep.longrepr}")


@pytest.fixture
def app():
    app = build_app()
    with app.app_context():
        _db.create_all()
    yield app
    with app.app_context():
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def ctx(app):
    """Application context for calling models and workflows directly (not for test-client requests)."""
    with app.app_context():
        yield app


def auth(token):
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def users(app):
    """Local profiles for the three test identities; returns {'customer'|'other'|'admin': user id}."""
    ids = {}
    with app.app_context():
        for key, token in (('customer', 'customer-token'), ('other', 'other-token'), ('admin', 'admin-token')):
            claims = TOKENS[token]
            user = User(clerk_user_id=claims['sub'], email=claims['email'], name=claims['name'],
                        role='admin' if key == 'admin' else 'customer')
            _db.session.add(user)
            _db.session.flush()
            ids[key] = user.id
        _db.session.commit()
    return ids


@pytest.fixture
def requesters(users):
    return {
        'customer': Requester(id=users['customer'], role='customer', email='customer@example.com'),
        'other': Requester(id=users['other'], role='customer', email='other@example.com'),
        'admin': Requester(id=users['admin'], role='admin', email='admin@example.com'),
    }


@pytest.fixture
def make_part(app):
    counter = {'n': 0}

    def _make(price='10.00', stock=10, **overrides):
        counter['n'] += 1
        values = {
            'name': f"Test Part {counter['n']}",
            'part_number': f"TP-{counter['n']:03d}",
            'category': 'brakes',
            'brand': 'AutoPro',
            'price': Decimal(price),
            'stock_quantity': stock,
        }
        values.update(overrides)
        with app.app_context():
            part = SparePart(**values)
            _db.session.add(part)
            _db.session.commit()
            return part.id
    return _make


@pytest.fixture
def add_to_cart(app):
    """Insert a cart line directly, bypassing the stock checks of the cart endpoints."""
    def _add(user_id, part_id, quantity):
        with app.app_context():
            item = CartItem(user_id=user_id, spare_part_id=part_id, quantity=quantity)
            _db.session.add(item)
            _db.session.commit()
            return item.id
    return _add


@pytest.fixture
def store_settings(app):
    def _settings(**values):
        with app.app_context():
            _db.session.add(AppSettings(app_name='Test Store', currency='AED', **values))
            _db.session.commit()
    return _settings
