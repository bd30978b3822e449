import logging
from dataclasses import dataclass
from functools import wraps

import jwt
from flask import current_app, jsonify, request
from flask_login import current_user

from autoparts import login_manager
from autoparts.errors import ForbiddenError, UnauthorizedError
from autoparts.models.user import sync_user_from_claims


@dataclass(frozen=True)
class Requester:
    """Who is asking: built once per request and handed to the workflows."""
    id: str
    role: str
    email: str = None

    @property
    def is_admin(self):
        return self.role == 'admin'

    def can_access(self, owner_id):
        return self.is_admin or self.id == owner_id


def requester_from(user):
    return Requester(id=user.id, role=user.role, email=user.email)


def current_requester():
    if not current_user.is_authenticated:
        raise UnauthorizedError()
    return requester_from(current_user)


_jwks_clients = {}


def _jwks_client(url):
    client = _jwks_clients.get(url)
    if client is None:
        client = jwt.PyJWKClient(url)
        _jwks_clients[url] = client
    return client


def verify_clerk_token(token):
    """Verify a Clerk session JWT against the instance JWKS and return its claims."""
    config = current_app.config
    jwks_url = config.get('CLERK_JWKS_URL')
    if not jwks_url:
        raise UnauthorizedError('Token verification is not configured')
    signing_key = _jwks_client(jwks_url).get_signing_key_from_jwt(token)
    kwargs = {}
    if config.get('CLERK_ISSUER'):
        kwargs['issuer'] = config['CLERK_ISSUER']
    return jwt.decode(
        token,
        signing_key.key,
        algorithms=['RS256'],
        options={'verify_aud': False, 'require': ['exp', 'sub']},
        **kwargs
    )


def _bearer_token():
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


@login_manager.request_loader
def load_user_from_request(req):
    token = _bearer_token()
    if not token:
        return None
    verifier = current_app.config.get('AUTH_TOKEN_VERIFIER') or verify_clerk_token
    try:
        claims = verifier(token)
    except (jwt.PyJWTError, UnauthorizedError) as e:
        logging.info(f"[AUTH] Token rejected on {req.method} {req.path}: {e}")
        return None
    if not claims or not claims.get('sub'):
        logging.info(f"[AUTH] Token without subject on {req.method} {req.path}")
        return None
    user = sync_user_from_claims(claims)
    if not user.is_active:
        logging.warning(f"[AUTH] Inactive user {user.id} attempted access to {req.path}")
        return None
    return user


@login_manager.unauthorized_handler
def unauthorized():
    err = UnauthorizedError()
    return jsonify(err.to_dict()), err.status_code


def admin_required(f):
    """Like login_required, plus the admin role."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return login_manager.unauthorized()
        if not current_user.is_admin:
            logging.info(f"[AUTH] Non-admin {current_user.id} denied {request.method} {request.path}")
            raise ForbiddenError('Admin access required')
        return f(*args, **kwargs)
    return decorated_function
