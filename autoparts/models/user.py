import logging
import uuid
from datetime import timedelta

from flask_login import UserMixin

from autoparts import db
from autoparts.utils.dates import isoformat, utcnow

LAST_LOGIN_REFRESH = timedelta(minutes=5)


class User(UserMixin, db.Model):
    __tablename__ = 'users'
    id = db.Column(db.String(36), primary_key=True, nullable=False, default=lambda: str(uuid.uuid4()))
    clerk_user_id = db.Column(db.String(255), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), nullable=True)
    name = db.Column(db.String(255), nullable=True)
    role = db.Column(db.String(20), nullable=False, default='customer')
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    email_verified = db.Column(db.Boolean, nullable=False, default=False)
    last_login = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_admin(self):
        return self.role == 'admin'

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "is_active": self.is_active,
            "email_verified": self.email_verified,
            "last_login": isoformat(self.last_login),
            "created_at": isoformat(self.created_at),
        }


def get_user_by_clerk_id(clerk_user_id):
    return User.query.filter_by(clerk_user_id=clerk_user_id).first()


def sync_user_from_claims(claims):
    """Create or refresh the local profile for a verified identity."""
    clerk_user_id = claims['sub']
    email = claims.get('email')
    name = claims.get('name') or claims.get('first_name')
    now = utcnow()
    user = get_user_by_clerk_id(clerk_user_id)
    if user is None:
        user = User(
            clerk_user_id=clerk_user_id,
            email=email or '',
            name=name or 'User',
            role='customer',
            is_active=True,
            email_verified=bool(claims.get('email_verified')),
            last_login=now,
        )
        db.session.add(user)
        db.session.commit()
        logging.info(f"[AUTH] Created local user for {clerk_user_id} | email={user.email}")
        return user

    changed = False
    if email and email != user.email:
        user.email = email
        changed = True
    if name and name != user.name:
        user.name = name
        changed = True
    if user.last_login is None or now - user.last_login > LAST_LOGIN_REFRESH:
        user.last_login = now
        changed = True
    if changed:
        db.session.commit()
    return user
