from functools import wraps
from flask import current_app
from flask_jwt_extended import verify_jwt_in_request

from shopzify.models import db, User
from shopzify.utils.auth_utils import resolve_user_id
from shopzify.utils.errors import Forbidden


def is_admin_user(user):
    # Allow access if user.is_admin is True OR the user's email matches the configured ADMIN_EMAIL
    if not user:
        return False
    admin_email = current_app.config.get('ADMIN_EMAIL')
    is_admin_email = bool(admin_email) and (user.email or '').lower() == admin_email.lower()
    return bool(user.is_admin) or is_admin_email


def admin_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        # Missing or expired tokens surface through the JWT error loaders as 401
        verify_jwt_in_request(locations=['headers'])
        user = db.session.get(User, resolve_user_id())

        if not is_admin_user(user):
            current_app.logger.warning('Admin route %s refused for user %s', fn.__name__, user.user_id if user else None)
            raise Forbidden('Admins only!')

        return fn(*args, **kwargs)
    return wrapper
