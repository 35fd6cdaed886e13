# ------- storefront/utils/decorators.py -------
from functools import wraps
from flask import jsonify
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from ..extensions import db
from ..utils.api import api_error
from ..model.user import User

def _identity_to_user(uid):
    try:
        uid = int(uid)
    except (TypeError, ValueError):
        return None
    return db.session.get(User, uid)

def current_user(optional: bool = False) -> User | None:
    verify_jwt_in_request(optional=optional)
    uid = get_jwt_identity()
    return _identity_to_user(uid) if uid else None

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        u = current_user()
        if not u:
            return jsonify(api_error("Unauthorized")), 401
        return fn(u, *args, **kwargs)
    return wrapper

def role_required(*roles, message: str | None = None):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            u = current_user()
            if not u:
                return jsonify(api_error("Unauthorized")), 401
            if u.role not in roles:
                return jsonify(api_error(message or "Forbidden")), 403
            return fn(*args, **kwargs)
        return wrapper
    return decorator
