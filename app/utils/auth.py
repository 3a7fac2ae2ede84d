from functools import wraps
import hmac
from flask import current_app, request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from app.exceptions import UnauthenticatedError
from app.extensions import db
from app.models import User


def get_current_user() -> User:
    """Resolve the bearer token to a User, or raise UnauthenticatedError."""
    try:
        verify_jwt_in_request()
        current_user_id = get_jwt_identity()
    except Exception:
        raise UnauthenticatedError()

    try:
        user = db.session.get(User, int(current_user_id))
    except (TypeError, ValueError):
        raise UnauthenticatedError("Invalid token")
    if not user:
        raise UnauthenticatedError("User not found")
    return user


def cron_secret_required(view):
    """Guard for scheduled sweeps: Authorization: Bearer <CRON_SECRET>."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        expected = f"Bearer {current_app.config['CRON_SECRET']}"
        provided = request.headers.get("Authorization", "")
        if not hmac.compare_digest(provided, expected):
            current_app.logger.warning("Rejected cron call with invalid secret")
            raise UnauthenticatedError("Unauthorized")
        return view(*args, **kwargs)

    return wrapper


def get_json_body():
    return request.get_json(silent=True) or {}
