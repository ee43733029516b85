"""
Authentication helper utilities for user identification.

Authentication happens at the gateway, which forwards the verified user id
in the X-User-Id header; app.load_user copies it into Flask's g.
"""
import logging
from functools import wraps
from typing import Optional

from flask import g

from .api_response import error_response

logger = logging.getLogger(__name__)

USER_ID_HEADER = 'X-User-Id'


def get_current_user_id() -> Optional[str]:
    """
    Return the authenticated user's id from Flask's g object

    Returns:
        User ID as string if authenticated, None otherwise
    """
    if hasattr(g, 'user_id') and g.user_id:
        return g.user_id
    return None


def require_auth(f):
    """
    Decorator to require authentication for a resource method

    Usage:
        class MyResource(Resource):
            method_decorators = [require_auth]
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not get_current_user_id():
            return error_response("Authentication required", status_code=401, code="unauthorized")
        return f(*args, **kwargs)

    return decorated_function
