from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import g, jsonify

from app.crm.models import User


def require_login(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Reject the request with 401 JSON unless a logged-in user is attached to `g`."""

    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        user: User | None = getattr(g, "current_user", None)
        if not user or not user.is_active:
            return jsonify({"error": "Authentication required."}), 401
        return fn(*args, **kwargs)

    return wrapped
