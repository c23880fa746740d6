from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, current_app, g, jsonify, request, session
from sqlalchemy import select
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash

from app.crm.db import db_session
from app.crm.models import User
from app.crm.security import ensure_csrf_token

bp = Blueprint("auth", __name__)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds


class Authenticator:
    """
    Credential check collaborator for the login gate.

    Install a different implementation (e.g. one backed by an external identity
    provider) in app.extensions["crm_authenticator"]; it must return the local
    User row for a successful login, or None.
    """

    def authenticate(self, s: Session, username: str, password: str) -> User | None:
        raise NotImplementedError


class DatabaseAuthenticator(Authenticator):
    def authenticate(self, s: Session, username: str, password: str) -> User | None:
        user = s.scalars(select(User).where(User.username == username)).one_or_none()
        if not user or not user.is_active or not check_password_hash(user.password_hash, password):
            return None
        return user


def get_authenticator() -> Authenticator:
    return current_app.extensions["crm_authenticator"]


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    _login_attempts[ip] = [t for t in _login_attempts[ip] if t > cutoff]
    return len(_login_attempts[ip]) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def load_current_user() -> None:
    """
    Loads g.current_user from the signed session cookie.
    Also assigns a simple per-request request_id (for log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    if request.path.startswith(("/health", "/healthz")):
        g.current_user = None
        return

    user_id = session.get("user_id")
    if not user_id:
        g.current_user = None
        return

    try:
        s = db_session()
        user = s.get(User, int(user_id))
        if not user or not user.is_active:
            session.pop("user_id", None)
            g.current_user = None
            return
        g.current_user = user
    except Exception as e:
        current_app.logger.error("load_current_user DB error (clearing session): %s", e)
        session.pop("user_id", None)
        g.current_user = None


def _credentials() -> tuple[str, str]:
    if request.is_json:
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            data = {}
    else:
        data = request.form
    username = str(data.get("username") or "").strip()
    password = str(data.get("password") or "")
    return username, password


@bp.post("/login")
def login_post():
    username, password = _credentials()
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        current_app.logger.warning("Login rate limit hit (ip=%s request_id=%s)", ip, getattr(g, "request_id", None))
        return jsonify({"error": "Too many login attempts. Please wait 5 minutes."}), 429

    _record_attempt(ip)

    if not username or not password:
        return jsonify({"error": "Username and password are required."}), 400

    s = db_session()
    user = get_authenticator().authenticate(s, username, password)
    if user is None:
        current_app.logger.info("Login failed (username=%s request_id=%s)", username, getattr(g, "request_id", None))
        return jsonify({"error": "Invalid credentials. Please try again."}), 401

    session.clear()
    session["user_id"] = user.id
    _login_attempts[ip].clear()
    current_app.logger.info("Login ok (user_id=%s request_id=%s)", user.id, getattr(g, "request_id", None))
    return jsonify({"ok": True, "username": user.username, "csrf_token": ensure_csrf_token()})


@bp.get("/session")
def session_get():
    user = getattr(g, "current_user", None)
    return jsonify(
        {
            "authenticated": bool(user),
            "username": user.username if user else None,
            "csrf_token": ensure_csrf_token(),
        }
    )


@bp.post("/logout")
def logout():
    session.pop("user_id", None)
    return jsonify({"ok": True})
