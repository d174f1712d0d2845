#!/usr/bin/env python
"""Authentication utilities and Flask-Login integration."""

from __future__ import annotations

import logging

from flask import current_app, jsonify
from flask_login import LoginManager
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

logger = logging.getLogger(__name__)

login_manager = LoginManager()
login_manager.session_protection = "strong"
login_manager.login_message = None

_TOKEN_SALT = "vibeflo-auth-token"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=_TOKEN_SALT)


def issue_token(user) -> str:
    """Sign the user id into a bearer token."""
    return _serializer().dumps({"uid": user.id})


def verify_token(token: str) -> int | None:
    """Return the user id carried by ``token`` or ``None`` when invalid or expired."""
    if not token:
        return None
    max_age = int(current_app.config.get("AUTH_TOKEN_MAX_AGE_SECONDS", 7 * 24 * 3600))
    try:
        data = _serializer().loads(token, max_age=max_age)
    except SignatureExpired:
        logger.info("Rejected expired bearer token")
        return None
    except BadSignature:
        logger.info("Rejected bearer token with bad signature")
        return None
    user_id = data.get("uid") if isinstance(data, dict) else None
    return user_id if isinstance(user_id, int) else None


def init_auth(app):
    """Attach Flask-Login to the Flask app; auth routes are registered by the app factory."""
    from vibeflo.database.db_manager import User, db

    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id: str) -> User | None:
        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    @login_manager.request_loader
    def load_user_from_request(request) -> User | None:
        header = request.headers.get("Authorization") or ""
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return None
        user_id = verify_token(token.strip())
        if user_id is None:
            return None
        user = db.session.get(User, user_id)
        if user is None or not user.is_active:
            return None
        return user

    @login_manager.unauthorized_handler
    def _unauthorized():
        return jsonify({"message": "User not authenticated"}), 401

    return login_manager


__all__ = ["login_manager", "init_auth", "issue_token", "verify_token"]
