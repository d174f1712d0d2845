#!/usr/bin/env python
"""Authentication API endpoints for registration and login."""

from __future__ import annotations

import logging
import re
from typing import Dict, Tuple

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_user, logout_user

from vibeflo.auth import issue_token
from vibeflo.database.db_manager import User, db
from vibeflo.errors import AuthError, AuthorizationError, ConflictError, ValidationError

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _validate_credentials(payload: Dict[str, str]) -> Tuple[str, str]:
    email = (payload.get("email") or "").strip().lower()
    password = (payload.get("password") or "").strip()
    if not email or not _EMAIL_RE.match(email):
        raise ValidationError("Please provide a valid email address")
    if len(password) < 8:
        raise ValidationError("Password must be at least 8 characters long")
    return email, password


@auth_bp.route("/register", methods=["POST"])
def register_user():
    data = request.get_json(silent=True) or {}
    email, password = _validate_credentials(data)

    if User.query.filter_by(email=email).first():
        raise ConflictError("User already exists")

    user = User(email=email)
    username = (data.get("username") or "").strip() or email.split("@")[0]
    user.username = username[:120] or None
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    logger.info("Registered user %s", user.id, extra={"user_id": user.id})

    login_user(user)
    return jsonify({"user": user.to_dict(), "token": issue_token(user)}), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = (data.get("password") or "").strip()

    if not email or not password:
        raise ValidationError("Email and password are required")

    user = User.query.filter_by(email=email).first()
    if user is None or not user.check_password(password):
        raise AuthError("Invalid email or password")

    if not user.is_active:
        raise AuthorizationError("Account is disabled")

    login_user(user)
    return jsonify({"user": user.to_dict(), "token": issue_token(user)}), 200


@auth_bp.route("/logout", methods=["POST"])
def logout():
    if current_user.is_authenticated:
        logout_user()
    return jsonify({"message": "Logged out"}), 200


@auth_bp.route("/session", methods=["GET"])
def session_info():
    if current_user.is_authenticated:
        return jsonify({"user": current_user.to_dict()}), 200
    return jsonify({"user": None}), 200


__all__ = ["auth_bp"]
