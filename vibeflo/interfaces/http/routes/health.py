from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from vibeflo.database.db_manager import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__)


@health_bp.route("/healthz")
def healthz():
    status = 200
    checks = {}

    try:
        db.session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except SQLAlchemyError as exc:
        logger.warning("Health check database probe failed: %s", exc)
        status = 503
        checks["database"] = "error"

    youtube_client = current_app.extensions.get("youtube_client")
    checks["youtube"] = "configured" if youtube_client and youtube_client.api_key else "unconfigured"

    overall = "ok" if status == 200 else "degraded"
    return jsonify({"status": overall, "checks": checks}), status
