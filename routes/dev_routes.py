# backend/routes/dev_routes.py
"""
Dev-only utilities. DO NOT expose publicly.
Guarded with X-Debug-Secret.
"""
from datetime import timedelta
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import create_access_token
from sqlalchemy.exc import SQLAlchemyError

from config.database import engine, Base, healthcheck
# table registration for create_all
import models.master_data  # noqa: F401
import models.property  # noqa: F401

dev_routes = Blueprint("dev_routes", __name__)


def _authorized() -> bool:
    return request.headers.get("X-Debug-Secret") == current_app.config.get("DEBUG_SECRET", "changeme")


@dev_routes.route("/dev/init-db", methods=["POST"])
def init_db_route():
    if not _authorized():
        return jsonify({"success": False, "message": "Unauthorized"}), 401

    Base.metadata.create_all(engine)
    return jsonify({"success": True, "message": "Tables created"}), 200


@dev_routes.route("/dev/mint-jwt", methods=["POST"])
def dev_mint_jwt():
    """
    Mint a short-lived JWT for local testing.
    Headers: X-Debug-Secret: <secret>
    JSON body:
      {
        "user_id": 123,              # required
        "minutes": 60                # optional, default 60
      }
    """
    if not _authorized():
        return jsonify({"error": "forbidden"}), 403

    body = request.get_json(silent=True) or {}
    user_id = body.get("user_id")
    if user_id is None:
        return jsonify({"error": "user_id required"}), 400

    try:
        minutes = int(body.get("minutes", 60))
        identity = str(int(user_id))
    except (TypeError, ValueError):
        return jsonify({"error": "user_id and minutes must be integers"}), 400

    access_token = create_access_token(
        identity=identity,
        expires_delta=timedelta(minutes=minutes)
    )
    return jsonify({"access_token": access_token, "expires_minutes": minutes}), 200


@dev_routes.route("/dev/db-health", methods=["GET"])
def dev_db_health():
    if not _authorized():
        return jsonify({"error": "forbidden"}), 403
    try:
        healthcheck()
        return jsonify({"status": "ok"}), 200
    except SQLAlchemyError as e:
        return jsonify({"status": "error", "message": str(e)}), 503
