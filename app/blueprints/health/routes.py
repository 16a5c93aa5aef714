# app/blueprints/health/routes.py

from flask import Blueprint, jsonify
from sqlalchemy import text

from app.extensions import db

health_bp = Blueprint("health", __name__)


@health_bp.route("/")
def health():
    try:
        db.session.execute(text("SELECT 1"))
        database = "ok"
    except Exception as e:
        db.session.rollback()
        database = f"error: {type(e).__name__}"

    status = "healthy" if database == "ok" else "degraded"
    return jsonify({"status": status, "database": database})
