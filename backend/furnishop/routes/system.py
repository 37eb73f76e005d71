# backend/furnishop/routes/system.py
"""
Health check and media serving.
"""

import time
from flask import Blueprint, current_app, send_file
from ..extensions import db
from ..models import Branch, Product, User
from ..services import storage_service
from furnishop.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        details = {
            "branches": db.session.query(Branch).count(),
            "users": db.session.query(User).count(),
            "products": db.session.query(Product).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2), "details": details}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "latency_ms": round(elapsed_ms, 2), "error": "Database error"}


def check_media_health() -> dict:
    try:
        root = storage_service.media_root()
        return {"status": "healthy", "details": {"media_root": root}}
    except OSError:
        current_app.logger.exception("Media storage health check failed")
        return {"status": "degraded", "error": "Media storage unavailable"}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable (media storage may be degraded)
    - 503: database unreachable
    """
    database_health = check_database_health()
    media_health = check_media_health()

    if database_health["status"] == "unhealthy":
        overall_status, http_status = "unhealthy", 503
    elif media_health["status"] != "healthy":
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {"database": database_health, "media": media_health},
    }, http_status


@system_bp.get("/media/<bucket>/<path:object_path>")
def media(bucket: str, object_path: str):
    """Serve a stored image (filesystem backend)."""
    try:
        abs_path = storage_service.read(bucket, object_path)
    except storage_service.StorageError:
        return {"error": "Not found"}, 404
    return send_file(abs_path)
