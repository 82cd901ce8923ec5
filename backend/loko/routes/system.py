# backend/loko/routes/system.py
"""
System health and version endpoints.

/health runs each check in turn and answers 503 as soon as any of them is
unhealthy; /version is for deployment debugging.
"""

import sys
import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Delivery, DeliveryLog, SessionToken, User
from ..services.lifecycle_service import TERMINAL_STATUSES
from loko.time_utils import utcnow

system_bp = Blueprint("system", __name__)

API_VERSION = "1.0.0"


def _timed_check(name: str, probe) -> dict:
    """Run probe() and wrap its details with a status and latency."""
    start_time = time.time()
    try:
        details = probe()
        status = {"status": "healthy", "details": details}
    except Exception:
        db.session.rollback()
        current_app.logger.exception("%s health check failed", name)
        status = {"status": "unhealthy", "error": f"{name} error"}
    status["latency_ms"] = round((time.time() - start_time) * 1000, 2)
    return status


def _database_probe() -> dict:
    return {
        "users": db.session.query(User).count(),
        "deliveries": db.session.query(Delivery).count(),
        "open_deliveries": db.session.query(Delivery).filter(
            Delivery.status.notin_(TERMINAL_STATUSES)
        ).count(),
        "log_entries": db.session.query(DeliveryLog).count(),
    }


def _session_probe() -> dict:
    active = db.session.query(SessionToken).filter_by(is_revoked=False)
    return {
        "active_sessions": active.count(),
        # Expired but never revoked; candidates for cleanup
        "expired_pending_cleanup": active.filter(SessionToken.expires_at < utcnow()).count(),
    }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: All systems healthy
    - 503: One or more systems unhealthy
    """
    start_time = time.time()

    checks = {
        "database": _timed_check("Database", _database_probe),
        "session_service": _timed_check("Session service", _session_probe),
    }
    healthy = all(check["status"] == "healthy" for check in checks.values())

    response = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }
    return response, 200 if healthy else 503


@system_bp.get("/version")
def version():
    """
    Version endpoint for deployment debugging.

    Does NOT expose secret keys, database credentials or internal paths.
    """
    return {
        "api_version": API_VERSION,
        "environment": "development" if current_app.debug else "production",
        "python_version": sys.version.split()[0],
        "strict_transitions": bool(current_app.config.get("DELIVERY_STRICT_TRANSITIONS", True)),
        "server_time": utcnow().isoformat() + "Z",
    }
