# backend/aruspos/routes/system.py
"""
System health and version endpoints.
"""

import os
import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Business, Branch
from aruspos.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        business_count = db.session.query(Business).count()
        branch_count = db.session.query(Branch).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"businesses": business_count, "branches": branch_count},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    body = {
        "status": "ok" if healthy else "degraded",
        "time": to_utc_z(utcnow()),
        "database": database,
    }
    return body, 200 if healthy else 503


@system_bp.get("/api/version")
def version():
    return {
        "name": "aruspos",
        "version": os.environ.get("APP_VERSION", "0.1.0"),
        "commit": os.environ.get("GIT_COMMIT"),
    }
