# backend/zenstyle/routes/system.py
"""
System health and version endpoints.

Health checks the database and the salon configuration (working hours).
"""

import sys
import time

from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import AppSetting, Client, Service, Staff
from ..services.settings_service import WORKING_HOURS_KEY
from zenstyle.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        client_count = db.session.query(Client).count()
        staff_count = db.session.query(Staff).filter(Staff.is_active.is_(True)).count()
        service_count = db.session.query(Service).filter(Service.is_active.is_(True)).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "clients": client_count,
                "active_staff": staff_count,
                "active_services": service_count,
            }
        }
    except SQLAlchemyError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_configuration_health() -> dict:
    """Working hours fall back to defaults when never saved; report that as degraded."""
    try:
        saved = db.session.query(AppSetting).filter_by(key=WORKING_HOURS_KEY).first() is not None
    except SQLAlchemyError:
        current_app.logger.exception("Configuration health check failed")
        return {"status": "unhealthy", "error": "Configuration error"}

    if not saved:
        return {"status": "degraded", "warning": "Working hours not configured, using defaults"}
    return {"status": "healthy"}


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    config_health = check_configuration_health()

    all_checks = [database_health, config_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status = "unhealthy"
        http_status = 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status = "degraded"
        http_status = 200  # Degraded is still operational
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "configuration": config_health,
        }
    }

    return response, http_status


@system_bp.get("/version")
def version():
    """Non-sensitive deployment information."""
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }
