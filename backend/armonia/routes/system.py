# backend/armonia/routes/system.py
"""
System health and version endpoints.

Provides a database health check and version information for deployment
debugging.
"""

import sys
import time

from flask import Blueprint, current_app

from ..extensions import db
from ..models import CashRegister, Product, REGISTER_OPEN
from armonia.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        product_count = db.session.query(Product).count()
        open_registers = db.session.query(CashRegister).filter_by(status=REGISTER_OPEN).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "products": product_count,
                "open_registers": open_registers,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: database reachable
    - 503: database unhealthy
    """
    database_health = check_database_health()
    http_status = 200 if database_health["status"] == "healthy" else 503

    return {
        "status": database_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {
            "database": database_health,
        }
    }, http_status


@system_bp.get("/version")
def version():
    """
    Version endpoint for deployment debugging.

    Does NOT expose secret keys, credentials or internal paths.
    """
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }
