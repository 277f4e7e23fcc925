"""
Health check blueprint.

Endpoints:
    GET /api/v1/health/ready  simple 200 for load balancers
    GET /api/v1/health/live   database reachability and seeded categories
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from template_governance.models import db
from template_governance.models.template import TEMPLATE_CATEGORIES
from template_governance.services.audit_logger import get_audit_logger
from template_governance.services.version_registry import VersionRegistry

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("/ready", methods=["GET"])
def ready():
    """Simple readiness probe always 200 if app is running."""
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Detailed liveness check with dependency status."""
    checks = {}
    overall = True

    # ── Database ─────────────────────────────────────────────────────
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        checks["database"] = {"status": "ok", "latency_ms": round(db_ms, 1)}
    except Exception as exc:
        checks["database"] = {"status": "error", "detail": str(exc)}
        overall = False
        logger.error("Health check: database failed: %s", exc)

    # ── Registry ─────────────────────────────────────────────────────
    if overall:
        seeded = {d.category for d in VersionRegistry().list_defaults()}
        missing = sorted(TEMPLATE_CATEGORIES - seeded)
        checks["registry"] = {"status": "ok" if not missing else "degraded", "unseeded_categories": missing}

    # ── Audit buffer ─────────────────────────────────────────────────
    buffered = len(get_audit_logger().pending)
    checks["audit"] = {"status": "ok" if not buffered else "degraded", "buffered_events": buffered}

    checks["app"] = {
        "name": "Template Version Governance",
        "debug": current_app.debug,
        "testing": current_app.testing,
    }
    return jsonify({"status": "ok" if overall else "error", "checks": checks}), 200 if overall else 503
