"""
Health check blueprint.

Endpoints:
    GET /api/v1/health/ready   — simple 200 for load balancers
    GET /api/v1/health/live    — DB latency, rate-limit storage, month-gate clock
    GET /api/v1/health/schema  — model tables vs. live tables (migration drift)

No authentication; the company context middleware skips this prefix.
"""

import logging
import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy import inspect

from planner.models import db
from planner.services.month_gate import current_month

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("/ready", methods=["GET"])
def ready():
    """Simple readiness probe — always 200 if app is running."""
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    checks = {}
    overall = True

    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        checks["database"] = {"status": "ok", "latency_ms": round(db_ms, 1)}
    except Exception as exc:
        checks["database"] = {"status": "error", "detail": str(exc)}
        overall = False
        logger.error("Health check — database failed: %s", exc)

    storage = current_app.config.get("REDIS_URL", "memory://")
    checks["rate_limit_storage"] = {"status": "ok", "backend": storage.split("://", 1)[0]}

    # Every freeze / lock decision hangs off this value
    checks["month_gate"] = {
        "status": "ok",
        "current_month": current_month(),
        "timezone": current_app.config.get("MONTH_GATE_TIMEZONE", "UTC"),
    }

    status_code = 200 if overall else 503
    return jsonify({"status": "ok" if overall else "degraded", "checks": checks}), status_code


@health_bp.route("/schema", methods=["GET"])
def schema():
    """Report model tables or columns missing from the live database."""
    try:
        inspector = inspect(db.engine)
        live_tables = set(inspector.get_table_names())
    except Exception as exc:
        logger.error("Schema check failed: %s", exc)
        return jsonify({"status": "error", "detail": str(exc)}), 503

    report = {}
    for table in db.metadata.sorted_tables:
        if table.name not in live_tables:
            report[table.name] = {"status": "missing_table"}
            continue
        live_cols = {c["name"] for c in inspector.get_columns(table.name)}
        missing = sorted({c.name for c in table.columns} - live_cols)
        report[table.name] = (
            {"status": "missing_columns", "missing": missing} if missing else {"status": "ok"}
        )

    drift = any(v["status"] != "ok" for v in report.values())
    return jsonify({"status": "drift" if drift else "ok", "tables": report}), 200
