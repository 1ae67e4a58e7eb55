"""
Request timing middleware.

Stamps every response with X-Request-ID and X-Request-Duration-Ms and logs
one line per API request with the acting user and company. Slow requests
are warnings, server errors are errors, and rejections (401 / 403 / 409:
auth, access engine, month gate) are logged at INFO so denied writes can be
traced without enabling DEBUG.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

# Probes hit these every few seconds
_SKIP_LOG = frozenset({"/api/v1/health/ready", "/api/v1/health/live"})

SLOW_THRESHOLD_MS = 1000

_REJECTED = frozenset({401, 403, 409})


def _actor_extra() -> dict:
    ctx = getattr(g, "company_context", None)
    if ctx is None:
        return {"user_id": getattr(g, "jwt_user_id", None), "company_id": None}
    return {"user_id": ctx.user_id, "company_id": ctx.company_id}


def init_request_timing(app: Flask):
    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]

    @app.after_request
    def _log_request(response):
        start = getattr(g, "request_start", None)
        if start is None:
            return response

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.1f}"
        response.headers["X-Request-ID"] = g.request_id

        if request.path in _SKIP_LOG or not request.path.startswith("/api/"):
            return response

        status = response.status_code
        extra = {
            "method": request.method,
            "path": request.path,
            "status": status,
            "duration_ms": duration_ms,
            "remote_addr": request.remote_addr,
            "request_id": g.request_id,
            **_actor_extra(),
        }
        line = "%s %s %d (%.0fms)"
        args = (request.method, request.path, status, duration_ms)
        if duration_ms > SLOW_THRESHOLD_MS:
            logger.warning("Slow request: " + line, *args, extra=extra)
        elif status >= 500:
            logger.error("Server error: " + line, *args, extra=extra)
        elif status in _REJECTED:
            logger.info("Rejected: " + line, *args, extra=extra)
        else:
            logger.debug("Request: " + line, *args, extra=extra)

        return response
