"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in planner/__init__.py with no default
limits; this module applies limits per route category.

Usage:
    from planner.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

READ_RATE_LIMIT = "200/minute"

# Blueprints whose writes serialise on a lock (month opening, supervisor edges)
_WRITE_LIMITED = ("months", "admin")
_READ_LIMITED = ("planning", "feedback", "access", "me")


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Month opening / membership admin:  WRITE_RATE_LIMIT (default 60/minute)
        - Planning, feedback, probes:        200/minute
        - Health check:                      exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    write_limit = app.config.get("WRITE_RATE_LIMIT", "60/minute")
    for bp_name in _WRITE_LIMITED:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(write_limit)(bp)

    for bp_name in _READ_LIMITED:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(READ_RATE_LIMIT)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured — write: %s, read: %s", write_limit, READ_RATE_LIMIT)
