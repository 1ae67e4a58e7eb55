"""
Company Context Middleware — builds the per-request CompanyContext.

Chain order:
  jwt_auth.py  →  company_context.py  →  route handler

When a JWT-authenticated user makes a request:
  1. g.jwt_user_id / g.jwt_company_id are already set by jwt_auth
  2. This middleware loads the user and rejects unknown or inactive actors
  3. Sets g.current_user and g.company_context for the service layer

Unauthenticated API calls are rejected with 401. The context is resolved
once here and passed explicitly into services; services never read ``g``
for authorization decisions.
"""

import logging

from flask import g, request

from planner.models import db
from planner.models.auth import User
from planner.services.company_context import resolve_context
from planner.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# Paths that skip company context (unauthenticated paths only)
CONTEXT_SKIP_PREFIXES = (
    "/api/v1/health",
    "/static/",
)


def init_company_context(app):
    """Register company context middleware as a before_request hook."""

    @app.before_request
    def _company_context():
        g.current_user = None
        g.company_context = None

        if not request.path.startswith("/api/v1/"):
            return None
        for prefix in CONTEXT_SKIP_PREFIXES:
            if request.path.startswith(prefix):
                return None
        if request.method == "OPTIONS":
            return None

        user_id = getattr(g, "jwt_user_id", None)
        if user_id is None:
            return api_error(E.UNAUTHENTICATED, "Authentication required")

        user = db.session.get(User, user_id)
        if user is None:
            logger.warning("JWT subject %s not found in DB", user_id)
            return api_error(E.UNAUTHENTICATED, "Authentication required")
        if not user.is_active:
            logger.warning("Inactive user %s rejected", user_id)
            return api_error(E.FORBIDDEN, "User account is not active")

        g.current_user = user
        g.company_context = resolve_context(
            user, selected_company_id=getattr(g, "jwt_company_id", None)
        )
        return None

    logger.info("Company context middleware installed")
