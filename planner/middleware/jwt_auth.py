"""
JWT Auth Middleware — Parses JWT from Authorization header, sets g.jwt_*.

Authentication itself happens upstream; this hook only trusts a signed
bearer token and exposes its claims:

    Authorization: Bearer <token>  →  g.jwt_user_id, g.jwt_company_id

Invalid or expired tokens leave the claims unset; the company context
middleware turns that into a 401.
"""

import logging

import jwt as pyjwt
from flask import g, request

from planner.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
    "/static/",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.jwt_user_id = None
        g.jwt_company_id = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]

        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            logger.info("Expired access token on %s", path)
            return
        except pyjwt.InvalidTokenError:
            logger.warning("Invalid access token on %s", path)
            return

        try:
            g.jwt_user_id = int(payload.get("sub"))
        except (TypeError, ValueError):
            logger.warning("Access token with malformed subject on %s", path)
            return
        company_id = payload.get("company_id")
        g.jwt_company_id = int(company_id) if company_id is not None else None
