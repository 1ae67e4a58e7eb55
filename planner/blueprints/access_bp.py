"""
Access Probe Blueprint — lets the UI ask the engine before rendering controls.

Endpoints:
    GET /api/v1/access/<kind>/<id>  — {can_access, can_modify, decision}

``decision`` explains the modify outcome so the client can tell
"this period is read-only" (month_frozen / month_locked) apart from
"you don't have permission" (forbidden).
"""

import logging

from flask import Blueprint, jsonify

from planner.blueprints import current_context, register_error_handlers
from planner.services.access import probe_access

logger = logging.getLogger(__name__)

access_bp = Blueprint("access", __name__, url_prefix="/api/v1/access")
register_error_handlers(access_bp)


@access_bp.route("/<kind>/<object_id>", methods=["GET"])
def probe(kind, object_id):
    context = current_context()
    result = probe_access(kind, object_id, context.user_id, None, context)
    logger.debug(
        "Access probe %s/%s by user %s: %s", kind, object_id, context.user_id,
        result.decision.value,
        extra={"object_kind": kind, "object_id": object_id, "decision": result.decision.value},
    )
    return jsonify(result.to_dict())
