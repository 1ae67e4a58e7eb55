"""
Feedback Blueprint — supervisor annotations on objectives and month plannings.

Endpoints:
    GET /api/v1/feedback?target_type=&target_id=   — feedback on a target (or null)
    PUT /api/v1/feedback                           — upsert {target_type, target_id, comment, rating}
    GET /api/v1/feedback/<id>                      — single feedback row
    DELETE /api/v1/feedback/<id>                   — author, company admin or super-admin
"""

import logging

from flask import Blueprint, jsonify, request

from planner.blueprints import current_context, json_body, register_error_handlers
from planner.services.feedback_service import (
    delete_feedback,
    get_feedback,
    get_feedback_by_id,
    upsert_feedback,
)
from planner.utils.errors import E, api_error
from planner.utils.helpers import db_commit_or_error, parse_int_id

logger = logging.getLogger(__name__)

feedback_bp = Blueprint("feedback", __name__, url_prefix="/api/v1/feedback")
register_error_handlers(feedback_bp)


@feedback_bp.route("", methods=["GET"])
def get_for_target():
    target_type = request.args.get("target_type")
    target_id = request.args.get("target_id")
    if not target_type or not target_id:
        return api_error(E.VALIDATION_REQUIRED, "target_type and target_id are required")
    feedback = get_feedback(current_context(), target_type, parse_int_id(target_id, "target_id"))
    return jsonify({"feedback": feedback.to_dict() if feedback else None})


@feedback_bp.route("", methods=["PUT"])
def put_feedback():
    data = json_body()
    for field in ("target_type", "target_id", "comment"):
        if data.get(field) in (None, ""):
            return api_error(E.VALIDATION_REQUIRED, f"{field} is required")

    feedback, created = upsert_feedback(
        current_context(),
        data["target_type"],
        parse_int_id(data["target_id"], label="target_id"),
        data["comment"],
        data.get("rating"),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(feedback.to_dict()), 201 if created else 200


@feedback_bp.route("/<int:feedback_id>", methods=["GET"])
def get_one(feedback_id):
    return jsonify(get_feedback_by_id(current_context(), feedback_id).to_dict())


@feedback_bp.route("/<int:feedback_id>", methods=["DELETE"])
def delete_one(feedback_id):
    delete_feedback(current_context(), feedback_id)
    err = db_commit_or_error()
    if err:
        return err
    return "", 204
