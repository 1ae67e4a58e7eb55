"""
Me Blueprint — the acting user's company context and team.

Endpoints:
    GET /api/v1/me/context     — resolved CompanyContext
    PUT /api/v1/me/company     — switch selected company, returns a fresh token
    GET /api/v1/me/companies   — companies the actor can switch into
    GET /api/v1/me/activity    — the actor's recent activity feed
    GET /api/v1/supervisees    — direct reports in the current company
"""

import logging

from flask import Blueprint, jsonify, request

from planner.blueprints import current_context, json_body, register_error_handlers
from planner.services.activity_log import list_activity
from planner.services.company_context import list_companies, select_company
from planner.services.jwt_service import token_response
from planner.services.supervisor_chain import get_supervisees
from planner.utils.errors import E, api_error
from planner.utils.helpers import db_commit_or_error, parse_int_id

logger = logging.getLogger(__name__)

me_bp = Blueprint("me", __name__, url_prefix="/api/v1")
register_error_handlers(me_bp)


@me_bp.route("/me/context", methods=["GET"])
def get_context():
    return jsonify(current_context().to_dict())


@me_bp.route("/me/company", methods=["PUT"])
def switch_company():
    data = json_body()
    if "company_id" not in data:
        return api_error(E.VALIDATION_REQUIRED, "company_id is required (null for all companies)")
    raw = data["company_id"]
    company_id = None if raw is None else parse_int_id(raw, label="company_id")

    context = select_company(current_context().user_id, company_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({
        "context": context.to_dict(),
        **token_response(context.user_id, context.company_id),
    })


@me_bp.route("/me/companies", methods=["GET"])
def my_companies():
    companies = list_companies(current_context())
    return jsonify({"items": [c.to_dict() for c in companies], "total": len(companies)})


@me_bp.route("/me/activity", methods=["GET"])
def my_activity():
    limit = min(request.args.get("limit", 50, type=int) or 50, 200)
    entries = list_activity(current_context().user_id, limit=limit)
    return jsonify({"items": [e.to_dict() for e in entries]})


@me_bp.route("/supervisees", methods=["GET"])
def supervisees():
    context = current_context()
    if context.company_id is None:
        return jsonify({"items": [], "total": 0})
    users = get_supervisees(context.user_id, context.company_id)
    return jsonify({"items": [u.to_dict() for u in users], "total": len(users)})
