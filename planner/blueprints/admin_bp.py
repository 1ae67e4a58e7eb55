"""
Company Admin Blueprint — memberships, roles and supervisor edges.

Endpoints:
    GET /api/v1/companies/<cid>/members                   — members with role + supervisor
    PUT /api/v1/companies/<cid>/users/<uid>/supervisor    — {supervisor_id | null}
    PUT /api/v1/companies/<cid>/users/<uid>/role          — {role}

All write endpoints require the actor to be COMPANY_ADMIN of <cid> (or a
super-admin with <cid> selected).
"""

import logging

from flask import Blueprint, jsonify

from planner.blueprints import current_context, json_body, paginate_query, register_error_handlers
from planner.core.exceptions import ForbiddenError
from planner.models.auth import Role, UserCompany
from planner.services.supervisor_chain import assign_role, assign_supervisor
from planner.utils.errors import E, api_error
from planner.utils.helpers import db_commit_or_error, parse_int_id

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__, url_prefix="/api/v1/companies")
register_error_handlers(admin_bp)


@admin_bp.route("/<int:company_id>/members", methods=["GET"])
def list_members(company_id):
    context = current_context()
    if context.company_id != company_id or context.effective_role not in (
        Role.COMPANY_ADMIN, Role.SUPERADMIN,
    ):
        raise ForbiddenError("Only company admins may list members")
    q = UserCompany.query.filter_by(company_id=company_id).order_by(UserCompany.id)
    items, total = paginate_query(q)
    return jsonify({
        "items": [
            {**m.to_dict(), "user": m.user.to_dict() if m.user else None} for m in items
        ],
        "total": total,
    })


@admin_bp.route("/<int:company_id>/users/<int:user_id>/supervisor", methods=["PUT"])
def put_supervisor(company_id, user_id):
    data = json_body()
    if "supervisor_id" not in data:
        return api_error(E.VALIDATION_REQUIRED, "supervisor_id is required (null to clear)")
    raw = data["supervisor_id"]
    supervisor_id = None if raw is None else parse_int_id(raw, label="supervisor_id")

    membership = assign_supervisor(current_context(), company_id, user_id, supervisor_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(membership.to_dict())


@admin_bp.route("/<int:company_id>/users/<int:user_id>/role", methods=["PUT"])
def put_role(company_id, user_id):
    data = json_body()
    if not data.get("role"):
        return api_error(E.VALIDATION_REQUIRED, "role is required")

    membership = assign_role(current_context(), company_id, user_id, data["role"])
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(membership.to_dict())
