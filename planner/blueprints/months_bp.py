"""
Months Blueprint — month lifecycle and month planning confirmation.

Endpoints:
    GET  /api/v1/months                      — current + opened + planned months with state
    GET  /api/v1/months/<month>              — state of one month for the actor
    POST /api/v1/months                      — open a future month {month}
    GET  /api/v1/months/<month>/planning     — month planning record (?user_id=)
    POST /api/v1/months/<month>/confirm      — confirm the actor's plan
    POST /api/v1/months/<month>/unconfirm    — admin override {user_id}
"""

import logging

from flask import Blueprint, jsonify, request

from planner.blueprints import current_context, json_body, register_error_handlers
from planner.core.exceptions import NotFoundError
from planner.services.month_gate import list_months, month_status, open_month, validate_month
from planner.services.month_planning_service import (
    confirm_month_planning,
    find_month_planning,
    get_month_planning,
    unconfirm_month_planning,
)
from planner.utils.errors import E, api_error
from planner.utils.helpers import db_commit_or_error, parse_int_id

logger = logging.getLogger(__name__)

months_bp = Blueprint("months", __name__, url_prefix="/api/v1/months")
register_error_handlers(months_bp)


@months_bp.route("", methods=["GET"])
def list_my_months():
    return jsonify({"items": list_months(current_context().user_id)})


@months_bp.route("/<month>", methods=["GET"])
def get_month(month):
    validate_month(month)
    return jsonify(month_status(current_context().user_id, month))


@months_bp.route("", methods=["POST"])
def open_month_view():
    data = json_body()
    month = data.get("month")
    if not month:
        return api_error(E.VALIDATION_REQUIRED, "month is required")

    row, created = open_month(current_context().user_id, month)
    err = db_commit_or_error()
    if err:
        return err
    body = row.to_dict()
    body["state"] = month_status(row.user_id, row.month)["state"]
    return jsonify(body), 201 if created else 200


@months_bp.route("/<month>/planning", methods=["GET"])
def get_planning(month):
    context = current_context()
    user_id = request.args.get("user_id", context.user_id, type=int)
    planning = find_month_planning(user_id, month)
    if planning is None:
        raise NotFoundError(resource="MonthPlanning")
    # Access is evaluated on the record itself so supervisors see their reports
    planning = get_month_planning(context, planning.id)
    return jsonify(planning.to_dict())


@months_bp.route("/<month>/confirm", methods=["POST"])
def confirm(month):
    planning = confirm_month_planning(current_context(), month)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(planning.to_dict())


@months_bp.route("/<month>/unconfirm", methods=["POST"])
def unconfirm(month):
    data = json_body()
    if data.get("user_id") is None:
        return api_error(E.VALIDATION_REQUIRED, "user_id is required")
    user_id = parse_int_id(data["user_id"], label="user_id")
    planning = unconfirm_month_planning(current_context(), user_id, month)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(planning.to_dict())
