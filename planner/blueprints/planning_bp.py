"""
Planning Blueprint — objectives, sub-tasks, activities, meetings, key people.

Endpoints:
  Objective:  GET/POST /objectives, GET/PUT/DELETE /objectives/<id>
              POST /objectives/<id>/confirm
  SubTask:    GET/POST /objectives/<id>/subtasks, GET/PUT/DELETE /subtasks/<id>
  Activity:   GET/POST /subtasks/<id>/activities, GET/PUT/DELETE /activities/<id>
  Meeting:    GET/POST /objectives/<id>/meetings, GET/PUT/DELETE /meetings/<id>
  Person:     GET/POST /people, GET/PUT/DELETE /people/<id>
  Links:      GET /objectives/<id>/people, PUT/DELETE /objectives/<id>/people/<pid>

Every route is guarded by the access engine inside the service layer.
"""

import logging

from flask import Blueprint, jsonify, request

from planner.blueprints import current_context, json_body, paginate_query, register_error_handlers
from planner.services import planning_service as svc
from planner.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

planning_bp = Blueprint("planning", __name__, url_prefix="/api/v1")
register_error_handlers(planning_bp)


def _committed(payload, status=200):
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(payload), status


def _deleted():
    err = db_commit_or_error()
    if err:
        return err
    return "", 204


# ═════════════════════════════════════════════════════════════════════════
# Objectives
# ═════════════════════════════════════════════════════════════════════════


@planning_bp.route("/objectives", methods=["GET"])
def list_objectives():
    q = svc.list_objectives(
        current_context(),
        user_id=request.args.get("user_id", type=int),
        month=request.args.get("month"),
    )
    items, total = paginate_query(q)
    return jsonify({"items": [o.to_dict() for o in items], "total": total})


@planning_bp.route("/objectives", methods=["POST"])
def create_objective():
    objective = svc.create_objective(current_context(), json_body())
    return _committed(objective.to_dict(), 201)


@planning_bp.route("/objectives/<int:objective_id>", methods=["GET"])
def get_objective(objective_id):
    return jsonify(svc.get_objective(current_context(), objective_id).to_dict())


@planning_bp.route("/objectives/<int:objective_id>", methods=["PUT"])
def update_objective(objective_id):
    objective = svc.update_objective(current_context(), objective_id, json_body())
    return _committed(objective.to_dict())


@planning_bp.route("/objectives/<int:objective_id>", methods=["DELETE"])
def delete_objective(objective_id):
    svc.delete_objective(current_context(), objective_id)
    return _deleted()


@planning_bp.route("/objectives/<int:objective_id>/confirm", methods=["POST"])
def confirm_objective(objective_id):
    objective = svc.confirm_objective(current_context(), objective_id)
    return _committed(objective.to_dict())


# ═════════════════════════════════════════════════════════════════════════
# Sub-tasks
# ═════════════════════════════════════════════════════════════════════════


@planning_bp.route("/objectives/<int:objective_id>/subtasks", methods=["GET"])
def list_subtasks(objective_id):
    items = svc.list_subtasks(current_context(), objective_id)
    return jsonify({"items": [s.to_dict() for s in items], "total": len(items)})


@planning_bp.route("/objectives/<int:objective_id>/subtasks", methods=["POST"])
def create_subtask(objective_id):
    subtask = svc.create_subtask(current_context(), objective_id, json_body())
    return _committed(subtask.to_dict(), 201)


@planning_bp.route("/subtasks/<int:subtask_id>", methods=["GET"])
def get_subtask(subtask_id):
    return jsonify(svc.get_subtask(current_context(), subtask_id).to_dict())


@planning_bp.route("/subtasks/<int:subtask_id>", methods=["PUT"])
def update_subtask(subtask_id):
    subtask = svc.update_subtask(current_context(), subtask_id, json_body())
    return _committed(subtask.to_dict())


@planning_bp.route("/subtasks/<int:subtask_id>", methods=["DELETE"])
def delete_subtask(subtask_id):
    svc.delete_subtask(current_context(), subtask_id)
    return _deleted()


# ═════════════════════════════════════════════════════════════════════════
# Activities
# ═════════════════════════════════════════════════════════════════════════


@planning_bp.route("/subtasks/<int:subtask_id>/activities", methods=["GET"])
def list_activities(subtask_id):
    items = svc.list_activities(current_context(), subtask_id)
    return jsonify({"items": [a.to_dict() for a in items], "total": len(items)})


@planning_bp.route("/subtasks/<int:subtask_id>/activities", methods=["POST"])
def create_activity(subtask_id):
    activity = svc.create_activity(current_context(), subtask_id, json_body())
    return _committed(activity.to_dict(), 201)


@planning_bp.route("/activities/<int:activity_id>", methods=["GET"])
def get_activity(activity_id):
    return jsonify(svc.get_activity(current_context(), activity_id).to_dict())


@planning_bp.route("/activities/<int:activity_id>", methods=["PUT"])
def update_activity(activity_id):
    activity = svc.update_activity(current_context(), activity_id, json_body())
    return _committed(activity.to_dict())


@planning_bp.route("/activities/<int:activity_id>", methods=["DELETE"])
def delete_activity(activity_id):
    svc.delete_activity(current_context(), activity_id)
    return _deleted()


# ═════════════════════════════════════════════════════════════════════════
# Meetings
# ═════════════════════════════════════════════════════════════════════════


@planning_bp.route("/objectives/<int:objective_id>/meetings", methods=["GET"])
def list_meetings(objective_id):
    items = svc.list_meetings(current_context(), objective_id)
    return jsonify({"items": [m.to_dict() for m in items], "total": len(items)})


@planning_bp.route("/objectives/<int:objective_id>/meetings", methods=["POST"])
def create_meeting(objective_id):
    meeting = svc.create_meeting(current_context(), objective_id, json_body())
    return _committed(meeting.to_dict(), 201)


@planning_bp.route("/meetings/<int:meeting_id>", methods=["GET"])
def get_meeting(meeting_id):
    return jsonify(svc.get_meeting(current_context(), meeting_id).to_dict())


@planning_bp.route("/meetings/<int:meeting_id>", methods=["PUT"])
def update_meeting(meeting_id):
    meeting = svc.update_meeting(current_context(), meeting_id, json_body())
    return _committed(meeting.to_dict())


@planning_bp.route("/meetings/<int:meeting_id>", methods=["DELETE"])
def delete_meeting(meeting_id):
    svc.delete_meeting(current_context(), meeting_id)
    return _deleted()


# ═════════════════════════════════════════════════════════════════════════
# Key people
# ═════════════════════════════════════════════════════════════════════════


@planning_bp.route("/people", methods=["GET"])
def list_people():
    q = svc.list_people(current_context(), user_id=request.args.get("user_id", type=int))
    items, total = paginate_query(q)
    return jsonify({"items": [p.to_dict() for p in items], "total": total})


@planning_bp.route("/people", methods=["POST"])
def create_person():
    person = svc.create_person(current_context(), json_body())
    return _committed(person.to_dict(), 201)


@planning_bp.route("/people/<int:person_id>", methods=["GET"])
def get_person(person_id):
    return jsonify(svc.get_person(current_context(), person_id).to_dict())


@planning_bp.route("/people/<int:person_id>", methods=["PUT"])
def update_person(person_id):
    person = svc.update_person(current_context(), person_id, json_body())
    return _committed(person.to_dict())


@planning_bp.route("/people/<int:person_id>", methods=["DELETE"])
def delete_person(person_id):
    svc.delete_person(current_context(), person_id)
    return _deleted()


@planning_bp.route("/objectives/<int:objective_id>/people", methods=["GET"])
def list_objective_people(objective_id):
    items = svc.list_objective_people(current_context(), objective_id)
    return jsonify({"items": [p.to_dict() for p in items], "total": len(items)})


@planning_bp.route("/objectives/<int:objective_id>/people/<int:person_id>", methods=["PUT"])
def link_person(objective_id, person_id):
    person, created = svc.link_person(current_context(), objective_id, person_id)
    return _committed(person.to_dict(), 201 if created else 200)


@planning_bp.route("/objectives/<int:objective_id>/people/<int:person_id>", methods=["DELETE"])
def unlink_person(objective_id, person_id):
    svc.unlink_person(current_context(), objective_id, person_id)
    return _deleted()
