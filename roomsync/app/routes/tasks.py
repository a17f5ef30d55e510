"""
routes/tasks.py — Household task route handlers.

Endpoints (url_prefix=/api/v1/tasks):
  POST   /tasks              → 201  create task in caller's group
  GET    /tasks              → 200  group tasks, newest first
  GET    /tasks/mine         → 200  caller's tasks this week
  GET    /tasks/week         → 200  tasks for a week, ?start=YYYY-MM-DD
  GET    /tasks/date         → 200  tasks for a day, ?date=YYYY-MM-DD
  POST   /tasks/assign-weekly → 200 random assignment of this week's tasks
  PUT    /tasks/:id/status   → 200  update own assignment status
  POST   /tasks/:id/assign   → 200  replace this week's assignees
  DELETE /tasks/:id          → 200  delete task (creator or owner)
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from roomsync.app.extensions import db
from roomsync.app.middleware.auth_middleware import require_auth
from roomsync.app.schemas.task_schema import (
    AssignTaskSchema,
    CreateTaskSchema,
    TaskDateQuerySchema,
    TaskWeekQuerySchema,
    UpdateTaskStatusSchema,
)
from roomsync.app.services import task_service

tasks_bp = Blueprint("tasks", __name__)


@tasks_bp.route("/", methods=["POST"])
@require_auth
def create_task():
    data = CreateTaskSchema().load(request.get_json(force=True) or {})
    result = task_service.create_task(
        actor_id=g.user_id,
        name=data["name"],
        difficulty=data["difficulty"],
        recurrence=data["recurrence"],
        required_people=data["required_people"],
        description=data.get("description"),
        deadline=data.get("deadline"),
        assigned_user_ids=data.get("assigned_user_ids"),
        session=db.session,
    )
    db.session.commit()
    return jsonify({"success": True, "data": result}), 201


@tasks_bp.route("/", methods=["GET"])
@require_auth
def list_group_tasks():
    result = task_service.list_group_tasks(actor_id=g.user_id, session=db.session)
    return jsonify({"success": True, "data": result}), 200


@tasks_bp.route("/mine", methods=["GET"])
@require_auth
def list_my_tasks():
    result = task_service.list_my_tasks(actor_id=g.user_id, session=db.session)
    return jsonify({"success": True, "data": result}), 200


@tasks_bp.route("/week", methods=["GET"])
@require_auth
def list_tasks_for_week():
    query = TaskWeekQuerySchema().load(request.args)
    result = task_service.list_tasks_for_week(
        actor_id=g.user_id,
        week_start=query["start"],
        session=db.session,
    )
    return jsonify({"success": True, "data": result}), 200


@tasks_bp.route("/date", methods=["GET"])
@require_auth
def list_tasks_for_date():
    query = TaskDateQuerySchema().load(request.args)
    result = task_service.list_tasks_for_date(
        actor_id=g.user_id,
        day=query["date"],
        session=db.session,
    )
    return jsonify({"success": True, "data": result}), 200


@tasks_bp.route("/assign-weekly", methods=["POST"])
@require_auth
def assign_weekly_tasks():
    """POST /tasks/assign-weekly — Randomly assign this week's open tasks."""
    result = task_service.assign_weekly_tasks(actor_id=g.user_id, session=db.session)
    db.session.commit()
    return jsonify({"success": True, "data": result}), 200


@tasks_bp.route("/<int:task_id>/status", methods=["PUT"])
@require_auth
def update_task_status(task_id: int):
    data = UpdateTaskStatusSchema().load(request.get_json(force=True) or {})
    result = task_service.update_assignment_status(
        actor_id=g.user_id,
        task_id=task_id,
        status=data["status"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"success": True, "data": result}), 200


@tasks_bp.route("/<int:task_id>/assign", methods=["POST"])
@require_auth
def assign_task(task_id: int):
    data = AssignTaskSchema().load(request.get_json(force=True) or {})
    result = task_service.assign_task(
        actor_id=g.user_id,
        task_id=task_id,
        user_ids=data["user_ids"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"success": True, "data": result}), 200


@tasks_bp.route("/<int:task_id>", methods=["DELETE"])
@require_auth
def delete_task(task_id: int):
    task_service.delete_task(actor_id=g.user_id, task_id=task_id, session=db.session)
    db.session.commit()
    return jsonify({
        "success": True,
        "message": "Task deleted.",
        "data": {"deleted": True, "task_id": task_id},
    }), 200
