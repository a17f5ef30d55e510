"""
routes/groups.py — Group lifecycle route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries. No bare SQL.

Endpoints (url_prefix=/api/v1/groups):
  POST   /groups                          → 201  create group
  POST   /groups/join                     → 200  join by code
  GET    /groups/mine                     → 200  caller's group + members
  POST   /groups/owner/:newOwnerId        → 200  transfer ownership (owner only)
  DELETE /groups/members/:memberId        → 200  remove member (owner only)
  POST   /groups/leave                    → 200  {groupDeleted}
  PUT    /groups/members/me/move-in-date  → 200  set own move-in date
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from roomsync.app.extensions import db
from roomsync.app.middleware.auth_middleware import require_auth
from roomsync.app.schemas.group_schema import (
    CreateGroupSchema,
    JoinGroupSchema,
    MoveInDateSchema,
)
from roomsync.app.services import group_service

groups_bp = Blueprint("groups", __name__)


@groups_bp.route("/", methods=["POST"])
@require_auth
def create_group():
    """POST /groups — Create a group. Caller becomes owner and first member."""
    data = CreateGroupSchema().load(request.get_json(force=True) or {})
    result = group_service.create_group(
        actor_id=g.user_id,
        name=data["name"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"success": True, "message": "Group created.", "data": result}), 201


@groups_bp.route("/join", methods=["POST"])
@require_auth
def join_group():
    """POST /groups/join — Join a group by its 4-character code."""
    data = JoinGroupSchema().load(request.get_json(force=True) or {})
    result = group_service.join_group(
        actor_id=g.user_id,
        code=data["group_code"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"success": True, "message": "Joined group.", "data": result}), 200


@groups_bp.route("/mine", methods=["GET"])
@require_auth
def get_my_group():
    """GET /groups/mine — The caller's group with its member list."""
    result = group_service.get_user_group(
        actor_id=g.user_id,
        session=db.session,
    )
    return jsonify({"success": True, "data": result}), 200


@groups_bp.route("/owner/<int:new_owner_id>", methods=["POST"])
@require_auth
def transfer_ownership(new_owner_id: int):
    """POST /groups/owner/:id — Hand ownership to another member."""
    result = group_service.transfer_ownership(
        actor_id=g.user_id,
        new_owner_id=new_owner_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"success": True, "message": "Ownership transferred.", "data": result}), 200


@groups_bp.route("/members/<int:member_id>", methods=["DELETE"])
@require_auth
def remove_member(member_id: int):
    """DELETE /groups/members/:id — Remove a member. Owner only."""
    result = group_service.remove_member(
        actor_id=g.user_id,
        target_user_id=member_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"success": True, "message": "Member removed.", "data": result}), 200


@groups_bp.route("/leave", methods=["POST"])
@require_auth
def leave_group():
    """POST /groups/leave — Leave the caller's group."""
    result = group_service.leave_group(
        actor_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    message = "Left group; the group was deleted." if result["groupDeleted"] else "Left group."
    return jsonify({"success": True, "message": message, "data": result}), 200


@groups_bp.route("/members/me/move-in-date", methods=["PUT"])
@require_auth
def update_move_in_date():
    """PUT /groups/members/me/move-in-date — Record or clear the caller's move-in date."""
    data = MoveInDateSchema().load(request.get_json(force=True) or {})
    result = group_service.update_move_in_date(
        actor_id=g.user_id,
        move_in_date=data["move_in_date"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"success": True, "data": result}), 200
