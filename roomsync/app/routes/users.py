"""
routes/users.py — Profile route handlers.

Endpoints (url_prefix=/api/v1/users):
  POST   /users       → 201  create profile (after external sign-in; no token yet)
  GET    /users/me    → 200  own profile
  PATCH  /users/me    → 200  partial profile update
  DELETE /users/me    → 200  delete account; cascades through the group lifecycle
  GET    /users/:id   → 200  public profile
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from roomsync.app.extensions import db
from roomsync.app.middleware.auth_middleware import require_auth
from roomsync.app.schemas.user_schema import CreateUserSchema, UpdateProfileSchema
from roomsync.app.services import user_service

users_bp = Blueprint("users", __name__)


@users_bp.route("/", methods=["POST"])
def create_user():
    """POST /users — Create a profile."""
    data = CreateUserSchema().load(request.get_json(force=True) or {})
    result = user_service.create_user(
        email=data["email"],
        first_name=data["first_name"],
        last_name=data["last_name"],
        nickname=data.get("nickname"),
        bio=data.get("bio"),
        session=db.session,
    )
    db.session.commit()
    return jsonify({"success": True, "data": result}), 201


@users_bp.route("/me", methods=["GET"])
@require_auth
def me():
    """GET /users/me — Own profile, including the current group name."""
    result = user_service.get_current_user(user_id=g.user_id, session=db.session)
    return jsonify({"success": True, "data": result}), 200


@users_bp.route("/me", methods=["PATCH"])
@require_auth
def update_me():
    """PATCH /users/me — Update first/last name, nickname or bio."""
    data = UpdateProfileSchema().load(request.get_json(force=True) or {})
    result = user_service.update_profile(
        user_id=g.user_id,
        changes=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"success": True, "message": "Profile updated.", "data": result}), 200


@users_bp.route("/me", methods=["DELETE"])
@require_auth
def delete_me():
    """DELETE /users/me — Delete the account and update group membership."""
    result = user_service.delete_account(user_id=g.user_id, session=db.session)
    db.session.commit()
    return jsonify({
        "success": True,
        "message": "Account deleted successfully and group membership updated.",
        "data": result,
    }), 200


@users_bp.route("/<int:user_id>", methods=["GET"])
@require_auth
def get_user(user_id: int):
    """GET /users/:id — Another user's public profile."""
    result = user_service.get_user(user_id=user_id, session=db.session)
    return jsonify({"success": True, "data": result}), 200
