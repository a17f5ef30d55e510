"""
routes/ratings.py — Roommate rating route handlers.

Endpoints (url_prefix=/api/v1/ratings):
  POST   /ratings             → 201 created / 200 updated
  GET    /ratings/users/:id   → 200  ratings received, optional ?group_id=
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from roomsync.app.extensions import db
from roomsync.app.middleware.auth_middleware import require_auth
from roomsync.app.schemas.rating_schema import RateUserSchema, RatingFilterSchema
from roomsync.app.services import rating_service

ratings_bp = Blueprint("ratings", __name__)


@ratings_bp.route("/", methods=["POST"])
@require_auth
def rate_user():
    """POST /ratings — Rate a housemate after 30 days together."""
    data = RateUserSchema().load(request.get_json(force=True) or {})
    result = rating_service.rate_user(
        rater_id=g.user_id,
        rated_user_id=data["rated_user_id"],
        score=data["score"],
        testimonial=data.get("testimonial"),
        session=db.session,
    )
    db.session.commit()
    status = 200 if result["is_update"] else 201
    return jsonify({"success": True, "data": result}), status


@ratings_bp.route("/users/<int:user_id>", methods=["GET"])
@require_auth
def get_user_ratings(user_id: int):
    """GET /ratings/users/:id — Ratings a user has received."""
    filters = RatingFilterSchema().load(request.args)
    result = rating_service.get_user_ratings(
        user_id=user_id,
        group_id=filters["group_id"],
        session=db.session,
    )
    return jsonify({"success": True, "data": result}), 200
