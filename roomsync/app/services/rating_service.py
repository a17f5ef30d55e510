"""
services/rating_service.py — Roommate ratings with a cohabitation gate.

A member may rate another member of the same group once both have been in
the group for at least MIN_COHABITATION_DAYS whole days. Re-rating the same
person in the same group updates the existing rating.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility; services only flush.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from roomsync.app.errors import AppError, ErrorCode
from roomsync.app.models.membership import Membership
from roomsync.app.models.rating import Rating
from roomsync.app.models.user import User
from roomsync.app.services.group_service import require_membership

MIN_COHABITATION_DAYS = 30


# ── Private helpers ────────────────────────────────────────────────────────

def _as_utc(moment: datetime) -> datetime:
    # SQLite hands timestamps back naive; they were written as UTC.
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _days_since(joined_at: datetime, now: datetime) -> int:
    """Whole days elapsed, rounded down."""
    return (_as_utc(now) - _as_utc(joined_at)).days


def _build_rating_dict(rating: Rating) -> dict:
    return {
        "id": rating.id,
        "rated_user_id": rating.rated_user_id,
        "rater_user_id": rating.rater_user_id,
        "rater_display_name": rating.rater.display_name,
        "group_id": rating.group_id,
        "score": rating.score,
        "testimonial": rating.testimonial,
        "time_spent_days": rating.time_spent_days,
        "created_at": rating.created_at.isoformat(),
        "updated_at": rating.updated_at.isoformat() if rating.updated_at else None,
    }


# ── Public service functions ───────────────────────────────────────────────

def rate_user(
        rater_id: int,
        rated_user_id: int,
        score: int,
        session: Session,
        testimonial: str | None = None,
        now: datetime | None = None,
) -> dict:
    """
    Creates or updates the caller's rating of a housemate.

    Raises:
      AppError(CANNOT_RATE_SELF, 400)
      AppError(NOT_IN_GROUP, 404)
      AppError(USERS_NOT_IN_SAME_GROUP, 400)
      AppError(INSUFFICIENT_COHABITATION, 400) — field names who is short

    Returns: {"rating": {...}, "is_update": bool}
    """
    if rater_id == rated_user_id:
        raise AppError(
            ErrorCode.CANNOT_RATE_SELF,
            "You cannot rate yourself.",
            400,
            field="rated_user_id",
        )

    rater_membership = require_membership(rater_id, session)
    group_id = rater_membership.group_id

    rated_membership = session.execute(
        select(Membership).where(
            Membership.user_id == rated_user_id,
            Membership.group_id == group_id,
        )
    ).scalar_one_or_none()
    if rated_membership is None:
        raise AppError(
            ErrorCode.USERS_NOT_IN_SAME_GROUP,
            f"User {rated_user_id} is not in your group.",
            400,
            field="rated_user_id",
        )

    now = now or datetime.now(timezone.utc)
    rated_days = _days_since(rated_membership.joined_at, now)
    rater_days = _days_since(rater_membership.joined_at, now)

    if rated_days < MIN_COHABITATION_DAYS:
        raise AppError(
            ErrorCode.INSUFFICIENT_COHABITATION,
            f"User {rated_user_id} has been in the group for {rated_days} days; "
            f"{MIN_COHABITATION_DAYS} are required before they can be rated.",
            400,
            field="rated_user_id",
        )
    if rater_days < MIN_COHABITATION_DAYS:
        raise AppError(
            ErrorCode.INSUFFICIENT_COHABITATION,
            f"You have been in the group for {rater_days} days; "
            f"{MIN_COHABITATION_DAYS} are required before you can rate others.",
            400,
            field="rater",
        )

    time_spent_days = min(rated_days, rater_days)

    rating = session.execute(
        select(Rating).where(
            Rating.rated_user_id == rated_user_id,
            Rating.rater_user_id == rater_id,
            Rating.group_id == group_id,
        )
    ).scalar_one_or_none()
    is_update = rating is not None

    if rating is None:
        rating = Rating(
            rated_user_id=rated_user_id,
            rater_user_id=rater_id,
            group_id=group_id,
        )
        session.add(rating)
    else:
        rating.updated_at = now

    rating.score = score
    rating.testimonial = testimonial or None
    rating.time_spent_days = time_spent_days
    session.flush()

    return {"rating": _build_rating_dict(rating), "is_update": is_update}


def get_user_ratings(user_id: int, session: Session, group_id: int | None = None) -> dict:
    """
    Ratings received by a user, newest first, with their average score.

    Raises:
      AppError(USER_NOT_FOUND, 404)

    Returns: {"ratings": [...], "average_score": float, "total_ratings": int}
    """
    if session.get(User, user_id) is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} not found.",
            404,
        )

    conditions = [Rating.rated_user_id == user_id]
    if group_id is not None:
        conditions.append(Rating.group_id == group_id)

    ratings = session.execute(
        select(Rating)
        .where(*conditions)
        .order_by(Rating.created_at.desc(), Rating.id.desc())
    ).scalars().all()

    average, total = session.execute(
        select(func.avg(Rating.score), func.count(Rating.id)).where(*conditions)
    ).one()

    return {
        "ratings": [_build_rating_dict(r) for r in ratings],
        "average_score": round(float(average), 1) if average is not None else 0.0,
        "total_ratings": total,
    }
