"""
services/user_service.py — User profile store and account deletion.

Profiles are created after the identity provider has signed the user in;
RoomSync never stores credentials.

Account deletion cascades through the group lifecycle first (owner succession
or group deletion via group_service.detach_user), then removes the user's
ratings and task assignments and clears task authorship.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility; services only flush.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, or_, select, update
from sqlalchemy.orm import Session

from roomsync.app.errors import AppError, ErrorCode
from roomsync.app.models.rating import Rating
from roomsync.app.models.task import Task, TaskAssignment
from roomsync.app.models.user import User
from roomsync.app.services import group_service

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _get_user_or_404(user_id: int, session: Session) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} not found.",
            404,
        )
    return user


def _ensure_nickname_free(nickname: str, session: Session, exclude_user_id: int | None = None) -> None:
    stmt = select(User.id).where(User.nickname == nickname)
    if exclude_user_id is not None:
        stmt = stmt.where(User.id != exclude_user_id)

    if session.execute(stmt).first() is not None:
        raise AppError(
            ErrorCode.DUPLICATE_NICKNAME,
            f"The nickname '{nickname}' is already taken.",
            409,
            field="nickname",
        )


def _build_user_dict(user: User) -> dict:
    """Full profile, for the user themself."""
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "nickname": user.nickname,
        "display_name": user.display_name,
        "bio": user.bio,
        "group_name": user.group_name,
        "created_at": user.created_at.isoformat(),
    }


def _build_public_user_dict(user: User) -> dict:
    """What other users see."""
    return {
        "id": user.id,
        "display_name": user.display_name,
        "bio": user.bio,
        "group_name": user.group_name,
    }


# ── Public service functions ───────────────────────────────────────────────

def create_user(
        email: str,
        first_name: str,
        last_name: str,
        session: Session,
        nickname: str | None = None,
        bio: str | None = None,
) -> dict:
    """
    Creates a profile.

    Raises:
      AppError(DUPLICATE_EMAIL, 409)
      AppError(DUPLICATE_NICKNAME, 409)
    """
    email = email.strip().lower()

    existing_email = session.execute(
        select(User.id).where(User.email == email)
    ).first()
    if existing_email is not None:
        raise AppError(
            ErrorCode.DUPLICATE_EMAIL,
            f"The email address '{email}' is already registered.",
            409,
            field="email",
        )

    if nickname:
        _ensure_nickname_free(nickname, session)

    user = User(
        email=email,
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        nickname=nickname or None,
        bio=bio,
    )
    session.add(user)
    session.flush()

    logger.info("Created user %s", user.id)
    return _build_user_dict(user)


def get_current_user(user_id: int, session: Session) -> dict:
    """
    Returns the authenticated user's own profile.

    Raises:
      AppError(USER_NOT_FOUND, 404) — the token outlived the account.
    """
    return _build_user_dict(_get_user_or_404(user_id, session))


def get_user(user_id: int, session: Session) -> dict:
    return _build_public_user_dict(_get_user_or_404(user_id, session))


def update_profile(user_id: int, changes: dict, session: Session) -> dict:
    """
    Applies a partial profile update. Keys absent from `changes` are left as is;
    nickname and bio may be cleared with None.

    Raises:
      AppError(USER_NOT_FOUND, 404)
      AppError(DUPLICATE_NICKNAME, 409)
    """
    user = _get_user_or_404(user_id, session)

    if changes.get("nickname"):
        _ensure_nickname_free(changes["nickname"], session, exclude_user_id=user_id)

    for field in ("first_name", "last_name"):
        if field in changes:
            setattr(user, field, changes[field].strip())
    for field in ("nickname", "bio"):
        if field in changes:
            setattr(user, field, changes[field] or None)

    session.flush()
    return _build_user_dict(user)


def delete_account(user_id: int, session: Session) -> dict:
    """
    Deletes the user and everything that only makes sense with them.

    Order matters: the group cascade runs first so that an owning user hands
    the group on (or deletes it) before the users row, which groups reference
    with ON DELETE RESTRICT, goes away.

    Raises:
      AppError(USER_NOT_FOUND, 404)

    Returns: {"groupDeleted": bool}
    """
    user = _get_user_or_404(user_id, session)

    result = group_service.detach_user(user_id, session)

    session.execute(
        delete(Rating)
        .where(or_(Rating.rated_user_id == user_id, Rating.rater_user_id == user_id))
        .execution_options(synchronize_session="fetch")
    )
    session.execute(
        delete(TaskAssignment)
        .where(TaskAssignment.user_id == user_id)
        .execution_options(synchronize_session="fetch")
    )
    session.execute(
        update(Task)
        .where(Task.created_by_user_id == user_id)
        .values(created_by_user_id=None)
        .execution_options(synchronize_session="fetch")
    )

    session.delete(user)
    session.flush()

    logger.info("Deleted account %s (group deleted: %s)", user_id, result["groupDeleted"])
    return result
