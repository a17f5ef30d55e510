"""
services/group_service.py — Household group lifecycle.

Invariants enforced here (re-checked before every group-mutating flush):
  1. A user belongs to at most one group (also: UNIQUE memberships.user_id).
  2. The owner is always a current member.
  3. 1 <= members <= 8 for any persisted group; an emptied group is deleted.
  4. Group codes are unique (also: UNIQUE groups.code).
  5. Ownership only ever moves to an existing member.

Concurrency:
  Mutations load the group row with SELECT ... FOR UPDATE and always write to
  it (member_count or owner_user_id), which bumps the mapper's version column.
  A racing writer that slipped past the lock (or a backend without row locks)
  fails at flush with StaleDataError; the app maps it to 409.

Owner succession:
  When the owner departs, ownership moves to the remaining member with the
  earliest joined_at. Equal timestamps fall back to membership id, i.e. join
  order.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility; services only flush.
"""

from __future__ import annotations

import logging
import secrets
import string
from datetime import date

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from roomsync.app.errors import AppError, ErrorCode
from roomsync.app.models.group import MAX_GROUP_MEMBERS, Group
from roomsync.app.models.membership import Membership
from roomsync.app.models.rating import Rating
from roomsync.app.models.task import AssignmentStatus, Task, TaskAssignment
from roomsync.app.models.user import User

logger = logging.getLogger(__name__)

GROUP_CODE_LENGTH = 4
GROUP_CODE_ALPHABET = string.ascii_uppercase + string.digits


# ── Private helpers ────────────────────────────────────────────────────────

def _get_user_or_404(user_id: int, session: Session) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} does not exist.",
            404,
        )
    return user


def _get_membership(user_id: int, session: Session) -> Membership | None:
    return session.execute(
        select(Membership).where(Membership.user_id == user_id)
    ).scalar_one_or_none()


def _lock_group(group_id: int, session: Session) -> Group:
    """
    Loads the group row FOR UPDATE, refreshing any stale identity-map copy
    so the version column reflects what is in the database now.
    """
    group = session.execute(
        select(Group)
        .where(Group.id == group_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()

    # The group vanished between reading the membership and locking the row.
    if group is None:
        raise AppError(
            ErrorCode.GROUP_NOT_FOUND,
            f"Group {group_id} does not exist.",
            404,
        )
    return group


def _list_memberships(group_id: int, session: Session) -> list[Membership]:
    """Members in succession order: earliest joined_at first, then join sequence."""
    return list(session.execute(
        select(Membership)
        .where(Membership.group_id == group_id)
        .order_by(Membership.joined_at.asc(), Membership.id.asc())
    ).scalars().all())


def _require_owner(group: Group, user_id: int) -> None:
    if group.owner_user_id != user_id:
        raise AppError(
            ErrorCode.NOT_OWNER,
            "Only the group owner may do this.",
            403,
        )


def _generate_group_code(session: Session) -> str:
    """
    Draws random 4-character codes until one is free.

    36**4 codes make a collision on the first draw very unlikely; the UNIQUE
    constraint catches the remaining race between two creators.
    """
    while True:
        code = "".join(
            secrets.choice(GROUP_CODE_ALPHABET) for _ in range(GROUP_CODE_LENGTH)
        )
        taken = session.execute(
            select(Group.id).where(Group.code == code)
        ).first()
        if taken is None:
            return code


def _pick_successor(memberships: list[Membership]) -> Membership | None:
    """Earliest joiner; membership id breaks joined_at ties."""
    if not memberships:
        return None
    return min(memberships, key=lambda m: (m.joined_at, m.id))


def _check_invariants(group: Group, memberships: list[Membership]) -> None:
    member_ids = {m.user_id for m in memberships}

    if (
        not 1 <= len(memberships) <= MAX_GROUP_MEMBERS
        or group.member_count != len(memberships)
        or group.owner_user_id not in member_ids
    ):
        logger.error(
            "Group %s failed invariant check: owner=%s member_count=%s members=%s",
            group.id,
            group.owner_user_id,
            group.member_count,
            sorted(member_ids),
        )
        raise AppError(
            ErrorCode.INTERNAL_ERROR,
            "The group ended up in an inconsistent state; the change was not saved.",
            500,
        )


def _drop_open_assignments(group_id: int, user_id: int, session: Session) -> None:
    """Removes a departing member's unfinished assignments on the group's tasks."""
    session.execute(
        delete(TaskAssignment)
        .where(
            TaskAssignment.user_id == user_id,
            TaskAssignment.status != AssignmentStatus.COMPLETED,
            TaskAssignment.task_id.in_(
                select(Task.id).where(Task.group_id == group_id)
            ),
        )
        .execution_options(synchronize_session="fetch")
    )


def _delete_group(group: Group, session: Session) -> None:
    """Deletes an emptied group with its tasks. Ratings outlive the group."""
    task_ids = select(Task.id).where(Task.group_id == group.id)

    session.execute(
        delete(TaskAssignment)
        .where(TaskAssignment.task_id.in_(task_ids))
        .execution_options(synchronize_session="fetch")
    )
    session.execute(
        delete(Task)
        .where(Task.group_id == group.id)
        .execution_options(synchronize_session="fetch")
    )
    session.execute(
        update(Rating)
        .where(Rating.group_id == group.id)
        .values(group_id=None)
        .execution_options(synchronize_session="fetch")
    )

    session.delete(group)
    session.flush()


def _depart(membership: Membership, session: Session) -> bool:
    """
    Removes a member and applies owner succession.

    Shared by leave_group and detach_user. Returns True when the departing
    user was the last member and the group was deleted.
    """
    group = _lock_group(membership.group_id, session)
    user_id = membership.user_id
    was_owner = group.owner_user_id == user_id

    _drop_open_assignments(group.id, user_id, session)
    session.delete(membership)
    session.flush()

    user = session.get(User, user_id)
    if user is not None:
        user.group_name = None

    remaining = _list_memberships(group.id, session)

    if not remaining:
        group_id, code = group.id, group.code
        _delete_group(group, session)
        logger.info("Group %s (%s) deleted after its last member %s left", group_id, code, user_id)
        return True

    group.member_count = len(remaining)

    if was_owner:
        successor = _pick_successor(remaining)
        group.owner_user_id = successor.user_id
        successor.user.group_name = group.name
        logger.info(
            "Ownership of group %s passed from %s to %s",
            group.id,
            user_id,
            successor.user_id,
        )

    _check_invariants(group, remaining)
    session.flush()
    logger.info("User %s left group %s", user_id, group.id)
    return False


def _build_group_dict(group: Group, memberships: list[Membership]) -> dict:
    """Serialises a Group with its member list to a plain dict."""
    return {
        "id": group.id,
        "name": group.name,
        "code": group.code,
        "owner_user_id": group.owner_user_id,
        "member_count": group.member_count,
        "is_full": group.is_full,
        "created_at": group.created_at.isoformat(),
        "members": [
            {
                "user_id": m.user_id,
                "display_name": m.user.display_name,
                "email": m.user.email,
                "joined_at": m.joined_at.isoformat(),
                "move_in_date": m.move_in_date.isoformat() if m.move_in_date else None,
                "is_owner": m.user_id == group.owner_user_id,
            }
            for m in memberships
        ],
    }


# ── Shared with other services ─────────────────────────────────────────────

def require_membership(user_id: int, session: Session) -> Membership:
    """Returns the user's membership or raises NOT_IN_GROUP (404)."""
    membership = _get_membership(user_id, session)
    if membership is None:
        raise AppError(
            ErrorCode.NOT_IN_GROUP,
            "You are not a member of any group.",
            404,
        )
    return membership


# ── Public service functions ───────────────────────────────────────────────

def create_group(actor_id: int, name: str, session: Session) -> dict:
    """
    Creates a new group. The creator becomes the owner and only member.

    Raises:
      AppError(USER_NOT_FOUND, 404)
      AppError(ALREADY_IN_GROUP, 400) — the creator already has a group
    """
    user = _get_user_or_404(actor_id, session)

    if _get_membership(actor_id, session) is not None:
        raise AppError(
            ErrorCode.ALREADY_IN_GROUP,
            "You are already a member of a group. Leave it before creating a new one.",
            400,
        )

    group = Group(
        name=name.strip(),
        code=_generate_group_code(session),
        owner_user_id=actor_id,
        member_count=1,
    )
    session.add(group)
    session.flush()  # populate group.id before creating the membership

    membership = Membership(user_id=actor_id, group_id=group.id)
    session.add(membership)
    user.group_name = group.name

    memberships = [membership]
    _check_invariants(group, memberships)
    session.flush()

    logger.info("User %s created group %s with code %s", actor_id, group.id, group.code)
    return _build_group_dict(group, memberships)


def join_group(actor_id: int, code: str, session: Session) -> dict:
    """
    Joins the group identified by its short code.

    Raises, in check order:
      AppError(GROUP_NOT_FOUND, 404)
      AppError(ALREADY_MEMBER_OF_THIS_GROUP, 400)
      AppError(ALREADY_IN_GROUP, 400)
      AppError(GROUP_FULL, 400)
    """
    user = _get_user_or_404(actor_id, session)
    normalised = code.strip().upper()

    group = session.execute(
        select(Group)
        .where(Group.code == normalised)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()

    if group is None:
        raise AppError(
            ErrorCode.GROUP_NOT_FOUND,
            f"No group has the code {normalised!r}.",
            404,
        )

    existing = _get_membership(actor_id, session)
    if existing is not None and existing.group_id == group.id:
        raise AppError(
            ErrorCode.ALREADY_MEMBER_OF_THIS_GROUP,
            "You are already a member of this group.",
            400,
        )
    if existing is not None:
        raise AppError(
            ErrorCode.ALREADY_IN_GROUP,
            "You are already a member of another group. Leave it before joining a new one.",
            400,
        )

    if group.member_count >= MAX_GROUP_MEMBERS:
        raise AppError(
            ErrorCode.GROUP_FULL,
            f"This group already has the maximum of {MAX_GROUP_MEMBERS} members.",
            400,
        )

    session.add(Membership(user_id=actor_id, group_id=group.id))
    group.member_count += 1
    user.group_name = group.name
    session.flush()

    memberships = _list_memberships(group.id, session)
    _check_invariants(group, memberships)

    logger.info("User %s joined group %s", actor_id, group.id)
    return _build_group_dict(group, memberships)


def get_user_group(actor_id: int, session: Session) -> dict:
    """
    Returns the caller's group with its member list. Read-only.

    Raises:
      AppError(NOT_IN_GROUP, 404)
    """
    membership = require_membership(actor_id, session)
    group = session.get(Group, membership.group_id)
    return _build_group_dict(group, _list_memberships(group.id, session))


def transfer_ownership(actor_id: int, new_owner_id: int, session: Session) -> dict:
    """
    Hands ownership to another current member. Membership is unchanged.

    Raises:
      AppError(NOT_IN_GROUP, 404)
      AppError(NOT_OWNER, 403)
      AppError(ALREADY_OWNER, 400) — new owner is the caller
      AppError(NOT_MEMBER, 400)    — new owner is not in this group
    """
    membership = require_membership(actor_id, session)
    group = _lock_group(membership.group_id, session)
    _require_owner(group, actor_id)

    if new_owner_id == actor_id:
        raise AppError(
            ErrorCode.ALREADY_OWNER,
            "You already own this group.",
            400,
        )

    memberships = _list_memberships(group.id, session)
    if new_owner_id not in {m.user_id for m in memberships}:
        raise AppError(
            ErrorCode.NOT_MEMBER,
            f"User {new_owner_id} is not a member of this group.",
            400,
        )

    group.owner_user_id = new_owner_id
    _check_invariants(group, memberships)
    session.flush()

    logger.info("Ownership of group %s transferred from %s to %s", group.id, actor_id, new_owner_id)
    return _build_group_dict(group, memberships)


def remove_member(actor_id: int, target_user_id: int, session: Session) -> dict:
    """
    Removes another member. Owner only; the owner cannot remove themself here
    (they leave instead).

    Raises:
      AppError(NOT_IN_GROUP, 404)
      AppError(NOT_OWNER, 403)
      AppError(CANNOT_REMOVE_OWNER, 400)
      AppError(MEMBER_NOT_FOUND, 404)
    """
    membership = require_membership(actor_id, session)
    group = _lock_group(membership.group_id, session)
    _require_owner(group, actor_id)

    if target_user_id == group.owner_user_id:
        raise AppError(
            ErrorCode.CANNOT_REMOVE_OWNER,
            "The owner cannot be removed. Transfer ownership or leave the group instead.",
            400,
        )

    target = session.execute(
        select(Membership).where(
            Membership.group_id == group.id,
            Membership.user_id == target_user_id,
        )
    ).scalar_one_or_none()

    if target is None:
        raise AppError(
            ErrorCode.MEMBER_NOT_FOUND,
            f"User {target_user_id} is not a member of this group.",
            404,
        )

    _drop_open_assignments(group.id, target_user_id, session)
    session.delete(target)
    group.member_count -= 1

    target_user = session.get(User, target_user_id)
    if target_user is not None:
        target_user.group_name = None
    session.flush()

    memberships = _list_memberships(group.id, session)
    _check_invariants(group, memberships)

    logger.info("User %s removed %s from group %s", actor_id, target_user_id, group.id)
    return _build_group_dict(group, memberships)


def leave_group(actor_id: int, session: Session) -> dict:
    """
    Leaves the caller's group.

    An owner with members remaining hands ownership to the earliest joiner.
    The last member's departure deletes the group.

    Raises:
      AppError(NOT_IN_GROUP, 404)

    Returns: {"groupDeleted": bool}
    """
    membership = require_membership(actor_id, session)
    return {"groupDeleted": _depart(membership, session)}


def detach_user(user_id: int, session: Session) -> dict:
    """
    Account-deletion hook: same semantics as leave_group, but a user without
    a group is a no-op rather than an error.

    Returns: {"groupDeleted": bool}
    """
    membership = _get_membership(user_id, session)
    if membership is None:
        return {"groupDeleted": False}
    return {"groupDeleted": _depart(membership, session)}


def update_move_in_date(actor_id: int, move_in_date: date | None, session: Session) -> dict:
    """
    Records (or clears) the caller's move-in date.

    Raises:
      AppError(NOT_IN_GROUP, 404)
    """
    membership = require_membership(actor_id, session)
    membership.move_in_date = move_in_date
    session.flush()

    group = session.get(Group, membership.group_id)
    return _build_group_dict(group, _list_memberships(group.id, session))
