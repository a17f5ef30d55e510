"""
services/task_service.py — Household tasks and weekly assignments.

Every operation is scoped to the caller's current group; a task that belongs
to another group is reported as TASK_NOT_FOUND rather than FORBIDDEN so task
ids do not leak across households.

Weeks start on Sunday. Assignments are keyed by (task, user, week_start).

Authorization:
  - Any member may create tasks, run the weekly auto-assignment and update
    their own assignment status.
  - Assigning and deleting: the task's creator or the group owner.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility; services only flush.
"""

from __future__ import annotations

import logging
import random
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from roomsync.app.errors import AppError, ErrorCode
from roomsync.app.models.group import Group
from roomsync.app.models.membership import Membership
from roomsync.app.models.task import (
    AssignmentStatus,
    Recurrence,
    Task,
    TaskAssignment,
)
from roomsync.app.services.group_service import require_membership

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def current_week_start(today: date | None = None) -> date:
    """Sunday on or before `today` (UTC date when omitted)."""
    if today is None:
        today = datetime.now(timezone.utc).date()
    # date.weekday(): Monday == 0 ... Sunday == 6
    return today - timedelta(days=(today.weekday() + 1) % 7)


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes are read as UTC; aware ones are converted to it."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _tasks_due_between(
        group_id: int,
        window_start: datetime,
        window_end: datetime,
        session: Session,
) -> list[Task]:
    """Recurring tasks plus one-time tasks with a deadline in [start, end)."""
    return list(session.execute(
        select(Task)
        .where(
            Task.group_id == group_id,
            or_(
                Task.recurrence != Recurrence.ONE_TIME,
                (Task.deadline >= window_start) & (Task.deadline < window_end),
            ),
        )
        .order_by(Task.created_at.desc(), Task.id.desc())
    ).scalars().all())


def _get_task_in_group_or_404(task_id: int, group_id: int, session: Session) -> Task:
    task = session.get(Task, task_id)
    if task is None or task.group_id != group_id:
        raise AppError(
            ErrorCode.TASK_NOT_FOUND,
            f"Task {task_id} does not exist.",
            404,
        )
    return task


def _validate_assignees(
        user_ids: list[int],
        group_id: int,
        session: Session,
        field: str,
) -> list[int]:
    """De-duplicates `user_ids` (keeping order) and checks each is a member."""
    unique_ids = list(dict.fromkeys(user_ids))

    member_ids = set(session.execute(
        select(Membership.user_id).where(Membership.group_id == group_id)
    ).scalars().all())

    outsiders = [uid for uid in unique_ids if uid not in member_ids]
    if outsiders:
        raise AppError(
            ErrorCode.ASSIGNEE_NOT_MEMBER,
            f"Users {outsiders} are not members of this group.",
            400,
            field=field,
        )
    return unique_ids


def _require_task_manager(task: Task, actor_id: int, session: Session, action: str) -> None:
    group = session.get(Group, task.group_id)
    if actor_id not in (task.created_by_user_id, group.owner_user_id):
        raise AppError(
            ErrorCode.FORBIDDEN,
            f"Only the task creator or the group owner may {action} this task.",
            403,
        )


def _build_task_dict(task: Task) -> dict:
    return {
        "id": task.id,
        "group_id": task.group_id,
        "name": task.name,
        "description": task.description,
        "difficulty": task.difficulty,
        "recurrence": task.recurrence.value,
        "required_people": task.required_people,
        "deadline": task.deadline.isoformat() if task.deadline else None,
        "created_by_user_id": task.created_by_user_id,
        "created_at": task.created_at.isoformat(),
        "assignments": [
            {
                "user_id": a.user_id,
                "week_start": a.week_start.isoformat(),
                "status": a.status.value,
                "completed_at": a.completed_at.isoformat() if a.completed_at else None,
            }
            for a in sorted(task.assignments, key=lambda a: (a.week_start, a.user_id))
        ],
    }


# ── Public service functions ───────────────────────────────────────────────

def create_task(
        actor_id: int,
        name: str,
        difficulty: int,
        recurrence: Recurrence,
        session: Session,
        required_people: int = 1,
        description: str | None = None,
        deadline: datetime | None = None,
        assigned_user_ids: list[int] | None = None,
) -> dict:
    """
    Creates a task in the caller's group, optionally assigned for this week.

    Raises:
      AppError(NOT_IN_GROUP, 404)
      AppError(ASSIGNEE_NOT_MEMBER, 400)
    """
    membership = require_membership(actor_id, session)

    assignees = _validate_assignees(
        assigned_user_ids or [],
        membership.group_id,
        session,
        field="assigned_user_ids",
    )

    task = Task(
        group_id=membership.group_id,
        created_by_user_id=actor_id,
        name=name.strip(),
        description=description.strip() if description else None,
        difficulty=difficulty,
        recurrence=Recurrence(recurrence),
        required_people=required_people,
        deadline=_as_utc(deadline) if deadline else None,
    )
    week = current_week_start()
    for user_id in assignees:
        task.assignments.append(
            TaskAssignment(user_id=user_id, week_start=week, status=AssignmentStatus.INCOMPLETE)
        )

    session.add(task)
    session.flush()
    return _build_task_dict(task)


def list_group_tasks(actor_id: int, session: Session) -> list[dict]:
    """All tasks of the caller's group, newest first."""
    membership = require_membership(actor_id, session)

    tasks = session.execute(
        select(Task)
        .where(Task.group_id == membership.group_id)
        .order_by(Task.created_at.desc(), Task.id.desc())
    ).scalars().all()

    return [_build_task_dict(t) for t in tasks]


def list_my_tasks(actor_id: int, session: Session) -> list[dict]:
    """Tasks assigned to the caller for the current week."""
    membership = require_membership(actor_id, session)

    tasks = session.execute(
        select(Task)
        .join(TaskAssignment, TaskAssignment.task_id == Task.id)
        .where(
            Task.group_id == membership.group_id,
            TaskAssignment.user_id == actor_id,
            TaskAssignment.week_start == current_week_start(),
        )
        .order_by(Task.created_at.desc(), Task.id.desc())
    ).scalars().unique().all()

    return [_build_task_dict(t) for t in tasks]


def list_tasks_for_week(actor_id: int, session: Session, week_start: date | None = None) -> list[dict]:
    """
    Tasks relevant to the 7 days starting at `week_start` (the current week
    start when omitted): every recurring task, plus one-time tasks due in
    that window.

    Raises:
      AppError(NOT_IN_GROUP, 404)
    """
    membership = require_membership(actor_id, session)
    if week_start is None:
        week_start = current_week_start()

    window_start = _day_start(week_start)
    tasks = _tasks_due_between(
        membership.group_id,
        window_start,
        window_start + timedelta(days=7),
        session,
    )
    return [_build_task_dict(t) for t in tasks]


def list_tasks_for_date(actor_id: int, day: date, session: Session) -> list[dict]:
    """
    Every recurring task, plus one-time tasks due on `day` (UTC).

    Raises:
      AppError(NOT_IN_GROUP, 404)
    """
    membership = require_membership(actor_id, session)

    window_start = _day_start(day)
    tasks = _tasks_due_between(
        membership.group_id,
        window_start,
        window_start + timedelta(days=1),
        session,
    )
    return [_build_task_dict(t) for t in tasks]


def assign_weekly_tasks(actor_id: int, session: Session, rng: random.Random | None = None) -> dict:
    """
    Spreads this week's unassigned tasks over the current members at random.

    A task is skipped when it already has assignments for this week, or when
    it is a one-time task that was ever assigned. Otherwise
    min(required_people, member count) distinct members are drawn.

    Raises:
      AppError(NOT_IN_GROUP, 404)

    Returns: {"assigned_tasks": int}
    """
    membership = require_membership(actor_id, session)
    group_id = membership.group_id
    rng = rng or random.Random()

    member_ids = list(session.execute(
        select(Membership.user_id)
        .where(Membership.group_id == group_id)
        .order_by(Membership.joined_at.asc(), Membership.id.asc())
    ).scalars().all())

    tasks = session.execute(
        select(Task)
        .where(Task.group_id == group_id)
        .order_by(Task.created_at.asc(), Task.id.asc())
    ).scalars().all()

    week = current_week_start()
    assigned = 0

    for task in tasks:
        if task.recurrence is Recurrence.ONE_TIME and task.assignments:
            continue
        if any(a.week_start == week for a in task.assignments):
            continue

        picked = rng.sample(member_ids, min(task.required_people, len(member_ids)))
        for user_id in picked:
            task.assignments.append(
                TaskAssignment(user_id=user_id, week_start=week, status=AssignmentStatus.INCOMPLETE)
            )
        assigned += 1

    session.flush()
    logger.info("User %s auto-assigned %s task(s) in group %s", actor_id, assigned, group_id)
    return {"assigned_tasks": assigned}


def update_assignment_status(
        actor_id: int,
        task_id: int,
        status: AssignmentStatus,
        session: Session,
) -> dict:
    """
    Sets the status of the caller's assignment for the current week.

    Raises:
      AppError(NOT_IN_GROUP, 404)
      AppError(TASK_NOT_FOUND, 404)
      AppError(ASSIGNMENT_NOT_FOUND, 404)
    """
    membership = require_membership(actor_id, session)
    task = _get_task_in_group_or_404(task_id, membership.group_id, session)

    week = current_week_start()
    assignment = next(
        (a for a in task.assignments if a.user_id == actor_id and a.week_start == week),
        None,
    )
    if assignment is None:
        raise AppError(
            ErrorCode.ASSIGNMENT_NOT_FOUND,
            "You are not assigned to this task this week.",
            404,
        )

    status = AssignmentStatus(status)
    assignment.status = status
    assignment.completed_at = (
        datetime.now(timezone.utc) if status is AssignmentStatus.COMPLETED else None
    )
    session.flush()
    return _build_task_dict(task)


def assign_task(actor_id: int, task_id: int, user_ids: list[int], session: Session) -> dict:
    """
    Replaces the task's assignments for the current week.

    Raises:
      AppError(NOT_IN_GROUP, 404)
      AppError(TASK_NOT_FOUND, 404)
      AppError(FORBIDDEN, 403)
      AppError(ASSIGNEE_NOT_MEMBER, 400)
    """
    membership = require_membership(actor_id, session)
    task = _get_task_in_group_or_404(task_id, membership.group_id, session)
    _require_task_manager(task, actor_id, session, "assign")

    assignees = _validate_assignees(user_ids, task.group_id, session, field="user_ids")
    week = current_week_start()

    # Flush the removals first: (task, user, week) is unique and a re-assigned
    # user would otherwise collide with their own outgoing row.
    task.assignments = [a for a in task.assignments if a.week_start != week]
    session.flush()

    for user_id in assignees:
        task.assignments.append(
            TaskAssignment(user_id=user_id, week_start=week, status=AssignmentStatus.INCOMPLETE)
        )
    session.flush()
    return _build_task_dict(task)


def delete_task(actor_id: int, task_id: int, session: Session) -> None:
    """
    Raises:
      AppError(NOT_IN_GROUP, 404)
      AppError(TASK_NOT_FOUND, 404)
      AppError(FORBIDDEN, 403)
    """
    membership = require_membership(actor_id, session)
    task = _get_task_in_group_or_404(task_id, membership.group_id, session)
    _require_task_manager(task, actor_id, session, "delete")

    session.delete(task)
    session.flush()
