"""
Unit tests for the date arithmetic and early-exit branches of task_service
and rating_service. DB-free.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from roomsync.app.errors import AppError, ErrorCode
from roomsync.app.models.task import AssignmentStatus, Recurrence
from roomsync.app.services import rating_service, task_service


# ── current_week_start ─────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "today, expected",
    [
        (date(2026, 10, 18), date(2026, 10, 18)),  # Sunday
        (date(2026, 10, 19), date(2026, 10, 18)),  # Monday
        (date(2026, 10, 24), date(2026, 10, 18)),  # Saturday
        (date(2026, 11, 2), date(2026, 11, 1)),    # across a month boundary
    ],
)
def test_current_week_start_is_previous_sunday(today, expected):
    assert task_service.current_week_start(today) == expected


def test_current_week_start_defaults_to_today():
    week = task_service.current_week_start()
    assert week.weekday() == 6
    assert 0 <= (datetime.now(timezone.utc).date() - week).days < 7


# ── Task helpers ───────────────────────────────────────────────────────────

def test_validate_assignees_dedupes_in_order():
    session = MagicMock()
    session.execute.return_value.scalars.return_value.all.return_value = [1, 2, 3]

    assert task_service._validate_assignees([3, 1, 3], 1, session, field="user_ids") == [3, 1]


def test_validate_assignees_rejects_outsider():
    session = MagicMock()
    session.execute.return_value.scalars.return_value.all.return_value = [1]

    with pytest.raises(AppError) as exc_info:
        task_service._validate_assignees([1, 7], 1, session, field="user_ids")

    assert exc_info.value.code == ErrorCode.ASSIGNEE_NOT_MEMBER
    assert exc_info.value.field == "user_ids"


def test_task_of_other_group_is_not_found():
    session = MagicMock()
    session.get.return_value = SimpleNamespace(id=5, group_id=2)

    with pytest.raises(AppError) as exc_info:
        task_service._get_task_in_group_or_404(task_id=5, group_id=1, session=session)

    assert exc_info.value.code == ErrorCode.TASK_NOT_FOUND


def test_task_manager_check_allows_group_owner():
    session = MagicMock()
    session.get.return_value = SimpleNamespace(owner_user_id=9)
    task = SimpleNamespace(group_id=1, created_by_user_id=3)

    task_service._require_task_manager(task, actor_id=9, session=session, action="delete")


def test_task_manager_check_rejects_plain_member():
    session = MagicMock()
    session.get.return_value = SimpleNamespace(owner_user_id=9)
    task = SimpleNamespace(group_id=1, created_by_user_id=3)

    with pytest.raises(AppError) as exc_info:
        task_service._require_task_manager(task, actor_id=4, session=session, action="delete")

    assert exc_info.value.code == ErrorCode.FORBIDDEN


# ── Weekly auto-assignment ─────────────────────────────────────────────────

def _weekly_session(member_ids, tasks):
    session = MagicMock()
    session.execute.return_value.scalar_one_or_none.return_value = SimpleNamespace(group_id=1)
    session.execute.return_value.scalars.return_value.all.side_effect = [member_ids, tasks]
    return session


def _first_k():
    rng = MagicMock()
    rng.sample.side_effect = lambda population, k: population[:k]
    return rng


def test_assign_weekly_caps_draw_at_member_count():
    task = SimpleNamespace(recurrence=Recurrence.WEEKLY, required_people=4, assignments=[])
    rng = _first_k()

    result = task_service.assign_weekly_tasks(
        actor_id=1, session=_weekly_session([1, 2, 3], [task]), rng=rng,
    )

    assert result == {"assigned_tasks": 1}
    rng.sample.assert_called_once_with([1, 2, 3], 3)
    assert [a.user_id for a in task.assignments] == [1, 2, 3]
    assert {a.week_start for a in task.assignments} == {task_service.current_week_start()}
    assert {a.status for a in task.assignments} == {AssignmentStatus.INCOMPLETE}


def test_assign_weekly_skips_covered_tasks():
    week = task_service.current_week_start()
    last_week = week - timedelta(days=7)
    covered = SimpleNamespace(
        recurrence=Recurrence.DAILY, required_people=1,
        assignments=[SimpleNamespace(week_start=week)],
    )
    one_time_done = SimpleNamespace(
        recurrence=Recurrence.ONE_TIME, required_people=1,
        assignments=[SimpleNamespace(week_start=last_week)],
    )
    stale = SimpleNamespace(
        recurrence=Recurrence.MONTHLY, required_people=1,
        assignments=[SimpleNamespace(week_start=last_week)],
    )
    rng = _first_k()

    result = task_service.assign_weekly_tasks(
        actor_id=1, session=_weekly_session([5, 6], [covered, one_time_done, stale]), rng=rng,
    )

    assert result == {"assigned_tasks": 1}
    assert len(covered.assignments) == 1
    assert len(one_time_done.assignments) == 1
    assert [a.user_id for a in stale.assignments[1:]] == [5]


# ── Deadline windows ───────────────────────────────────────────────────────

def test_as_utc_reads_naive_as_utc():
    assert task_service._as_utc(datetime(2026, 10, 18, 9, 0)) == datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)


def test_as_utc_converts_offsets():
    eastern = timezone(timedelta(hours=-5))
    converted = task_service._as_utc(datetime(2026, 10, 18, 23, 30, tzinfo=eastern))
    assert converted == datetime(2026, 10, 19, 4, 30, tzinfo=timezone.utc)
    assert converted.utcoffset() == timedelta(0)


def test_day_start_is_utc_midnight():
    assert task_service._day_start(date(2026, 10, 18)) == datetime(2026, 10, 18, tzinfo=timezone.utc)


# ── Rating helpers ─────────────────────────────────────────────────────────

def test_days_since_rounds_down():
    now = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
    joined = now - timedelta(days=29, hours=23)
    assert rating_service._days_since(joined, now) == 29


def test_days_since_treats_naive_as_utc():
    now = datetime(2026, 10, 18, tzinfo=timezone.utc)
    joined = datetime(2026, 9, 18)
    assert rating_service._days_since(joined, now) == 30


def test_rate_self_fails_before_touching_the_database():
    session = MagicMock()

    with pytest.raises(AppError) as exc_info:
        rating_service.rate_user(rater_id=1, rated_user_id=1, score=5, session=session)

    assert exc_info.value.code == ErrorCode.CANNOT_RATE_SELF
    session.execute.assert_not_called()


def test_cohabitation_gate_uses_injected_clock():
    now = datetime(2026, 10, 18, tzinfo=timezone.utc)
    rater = SimpleNamespace(user_id=1, group_id=1, joined_at=now - timedelta(days=90))
    rated = SimpleNamespace(user_id=2, group_id=1, joined_at=now - timedelta(days=29))

    session = MagicMock()
    session.execute.return_value.scalar_one_or_none.side_effect = [rater, rated]

    with pytest.raises(AppError) as exc_info:
        rating_service.rate_user(rater_id=1, rated_user_id=2, score=4, session=session, now=now)

    assert exc_info.value.code == ErrorCode.INSUFFICIENT_COHABITATION
    assert exc_info.value.field == "rated_user_id"
