"""
Unit tests for group_service branches that are awkward to reach over HTTP:
code generation retries, succession ordering and the invariant guard.

These tests run DB-free with mocked session/query behavior.
"""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from roomsync.app.errors import AppError, ErrorCode
from roomsync.app.services import group_service


def _membership(id: int, user_id: int, joined_at: datetime):
    return SimpleNamespace(id=id, user_id=user_id, joined_at=joined_at)


T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)
T1 = datetime(2026, 1, 2, tzinfo=timezone.utc)


# ── Code generation ────────────────────────────────────────────────────────

def test_generated_code_uses_alphabet_and_length():
    session = MagicMock()
    session.execute.return_value.first.return_value = None

    code = group_service._generate_group_code(session)

    assert len(code) == group_service.GROUP_CODE_LENGTH
    assert set(code) <= set(group_service.GROUP_CODE_ALPHABET)
    session.execute.assert_called_once()


def test_generated_code_retries_on_collision():
    session = MagicMock()
    session.execute.return_value.first.side_effect = [(1,), (2,), None]

    with patch.object(group_service.secrets, "choice", side_effect=list("AAAABBBBCCCC")):
        code = group_service._generate_group_code(session)

    assert code == "CCCC"
    assert session.execute.call_count == 3


# ── Succession ─────────────────────────────────────────────────────────────

def test_pick_successor_prefers_earliest_join():
    members = [_membership(3, 30, T1), _membership(2, 20, T0)]
    assert group_service._pick_successor(members).user_id == 20


def test_pick_successor_breaks_ties_by_membership_id():
    members = [_membership(9, 90, T0), _membership(4, 40, T0)]
    assert group_service._pick_successor(members).user_id == 40


def test_pick_successor_of_nobody_is_none():
    assert group_service._pick_successor([]) is None


# ── Invariant guard ────────────────────────────────────────────────────────

def test_check_invariants_accepts_consistent_group():
    group = SimpleNamespace(id=1, owner_user_id=10, member_count=2)
    members = [_membership(1, 10, T0), _membership(2, 20, T1)]

    group_service._check_invariants(group, members)


@pytest.mark.parametrize(
    "owner_user_id, member_count, member_ids",
    [
        (99, 2, [10, 20]),              # owner is not a member
        (10, 3, [10, 20]),              # counter out of sync
        (10, 0, []),                    # empty group
        (10, 9, list(range(10, 19))),   # over capacity
    ],
)
def test_check_invariants_rejects_broken_group(owner_user_id, member_count, member_ids):
    group = SimpleNamespace(id=1, owner_user_id=owner_user_id, member_count=member_count)
    members = [_membership(i, uid, T0) for i, uid in enumerate(member_ids, start=1)]

    with pytest.raises(AppError) as exc_info:
        group_service._check_invariants(group, members)

    assert exc_info.value.code == ErrorCode.INTERNAL_ERROR
    assert exc_info.value.http_status == 500


# ── Lookups ────────────────────────────────────────────────────────────────

def test_require_membership_raises_not_in_group():
    session = MagicMock()
    session.execute.return_value.scalar_one_or_none.return_value = None

    with pytest.raises(AppError) as exc_info:
        group_service.require_membership(user_id=5, session=session)

    assert exc_info.value.code == ErrorCode.NOT_IN_GROUP
    assert exc_info.value.http_status == 404


def test_lock_group_raises_when_group_vanished():
    session = MagicMock()
    session.execute.return_value.scalar_one_or_none.return_value = None

    with pytest.raises(AppError) as exc_info:
        group_service._lock_group(group_id=7, session=session)

    assert exc_info.value.code == ErrorCode.GROUP_NOT_FOUND


def test_require_owner_rejects_member():
    group = SimpleNamespace(owner_user_id=1)
    with pytest.raises(AppError) as exc_info:
        group_service._require_owner(group, user_id=2)
    assert exc_info.value.code == ErrorCode.NOT_OWNER
    assert exc_info.value.http_status == 403


def test_detach_user_without_group_is_noop():
    session = MagicMock()
    session.execute.return_value.scalar_one_or_none.return_value = None

    assert group_service.detach_user(user_id=3, session=session) == {"groupDeleted": False}
    session.delete.assert_not_called()


def test_create_group_rejects_member_of_another_group():
    session = MagicMock()
    session.get.return_value = SimpleNamespace(id=1, group_name="Nest")
    session.execute.return_value.scalar_one_or_none.return_value = object()

    with pytest.raises(AppError) as exc_info:
        group_service.create_group(actor_id=1, name="Second", session=session)

    assert exc_info.value.code == ErrorCode.ALREADY_IN_GROUP
    session.add.assert_not_called()


def test_create_group_unknown_user_returns_404():
    session = MagicMock()
    session.get.return_value = None

    with pytest.raises(AppError) as exc_info:
        group_service.create_group(actor_id=404, name="Nest", session=session)

    assert exc_info.value.code == ErrorCode.USER_NOT_FOUND


# ── Serialisation ──────────────────────────────────────────────────────────

def test_build_group_dict_marks_owner():
    group = SimpleNamespace(
        id=1, name="Nest", code="AB12", owner_user_id=10,
        member_count=2, is_full=False, created_at=T0,
    )
    members = [
        SimpleNamespace(
            user_id=10, joined_at=T0, move_in_date=None,
            user=SimpleNamespace(display_name="Alice Tester", email="alice@test.com"),
        ),
        SimpleNamespace(
            user_id=20, joined_at=T1, move_in_date=None,
            user=SimpleNamespace(display_name="bobby", email="bob@test.com"),
        ),
    ]

    result = group_service._build_group_dict(group, members)

    assert result["code"] == "AB12"
    assert result["created_at"] == T0.isoformat()
    assert [m["is_owner"] for m in result["members"]] == [True, False]
    assert result["members"][1]["display_name"] == "bobby"
