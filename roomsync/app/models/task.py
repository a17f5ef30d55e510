"""
models/task.py — Household task and weekly assignment tables.

No business logic. No imports from services or routes.

Key design points:
  - Recurrence and AssignmentStatus are Python enums so schemas and services
    share one set of literals.
  - Enums are stored as VARCHAR (native_enum=False); no database type has to
    exist before create_all() or the migration runs.
  - An assignment is keyed by (task, user, week_start). week_start is the
    Sunday that opens the week.
  - created_by_user_id is nullable: deleting an account keeps the task and
    clears the creator.
"""

from __future__ import annotations

import enum
from datetime import date, datetime

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from roomsync.app.extensions import db


# ── Enum Definitions ───────────────────────────────────────────────────────

class Recurrence(str, enum.Enum):
    DAILY     = "daily"
    WEEKLY    = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY   = "monthly"
    ONE_TIME  = "one-time"


class AssignmentStatus(str, enum.Enum):
    INCOMPLETE  = "incomplete"
    IN_PROGRESS = "in-progress"
    COMPLETED   = "completed"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Ensure SQLAlchemy stores enum values (e.g., 'one-time'), not names ('ONE_TIME')."""
    return [member.value for member in enum_cls]


# ── Models ─────────────────────────────────────────────────────────────────

class Task(db.Model):
    __tablename__ = "tasks"

    __table_args__ = (
        CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_tasks_name_nonempty",
        ),
        CheckConstraint(
            "difficulty >= 1 AND difficulty <= 5",
            name="ck_tasks_difficulty_range",
        ),
        CheckConstraint(
            "required_people >= 1 AND required_people <= 10",
            name="ck_tasks_required_people_range",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    # Tasks die with their group.
    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_by_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    difficulty: Mapped[int] = mapped_column(nullable=False)

    recurrence: Mapped[Recurrence] = mapped_column(
        Enum(
            Recurrence,
            name="recurrence_enum",
            native_enum=False,
            length=20,
            values_callable=_enum_values,
        ),
        nullable=False,
    )

    required_people: Mapped[int] = mapped_column(nullable=False, default=1)

    # Required for one-time tasks only (enforced by the schema).
    deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    assignments: Mapped[list["TaskAssignment"]] = relationship(
        "TaskAssignment",
        back_populates="task",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Task id={self.id} group_id={self.group_id} name={self.name!r}>"


class TaskAssignment(db.Model):
    __tablename__ = "task_assignments"

    __table_args__ = (
        UniqueConstraint(
            "task_id", "user_id", "week_start",
            name="uq_task_assignments_task_user_week",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    task_id: Mapped[int] = mapped_column(
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    week_start: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[AssignmentStatus] = mapped_column(
        Enum(
            AssignmentStatus,
            name="assignment_status_enum",
            native_enum=False,
            length=20,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=AssignmentStatus.INCOMPLETE,
    )

    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    task: Mapped["Task"] = relationship(
        "Task",
        back_populates="assignments",
    )

    user: Mapped["User"] = relationship("User")  # noqa: F821

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<TaskAssignment id={self.id} "
            f"task_id={self.task_id} "
            f"user_id={self.user_id} "
            f"week_start={self.week_start}>"
        )
