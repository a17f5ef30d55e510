"""Initial schema — users, groups, memberships, tasks, assignments, ratings.

Revision: 001_initial_schema
Created:  2026-10-18

Append-only:
  This file must NEVER be edited after it has been applied to any database.
  If a schema change is required, create a NEW migration file.

Creation order (FK dependency order):
  users → groups → memberships → tasks → task_assignments → ratings

Enum columns (tasks.recurrence, task_assignments.status) are stored as
VARCHAR(20); the models use Enum(native_enum=False), so no database types
need creating.

ON DELETE policies:
  groups.owner_user_id           → RESTRICT  (succession runs before the user goes)
  memberships.user_id            → RESTRICT  (leave the group before deleting the user)
  memberships.group_id           → CASCADE
  tasks.group_id                 → CASCADE
  tasks.created_by_user_id       → SET NULL  (tasks outlive their author)
  task_assignments.*             → CASCADE
  ratings.rated/rater_user_id    → CASCADE
  ratings.group_id               → SET NULL  (ratings outlive the group)
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration, no parent
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:

    # ── users ──────────────────────────────────────────────────────────────

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("nickname", sa.String(50), nullable=True),
        sa.Column("bio", sa.String(500), nullable=True),
        sa.Column("group_name", sa.String(100), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.UniqueConstraint("nickname", name="uq_users_nickname"),
        sa.CheckConstraint("LENGTH(TRIM(first_name)) > 0", name="ck_users_first_name_nonempty"),
        sa.CheckConstraint("LENGTH(TRIM(last_name)) > 0", name="ck_users_last_name_nonempty"),
        sa.CheckConstraint("email LIKE '%@%'", name="ck_users_email_format"),
    )

    # ── groups ─────────────────────────────────────────────────────────────
    # version backs the ORM's optimistic lock (version_id_col).

    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("code", sa.String(4), nullable=False),
        sa.Column(
            "owner_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_groups_owner"),
            nullable=False,
        ),
        sa.Column("member_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_groups"),
        sa.CheckConstraint("LENGTH(TRIM(name)) > 0", name="ck_groups_name_nonempty"),
        sa.CheckConstraint(
            "member_count >= 1 AND member_count <= 8",
            name="ck_groups_member_count_range",
        ),
        sa.CheckConstraint("LENGTH(code) = 4", name="ck_groups_code_length"),
    )
    op.create_index("ix_groups_code", "groups", ["code"], unique=True)

    # ── memberships ────────────────────────────────────────────────────────
    # UNIQUE(user_id): one group per user, enforced by the database too.

    op.create_table(
        "memberships",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_memberships_user"),
            nullable=False,
        ),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_memberships_group"),
            nullable=False,
        ),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("move_in_date", sa.Date(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_memberships"),
        sa.UniqueConstraint("user_id", name="uq_memberships_user"),
    )
    op.create_index("ix_memberships_group_id", "memberships", ["group_id"])

    # ── tasks ──────────────────────────────────────────────────────────────

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_tasks_group"),
            nullable=False,
        ),
        sa.Column(
            "created_by_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL", name="fk_tasks_creator"),
            nullable=True,
        ),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("difficulty", sa.Integer(), nullable=False),
        sa.Column("recurrence", sa.String(20), nullable=False),
        sa.Column("required_people", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_tasks"),
        sa.CheckConstraint("LENGTH(TRIM(name)) > 0", name="ck_tasks_name_nonempty"),
        sa.CheckConstraint(
            "difficulty >= 1 AND difficulty <= 5",
            name="ck_tasks_difficulty_range",
        ),
        sa.CheckConstraint(
            "required_people >= 1 AND required_people <= 10",
            name="ck_tasks_required_people_range",
        ),
    )
    op.create_index("ix_tasks_group_id", "tasks", ["group_id"])

    # ── task_assignments ───────────────────────────────────────────────────

    op.create_table(
        "task_assignments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "task_id",
            sa.Integer(),
            sa.ForeignKey("tasks.id", ondelete="CASCADE", name="fk_task_assignments_task"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_task_assignments_user"),
            nullable=False,
        ),
        sa.Column("week_start", sa.Date(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_task_assignments"),
        sa.UniqueConstraint(
            "task_id", "user_id", "week_start",
            name="uq_task_assignments_task_user_week",
        ),
    )
    op.create_index("ix_task_assignments_task_id", "task_assignments", ["task_id"])
    op.create_index("ix_task_assignments_user_id", "task_assignments", ["user_id"])

    # ── ratings ────────────────────────────────────────────────────────────

    op.create_table(
        "ratings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "rated_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_ratings_rated"),
            nullable=False,
        ),
        sa.Column(
            "rater_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_ratings_rater"),
            nullable=False,
        ),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="SET NULL", name="fk_ratings_group"),
            nullable=True,
        ),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("testimonial", sa.String(300), nullable=True),
        sa.Column("time_spent_days", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_ratings"),
        sa.UniqueConstraint(
            "rated_user_id", "rater_user_id", "group_id",
            name="uq_ratings_rated_rater_group",
        ),
        sa.CheckConstraint("score >= 1 AND score <= 5", name="ck_ratings_score_range"),
        sa.CheckConstraint("rated_user_id <> rater_user_id", name="ck_ratings_not_self"),
    )
    op.create_index("ix_ratings_rated_user_id", "ratings", ["rated_user_id"])
    op.create_index("ix_ratings_rater_user_id", "ratings", ["rater_user_id"])
    op.create_index("ix_ratings_group_id", "ratings", ["group_id"])


def downgrade() -> None:
    """Drops everything upgrade() created, in reverse dependency order."""

    op.drop_index("ix_ratings_group_id",          table_name="ratings")
    op.drop_index("ix_ratings_rater_user_id",     table_name="ratings")
    op.drop_index("ix_ratings_rated_user_id",     table_name="ratings")
    op.drop_index("ix_task_assignments_user_id",  table_name="task_assignments")
    op.drop_index("ix_task_assignments_task_id",  table_name="task_assignments")
    op.drop_index("ix_tasks_group_id",            table_name="tasks")
    op.drop_index("ix_memberships_group_id",      table_name="memberships")
    op.drop_index("ix_groups_code",               table_name="groups")

    op.drop_table("ratings")
    op.drop_table("task_assignments")
    op.drop_table("tasks")
    op.drop_table("memberships")
    op.drop_table("groups")
    op.drop_table("users")
