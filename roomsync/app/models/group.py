"""
models/group.py — Group (household) table definition.

No business logic. No imports from services or routes.

Concurrency: `version` is the mapper's version_id_col. group_service touches
the group row (member_count or owner_user_id) on every membership change, so
two requests racing on the same group cannot both commit a read-modify-write;
the loser fails at flush with StaleDataError.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from roomsync.app.extensions import db


# Household size cap, mirrored by ck_groups_member_count_range.
MAX_GROUP_MEMBERS = 8


class Group(db.Model):
    __tablename__ = "groups"

    __table_args__ = (
        CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_groups_name_nonempty",
        ),
        # A persisted group always has between 1 and 8 members.
        CheckConstraint(
            "member_count >= 1 AND member_count <= 8",
            name="ck_groups_member_count_range",
        ),
        CheckConstraint(
            "LENGTH(code) = 4",
            name="ck_groups_code_length",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Short join token, distinct from the persistent id.
    code: Mapped[str] = mapped_column(
        String(4),
        nullable=False,
        unique=True,
        index=True,
    )

    # ON DELETE RESTRICT: account deletion runs owner succession first.
    owner_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    member_count: Mapped[int] = mapped_column(nullable=False, default=1)

    version: Mapped[int] = mapped_column(nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __mapper_args__ = {"version_id_col": version}

    # ── Relationships ──────────────────────────────────────────────────────

    owner: Mapped["User"] = relationship(  # noqa: F821
        "User",
        foreign_keys=[owner_user_id],
    )

    memberships: Mapped[list["Membership"]] = relationship(  # noqa: F821
        "Membership",
        back_populates="group",
        cascade="all, delete-orphan",
    )

    @property
    def is_full(self) -> bool:
        return self.member_count >= MAX_GROUP_MEMBERS

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Group id={self.id} name={self.name!r} code={self.code!r}>"
