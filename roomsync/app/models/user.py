"""
models/user.py — User profile table definition.

No business logic beyond read-only display helpers. No imports from services
or routes.

group_name is a denormalized copy of the current group's display name. It is
not a foreign key; group_service rewrites it in the same transaction as every
membership change.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from roomsync.app.extensions import db


class User(db.Model):
    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint(
            "LENGTH(TRIM(first_name)) > 0",
            name="ck_users_first_name_nonempty",
        ),
        CheckConstraint(
            "LENGTH(TRIM(last_name)) > 0",
            name="ck_users_last_name_nonempty",
        ),
        CheckConstraint(
            "email LIKE '%@%'",
            name="ck_users_email_format",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    # Stored lower-cased; see user_service.create_user.
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )

    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)

    # Optional, but unique when present (NULLs do not collide).
    nickname: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        unique=True,
    )

    bio: Mapped[str | None] = mapped_column(String(500), nullable=True)

    group_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────
    # uselist=False: memberships.user_id is unique, so a user has 0 or 1.

    membership: Mapped["Membership | None"] = relationship(  # noqa: F821
        "Membership",
        back_populates="user",
        uselist=False,
    )

    @property
    def display_name(self) -> str:
        return self.nickname or f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User id={self.id} email={self.email!r}>"
