"""
models/rating.py — Roommate rating table definition.

No business logic. No imports from services or routes.

One rating per (rated, rater, group); re-rating updates the row. group_id is
cleared, not cascaded, when a group is deleted so the rated user's history
survives the household.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from roomsync.app.extensions import db


class Rating(db.Model):
    __tablename__ = "ratings"

    __table_args__ = (
        UniqueConstraint(
            "rated_user_id", "rater_user_id", "group_id",
            name="uq_ratings_rated_rater_group",
        ),
        CheckConstraint(
            "score >= 1 AND score <= 5",
            name="ck_ratings_score_range",
        ),
        CheckConstraint(
            "rated_user_id <> rater_user_id",
            name="ck_ratings_not_self",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    rated_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    rater_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    group_id: Mapped[int | None] = mapped_column(
        ForeignKey("groups.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    score: Mapped[int] = mapped_column(nullable=False)

    testimonial: Mapped[str | None] = mapped_column(String(300), nullable=True)

    # Whole days both users had shared the group when the rating was written.
    time_spent_days: Mapped[int] = mapped_column(nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    rater: Mapped["User"] = relationship(  # noqa: F821
        "User",
        foreign_keys=[rater_user_id],
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Rating id={self.id} "
            f"rated={self.rated_user_id} "
            f"rater={self.rater_user_id} "
            f"score={self.score}>"
        )
