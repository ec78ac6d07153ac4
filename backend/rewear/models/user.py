"""
ReWear Backend — User SQLAlchemy Model
========================================

What:  ORM model for the `users` table (Identity Store records).
How:   `points` and `swap_count` are mutated only by the swap settlement
       transaction; name/location/avatar only by profile edits.
Who:   Used by IdentityStore, AuthService and the swap settlement path.

Users are never deleted: swap history references them by id.
"""

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from rewear.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _today() -> date:
    return _utcnow().date()


class User(Base):
    """A marketplace member with a points balance."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Stored lower-cased; unique across the marketplace
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)

    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # ── Points Economy ────────────────────────────────────────────────────
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    swap_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # ── Profile ───────────────────────────────────────────────────────────
    avatar: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, default=None)
    location: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    join_date: Mapped[date] = mapped_column(Date, nullable=False, default=_today)

    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_users_points_non_negative"),
        CheckConstraint("swap_count >= 0", name="ck_users_swap_count_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', points={self.points})>"
