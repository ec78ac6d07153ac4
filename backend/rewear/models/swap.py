"""
ReWear Backend — SwapRequest SQLAlchemy Model
===============================================

What:  ORM model for the `swap_requests` table (Swap Ledger records).
How:   Requester name, item titles and the target item's owner are copied
       at proposal time. They are never live-joined, so the history stays
       legible after a rename or an item deletion. `item_id` and
       `offered_item_id` therefore carry no foreign key.

Lifecycle (see SwapService.decide_swap):

    pending ──► accepted ──► completed
       │
       ├──► declined
       └──► cancelled
"""

import enum
import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from rewear.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _today() -> date:
    return _utcnow().date()


class SwapStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SwapRequest(Base):
    """A proposed or settled exchange for one target item."""

    __tablename__ = "swap_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # ── Requester ─────────────────────────────────────────────────────────
    requester_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    requester_name: Mapped[str] = mapped_column(String(100), nullable=False)

    # ── Target item snapshot ──────────────────────────────────────────────
    item_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    item_title: Mapped[str] = mapped_column(String(100), nullable=False)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    # ── Offered item snapshot (item-for-item swaps) ──────────────────────
    offered_item_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    offered_item_title: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # ── Points settlement ─────────────────────────────────────────────────
    use_points: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    points_offered: Mapped[int] = mapped_column(Integer, nullable=False)

    message: Mapped[str] = mapped_column(Text, nullable=False, default="")

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=SwapStatus.PENDING.value,
    )

    created_date: Mapped[date] = mapped_column(Date, nullable=False, default=_today)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        onupdate=_utcnow,
    )

    __table_args__ = (
        CheckConstraint("points_offered >= 0", name="ck_swaps_points_offered_non_negative"),
        Index("idx_swap_requests_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<SwapRequest(id={self.id}, item_id={self.item_id}, "
            f"status='{self.status}', use_points={self.use_points})>"
        )
