"""
ReWear Backend — Item SQLAlchemy Model
========================================

What:  ORM model for the `items` table (Catalog Store records).
Who:   Used by CatalogStore, CatalogService, ModerationService and the swap
       settlement path.

Lifecycle:
    1. Created by its uploader: is_available=True, is_approved=False
    2. Approved by an admin (is_approved=True), or rejected and deleted
    3. Taken by an accepted swap (is_available=False), or withdrawn by owner
    4. Deleted explicitly; swap requests keep their title snapshot
"""

import uuid
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    JSON,
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


class Item(Base):
    """A garment listed for exchange."""

    __tablename__ = "items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # ── Listing Content ───────────────────────────────────────────────────
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    size: Mapped[str] = mapped_column(String(50), nullable=False)
    condition: Mapped[str] = mapped_column(String(50), nullable=False)
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    # Paths relative to the media storage root
    images: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    # ── Ownership (uploader snapshot taken at listing time) ──────────────
    uploader_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    uploader_name: Mapped[str] = mapped_column(String(100), nullable=False)
    uploader_avatar: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    location: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    # ── Economy & Flags ───────────────────────────────────────────────────
    points_value: Mapped[int] = mapped_column(Integer, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    upload_date: Mapped[date] = mapped_column(Date, nullable=False, default=_today)

    # Insertion order for catalog listings
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    __table_args__ = (
        CheckConstraint("points_value > 0", name="ck_items_points_value_positive"),
        Index("idx_items_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Item(id={self.id}, title='{self.title}', "
            f"available={self.is_available}, approved={self.is_approved})>"
        )
