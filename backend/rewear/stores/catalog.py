"""
ReWear Backend — Catalog Store
================================

What:  Access to listing records and their availability/approval flags.
Who:   CatalogService, ModerationService, SwapService, StatsService.

Query semantics (`search`):
    category equality AND
    case-insensitive substring of the search text in title OR description
    OR any tag AND
    approval flag equality (when given).
    Results keep insertion order; no pagination or ranking.
"""

import logging
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rewear.exceptions import NotFoundError
from rewear.models.item import Item

logger = logging.getLogger(__name__)


def matches_search(item: Item, search_text: str) -> bool:
    """True if `search_text` occurs in the title, description or any tag (case-insensitive)."""
    needle = search_text.lower()
    return (
        needle in item.title.lower()
        or needle in item.description.lower()
        or any(needle in tag.lower() for tag in item.tags or [])
    )


class CatalogStore:
    """Listings keyed by id, ordered by insertion."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find(self, item_id: UUID, for_update: bool = False) -> Optional[Item]:
        query = select(Item).where(Item.id == item_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get(self, item_id: UUID, for_update: bool = False) -> Item:
        item = await self.find(item_id, for_update=for_update)
        if item is None:
            raise NotFoundError(resource="item", resource_id=str(item_id))
        return item

    async def insert(self, item: Item) -> Item:
        self.db.add(item)
        await self.db.flush()
        logger.debug("Item inserted: %s", item.id)
        return item

    async def update(self, item: Item, **changes: Any) -> Item:
        for field, value in changes.items():
            setattr(item, field, value)
        await self.db.flush()
        return item

    async def delete(self, item: Item) -> None:
        await self.db.delete(item)
        await self.db.flush()

    async def search(
        self,
        category: Optional[str] = None,
        search_text: Optional[str] = None,
        approved: Optional[bool] = None,
    ) -> List[Item]:
        """Filter the catalog; every given filter must match."""
        query = select(Item)
        if category:
            query = query.where(Item.category == category)
        if approved is not None:
            query = query.where(Item.is_approved == approved)
        query = query.order_by(Item.created_at, Item.id)

        result = await self.db.execute(query)
        items = list(result.scalars().all())

        # Tags live in a JSON column, so text matching runs in Python
        if search_text:
            items = [item for item in items if matches_search(item, search_text)]
        return items

    async def count(self, approved: Optional[bool] = None) -> int:
        query = select(func.count(Item.id))
        if approved is not None:
            query = query.where(Item.is_approved == approved)
        result = await self.db.execute(query)
        return result.scalar() or 0
