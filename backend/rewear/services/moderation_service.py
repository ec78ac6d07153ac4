"""
ReWear Backend — Moderation Service
=====================================

What:  The admin approval gate over new listings.
Who:   Called by the /api/admin/items route handlers.

Every operation requires an admin principal.
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rewear.auth import Principal, ensure_admin
from rewear.exceptions import DatabaseError
from rewear.models.item import Item
from rewear.services.catalog_service import remove_item
from rewear.stores import CatalogStore

logger = logging.getLogger(__name__)


class ModerationService:

    async def list_pending(self, db: AsyncSession, principal: Principal) -> List[Item]:
        """Listings still waiting for approval, in insertion order."""
        ensure_admin(principal)
        return await CatalogStore(db).search(approved=False)

    async def approve_item(self, db: AsyncSession, principal: Principal, item_id: UUID) -> Item:
        """Set the approval flag. Approving an approved item is a no-op."""
        ensure_admin(principal)
        catalog = CatalogStore(db)
        item = await catalog.get(item_id)
        if not item.is_approved:
            try:
                await catalog.update(item, is_approved=True)
            except SQLAlchemyError as e:
                logger.error("Database error approving item %s: %s", item_id, str(e), exc_info=True)
                raise DatabaseError(
                    message="Could not approve the listing. Please try again.",
                    context={"item_id": str(item_id)},
                )
            logger.info("Item %s approved by %s", item.id, principal.id)
        return item

    async def reject_and_delete(self, db: AsyncSession, principal: Principal, item_id: UUID) -> None:
        """Remove a listing, then its stored images once the deletion is committed."""
        ensure_admin(principal)
        item = await CatalogStore(db).get(item_id)
        await remove_item(db, item)
        logger.info("Item %s rejected and deleted by %s", item_id, principal.id)


moderation_service = ModerationService()
