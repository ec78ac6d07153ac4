"""
ReWear Backend — Catalog Service
==================================

What:  Listing creation, lookup, search, availability toggling and deletion.
Who:   Called by the /api/items route handlers.

Permissions:
    create_item       any authenticated user (becomes the uploader)
    set_availability  uploader or admin
    delete_item       uploader or admin
    get / list        public

New listings start available and unapproved; only ModerationService flips
the approval flag.
"""

import logging
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rewear.auth import Principal
from rewear.config import settings
from rewear.exceptions import DatabaseError, ForbiddenError
from rewear.models.item import Item
from rewear.schemas.item import ItemCreate, ItemResponse
from rewear.services.media_service import media_service
from rewear.stores import CatalogStore, IdentityStore

logger = logging.getLogger(__name__)


def image_url(path: str) -> str:
    """URL under which a stored listing image is served."""
    if path.startswith(("http://", "https://", "/")):
        return path
    return f"/api/files/{path}"


def to_item_response(item: Item) -> ItemResponse:
    return ItemResponse(
        id=item.id,
        title=item.title,
        description=item.description,
        category=item.category,
        type=item.type,
        size=item.size,
        condition=item.condition,
        tags=list(item.tags or []),
        images=[image_url(path) for path in item.images or []],
        uploader_id=item.uploader_id,
        uploader_name=item.uploader_name,
        uploader_avatar=item.uploader_avatar,
        points_value=item.points_value,
        is_available=item.is_available,
        is_approved=item.is_approved,
        upload_date=item.upload_date,
        location=item.location,
    )


def ensure_owner_or_admin(principal: Principal, item: Item) -> None:
    if item.uploader_id != principal.id and not principal.is_admin:
        raise ForbiddenError(
            message="Not authorized",
            context={"item_id": str(item.id)},
        )


class CatalogService:
    """Business rules for listings."""

    async def create_item(
        self,
        db: AsyncSession,
        principal: Principal,
        data: ItemCreate,
        uploads: Sequence[Tuple[str, bytes, Optional[int]]] = (),
    ) -> Item:
        """
        Create an unapproved, available listing owned by `principal`.

        Images are stored first; if the database insert then fails they are
        removed again.
        """
        uploader = await IdentityStore(db).get(principal.id)
        image_paths = await media_service.store_images(uploads) if uploads else []

        item = Item(
            title=data.title,
            description=data.description,
            category=data.category.value,
            type=data.type,
            size=data.size,
            condition=data.condition.value,
            tags=list(data.tags),
            images=image_paths,
            uploader_id=uploader.id,
            uploader_name=uploader.name,
            uploader_avatar=uploader.avatar,
            location=uploader.location,
            points_value=data.points_value or settings.default_item_points,
            is_available=True,
            is_approved=False,
        )
        try:
            await CatalogStore(db).insert(item)
        except SQLAlchemyError as e:
            await media_service.delete_images(image_paths)
            logger.error("Database error creating item for %s: %s", uploader.id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save the listing. Please try again.",
                context={"uploader_id": str(uploader.id)},
            )

        logger.info(
            "Item %s listed by %s (%d points, %d images, awaiting approval)",
            item.id, uploader.id, item.points_value, len(image_paths),
        )
        return item

    async def get_item(self, db: AsyncSession, item_id: UUID) -> Item:
        return await CatalogStore(db).get(item_id)

    async def list_items(
        self,
        db: AsyncSession,
        category: Optional[str] = None,
        search: Optional[str] = None,
        approved: Optional[bool] = None,
    ) -> List[Item]:
        """Catalog query; see CatalogStore.search for the matching rules."""
        return await CatalogStore(db).search(
            category=category,
            search_text=search,
            approved=approved,
        )

    async def set_availability(
        self,
        db: AsyncSession,
        principal: Principal,
        item_id: UUID,
        is_available: Optional[bool],
    ) -> Item:
        """Manually toggle availability; `None` leaves the flag unchanged."""
        catalog = CatalogStore(db)
        item = await catalog.get(item_id)
        ensure_owner_or_admin(principal, item)

        if is_available is not None and is_available != item.is_available:
            try:
                await catalog.update(item, is_available=is_available)
            except SQLAlchemyError as e:
                logger.error("Database error updating item %s: %s", item_id, str(e), exc_info=True)
                raise DatabaseError(
                    message="Could not update the listing. Please try again.",
                    context={"item_id": str(item_id)},
                )
            logger.info("Item %s availability set to %s by %s", item.id, is_available, principal.id)
        return item

    async def delete_item(
        self,
        db: AsyncSession,
        principal: Principal,
        item_id: UUID,
    ) -> None:
        """
        Delete a listing and its stored images.

        Swap requests referencing the item are kept; they carry the title
        snapshot taken when they were proposed.
        """
        catalog = CatalogStore(db)
        item = await catalog.get(item_id)
        ensure_owner_or_admin(principal, item)
        await remove_item(db, item)
        logger.info("Item %s deleted by %s", item_id, principal.id)


async def remove_item(db: AsyncSession, item: Item) -> None:
    """
    Delete the row and commit, then delete the media it referenced.

    Files are only touched once the deletion is durable; a failed commit
    leaves both the row and its images in place.
    """
    item_id = item.id
    image_paths = list(item.images or [])
    try:
        await CatalogStore(db).delete(item)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Database error deleting item %s: %s", item_id, str(e), exc_info=True)
        raise DatabaseError(
            message="Could not delete the listing. Please try again.",
            context={"item_id": str(item_id)},
        )
    await media_service.delete_images(image_paths)


# ── Singleton Instance ────────────────────────────────────────────────────
catalog_service = CatalogService()
