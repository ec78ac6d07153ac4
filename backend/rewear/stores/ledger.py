"""
ReWear Backend — Swap Ledger Store
====================================

What:  Access to swap-request records.
Who:   SwapService (proposal, settlement, history) and StatsService.

The ledger only stores and queries records; lifecycle rules live in
SwapService.
"""

import logging
from typing import Any, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from rewear.exceptions import NotFoundError
from rewear.models.swap import SwapRequest, SwapStatus

logger = logging.getLogger(__name__)


class SwapLedger:
    """Swap requests keyed by id, ordered by creation."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find(self, swap_id: UUID, for_update: bool = False) -> Optional[SwapRequest]:
        query = select(SwapRequest).where(SwapRequest.id == swap_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get(self, swap_id: UUID, for_update: bool = False) -> SwapRequest:
        swap = await self.find(swap_id, for_update=for_update)
        if swap is None:
            raise NotFoundError(resource="swap", resource_id=str(swap_id))
        return swap

    async def insert(self, swap: SwapRequest) -> SwapRequest:
        self.db.add(swap)
        await self.db.flush()
        logger.debug("Swap request inserted: %s", swap.id)
        return swap

    async def update(self, swap: SwapRequest, **changes: Any) -> SwapRequest:
        for field, value in changes.items():
            setattr(swap, field, value)
        await self.db.flush()
        return swap

    async def delete(self, swap: SwapRequest) -> None:
        await self.db.delete(swap)
        await self.db.flush()

    async def list_for_user(self, user_id: UUID) -> List[SwapRequest]:
        """Swaps the user requested, plus swaps targeting items the user owned."""
        result = await self.db.execute(
            select(SwapRequest)
            .where(
                or_(
                    SwapRequest.requester_id == user_id,
                    SwapRequest.owner_id == user_id,
                )
            )
            .order_by(SwapRequest.created_at, SwapRequest.id)
        )
        return list(result.scalars().all())

    async def list_pending_involving(
        self,
        item_ids: Iterable[UUID],
        exclude_id: Optional[UUID] = None,
    ) -> List[SwapRequest]:
        """Pending swaps that target or offer any of `item_ids`."""
        ids = list(item_ids)
        query = select(SwapRequest).where(
            SwapRequest.status == SwapStatus.PENDING.value,
            or_(
                SwapRequest.item_id.in_(ids),
                SwapRequest.offered_item_id.in_(ids),
            ),
        )
        if exclude_id is not None:
            query = query.where(SwapRequest.id != exclude_id)
        result = await self.db.execute(query.with_for_update())
        return list(result.scalars().all())

    async def count(self, status: Optional[SwapStatus] = None) -> int:
        query = select(func.count(SwapRequest.id))
        if status is not None:
            query = query.where(SwapRequest.status == status.value)
        result = await self.db.execute(query)
        return result.scalar() or 0
