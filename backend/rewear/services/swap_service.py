"""
ReWear Backend — Swap Service (Settlement State Machine)
==========================================================

What:  Proposes swaps, moves them through their lifecycle and settles
       accepted swaps across the Identity Store, Catalog Store and Swap Ledger.
Who:   Called by the /api/swaps route handlers.

Lifecycle:
    pending ──► accepted ──► completed
       │
       ├──► declined
       └──► cancelled

    Only the target item's owner decides. `pending → accepted` is a one-shot
    transition: once a swap has left `pending` it can never be accepted
    again, so points are never debited twice.

Settlement (pending → accepted), one critical section, one transaction:
    1. Target item (and offered item, if any) must still exist and be available
    2. Points swap: requester balance re-checked, then
         requester.points -= points_offered   requester.swap_count += 1
         owner.points     += points_offered   owner.swap_count     += 1
    3. Target item and offered item marked unavailable
    4. Other pending swaps targeting or offering either item are declined
    5. Swap status set to `accepted`, then commit
    Any failure rolls the whole transaction back.
"""

import asyncio
import logging
from typing import Dict, FrozenSet, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rewear.auth import Principal
from rewear.exceptions import (
    DatabaseError,
    ForbiddenError,
    InsufficientBalanceError,
    InvalidStateError,
    NotFoundError,
    ReWearError,
    SelfSwapForbiddenError,
    UnavailableError,
    ValidationError,
)
from rewear.models.item import Item
from rewear.models.swap import SwapRequest, SwapStatus
from rewear.stores import CatalogStore, IdentityStore, SwapLedger

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[SwapStatus, FrozenSet[SwapStatus]] = {
    SwapStatus.PENDING: frozenset(
        {SwapStatus.ACCEPTED, SwapStatus.DECLINED, SwapStatus.CANCELLED}
    ),
    SwapStatus.ACCEPTED: frozenset({SwapStatus.COMPLETED}),
}


class SwapService:
    """
    Swap proposal, decision and history.

    Stateless apart from the settlement lock; every call receives the
    session it should work in.
    """

    def __init__(self):
        # Serializes decisions within this process; row locks cover the rest
        self._settlement_lock = asyncio.Lock()

    async def propose_swap(
        self,
        db: AsyncSession,
        principal: Principal,
        item_id: UUID,
        offered_item_id: Optional[UUID] = None,
        use_points: bool = False,
        points_offered: Optional[int] = None,
        message: str = "",
    ) -> SwapRequest:
        """
        Record a new pending swap request for `item_id`.

        Validation order:
            1. target item exists                   → NotFoundError (item_not_found)
            2. target item available                → UnavailableError
            3. requester is not the owner           → SelfSwapForbiddenError
            4. points swap: balance ≥ points offered → InsufficientBalanceError
            5. item swap: an offered item is given  → InvalidStateError
            6. offered item exists, is the requester's and is available

        Balances are only checked here, never reserved.
        """
        try:
            return await self._propose(
                db, principal, item_id, offered_item_id, use_points, points_offered, message
            )
        except SQLAlchemyError as e:
            logger.error("Database error proposing swap for item %s: %s", item_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the swap request. Please try again.",
                context={"item_id": str(item_id)},
            )

    async def _propose(
        self,
        db: AsyncSession,
        principal: Principal,
        item_id: UUID,
        offered_item_id: Optional[UUID],
        use_points: bool,
        points_offered: Optional[int],
        message: str,
    ) -> SwapRequest:
        identity = IdentityStore(db)
        catalog = CatalogStore(db)
        ledger = SwapLedger(db)

        # Locked so a concurrent acceptance of this item is seen before the insert
        item = await catalog.get(item_id, for_update=True)
        if not item.is_available:
            raise UnavailableError(item_id=str(item_id))
        if item.uploader_id == principal.id:
            raise SelfSwapForbiddenError(item_id=str(item_id))

        requester = await identity.get(principal.id)
        amount = points_offered or item.points_value

        if use_points and requester.points < amount:
            logger.warning(
                "Swap proposal rejected: user %s has %d points, needs %d",
                requester.id, requester.points, amount,
            )
            raise InsufficientBalanceError(required=amount, available=requester.points)

        if not use_points and offered_item_id is None:
            raise InvalidStateError(
                message="An item swap needs an offered item; set use_points for a points swap",
                context={"item_id": str(item_id)},
            )

        offered: Optional[Item] = None
        if offered_item_id is not None:
            offered = await self._check_offered_item(catalog, principal, offered_item_id)

        swap = SwapRequest(
            requester_id=requester.id,
            requester_name=requester.name,
            item_id=item.id,
            item_title=item.title,
            owner_id=item.uploader_id,
            offered_item_id=offered.id if offered else None,
            offered_item_title=offered.title if offered else None,
            use_points=use_points,
            points_offered=amount,
            message=message or "",
            status=SwapStatus.PENDING.value,
        )
        await ledger.insert(swap)

        logger.info(
            "Swap %s proposed by %s for item %s (%s)",
            swap.id,
            requester.id,
            item.id,
            f"{amount} points" if use_points else f"item {swap.offered_item_id}",
        )
        return swap

    async def _check_offered_item(
        self,
        catalog: CatalogStore,
        principal: Principal,
        offered_item_id: UUID,
    ) -> Item:
        offered = await catalog.get(offered_item_id, for_update=True)
        if offered.uploader_id != principal.id:
            raise ForbiddenError(
                message="You can only offer your own items",
                context={"offered_item_id": str(offered_item_id)},
            )
        if not offered.is_available:
            raise UnavailableError(
                item_id=str(offered_item_id),
                message="Offered item is not available",
            )
        return offered

    async def decide_swap(
        self,
        db: AsyncSession,
        swap_id: UUID,
        principal: Principal,
        new_status: str,
    ) -> SwapRequest:
        """
        Move a swap to `new_status` on behalf of the target item's owner.

        Raises:
            ValidationError:          unknown status value
            NotFoundError:            swap (or, on acceptance, an item) is gone
            ForbiddenError:           acting user does not own the target item
            InvalidStateError:        transition not allowed from current status
            UnavailableError:         an item was taken in the meantime
            InsufficientBalanceError: requester can no longer cover the points
        """
        try:
            target = SwapStatus(new_status)
        except ValueError:
            raise ValidationError(
                message=f"Unknown swap status '{new_status}'",
                field="status",
                context={"allowed": [s.value for s in SwapStatus if s is not SwapStatus.PENDING]},
            )

        ledger = SwapLedger(db)

        async with self._settlement_lock:
            try:
                swap = await ledger.get(swap_id, for_update=True)

                if swap.owner_id != principal.id:
                    logger.warning(
                        "User %s tried to decide swap %s owned by %s",
                        principal.id, swap.id, swap.owner_id,
                    )
                    raise ForbiddenError(message="Not authorized")

                current = SwapStatus(swap.status)
                if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
                    raise InvalidStateError(
                        message=f"Cannot change a {current.value} swap to {target.value}",
                        context={"swap_id": str(swap.id), "status": current.value},
                    )

                if target is SwapStatus.ACCEPTED:
                    await self._settle(db, swap)

                # Final commit point: the status flip becomes visible with
                # the points and availability changes, or not at all
                await ledger.update(swap, status=target.value)
                await db.commit()

            except ReWearError:
                await db.rollback()
                raise
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error("Database error deciding swap %s: %s", swap_id, str(e), exc_info=True)
                raise DatabaseError(
                    message="Could not update the swap request. Please try again.",
                    context={"swap_id": str(swap_id)},
                )

        logger.info("Swap %s: %s → %s", swap.id, current.value, target.value)
        return swap

    async def _settle(self, db: AsyncSession, swap: SwapRequest) -> None:
        """Apply the cross-store mutations of an acceptance (no commit)."""
        identity = IdentityStore(db)
        catalog = CatalogStore(db)
        ledger = SwapLedger(db)

        item = await catalog.find(swap.item_id, for_update=True)
        if item is None:
            raise NotFoundError(resource="item", resource_id=str(swap.item_id))
        if not item.is_available:
            raise UnavailableError(item_id=str(item.id))

        offered: Optional[Item] = None
        if swap.offered_item_id is not None:
            offered = await catalog.find(swap.offered_item_id, for_update=True)
            if offered is None:
                raise NotFoundError(resource="item", resource_id=str(swap.offered_item_id))
            if not offered.is_available:
                raise UnavailableError(
                    item_id=str(offered.id),
                    message="Offered item is not available",
                )

        if swap.use_points:
            await self._transfer_points(identity, swap)

        await catalog.update(item, is_available=False)
        taken: List[UUID] = [item.id]
        if offered is not None:
            await catalog.update(offered, is_available=False)
            taken.append(offered.id)

        competing = await ledger.list_pending_involving(taken, exclude_id=swap.id)
        for other in competing:
            await ledger.update(other, status=SwapStatus.DECLINED.value)
        if competing:
            logger.info(
                "Swap %s accepted: declined %d competing request(s)",
                swap.id, len(competing),
            )

    async def _transfer_points(self, identity: IdentityStore, swap: SwapRequest) -> None:
        # Rows are locked in a fixed order so concurrent settlements cannot deadlock
        locked = {}
        for user_id in sorted((swap.requester_id, swap.owner_id), key=str):
            locked[user_id] = await identity.get(user_id, for_update=True)
        requester = locked[swap.requester_id]
        owner = locked[swap.owner_id]

        amount = swap.points_offered
        if requester.points < amount:
            logger.warning(
                "Acceptance of swap %s rejected: requester %s has %d points, needs %d",
                swap.id, requester.id, requester.points, amount,
            )
            raise InsufficientBalanceError(required=amount, available=requester.points)

        await identity.update(
            requester,
            points=requester.points - amount,
            swap_count=requester.swap_count + 1,
        )
        await identity.update(
            owner,
            points=owner.points + amount,
            swap_count=owner.swap_count + 1,
        )
        logger.info(
            "Transferred %d points from %s to %s for swap %s",
            amount, requester.id, owner.id, swap.id,
        )

    async def list_swaps_for_user(
        self,
        db: AsyncSession,
        principal: Principal,
    ) -> List[SwapRequest]:
        """Swaps the user requested or that target items the user owns(ed)."""
        return await SwapLedger(db).list_for_user(principal.id)


# ── Singleton Instance ────────────────────────────────────────────────────
swap_service = SwapService()
