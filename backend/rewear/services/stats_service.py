"""
ReWear Backend — Stats Service
================================

Read-only admin counters derived from the three stores on every call.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from rewear.auth import Principal, ensure_admin
from rewear.models.swap import SwapStatus
from rewear.schemas.common import StatsResponse
from rewear.stores import CatalogStore, IdentityStore, SwapLedger


class StatsService:

    async def get_stats(self, db: AsyncSession, principal: Principal) -> StatsResponse:
        ensure_admin(principal)
        catalog = CatalogStore(db)
        ledger = SwapLedger(db)
        return StatsResponse(
            total_users=await IdentityStore(db).count(),
            total_items=await catalog.count(),
            pending_items=await catalog.count(approved=False),
            total_swaps=await ledger.count(),
            completed_swaps=await ledger.count(status=SwapStatus.COMPLETED),
        )


stats_service = StatsService()
