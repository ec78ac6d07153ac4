"""
ReWear Backend — Admin Route Handlers
=======================================

What:  Moderation queue, approval, reject-and-delete and dashboard stats.
Who:   Admin dashboard only; every route depends on AdminPrincipal.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rewear.auth import AdminPrincipal
from rewear.database import get_db_session
from rewear.schemas.common import ErrorResponse, MessageResponse, StatsResponse
from rewear.schemas.item import ItemMutationResponse, ItemResponse
from rewear.services.catalog_service import to_item_response
from rewear.services.moderation_service import moderation_service
from rewear.services.stats_service import stats_service

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    responses={403: {"description": "Admin access required", "model": ErrorResponse}},
)


@router.get("/items", response_model=List[ItemResponse], summary="Listings awaiting approval")
async def list_pending_items(
    principal: AdminPrincipal,
    db: AsyncSession = Depends(get_db_session),
) -> List[ItemResponse]:
    items = await moderation_service.list_pending(db, principal)
    return [to_item_response(item) for item in items]


@router.put(
    "/items/{item_id}/approve",
    response_model=ItemMutationResponse,
    summary="Approve a listing",
)
async def approve_item(
    item_id: UUID,
    principal: AdminPrincipal,
    db: AsyncSession = Depends(get_db_session),
) -> ItemMutationResponse:
    item = await moderation_service.approve_item(db, principal, item_id)
    return ItemMutationResponse(
        message="Item approved successfully",
        item=to_item_response(item),
    )


@router.delete(
    "/items/{item_id}",
    response_model=MessageResponse,
    summary="Reject and delete a listing",
)
async def reject_item(
    item_id: UUID,
    principal: AdminPrincipal,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await moderation_service.reject_and_delete(db, principal, item_id)
    return MessageResponse(message="Item rejected and deleted")


@router.get("/stats", response_model=StatsResponse, summary="Dashboard counters")
async def get_stats(
    principal: AdminPrincipal,
    db: AsyncSession = Depends(get_db_session),
) -> StatsResponse:
    return await stats_service.get_stats(db, principal)
