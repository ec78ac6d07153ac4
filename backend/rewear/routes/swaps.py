"""
ReWear Backend — Swap Request Route Handlers
==============================================

What:  Propose a swap, list the caller's swaps, decide on a swap.
How:   All rules live in SwapService; these handlers only translate
       HTTP to service calls.

Error Tags (see exceptions.py):
    POST: item_not_found, item_unavailable, self_swap_forbidden,
          insufficient_points, invalid_state
    PUT:  swap_not_found, not_authorized, invalid_state,
          item_unavailable, insufficient_points
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rewear.auth import CurrentPrincipal
from rewear.database import get_db_session
from rewear.schemas.common import ErrorResponse
from rewear.schemas.swap import (
    SwapCreate,
    SwapDecision,
    SwapMutationResponse,
    SwapResponse,
)
from rewear.services.swap_service import swap_service

router = APIRouter(prefix="/api/swaps", tags=["Swaps"])


@router.get(
    "",
    response_model=List[SwapResponse],
    summary="Swaps the caller requested or received",
)
async def list_swaps(
    principal: CurrentPrincipal,
    db: AsyncSession = Depends(get_db_session),
) -> List[SwapResponse]:
    swaps = await swap_service.list_swaps_for_user(db, principal)
    return [SwapResponse.model_validate(swap) for swap in swaps]


@router.post(
    "",
    status_code=201,
    response_model=SwapMutationResponse,
    responses={
        400: {"description": "Insufficient points", "model": ErrorResponse},
        403: {"description": "Own item or foreign offered item", "model": ErrorResponse},
        404: {"description": "Item not found", "model": ErrorResponse},
        409: {"description": "Item unavailable or incomplete request", "model": ErrorResponse},
    },
    summary="Propose a swap",
)
async def create_swap(
    payload: SwapCreate,
    principal: CurrentPrincipal,
    db: AsyncSession = Depends(get_db_session),
) -> SwapMutationResponse:
    swap = await swap_service.propose_swap(
        db=db,
        principal=principal,
        item_id=payload.item_id,
        offered_item_id=payload.offered_item_id,
        use_points=payload.use_points,
        points_offered=payload.points_offered,
        message=payload.message,
    )
    return SwapMutationResponse(
        message="Swap request created successfully",
        swap=SwapResponse.model_validate(swap),
    )


@router.put(
    "/{swap_id}",
    response_model=SwapMutationResponse,
    responses={
        403: {"description": "Caller does not own the requested item", "model": ErrorResponse},
        404: {"description": "Swap request not found", "model": ErrorResponse},
        409: {"description": "Transition not allowed or item taken", "model": ErrorResponse},
    },
    summary="Accept, decline, complete or cancel a swap",
)
async def decide_swap(
    swap_id: UUID,
    decision: SwapDecision,
    principal: CurrentPrincipal,
    db: AsyncSession = Depends(get_db_session),
) -> SwapMutationResponse:
    """
    Accepting settles the swap: points move, both items become unavailable
    and competing pending requests are declined, all in one transaction.
    """
    swap = await swap_service.decide_swap(db, swap_id, principal, decision.status)
    return SwapMutationResponse(
        message="Swap request updated successfully",
        swap=SwapResponse.model_validate(swap),
    )
