"""
ReWear Backend — Swap Request Schemas
=======================================
"""

import uuid
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class SwapCreate(BaseModel):
    """
    A swap proposal for `item_id`.

    Points swap:  use_points=true, points_offered optional (defaults to the
                  item's valuation).
    Item swap:    use_points=false, offered_item_id required.
    """
    item_id: uuid.UUID
    offered_item_id: Optional[uuid.UUID] = None
    use_points: bool = False
    points_offered: Optional[int] = Field(default=None, gt=0)
    message: str = Field(default="", max_length=1000)


class SwapDecision(BaseModel):
    status: Literal["accepted", "declined", "completed", "cancelled"]


class SwapResponse(BaseModel):
    id: uuid.UUID
    requester_id: uuid.UUID
    requester_name: str
    item_id: uuid.UUID
    item_title: str
    offered_item_id: Optional[uuid.UUID] = None
    offered_item_title: Optional[str] = None
    use_points: bool
    points_offered: int
    status: str
    created_date: date
    created_at: datetime
    message: str

    model_config = {"from_attributes": True}


class SwapMutationResponse(BaseModel):
    message: str
    swap: SwapResponse
