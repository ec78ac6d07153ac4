"""
ReWear Backend — Listing Schemas
==================================

What:  Listing creation input, listing output and the availability toggle.
How:   ItemCreate carries the validation rules for new listings:
       title 3-100 chars, description 10-500 chars, fixed category and
       condition vocabularies, non-empty size, positive point valuation.
"""

import json
import uuid
from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class ItemCategory(str, Enum):
    TOPS = "tops"
    BOTTOMS = "bottoms"
    DRESSES = "dresses"
    OUTERWEAR = "outerwear"
    SHOES = "shoes"
    ACCESSORIES = "accessories"


class ItemCondition(str, Enum):
    NEW = "new"
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"


class ItemCreate(BaseModel):
    title: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=10, max_length=500)
    category: ItemCategory
    type: str = Field(default="", max_length=100)
    size: str = Field(min_length=1, max_length=50)
    condition: ItemCondition
    tags: List[str] = Field(default_factory=list)
    points_value: Optional[int] = Field(default=None, gt=0)

    @field_validator("title", "description", "size", "type", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, v):
        """
        Accepts a list, a JSON array string (multipart form field) or a
        comma-separated string.
        """
        if v is None or v == "":
            return []
        if isinstance(v, str):
            text = v.strip()
            if text.startswith("["):
                try:
                    v = json.loads(text)
                except json.JSONDecodeError:
                    raise ValueError("tags must be a JSON array of strings")
            else:
                v = text.split(",")
        if not isinstance(v, list):
            raise ValueError("tags must be a list of strings")
        return [str(tag).strip() for tag in v if str(tag).strip()]


class ItemResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    category: str
    type: str
    size: str
    condition: str
    tags: List[str]
    images: List[str] = Field(description="URL paths of the listing images")
    uploader_id: uuid.UUID
    uploader_name: str
    uploader_avatar: Optional[str] = None
    points_value: int
    is_available: bool
    is_approved: bool
    upload_date: date
    location: str

    model_config = {"from_attributes": True}


class ItemAvailabilityUpdate(BaseModel):
    is_available: Optional[bool] = None


class ItemMutationResponse(BaseModel):
    message: str
    item: ItemResponse
