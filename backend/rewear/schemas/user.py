"""
ReWear Backend — User & Auth Schemas
======================================
"""

import uuid
from datetime import date
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    name: str = Field(min_length=2, max_length=100)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    """Public view of a user record (never includes the password hash)."""
    id: uuid.UUID
    email: str
    name: str
    points: int
    swap_count: int
    avatar: Optional[str] = None
    location: str
    join_date: date
    is_admin: bool

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    message: str
    user: UserResponse
    token: str


class ProfileUpdate(BaseModel):
    """Partial profile edit; omitted or empty fields keep their value."""
    name: Optional[str] = Field(default=None, max_length=100)
    location: Optional[str] = Field(default=None, max_length=200)
    avatar: Optional[str] = Field(default=None, max_length=500)


class ProfileResponse(BaseModel):
    message: str
    user: UserResponse
