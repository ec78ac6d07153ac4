"""
ReWear Backend — Profile Route Handlers
=========================================
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rewear.auth import CurrentPrincipal
from rewear.database import get_db_session
from rewear.schemas.user import ProfileResponse, ProfileUpdate, UserResponse
from rewear.services.user_service import user_service

router = APIRouter(prefix="/api/user", tags=["Users"])


@router.get("/profile", response_model=UserResponse, summary="Current user's profile")
async def get_profile(
    principal: CurrentPrincipal,
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    user = await user_service.get_profile(db, principal)
    return UserResponse.model_validate(user)


@router.put("/profile", response_model=ProfileResponse, summary="Edit name, location or avatar")
async def update_profile(
    changes: ProfileUpdate,
    principal: CurrentPrincipal,
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    user = await user_service.update_profile(db, principal, changes)
    return ProfileResponse(
        message="Profile updated successfully",
        user=UserResponse.model_validate(user),
    )
