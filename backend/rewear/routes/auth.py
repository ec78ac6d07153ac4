"""
ReWear Backend — Auth Route Handlers
======================================

What:  Registration and login; both return a bearer token.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rewear.database import get_db_session
from rewear.schemas.common import ErrorResponse
from rewear.schemas.user import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from rewear.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=AuthResponse,
    responses={409: {"description": "Email already registered", "model": ErrorResponse}},
    summary="Create an account",
)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    user, token = await auth_service.register(
        db=db,
        email=payload.email,
        password=payload.password,
        name=payload.name,
    )
    return AuthResponse(
        message="User registered successfully",
        user=UserResponse.model_validate(user),
        token=token,
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Log in with email and password",
)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    user, token = await auth_service.login(db=db, email=payload.email, password=payload.password)
    return AuthResponse(
        message="Login successful",
        user=UserResponse.model_validate(user),
        token=token,
    )
