"""
Notekeep Backend: Auth Route Handlers
=======================================

What:  POST /register, POST /login and GET /me.
How:   Bodies are validated by the pydantic request models; everything else
       is delegated to AuthService.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from notekeep.database import get_db_session
from notekeep.dependencies import get_auth_service, get_current_user
from notekeep.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from notekeep.schemas.common import ErrorResponse
from notekeep.services.auth_service import AuthenticatedUser, AuthService

router = APIRouter(tags=["Auth"])


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid body", "model": ErrorResponse},
        409: {"description": "Email already registered", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    return await auth_service.register(db, body.email, body.password)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={
        400: {"description": "Invalid body", "model": ErrorResponse},
        401: {"description": "Invalid credentials", "model": ErrorResponse},
    },
    summary="Exchange credentials for a token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    return await auth_service.login(db, body.email, body.password)


@router.get(
    "/me",
    response_model=UserResponse,
    responses={401: {"description": "Not authenticated", "model": ErrorResponse}},
    summary="Current user's profile",
)
async def me(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    return await auth_service.get_profile(db, user.user_id)
