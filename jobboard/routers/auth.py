"""
ART Job Board - Authentication Router

API endpoints for user authentication.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.database import get_async_session
from jobboard.dependencies import get_current_active_user, require_permission
from jobboard.models.user import User
from jobboard.schemas.auth import (
    TokenResponse,
    UserCreateRequest,
    UserLoginRequest,
    UserRegisterRequest,
    UserResponse,
    UserWithTokenResponse,
)
from jobboard.services.auth_service import AuthService
from jobboard.utils.permissions import Permission


router = APIRouter()


@router.post(
    "/register",
    response_model=UserWithTokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a client",
    description="Create a client company and its portal login. New clients start on the Elite tier.",
)
async def register(
    request: UserRegisterRequest,
    db: AsyncSession = Depends(get_async_session),
):
    auth_service = AuthService(db)
    user = await auth_service.register_user(
        email=request.email,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
        company_name=request.company_name,
        phone=request.phone,
        timezone_name=request.timezone,
    )
    return UserWithTokenResponse(
        user=UserResponse.model_validate(user),
        tokens=TokenResponse(**auth_service.create_token(user)),
    )


@router.post(
    "/login",
    response_model=UserWithTokenResponse,
    summary="Login",
    description="Authenticate with email and password to receive a bearer token.",
)
async def login(
    request: UserLoginRequest,
    db: AsyncSession = Depends(get_async_session),
):
    auth_service = AuthService(db)
    user = await auth_service.authenticate_user(request.email, request.password)
    return UserWithTokenResponse(
        user=UserResponse.model_validate(user),
        tokens=TokenResponse(**auth_service.create_token(user)),
    )


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
)
async def get_me(
    current_user: User = Depends(get_current_active_user),
):
    return current_user


@router.post(
    "/users",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create account",
    description="Create an estimator, admin or portal account. Admin only.",
)
async def create_user(
    request: UserCreateRequest,
    current_user: User = Depends(require_permission(Permission.MANAGE_CLIENTS)),
    db: AsyncSession = Depends(get_async_session),
):
    auth_service = AuthService(db)
    return await auth_service.create_user(
        email=request.email,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
        role=request.role,
        client_id=request.client_id,
    )
