"""
Inkpost Backend: User Route Handlers
======================================

What:  Registration, login, token check and logout.
How:   Login returns the token in the body AND sets it as an http-only
       cookie; browsers use the cookie, API clients the Bearer header.
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from inkpost.config import settings
from inkpost.database import get_db_session
from inkpost.routes.deps import get_current_user
from inkpost.schemas.common import ErrorResponse
from inkpost.schemas.user import (
    LoginResponse,
    UserContext,
    UserLogin,
    UserPublic,
    UserRegister,
)
from inkpost.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.post(
    "/register",
    response_model=UserPublic,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"description": "Email already in use", "model": ErrorResponse},
        422: {"description": "Invalid body", "model": ErrorResponse},
    },
    summary="Register a new user",
)
async def register(
    body: UserRegister,
    db: AsyncSession = Depends(get_db_session),
) -> UserPublic:
    return await user_service.register(
        db,
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        password=body.password,
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        401: {"description": "Invalid credentials", "model": ErrorResponse},
        429: {"description": "Too many attempts", "model": ErrorResponse},
    },
    summary="Log in and receive an access token",
)
async def login(
    body: UserLogin,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> LoginResponse:
    result = await user_service.login(db, email=body.email, password=body.password)
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=result.token,
        max_age=settings.access_token_expire_minutes * 60,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="lax",
    )
    return result


@router.get(
    "/auth",
    response_model=UserContext,
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        404: {"description": "Token user no longer exists", "model": ErrorResponse},
    },
    summary="Return the authenticated user",
)
async def auth(current_user: UserContext = Depends(get_current_user)) -> UserContext:
    return current_user


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Clear the auth cookie",
)
async def logout() -> Response:
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(
        key=settings.auth_cookie_name,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="lax",
    )
    return response
