"""
Inkpost Backend: Route Dependencies
=====================================

What:  FastAPI dependencies that resolve the caller from the auth token.
How:   An explicit `Authorization: Bearer <token>` header wins; otherwise the
       http-only cookie set at login is used. A stale cookie therefore never
       hides a valid header.

    get_current_user → 401 without a token, 401/404 for a bad one
    require_admin    → everything above, plus 403 for non-admins
"""

from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from inkpost.config import settings
from inkpost.database import get_db_session
from inkpost.exceptions import ForbiddenError, UnauthorizedError
from inkpost.schemas.user import UserContext
from inkpost.services.user_service import user_service


def extract_token(request: Request) -> Optional[str]:
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get(settings.auth_cookie_name) or None


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> UserContext:
    token = extract_token(request)
    if not token:
        raise UnauthorizedError("Authentication required")
    return await user_service.authenticate(db, token)


async def require_admin(
    current_user: UserContext = Depends(get_current_user),
) -> UserContext:
    if not current_user.is_admin:
        raise ForbiddenError()
    return current_user
