"""
Inkpost Backend: User Service
===============================

What:  Registration, credential verification and token authentication.
Who:   /users routes and the auth dependencies guarding admin routes.

Security Notes:
    - Passwords are hashed with bcrypt (salted, adaptive) before insert.
    - login() answers "Invalid credentials" for an unknown email AND for a
      wrong password, so the response never reveals which one failed.
    - authenticate() re-reads the user on every call: revoking is_admin in
      the database takes effect on the next request, not the next login.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from inkpost.config import settings
from inkpost.exceptions import ConflictError, DatabaseError, NotFoundError, UnauthorizedError
from inkpost.models.user import User
from inkpost.schemas.user import LoginResponse, UserContext, UserPublic
from inkpost.security import (
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


def _public(user: User) -> UserPublic:
    return UserPublic(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        is_admin=user.is_admin,
    )


class UserService:
    async def _get_by_email(self, db: AsyncSession, email: str):
        try:
            result = await db.execute(select(User).where(User.email == email.strip().lower()))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error looking up user by email: %s", str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})

    async def register(
        self,
        db: AsyncSession,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
    ) -> UserPublic:
        """
        Create an account.

        Emails listed in ADMIN_EMAILS are created as admins; everyone else
        starts with is_admin = False.

        Raises:
            ConflictError: the email is already registered
            DatabaseError: any other storage failure
        """
        email = email.strip().lower()
        user = User(
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=email,
            password_hash=get_password_hash(password),
            is_admin=email in settings.admin_emails_list,
        )
        try:
            db.add(user)
            await db.flush()
        except IntegrityError as e:
            await db.rollback()
            logger.info("Registration rejected: email already in use")
            raise ConflictError("Email already in use", context={"error_type": type(e).__name__})
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error registering user: %s", str(e), exc_info=True)
            raise DatabaseError(context={"error_type": type(e).__name__})

        logger.info("User %s registered (admin=%s)", user.id, user.is_admin)
        return _public(user)

    async def login(self, db: AsyncSession, email: str, password: str) -> LoginResponse:
        """
        Check credentials and issue an access token.

        Raises:
            UnauthorizedError: unknown email or wrong password (same message)
        """
        user = await self._get_by_email(db, email)
        if user is None or not verify_password(password, user.password_hash):
            raise UnauthorizedError(INVALID_CREDENTIALS)

        token = create_access_token(user_id=user.id, email=user.email)
        logger.info("User %s logged in", user.id)
        return LoginResponse(token=token, user=_public(user))

    async def authenticate(self, db: AsyncSession, token: str) -> UserContext:
        """
        Resolve a token to the current state of its user.

        Raises:
            UnauthorizedError: signature, expiry or claims are invalid
            NotFoundError:     the token is valid but the user no longer exists
        """
        payload = decode_access_token(token)
        user_id = int(payload["sub"])
        try:
            user = await db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error loading user %s: %s", user_id, str(e))
            raise DatabaseError(context={"user_id": user_id})
        if user is None:
            raise NotFoundError(resource="user")
        return UserContext(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            is_admin=user.is_admin,
        )


user_service = UserService()
