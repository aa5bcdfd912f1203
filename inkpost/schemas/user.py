"""
Inkpost Backend: User Schemas
===============================

What:  Request bodies for register/login and the public user projections.
Note:  password_hash never appears in any response model.
"""

from pydantic import EmailStr, Field

from inkpost.schemas.common import CamelModel


class UserRegister(CamelModel):
    first_name: str = Field(min_length=3, max_length=30, examples=["David"])
    last_name: str = Field(min_length=3, max_length=30, examples=["Smith"])
    email: EmailStr = Field(examples=["david@example.com"])
    password: str = Field(min_length=6, max_length=30, examples=["12345678"])


class UserLogin(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=30)


class UserPublic(CamelModel):
    """User summary returned by register and login."""
    id: int
    email: str
    first_name: str
    last_name: str
    is_admin: bool = False


class UserContext(UserPublic):
    """
    The authenticated user, re-read from storage on every request.

    Returned by GET /users/auth and injected into admin-gated routes.
    """


class LoginResponse(CamelModel):
    token: str = Field(description="Signed access token (also set as an http-only cookie)")
    user: UserPublic
