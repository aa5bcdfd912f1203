"""
Inkpost Backend: Password Hashing and Access Tokens
=====================================================

What:  Thin wrappers over passlib (bcrypt) and python-jose (HS256 JWT).
Why:   UserService and the auth dependencies share one configured
       CryptContext and one place that knows the token claims.

Token claims:
    sub:   user id as a string (JWT requires a string subject)
    email: user email at issue time
    exp:   expiry, ACCESS_TOKEN_EXPIRE_MINUTES after issue
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from inkpost.config import settings
from inkpost.exceptions import UnauthorizedError

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)


def get_password_hash(password: str) -> str:
    """Salted adaptive hash; the salt and cost are embedded in the result."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    user_id: int,
    email: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Issue a signed, time-limited token embedding the user id and email."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {"sub": str(user_id), "email": email, "exp": expire}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify signature and expiry and return the claims.

    Raises:
        UnauthorizedError: bad signature, expired, malformed, or missing sub
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise UnauthorizedError(
            "Invalid or expired token",
            context={"reason": type(e).__name__},
        )
    sub = payload.get("sub")
    if sub is None or not str(sub).isdigit():
        raise UnauthorizedError("Invalid or expired token", context={"reason": "bad_subject"})
    return payload
