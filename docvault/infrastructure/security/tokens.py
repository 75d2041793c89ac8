"""Signed identity tokens.

Tokens are issued elsewhere; this service only needs to read the ``sub`` and
``role`` claims. :func:`create_access_token` exists for scripts and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import ValidationError as PydanticValidationError

from ...modules.permission import Caller, Role
from ..config import settings


class InvalidTokenError(Exception):
    """Raised when a token is malformed, expired, badly signed or lacks claims."""


def create_access_token(user_id: str, role: Role, expires_minutes: Optional[int] = None) -> str:
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES
    )
    to_encode = {"sub": user_id, "role": role.value, "exp": expire}
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Caller:
    """Verify ``token`` and return the caller it identifies.

    Raises:
        InvalidTokenError: If the token cannot be trusted or lacks ``sub``/``role``
    """
    try:
        claims = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        raise InvalidTokenError(str(e)) from e

    try:
        return Caller(user_id=claims.get("sub"), role=claims.get("role"))
    except PydanticValidationError as e:
        raise InvalidTokenError("Token is missing a valid 'sub' or 'role' claim") from e
