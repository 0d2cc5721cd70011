"""Bearer token helpers.

Accounts live outside this service; a request is attributed to an owner by
the ``userId`` claim of an HS256 token signed with ``SECRET_KEY``.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from app.core.config import settings
from app.models.link import OWNER_ID_MAX_LENGTH

USER_ID_CLAIM = "userId"


class AuthenticationError(Exception):
    """The bearer token is missing, malformed, expired or carries no user id."""
    pass


def create_access_token(user_id: str, expires_minutes: Optional[int] = None) -> str:
    """Sign an access token for ``user_id``."""
    minutes = settings.TOKEN_EXPIRE_MINUTES if expires_minutes is None else expires_minutes
    now = datetime.now(timezone.utc)
    payload = {
        USER_ID_CLAIM: user_id,
        "sub": user_id,
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """
    Verify a token and return the requester id it carries.

    Raises:
        AuthenticationError: If verification fails for any reason
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["exp"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthenticationError("Token has expired") from e
    except jwt.InvalidTokenError as e:
        raise AuthenticationError("Invalid token") from e

    user_id = payload.get(USER_ID_CLAIM) or payload.get("sub")
    if not user_id or not isinstance(user_id, str):
        raise AuthenticationError("Token does not identify a user")
    if len(user_id) > OWNER_ID_MAX_LENGTH:
        raise AuthenticationError("Token user id is too long")
    return user_id
