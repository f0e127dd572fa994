"""
Caller Identity

Verifies bearer tokens issued by the identity provider and extracts the
owner id every store operation is scoped by. Tokens are HS256 JWTs whose
``sub`` claim is the user's UUID.
"""

from __future__ import annotations

import logging
import time
import uuid

from jose import JWTError, jwt

from second_brain.core.config import settings
from second_brain.core.exceptions import AuthError

logger = logging.getLogger(__name__)


def resolve_owner_id(token: str) -> uuid.UUID:
    """
    Decode a bearer token and return the owner UUID.

    Raises:
        AuthError: If the token is invalid, expired, or has no usable ``sub``.
    """
    options = {"verify_aud": settings.JWT_AUDIENCE is not None}
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            options=options,
        )
    except JWTError as e:
        logger.info("Rejected bearer token: %s", e)
        raise AuthError() from e

    subject = payload.get("sub")
    if not subject:
        raise AuthError()
    try:
        return uuid.UUID(str(subject))
    except ValueError as e:
        raise AuthError() from e


def create_access_token(owner_id: uuid.UUID, expires_in: int = 3600) -> str:
    """
    Issue a token for ``owner_id``.

    Production tokens come from the identity provider; this exists for
    scripts and local testing against the same secret.
    """
    now = int(time.time())
    claims: dict[str, object] = {"sub": str(owner_id), "iat": now, "exp": now + expires_in}
    if settings.JWT_AUDIENCE is not None:
        claims["aud"] = settings.JWT_AUDIENCE
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
