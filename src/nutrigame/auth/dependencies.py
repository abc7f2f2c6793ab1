"""FastAPI authentication dependencies.

Bearer tokens are issued by the external identity provider; this service
only verifies them. The ``sub`` claim is the user id.
"""

from __future__ import annotations

from typing import Any

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from nutrigame.config import get_settings
from nutrigame.database import get_session
from nutrigame.db.models import User
from nutrigame.errors import UserNotFound
from nutrigame.users.service import get_user

_bearer = HTTPBearer()


def verify_token(token: str) -> dict[str, Any]:
    """Decode and verify a provider token. Raises jwt.InvalidTokenError on failure."""
    settings = get_settings()
    options = {"require": ["sub", "exp"], "verify_aud": settings.jwt_audience is not None}
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
        options=options,
    )


async def get_caller_id(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
) -> str:
    """Verified identity of the caller; no profile required (signup)."""
    try:
        payload = verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    return str(payload["sub"])


async def get_current_user(
    user_id: str = Depends(get_caller_id),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Profile of the caller. Raises 401 when the identity has not signed up."""
    try:
        return await get_user(db, user_id)
    except UserNotFound as e:
        raise HTTPException(status_code=401, detail="User not found") from e
