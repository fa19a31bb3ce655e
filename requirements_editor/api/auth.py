"""
Bearer-token authentication dependency.

The identity-provider callback issues an HS256 JWT carrying the operator's
login, display name, email and numeric id. Protected routes depend on
get_current_user(): no token → 401, bad or expired token → 403.
"""

from __future__ import annotations

import logging
from typing import Any

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from requirements_editor.config import Settings, get_settings
from requirements_editor.models.schemas import UserPrincipal

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def principal_from_claims(claims: dict[str, Any]) -> UserPrincipal:
    username = claims.get("username") or claims.get("login") or claims.get("sub")
    if not username:
        raise ValueError("token carries no username")
    return UserPrincipal(
        username=str(username),
        name=claims.get("name"),
        email=claims.get("email"),
        github_id=claims.get("githubId"),
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> UserPrincipal:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication token required.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        claims = jwt.decode(
            credentials.credentials,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
        return principal_from_claims(claims)
    except (jwt.PyJWTError, ValueError) as exc:
        logger.warning(f"Rejected bearer token: {exc}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or expired token.",
        ) from exc
