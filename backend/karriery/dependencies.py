"""Reusable FastAPI dependencies."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import get_settings
from .schemas import TokenData
from .store import RecordStore

# Use simple Bearer auth instead of OAuth2 password flow
bearer_scheme = HTTPBearer(auto_error=False)


def get_store(request: Request) -> RecordStore:
    """The store built at application start."""
    return request.app.state.store


def get_token_data(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> TokenData:
    """Decode the Authorization: Bearer <token> header."""

    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    try:
        return decode_access_token(credentials.credentials)
    except jwt.PyJWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from exc


async def get_current_user(
    token_data: TokenData = Depends(get_token_data),
    store: RecordStore = Depends(get_store),
) -> Dict[str, Any]:
    """
    Return the user behind a live session.

    The token must still have a session record (logout deletes it) and
    the account must be active.
    """

    session = store.get_session(token_data.jti)
    if session is None or session.get("userId") != token_data.sub:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    user = store.get_user(token_data.sub)
    if user is None or user.get("status") != "active":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Inactive or missing user",
        )
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    store: RecordStore = Depends(get_store),
) -> Optional[Dict[str, Any]]:
    """Like get_current_user, but anonymous callers get None instead of 401."""

    if credentials is None:
        return None
    try:
        token_data = decode_access_token(credentials.credentials)
    except jwt.PyJWTError:
        return None
    session = store.get_session(token_data.jti)
    if session is None or session.get("userId") != token_data.sub:
        return None
    user = store.get_user(token_data.sub)
    if user is None or user.get("status") != "active":
        return None
    return user


def require_admin(user: Dict[str, Any]) -> None:
    """Ensure the current user has the admin role."""

    if user.get("role") != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator role required",
        )


def decode_access_token(token: str) -> TokenData:
    """Decode a JWT access token and return its payload."""

    payload: Dict[str, Any] = jwt.decode(
        token,
        get_settings().secret_key,
        algorithms=["HS256"],
    )
    return TokenData(**payload)


def token_payload(user: Dict[str, Any], session: Dict[str, Any]) -> dict[str, Any]:
    """
    Generate the JWT payload for a user's session.

    auth.issue_token() will add "exp" on top of this.
    """
    return {
        "sub": user["id"],
        "jti": session["id"],
        "iat": int(datetime.now(timezone.utc).timestamp()),
    }
