"""Authentication routes and helpers."""
from datetime import datetime, timedelta
from typing import Any, Dict

import jwt
from fastapi import APIRouter, Depends, HTTPException, status

from .config import get_settings
from .dependencies import get_current_user, get_store, get_token_data, token_payload
from .exceptions import DuplicateEmail, InvalidCredentials, InvalidValue
from .schemas import (
    AuthResponse,
    Envelope,
    GoogleLoginRequest,
    LoginRequest,
    RegisterRequest,
    Token,
    TokenData,
)
from .store import RecordStore, public_view

router = APIRouter(prefix="/auth", tags=["auth"])


def issue_token(store: RecordStore, user: Dict[str, Any]) -> Token:
    """Open a session for the user and wrap its id in a signed JWT."""

    settings = get_settings()
    session = store.create_session(
        user["id"], timedelta(minutes=settings.access_token_expires_minutes)
    )
    expires_at = datetime.fromisoformat(session["expiresAt"])
    encoded = jwt.encode(
        {**token_payload(user, session), "exp": int(expires_at.timestamp())},
        settings.secret_key,
        algorithm="HS256",
    )
    return Token(access_token=encoded, expires_at=expires_at)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    payload: RegisterRequest, store: RecordStore = Depends(get_store)
) -> AuthResponse:
    """Create a regular account and log it in."""

    try:
        user = store.create_user(payload.model_dump(exclude_none=True))
    except DuplicateEmail as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except InvalidValue as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    return AuthResponse(user=public_view(user), token=issue_token(store, user))


@router.post("/login", response_model=AuthResponse)
async def login(payload: LoginRequest, store: RecordStore = Depends(get_store)) -> AuthResponse:
    """Authenticate with email and password and return a JWT access token."""

    try:
        user = store.authenticate_user(payload.email, payload.password)
    except InvalidCredentials as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        ) from exc
    if user.get("status") != "active":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated")

    return AuthResponse(user=public_view(user), token=issue_token(store, user))


@router.post("/google", response_model=AuthResponse)
async def google_login(
    payload: GoogleLoginRequest, store: RecordStore = Depends(get_store)
) -> AuthResponse:
    """
    Log in with an OAuth profile.

    Unknown profiles need the signup fields as well; without them the
    client gets a 404 and should show the completion form.
    """

    profile = payload.profile.model_dump()
    user = store.authenticate_google_user(profile)
    if user is None:
        if payload.signup is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No account for this Google profile; signup required",
            )
        data = {
            **payload.signup,
            "name": profile["name"],
            "email": profile["email"],
            "isGoogleUser": True,
            "googleId": profile["id"],
            "profileImage": profile["picture"],
        }
        # Role and status are never taken from the client
        data.pop("role", None)
        data.pop("status", None)
        try:
            user = store.create_user(data)
        except DuplicateEmail as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        except InvalidValue as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    if user.get("status") != "active":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated")
    return AuthResponse(user=public_view(user), token=issue_token(store, user))


@router.post("/logout", response_model=Envelope)
async def logout(
    token_data: TokenData = Depends(get_token_data),
    store: RecordStore = Depends(get_store),
) -> Envelope:
    """Invalidate the session behind the presented token."""

    store.delete_session(token_data.jti)
    return Envelope(message="Logged out")


@router.get("/me")
async def me(current_user: Dict[str, Any] = Depends(get_current_user)) -> dict:
    """Verify the token and return the account it belongs to."""

    return {"success": True, "user": public_view(current_user)}
