"""Profile, preference and notification endpoints for the signed-in user."""
import base64
import binascii
import time
from pathlib import Path
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..config import get_settings
from ..dependencies import get_current_user, get_store
from ..exceptions import InvalidValue
from ..schemas import Envelope, PreferencesUpdate, ProfileImageUpload, ProfileUpdate
from ..store import RecordStore, public_view

router = APIRouter(prefix="/profile", tags=["profile"])

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}


@router.put("")
async def update_profile(
    payload: ProfileUpdate,
    current_user: Dict[str, Any] = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
) -> dict:
    """Merge the sent profile fields into the stored profile."""

    changes = payload.model_dump(exclude_unset=True)
    name = changes.pop("name", None)
    try:
        user = store.update_user_profile(current_user["id"], changes)
    except InvalidValue as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    if name:
        user["name"] = name
        store.update_user(user)
    return {"success": True, "message": "Profile updated successfully", "user": public_view(user)}


@router.put("/preferences")
async def update_preferences(
    payload: PreferencesUpdate,
    current_user: Dict[str, Any] = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
) -> dict:
    user = store.update_user_preferences(current_user["id"], payload.model_dump(exclude_unset=True))
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return {"success": True, "preferences": user["preferences"]}


@router.post("/image")
async def upload_profile_image(
    payload: ProfileImageUpload,
    current_user: Dict[str, Any] = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
) -> dict:
    """Store an avatar as `<userId>_<epoch>.<ext>` in the upload directory."""

    extension = Path(payload.filename).suffix.lower()
    if extension not in IMAGE_EXTENSIONS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unsupported image type")
    try:
        raw = base64.b64decode(payload.content_base64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Image is not valid base64") from exc

    upload_dir = Path(get_settings().upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    file_name = f"{current_user['id']}_{int(time.time())}{extension}"
    try:
        (upload_dir / file_name).write_bytes(raw)
    except OSError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Upload failed") from exc

    user = store.update_user_profile(current_user["id"], {"avatar": file_name})
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    user["profileImage"] = file_name
    store.update_user(user)
    return {"success": True, "profile_image": file_name}


@router.get("/export")
async def export_profile(
    current_user: Dict[str, Any] = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
) -> Response:
    """Download the caller's own record as JSON."""

    data = store.export_user_data(current_user["id"])
    if data is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return Response(content=data, media_type="application/json")


@router.get("/notifications")
async def list_notifications(
    current_user: Dict[str, Any] = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    return current_user.get("notifications") or []


@router.post("/notifications/{notification_id}/read", response_model=Envelope)
async def mark_notification_read(
    notification_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
) -> Envelope:
    if not store.mark_notification_as_read(current_user["id"], notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return Envelope()
