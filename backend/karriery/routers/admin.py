"""Administrator endpoints: accounts, contact requests, statistics, bulk data."""
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status

from ..backups import create_backup, list_backups, restore_backup
from ..config import get_settings
from ..dependencies import get_current_user, get_store, require_admin
from ..exceptions import DataImportError, DuplicateEmail, InvalidValue
from ..schemas import AdminCreate, ContactStatusUpdate, Envelope, RoleUpdate, StatusUpdate
from ..store import ADMIN_SUMMARY_FIELDS, RecordStore, public_view

router = APIRouter(prefix="/admin", tags=["admin"])


async def get_admin_user(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    require_admin(current_user)
    return current_user


@router.get("/users")
async def list_users(
    q: Optional[str] = None,
    admin: Dict[str, Any] = Depends(get_admin_user),
    store: RecordStore = Depends(get_store),
) -> List[Dict[str, Any]]:
    """Account summaries, optionally filtered by a search string."""

    if q:
        return [{f: u.get(f) for f in ADMIN_SUMMARY_FIELDS} for u in store.search_users(q)]
    return store.get_all_users_for_admin()


@router.post("/users", status_code=status.HTTP_201_CREATED)
async def create_admin_user(
    payload: AdminCreate,
    admin: Dict[str, Any] = Depends(get_admin_user),
    store: RecordStore = Depends(get_store),
) -> Dict[str, Any]:
    try:
        user = store.create_user({**payload.model_dump(), "role": "admin", "title": "Administrator"})
    except DuplicateEmail as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return public_view(user)


@router.put("/users/{user_id}/role", response_model=Envelope)
async def change_role(
    user_id: str,
    payload: RoleUpdate,
    admin: Dict[str, Any] = Depends(get_admin_user),
    store: RecordStore = Depends(get_store),
) -> Envelope:
    try:
        changed = store.change_user_role(user_id, payload.role)
    except InvalidValue as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if not changed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return Envelope(message="Role updated")


@router.put("/users/{user_id}/status", response_model=Envelope)
async def change_status(
    user_id: str,
    payload: StatusUpdate,
    admin: Dict[str, Any] = Depends(get_admin_user),
    store: RecordStore = Depends(get_store),
) -> Envelope:
    if not store.change_user_status(user_id, payload.status):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return Envelope(message="Status updated")


@router.delete("/users/{user_id}", response_model=Envelope)
async def delete_user(
    user_id: str,
    admin: Dict[str, Any] = Depends(get_admin_user),
    store: RecordStore = Depends(get_store),
) -> Envelope:
    if user_id == admin["id"]:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot delete your own account")
    if store.get_user(user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    try:
        store.delete_user(user_id)
    except InvalidValue as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return Envelope(message="User deleted")


@router.get("/tickets")
async def search_tickets(
    q: str = "",
    admin: Dict[str, Any] = Depends(get_admin_user),
    store: RecordStore = Depends(get_store),
) -> List[Dict[str, Any]]:
    return store.search_tickets(q) if q else store.get_all_tickets()


@router.get("/contacts")
async def list_contact_requests(
    admin: Dict[str, Any] = Depends(get_admin_user),
    store: RecordStore = Depends(get_store),
) -> dict:
    return {"success": True, "requests": store.get_contact_requests()}


@router.put("/contacts/{request_id}", response_model=Envelope)
async def update_contact_status(
    request_id: str,
    payload: ContactStatusUpdate,
    admin: Dict[str, Any] = Depends(get_admin_user),
    store: RecordStore = Depends(get_store),
) -> Envelope:
    if not store.update_contact_status(request_id, payload.status):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contact request not found")
    return Envelope(message="Status updated")


@router.get("/statistics")
async def statistics(
    admin: Dict[str, Any] = Depends(get_admin_user),
    store: RecordStore = Depends(get_store),
) -> dict:
    """Persisted ticket/user statistics plus live account breakdown."""

    return {"statistics": store.get_statistics(), "users": store.get_user_stats()}


@router.get("/export")
async def export_data(
    admin: Dict[str, Any] = Depends(get_admin_user),
    store: RecordStore = Depends(get_store),
) -> Dict[str, Any]:
    return store.export_all_data()


@router.post("/import", response_model=Envelope)
async def import_data(
    bundle: Any = Body(...),
    admin: Dict[str, Any] = Depends(get_admin_user),
    store: RecordStore = Depends(get_store),
) -> Envelope:
    """Replace all users, tickets and system data with an export bundle."""

    try:
        ok = store.import_data(bundle)
    except DataImportError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if not ok:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Import was not fully written")
    return Envelope(message="Data imported")


@router.get("/backups")
async def get_backups(admin: Dict[str, Any] = Depends(get_admin_user)) -> List[Dict[str, Any]]:
    backups = list_backups(Path(get_settings().backup_dir))
    return [{k: v for k, v in b.items() if k != "path"} for b in backups]


@router.post("/backups", status_code=status.HTTP_201_CREATED)
async def make_backup(
    admin: Dict[str, Any] = Depends(get_admin_user),
    store: RecordStore = Depends(get_store),
) -> dict:
    return create_backup(store, Path(get_settings().backup_dir))


@router.post("/backups/{backup_id}/restore", response_model=Envelope)
async def restore(
    backup_id: str,
    admin: Dict[str, Any] = Depends(get_admin_user),
    store: RecordStore = Depends(get_store),
) -> Envelope:
    try:
        ok = restore_backup(store, Path(get_settings().backup_dir), backup_id)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except DataImportError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if not ok:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Restore was not fully written")
    return Envelope(message="Backup restored")
