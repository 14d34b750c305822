"""System-level endpoints such as maintenance mode toggles."""
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status

from ..dependencies import get_current_user, get_store, require_admin
from ..schemas import SystemStatusRead, SystemStatusUpdate
from ..store import RecordStore

router = APIRouter(prefix="/system", tags=["system"])


def _status(settings: Dict[str, Any]) -> SystemStatusRead:
    return SystemStatusRead(
        site_name=settings["siteName"],
        version=settings["version"],
        maintenance=bool(settings["maintenance"]),
    )


@router.get("/status", response_model=SystemStatusRead)
async def get_status(store: RecordStore = Depends(get_store)) -> SystemStatusRead:
    """Return the site settings including the maintenance toggle."""

    return _status(store.get_settings())


@router.put("/maintenance", response_model=SystemStatusRead)
async def update_maintenance(
    payload: SystemStatusUpdate,
    current_user: Dict[str, Any] = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
) -> SystemStatusRead:
    """Enable or disable maintenance mode (admin only)."""

    require_admin(current_user)

    settings = store.update_settings({"maintenance": payload.maintenance})
    if settings is None:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="System settings not saved")
    return _status(settings)
