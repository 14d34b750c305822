"""Public contact form endpoint."""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, status

from ..dependencies import get_optional_user, get_store
from ..schemas import ContactCreate, Envelope
from ..store import RecordStore

router = APIRouter(prefix="/contact", tags=["contact"])


@router.post("", response_model=Envelope, status_code=status.HTTP_201_CREATED)
async def send_contact_request(
    payload: ContactCreate,
    current_user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    store: RecordStore = Depends(get_store),
) -> Envelope:
    """Record a contact message, linked to the sender's account when signed in."""

    store.create_contact_request(
        name=payload.name,
        email=payload.email,
        message=payload.message,
        user_id=current_user["id"] if current_user else None,
    )
    return Envelope(message="Message sent successfully")
