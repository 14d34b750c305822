"""Support ticket endpoints."""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from ..dependencies import get_current_user, get_store, require_admin
from ..exceptions import InvalidValue
from ..schemas import Envelope, ReplyCreate, TicketCreate, TicketStatusUpdate
from ..store import RecordStore

router = APIRouter(prefix="/tickets", tags=["tickets"])


def _load_visible_ticket(store: RecordStore, ticket_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    ticket = store.get_ticket(ticket_id)
    if ticket is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ticket not found")
    if user.get("role") != "admin" and ticket.get("userId") != user["id"]:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your ticket")
    return ticket


@router.get("/")
async def list_tickets(
    current_user: Dict[str, Any] = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
) -> List[Dict[str, Any]]:
    """Admins see every ticket; everyone else sees their own."""

    if current_user.get("role") == "admin":
        return store.get_all_tickets()
    return store.get_user_tickets(current_user["id"])


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_ticket(
    payload: TicketCreate,
    current_user: Dict[str, Any] = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
) -> Dict[str, Any]:
    data = payload.model_dump()
    data.update(
        userId=current_user["id"],
        userName=current_user.get("name"),
        userEmail=current_user.get("email"),
        subject=payload.subject.strip(),
        message=payload.message.strip(),
    )
    return store.create_ticket(data)


@router.get("/{ticket_id}")
async def get_ticket(
    ticket_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
) -> Dict[str, Any]:
    """The ticket plus its replies merged into one time-ordered thread."""

    ticket = _load_visible_ticket(store, ticket_id, current_user)
    return {"ticket": ticket, "thread": store.get_ticket_thread(ticket_id) or []}


@router.post("/{ticket_id}/replies", status_code=status.HTTP_201_CREATED)
async def reply_to_ticket(
    ticket_id: str,
    payload: ReplyCreate,
    current_user: Dict[str, Any] = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
) -> Dict[str, Any]:
    """Add a reply; staff replies also notify the ticket owner."""

    ticket = _load_visible_ticket(store, ticket_id, current_user)
    reply = store.add_reply_to_ticket(
        ticket_id,
        {
            "userId": current_user["id"],
            "userName": current_user.get("name"),
            "userRole": current_user.get("role"),
            "message": payload.message.strip(),
            "attachments": [a.model_dump() for a in payload.attachments],
        },
    )
    if reply is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ticket not found")

    if current_user.get("role") == "admin" and ticket.get("userId") != current_user["id"]:
        store.add_notification(
            ticket["userId"],
            {
                "type": "ticket_reply",
                "title": "New Reply to Your Ticket",
                "message": f"Admin {current_user.get('name')} has replied to your ticket: {ticket.get('subject')}",
                "data": {"ticketId": ticket_id},
            },
        )
    return reply


@router.put("/{ticket_id}/status", response_model=Envelope)
async def update_ticket_status(
    ticket_id: str,
    payload: TicketStatusUpdate,
    current_user: Dict[str, Any] = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
) -> Envelope:
    """Move a ticket between open, in_progress and closed (admin only)."""

    require_admin(current_user)
    try:
        updated = store.update_ticket(ticket_id, {"status": payload.status})
    except InvalidValue as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ticket not found")
    return Envelope(message="Status updated")
