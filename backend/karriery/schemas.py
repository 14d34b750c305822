"""Pydantic schemas used by the record store and the HTTP API."""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

UserRole = Literal["user", "admin"]
UserStatus = Literal["active", "inactive"]
TicketStatus = Literal["open", "in_progress", "closed"]
TicketCategory = Literal["general", "technical", "billing", "feature", "bug"]
TicketPriority = Literal["low", "medium", "high", "urgent"]
ContactStatus = Literal["pending", "read", "replied"]


class _Record(BaseModel):
    """Stored records use camelCase keys and may carry extra fields."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


# ---------------------------------------------------------------------------
# Stored record shapes (used to validate bulk imports)
# ---------------------------------------------------------------------------


class Attachment(BaseModel):
    """Attachment metadata; file contents are never stored."""

    name: str
    size: int = 0
    type: str = ""


class Reply(_Record):
    id: str
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    user_role: Optional[str] = None
    message: str
    attachments: List[Attachment] = Field(default_factory=list)
    created_at: str


class TicketRecord(_Record):
    id: str
    user_id: Optional[str] = None
    subject: str
    message: str
    category: TicketCategory = "general"
    priority: TicketPriority = "medium"
    status: TicketStatus = "open"
    attachments: List[Attachment] = Field(default_factory=list)
    replies: List[Reply] = Field(default_factory=list)
    admin_replies: List[Reply] = Field(default_factory=list)
    created_at: str
    updated_at: str


class Notification(_Record):
    id: str
    type: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None
    read: bool = False
    created_at: str
    data: Dict[str, Any] = Field(default_factory=dict)


class UserRecord(_Record):
    id: str
    name: Optional[str] = None
    email: str
    password_hash: Optional[str] = None
    # Legacy exports carried plaintext passwords; hashed on import.
    password: Optional[str] = None
    role: UserRole = "user"
    status: UserStatus = "active"
    profile: Optional[Dict[str, Any]] = None
    preferences: Optional[Dict[str, Any]] = None
    notifications: List[Notification] = Field(default_factory=list)


class SystemRecord(_Record):
    settings: Dict[str, Any] = Field(default_factory=dict)
    statistics: Dict[str, Any] = Field(default_factory=dict)


class ExportBundle(_Record):
    """Shape of exportAllData() output accepted back by import_data()."""

    users: List[UserRecord]
    tickets: List[TicketRecord]
    system: Optional[SystemRecord] = None
    exported_at: Optional[str] = None


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------


class Envelope(BaseModel):
    """Generic `{success, message}` response body."""

    success: bool = True
    message: Optional[str] = None


class Token(BaseModel):
    """JWT response payload."""

    access_token: str
    token_type: str = "bearer"
    expires_at: datetime


class TokenData(BaseModel):
    """Information encoded into JWTs."""

    sub: str
    jti: str


class AuthResponse(Envelope):
    user: Dict[str, Any]
    token: Token


class LoginRequest(BaseModel):
    """Credentials supplied during login; the admin account logs in as 'admin'."""

    email: str
    password: str


class RegisterRequest(BaseModel):
    """Payload for user registration."""

    name: str
    email: EmailStr
    password: str = Field(min_length=4)
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    experience: Optional[str] = None
    bio: Optional[str] = None
    skills: Optional[List[str]] = None


class GoogleProfile(BaseModel):
    """Profile as returned by the OAuth provider's userinfo endpoint."""

    id: str
    name: str
    email: EmailStr
    picture: Optional[str] = None


class GoogleLoginRequest(BaseModel):
    profile: GoogleProfile
    # Extra signup fields collected when the account does not exist yet
    signup: Optional[Dict[str, Any]] = None


class ProfileUpdate(BaseModel):
    """Partial profile; only fields sent by the client are merged."""

    # Display name lives on the user record, not inside the profile
    name: Optional[str] = None
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    experience: Optional[str] = None
    bio: Optional[str] = None
    skills: Optional[List[str]] = None
    education: Optional[List[Dict[str, str]]] = None
    experience_details: Optional[List[Dict[str, str]]] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    linkedin: Optional[str] = None
    github: Optional[str] = None
    twitter: Optional[str] = None


class PreferencesUpdate(BaseModel):
    theme: Optional[Literal["light", "dark", "auto"]] = None
    language: Optional[str] = None
    notifications: Optional[Dict[str, bool]] = None
    privacy: Optional[Dict[str, Any]] = None


class ProfileImageUpload(BaseModel):
    """Image sent as base64 so uploads stay plain JSON."""

    filename: str
    content_base64: str


class TicketCreate(BaseModel):
    subject: str = Field(min_length=1)
    message: str = Field(min_length=1)
    category: TicketCategory = "general"
    priority: TicketPriority = "medium"
    attachments: List[Attachment] = Field(default_factory=list)


class ReplyCreate(BaseModel):
    message: str = Field(min_length=1)
    attachments: List[Attachment] = Field(default_factory=list)


class TicketStatusUpdate(BaseModel):
    status: TicketStatus


class ContactCreate(BaseModel):
    name: str
    email: EmailStr
    message: str = Field(min_length=1)


class ContactStatusUpdate(BaseModel):
    status: ContactStatus


class RoleUpdate(BaseModel):
    role: UserRole


class StatusUpdate(BaseModel):
    status: UserStatus


class AdminCreate(BaseModel):
    name: str
    email: str
    password: str = Field(min_length=4)


class SystemStatusRead(BaseModel):
    """Public view of the system settings."""

    site_name: str
    version: str
    maintenance: bool


class SystemStatusUpdate(BaseModel):
    maintenance: bool


def compute_expiry(minutes: int) -> datetime:
    """Return an absolute expiration timestamp for tokens."""

    return datetime.now(timezone.utc) + timedelta(minutes=minutes)
