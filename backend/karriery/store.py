"""
Local record store for users, support tickets and site-wide state.

Every collection is one JSON blob in a key-value substrate, so every
mutation is a read-modify-write of the whole collection. Readers always
get freshly decoded snapshots; to persist a change callers hand the
record back through one of the update methods.

Substrate failures never escape this module: reads degrade to empty
results and writes report False. Only the domain errors from
karriery.exceptions are raised to callers.
"""
from __future__ import annotations

import json
import logging
import secrets
import string
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from passlib.context import CryptContext
from pydantic import ValidationError

from .exceptions import (
    DataImportError,
    DuplicateEmail,
    InvalidCredentials,
    InvalidValue,
    PersistenceUnavailable,
)
from .schemas import ExportBundle
from .storage import KeyValueSubstrate

logger = logging.getLogger(__name__)

USERS_KEY = "karriery_users.json"
TICKETS_KEY = "karriery_support.json"
SYSTEM_KEY = "karriery_system.json"
CONTACTS_KEY = "karriery_contacts.json"
SESSIONS_KEY = "karriery_sessions.json"
CURRENT_USER_KEY = "karriery_current_user"

NOTIFICATION_LIMIT = 50

USER_ROLES = ("user", "admin")
USER_STATUSES = ("active", "inactive")
TICKET_STATUSES = ("open", "in_progress", "closed")
TICKET_CATEGORIES = ("general", "technical", "billing", "feature", "bug")
TICKET_PRIORITIES = ("low", "medium", "high", "urgent")
CONTACT_STATUSES = ("pending", "read", "replied")
EXPERIENCE_BRACKETS = ("0-2 years", "3-5 years", "6-10 years", "10+ years")

ADMIN_ID = "admin_001"
DEFAULT_SETTINGS = {"siteName": "Karriery", "version": "1.0.0", "maintenance": False}
TICKET_FIELDS_LOCKED = ("id", "createdAt", "replies", "adminReplies")
ADMIN_SUMMARY_FIELDS = ("id", "name", "email", "role", "status", "createdAt", "lastLogin", "isGoogleUser")

# Use PBKDF2-SHA256 instead of bcrypt to avoid bcrypt backend issues
password_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def hash_password(password: str) -> str:
    """Hash a password for storage."""
    return password_context.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """Check a plain password against the stored hash."""
    if not password_hash:
        return False
    try:
        return password_context.verify(password, password_hash)
    except (ValueError, TypeError):
        return False


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def generate_id(prefix: str) -> str:
    """`<prefix>_<epoch ms>_<9 random base36 chars>`."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def public_view(user: Dict[str, Any]) -> Dict[str, Any]:
    """User snapshot without credential material."""
    return {k: v for k, v in user.items() if k not in ("passwordHash", "password")}


def _check(value: Any, allowed: tuple, field: str) -> None:
    if value not in allowed:
        raise InvalidValue(f"{field} must be one of {', '.join(allowed)}; got {value!r}")


def _check_email(email: Any) -> None:
    if not isinstance(email, str) or not email:
        raise InvalidValue("email is required")


def _contains(value: Any, needle: str) -> bool:
    return isinstance(value, str) and needle in value.lower()


def _default_preferences() -> Dict[str, Any]:
    return {
        "theme": "light",
        "language": "en",
        "notifications": {"email": True, "push": True, "sms": False},
        "privacy": {"profileVisibility": "public", "showEmail": True, "showPhone": False},
    }


def _default_profile(data: Dict[str, Any]) -> Dict[str, Any]:
    profile = {
        "title": data.get("title") or "Professional",
        "company": data.get("company") or "",
        "location": data.get("location") or "",
        "experience": data.get("experience") or "0-2 years",
        "bio": data.get("bio") or "Welcome to my professional profile!",
        "skills": list(data.get("skills") or []),
        "education": list(data.get("education") or []),
        "experience_details": list(data.get("experience_details") or []),
        "avatar": data.get("profileImage"),
        "phone": data.get("phone") or "",
        "website": data.get("website") or "",
        "linkedin": data.get("linkedin") or "",
        "github": data.get("github") or "",
        "twitter": data.get("twitter") or "",
    }
    profile.update(data.get("profile") or {})
    return profile


def _check_experience(profile: Dict[str, Any]) -> None:
    # An empty bracket means "not specified"
    experience = profile.get("experience")
    if experience:
        _check(experience, EXPERIENCE_BRACKETS, "experience")


def _attachments(items: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    return [
        {"name": item.get("name") or "", "size": item.get("size") or 0, "type": item.get("type") or ""}
        for item in items or []
    ]


class RecordStore:
    """
    Users, tickets, contact requests, sessions and the system record.

    Build one per application and pass it to whoever needs it. Mutations
    are serialised by an in-process lock; separate processes sharing one
    substrate still overwrite each other's collections (last writer wins).
    """

    def __init__(
        self,
        substrate: KeyValueSubstrate,
        admin_email: str = "admin",
        admin_password: str = "admin",
    ) -> None:
        self.substrate = substrate
        self.admin_email = admin_email
        self._admin_password = admin_password
        self._lock = threading.RLock()

    # ---------- substrate access ----------

    def _read(self, key: str) -> Optional[Any]:
        try:
            raw = self.substrate.get_item(key)
        except PersistenceUnavailable as exc:
            logger.error("Error reading %s: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.error("Discarding undecodable blob under %s", key)
            return None

    def _write(self, key: str, data: Any) -> bool:
        try:
            self.substrate.set_item(key, json.dumps(data, indent=2))
            return True
        except PersistenceUnavailable as exc:
            logger.error("Error writing %s: %s", key, exc)
            return False

    def _read_list(self, key: str, field: str) -> List[Dict[str, Any]]:
        data = self._read(key)
        if not isinstance(data, dict):
            return []
        items = data.get(field)
        return items if isinstance(items, list) else []

    def _write_list(self, key: str, field: str, items: List[Dict[str, Any]]) -> bool:
        return self._write(key, {field: items, "lastUpdated": utcnow()})

    def _read_system(self) -> Dict[str, Any]:
        data = self._read(SYSTEM_KEY)
        if not isinstance(data, dict):
            data = {}
        data.setdefault("settings", dict(DEFAULT_SETTINGS))
        data.setdefault("statistics", {})
        return data

    # ---------- bootstrap ----------

    def initialize(self) -> None:
        """Create missing collections and the bootstrap admin. Safe to call repeatedly."""

        defaults = {
            USERS_KEY: {"users": []},
            TICKETS_KEY: {"tickets": []},
            CONTACTS_KEY: {"contacts": []},
            SESSIONS_KEY: {"sessions": []},
            SYSTEM_KEY: {
                "settings": dict(DEFAULT_SETTINGS),
                "statistics": {
                    "totalUsers": 0,
                    "activeUsers": 0,
                    "totalTickets": 0,
                    "openTickets": 0,
                    "closedTickets": 0,
                },
            },
        }
        with self._lock:
            for key, default in defaults.items():
                if self._read(key) is None:
                    self._write(key, {**default, "lastUpdated": utcnow()})
            self._ensure_admin()

    def _ensure_admin(self) -> None:
        users = self.get_all_users()
        for user in users:
            if user.get("email") != self.admin_email:
                continue
            if user.get("role") != "admin":
                user["role"] = "admin"
                self._write_list(USERS_KEY, "users", users)
                logger.info("Promoted existing '%s' account to admin", self.admin_email)
            return

        taken = {u.get("id") for u in users}
        admin = self._build_user(
            {
                "name": "Administrator",
                "email": self.admin_email,
                "password": self._admin_password,
                "role": "admin",
                "title": "System Administrator",
                "company": "Karriery Platform",
                "location": "Global",
                "experience": "10+ years",
                "bio": "System administrator with full platform access and management capabilities.",
                "skills": ["System Administration", "Platform Management", "User Management", "Security"],
            },
            user_id=ADMIN_ID if ADMIN_ID not in taken else None,
            taken=taken,
        )
        users.append(admin)
        if self._write_list(USERS_KEY, "users", users):
            logger.info("Created bootstrap admin account '%s'", self.admin_email)
            self.update_statistics()

    # ---------- users ----------

    def get_all_users(self) -> List[Dict[str, Any]]:
        return self._read_list(USERS_KEY, "users")

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return next((u for u in self.get_all_users() if u.get("id") == user_id), None)

    def get_all_users_for_admin(self) -> List[Dict[str, Any]]:
        return [{f: u.get(f) for f in ADMIN_SUMMARY_FIELDS} for u in self.get_all_users()]

    def _build_user(
        self,
        data: Dict[str, Any],
        user_id: Optional[str] = None,
        taken: Optional[set] = None,
    ) -> Dict[str, Any]:
        role = data.get("role") or "user"
        status = data.get("status") or "active"
        _check_email(data.get("email"))
        _check(role, USER_ROLES, "role")
        _check(status, USER_STATUSES, "status")
        profile = _default_profile(data)
        _check_experience(profile)

        if user_id is None:
            taken = taken or set()
            user_id = generate_id("user")
            while user_id in taken:
                user_id = generate_id("user")

        # Accounts without a password (OAuth sign-ups) get an unguessable one
        password = data.get("password") or secrets.token_urlsafe(32)
        now = utcnow()
        return {
            "id": user_id,
            "name": data.get("name"),
            "email": data.get("email"),
            "passwordHash": hash_password(password),
            "role": role,
            "status": status,
            "isGoogleUser": bool(data.get("isGoogleUser", False)),
            "googleId": data.get("googleId"),
            "profileImage": data.get("profileImage"),
            "createdAt": now,
            "lastLogin": now,
            "profile": profile,
            "preferences": _default_preferences(),
            "notifications": [],
        }

    def create_user(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Add a user, filling in default profile and preference values.

        Raises DuplicateEmail when the email (compared case-sensitively) is
        already registered; nothing is written in that case.
        """
        with self._lock:
            users = self.get_all_users()
            if any(u.get("email") == data.get("email") for u in users):
                raise DuplicateEmail("User with this email already exists")

            user = self._build_user(data, taken={u.get("id") for u in users})
            users.append(user)
            self._write_list(USERS_KEY, "users", users)
            self.update_statistics()
            return user

    def authenticate_user(self, email: str, password: str) -> Dict[str, Any]:
        """Return the matching user and stamp lastLogin, or raise InvalidCredentials."""

        with self._lock:
            users = self.get_all_users()
            user = next(
                (
                    u
                    for u in users
                    if u.get("email") == email and verify_password(password, u.get("passwordHash"))
                ),
                None,
            )
            if user is None:
                raise InvalidCredentials("Invalid email or password")
            user["lastLogin"] = utcnow()
            self._write_list(USERS_KEY, "users", users)
            return user

    def authenticate_google_user(self, profile: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Find the account for an OAuth profile ({id, name, email, picture}).

        googleId wins over email. Returns None when neither matches; the
        caller decides whether to create the account.
        """
        with self._lock:
            users = self.get_all_users()
            google_id = profile.get("id")
            user = None
            if google_id:
                user = next((u for u in users if u.get("googleId") == google_id), None)
            if user is None:
                user = next((u for u in users if u.get("email") == profile.get("email")), None)
            if user is None:
                return None

            user["lastLogin"] = utcnow()
            if profile.get("picture"):
                user["profileImage"] = profile["picture"]
            self._write_list(USERS_KEY, "users", users)
            return user

    def update_user(self, user: Dict[str, Any]) -> bool:
        """
        Replace the stored record with the same id.

        The replacement must keep a unique email (DuplicateEmail otherwise)
        and valid role and status values. The bootstrap admin keeps its
        email and admin role.
        """
        _check_email(user.get("email"))
        _check(user.get("role", "user"), USER_ROLES, "role")
        _check(user.get("status", "active"), USER_STATUSES, "status")

        with self._lock:
            users = self.get_all_users()
            index = next((i for i, u in enumerate(users) if u.get("id") == user.get("id")), None)
            if index is None:
                return False
            if any(u.get("email") == user["email"] for i, u in enumerate(users) if i != index):
                raise DuplicateEmail("User with this email already exists")
            if self._is_bootstrap_admin(users[index]) and (
                user["email"] != self.admin_email or user.get("role") != "admin"
            ):
                raise InvalidValue("The bootstrap admin must keep its email and admin role")
            users[index] = user
            return self._write_list(USERS_KEY, "users", users)

    def _is_bootstrap_admin(self, user: Optional[Dict[str, Any]]) -> bool:
        return user is not None and user.get("email") == self.admin_email

    def _patch_user(self, user_id: str, field: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            users = self.get_all_users()
            user = next((u for u in users if u.get("id") == user_id), None)
            if user is None:
                return None
            user[field] = {**(user.get(field) or {}), **changes}
            self._write_list(USERS_KEY, "users", users)
            return user

    def update_user_profile(self, user_id: str, profile: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        _check_experience(profile)
        return self._patch_user(user_id, "profile", profile)

    def update_user_preferences(self, user_id: str, preferences: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._patch_user(user_id, "preferences", preferences)

    def _set_user_field(self, user_id: str, field: str, value: Any) -> bool:
        with self._lock:
            users = self.get_all_users()
            user = next((u for u in users if u.get("id") == user_id), None)
            if user is None:
                return False
            user[field] = value
            return self._write_list(USERS_KEY, "users", users)

    def change_user_role(self, user_id: str, role: str) -> bool:
        """Set a user's role. The bootstrap admin cannot be demoted (InvalidValue)."""

        _check(role, USER_ROLES, "role")
        with self._lock:
            if role != "admin" and self._is_bootstrap_admin(self.get_user(user_id)):
                raise InvalidValue("The bootstrap admin cannot be demoted")
            return self._set_user_field(user_id, "role", role)

    def change_user_status(self, user_id: str, status: str) -> bool:
        _check(status, USER_STATUSES, "status")
        with self._lock:
            changed = self._set_user_field(user_id, "status", status)
            if changed:
                self.update_statistics()
            return changed

    def delete_user(self, user_id: str) -> None:
        """Remove a user and their sessions. Raises InvalidValue for the bootstrap admin."""

        with self._lock:
            if self._is_bootstrap_admin(self.get_user(user_id)):
                raise InvalidValue("The bootstrap admin cannot be deleted")
            users = [u for u in self.get_all_users() if u.get("id") != user_id]
            self._write_list(USERS_KEY, "users", users)
            sessions = self._read_list(SESSIONS_KEY, "sessions")
            remaining = [s for s in sessions if s.get("userId") != user_id]
            if len(remaining) != len(sessions):
                self._write_list(SESSIONS_KEY, "sessions", remaining)
            self.update_statistics()

    def search_users(self, query: str) -> List[Dict[str, Any]]:
        needle = query.lower()
        results = []
        for user in self.get_all_users():
            profile = user.get("profile") or {}
            if (
                _contains(user.get("name"), needle)
                or _contains(user.get("email"), needle)
                or _contains(profile.get("title"), needle)
                or _contains(profile.get("company"), needle)
            ):
                results.append(user)
        return results

    def export_user_data(self, user_id: str) -> Optional[str]:
        user = self.get_user(user_id)
        if user is None:
            return None
        return json.dumps(public_view(user), indent=2)

    def get_user_stats(self) -> Dict[str, int]:
        """Live account counts for the admin overview."""

        users = self.get_all_users()
        admins = sum(1 for u in users if u.get("role") == "admin")
        return {
            "totalUsers": len(users),
            "activeUsers": sum(1 for u in users if u.get("status") == "active"),
            "googleUsers": sum(1 for u in users if u.get("isGoogleUser")),
            "adminUsers": admins,
            "regularUsers": len(users) - admins,
        }

    # ---------- current session user ----------

    def get_current_user(self) -> Optional[Dict[str, Any]]:
        return self._read(CURRENT_USER_KEY)

    def set_current_user(self, user: Dict[str, Any]) -> bool:
        return self._write(CURRENT_USER_KEY, public_view(user))

    def clear_current_user(self) -> None:
        try:
            self.substrate.remove_item(CURRENT_USER_KEY)
        except PersistenceUnavailable as exc:
            logger.error("Error clearing current user: %s", exc)

    # ---------- tickets ----------

    def get_all_tickets(self) -> List[Dict[str, Any]]:
        return self._read_list(TICKETS_KEY, "tickets")

    def get_ticket(self, ticket_id: str) -> Optional[Dict[str, Any]]:
        return next((t for t in self.get_all_tickets() if t.get("id") == ticket_id), None)

    def get_user_tickets(self, user_id: str) -> List[Dict[str, Any]]:
        return [t for t in self.get_all_tickets() if t.get("userId") == user_id]

    def create_ticket(self, data: Dict[str, Any]) -> Dict[str, Any]:
        category = data.get("category") or "general"
        priority = data.get("priority") or "medium"
        _check(category, TICKET_CATEGORIES, "category")
        _check(priority, TICKET_PRIORITIES, "priority")

        with self._lock:
            tickets = self.get_all_tickets()
            now = utcnow()
            ticket = {
                "id": generate_id("ticket"),
                "userId": data.get("userId"),
                "userName": data.get("userName"),
                "userEmail": data.get("userEmail"),
                "subject": data.get("subject") or "",
                "message": data.get("message") or "",
                "category": category,
                "priority": priority,
                "status": "open",
                "attachments": _attachments(data.get("attachments")),
                "createdAt": now,
                "updatedAt": now,
                "replies": [],
                "adminReplies": [],
            }
            tickets.append(ticket)
            self._write_list(TICKETS_KEY, "tickets", tickets)
            self.update_statistics()
            return ticket

    def update_ticket(self, ticket_id: str, updates: Dict[str, Any]) -> bool:
        """Shallow-merge updates into a ticket. Status must be open, in_progress or closed."""

        if "status" in updates:
            _check(updates["status"], TICKET_STATUSES, "status")
        if "category" in updates:
            _check(updates["category"], TICKET_CATEGORIES, "category")
        if "priority" in updates:
            _check(updates["priority"], TICKET_PRIORITIES, "priority")
        changes = {k: v for k, v in updates.items() if k not in TICKET_FIELDS_LOCKED}

        with self._lock:
            tickets = self.get_all_tickets()
            for index, ticket in enumerate(tickets):
                if ticket.get("id") == ticket_id:
                    tickets[index] = {**ticket, **changes, "updatedAt": utcnow()}
                    written = self._write_list(TICKETS_KEY, "tickets", tickets)
                    if written and "status" in changes:
                        self.update_statistics()
                    return written
            return False

    def add_reply_to_ticket(self, ticket_id: str, reply: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Append to adminReplies for admins and to replies for everyone else."""

        with self._lock:
            tickets = self.get_all_tickets()
            ticket = next((t for t in tickets if t.get("id") == ticket_id), None)
            if ticket is None:
                return None

            new_reply = {
                "id": generate_id("reply"),
                "userId": reply.get("userId"),
                "userName": reply.get("userName"),
                "userRole": reply.get("userRole"),
                "message": reply.get("message") or "",
                "attachments": _attachments(reply.get("attachments")),
                "createdAt": utcnow(),
            }
            thread = "adminReplies" if reply.get("userRole") == "admin" else "replies"
            ticket.setdefault(thread, []).append(new_reply)
            ticket["updatedAt"] = utcnow()
            self._write_list(TICKETS_KEY, "tickets", tickets)
            return new_reply

    def get_ticket_thread(self, ticket_id: str) -> Optional[List[Dict[str, Any]]]:
        """Both reply lists merged into one conversation, oldest first."""

        ticket = self.get_ticket(ticket_id)
        if ticket is None:
            return None
        merged = [{**r, "userRole": r.get("userRole") or "user"} for r in ticket.get("replies", [])]
        merged += [{**r, "userRole": r.get("userRole") or "admin"} for r in ticket.get("adminReplies", [])]
        merged.sort(key=lambda r: r.get("createdAt") or "")
        return merged

    def search_tickets(self, query: str) -> List[Dict[str, Any]]:
        needle = query.lower()
        return [
            t
            for t in self.get_all_tickets()
            if any(_contains(t.get(f), needle) for f in ("subject", "message", "userName", "userEmail"))
        ]

    # ---------- notifications ----------

    def add_notification(self, user_id: str, notification: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Prepend a notification, keeping only the newest NOTIFICATION_LIMIT."""

        with self._lock:
            users = self.get_all_users()
            user = next((u for u in users if u.get("id") == user_id), None)
            if user is None:
                return None

            entry = {
                "id": generate_id("notif"),
                "type": notification.get("type"),
                "title": notification.get("title"),
                "message": notification.get("message"),
                "read": False,
                "createdAt": utcnow(),
                "data": notification.get("data") or {},
            }
            user["notifications"] = [entry, *(user.get("notifications") or [])][:NOTIFICATION_LIMIT]
            self._write_list(USERS_KEY, "users", users)
            return entry

    def mark_notification_as_read(self, user_id: str, notification_id: str) -> bool:
        with self._lock:
            users = self.get_all_users()
            user = next((u for u in users if u.get("id") == user_id), None)
            if user is None:
                return False
            for notification in user.get("notifications") or []:
                if notification.get("id") == notification_id:
                    notification["read"] = True
                    return self._write_list(USERS_KEY, "users", users)
            return False

    # ---------- contact requests ----------

    def create_contact_request(
        self, name: str, email: str, message: str, user_id: Optional[str] = None
    ) -> Dict[str, Any]:
        with self._lock:
            contacts = self._read_list(CONTACTS_KEY, "contacts")
            now = utcnow()
            request = {
                "id": generate_id("contact"),
                "name": name,
                "email": email,
                "message": message,
                "status": "pending",
                "userId": user_id,
                "createdAt": now,
                "updatedAt": now,
            }
            contacts.append(request)
            self._write_list(CONTACTS_KEY, "contacts", contacts)
            return request

    def get_contact_requests(self) -> List[Dict[str, Any]]:
        contacts = self._read_list(CONTACTS_KEY, "contacts")
        return sorted(contacts, key=lambda c: c.get("createdAt") or "", reverse=True)

    def update_contact_status(self, request_id: str, status: str) -> bool:
        _check(status, CONTACT_STATUSES, "status")
        with self._lock:
            contacts = self._read_list(CONTACTS_KEY, "contacts")
            for request in contacts:
                if request.get("id") == request_id:
                    request["status"] = status
                    request["updatedAt"] = utcnow()
                    return self._write_list(CONTACTS_KEY, "contacts", contacts)
            return False

    # ---------- token sessions ----------

    def create_session(self, user_id: str, expires_in: timedelta) -> Dict[str, Any]:
        """Register a login session; expired sessions are pruned on the way."""

        with self._lock:
            now = datetime.now(timezone.utc)
            sessions = [s for s in self._read_list(SESSIONS_KEY, "sessions") if not _expired(s, now)]
            session = {
                "id": generate_id("session"),
                "userId": user_id,
                "createdAt": now.isoformat(),
                "expiresAt": (now + expires_in).isoformat(),
            }
            sessions.append(session)
            self._write_list(SESSIONS_KEY, "sessions", sessions)
            return session

    def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        now = datetime.now(timezone.utc)
        for session in self._read_list(SESSIONS_KEY, "sessions"):
            if session.get("id") == session_id:
                return None if _expired(session, now) else session
        return None

    def delete_session(self, session_id: str) -> bool:
        with self._lock:
            sessions = self._read_list(SESSIONS_KEY, "sessions")
            remaining = [s for s in sessions if s.get("id") != session_id]
            if len(remaining) == len(sessions):
                return False
            return self._write_list(SESSIONS_KEY, "sessions", remaining)

    # ---------- system record ----------

    def update_statistics(self) -> Dict[str, int]:
        """Recompute the statistics snapshot and persist it."""

        with self._lock:
            users = self.get_all_users()
            tickets = self.get_all_tickets()
            statistics = {
                "totalUsers": len(users),
                "activeUsers": sum(1 for u in users if u.get("status") == "active"),
                "totalTickets": len(tickets),
                "openTickets": sum(1 for t in tickets if t.get("status") == "open"),
                "closedTickets": sum(1 for t in tickets if t.get("status") == "closed"),
            }
            system = self._read_system()
            system["statistics"] = statistics
            system["lastUpdated"] = utcnow()
            self._write(SYSTEM_KEY, system)
            return statistics

    def get_statistics(self) -> Dict[str, int]:
        """The last recomputed snapshot; may lag behind until the next mutation."""

        data = self._read(SYSTEM_KEY)
        if not isinstance(data, dict):
            return {}
        return dict(data.get("statistics") or {})

    def get_settings(self) -> Dict[str, Any]:
        return {**DEFAULT_SETTINGS, **self._read_system()["settings"]}

    def update_settings(self, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        unknown = set(changes) - set(DEFAULT_SETTINGS)
        if unknown:
            raise InvalidValue(f"Unknown settings: {', '.join(sorted(unknown))}")
        with self._lock:
            system = self._read_system()
            system["settings"] = {**DEFAULT_SETTINGS, **system["settings"], **changes}
            system["lastUpdated"] = utcnow()
            if not self._write(SYSTEM_KEY, system):
                return None
            return system["settings"]

    # ---------- export / import ----------

    def export_all_data(self) -> Dict[str, Any]:
        return {
            "users": self.get_all_users(),
            "tickets": self.get_all_tickets(),
            "system": self._read(SYSTEM_KEY),
            "exportedAt": utcnow(),
        }

    def import_data(self, bundle: Any) -> bool:
        """
        Replace users, tickets and the system record with the bundle's.

        The bundle (a dict or its JSON text) is validated in full before
        anything is written; DataImportError means the store is untouched.
        Returns False if a substrate write failed part-way.
        """
        if isinstance(bundle, (str, bytes)):
            try:
                bundle = json.loads(bundle)
            except ValueError as exc:
                raise DataImportError("Import payload is not valid JSON") from exc
        if not isinstance(bundle, dict):
            raise DataImportError("Import payload must be an object")
        try:
            ExportBundle.model_validate(bundle)
        except ValidationError as exc:
            raise DataImportError(f"Import payload is malformed: {exc.error_count()} error(s)") from exc

        # Round-trip through JSON so the store never aliases caller objects
        users = json.loads(json.dumps(bundle["users"]))
        tickets = json.loads(json.dumps(bundle["tickets"]))
        emails = [u["email"] for u in users]
        if len(emails) != len(set(emails)):
            raise DataImportError("Import payload contains duplicate emails")

        for user in users:
            plaintext = user.pop("password", None)
            if plaintext and not user.get("passwordHash"):
                user["passwordHash"] = hash_password(plaintext)

        with self._lock:
            ok = self._write_list(USERS_KEY, "users", users)
            ok = self._write_list(TICKETS_KEY, "tickets", tickets) and ok
            if bundle.get("system") is not None:
                ok = self._write(SYSTEM_KEY, bundle["system"]) and ok
            self.update_statistics()
        logger.info("Imported %d users and %d tickets", len(users), len(tickets))
        return ok


def _expired(session: Dict[str, Any], now: datetime) -> bool:
    try:
        return datetime.fromisoformat(session["expiresAt"]) <= now
    except (KeyError, TypeError, ValueError):
        return True
