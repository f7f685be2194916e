"""
Session Cookies - Signed identity for signed-in agents and admins

Implements:
- UserSession: who is signed in, their role and backend access token
- HMAC-SHA256 signed cookie payloads (base64(json).signature)
- Expiry after SESSION_DURATION_HOURS

The cookie is the only session store; the role it carries was read from
the profile at sign-in and is trusted until the cookie expires.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Final, Optional

from fastapi import Request, Response

from core.session import Profile, Role


# =============================================================================
# Configuration
# =============================================================================

SESSION_COOKIE_NAME: Final[str] = "agency_session"
DEFAULT_SESSION_HOURS: Final[int] = 8


def resolve_session_secret(configured: str) -> str:
    """Configured secret, or an ephemeral one (sessions won't survive restarts)."""
    return configured or secrets.token_hex(32)


# =============================================================================
# Session Token Management
# =============================================================================


@dataclass(frozen=True)
class UserSession:
    """An authenticated browser session."""

    session_id: str
    user_id: str
    email: str
    name: str
    role: Role
    access_token: str
    created_at: datetime
    expires_at: datetime

    @property
    def is_expired(self) -> bool:
        return datetime.now(timezone.utc) > self.expires_at

    def has_role(self, *roles: Role) -> bool:
        return not roles or self.role in roles

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "email": self.email,
            "name": self.name,
            "role": self.role.value,
            "access_token": self.access_token,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UserSession":
        return cls(
            session_id=data["session_id"],
            user_id=data["user_id"],
            email=data["email"],
            name=data["name"],
            role=Role(data["role"]),
            access_token=data["access_token"],
            created_at=datetime.fromisoformat(data["created_at"]),
            expires_at=datetime.fromisoformat(data["expires_at"]),
        )


def create_session(profile: Profile, access_token: str, hours: int = DEFAULT_SESSION_HOURS) -> UserSession:
    now = datetime.now(timezone.utc)
    return UserSession(
        session_id=secrets.token_hex(16),
        user_id=profile.id,
        email=profile.email,
        name=profile.name,
        role=profile.role,
        access_token=access_token,
        created_at=now,
        expires_at=now + timedelta(hours=hours),
    )


def _signature(payload_b64: str, secret: str) -> str:
    return hmac.new(secret.encode(), payload_b64.encode(), hashlib.sha256).hexdigest()


def sign_session(session: UserSession, secret: str) -> str:
    """
    Sign and encode a session for cookie storage.

    Format: base64(json_payload).signature
    """
    payload = json.dumps(session.to_dict(), separators=(",", ":"))
    payload_b64 = base64.urlsafe_b64encode(payload.encode()).decode()
    return f"{payload_b64}.{_signature(payload_b64, secret)}"


def verify_session(token: str, secret: str) -> Optional[UserSession]:
    """
    Verify and decode a signed session token.

    Returns UserSession if valid and not expired, None otherwise.
    """
    try:
        payload_b64, signature = token.rsplit(".", 1)
        if not hmac.compare_digest(signature, _signature(payload_b64, secret)):
            return None
        data = json.loads(base64.urlsafe_b64decode(payload_b64.encode()).decode())
        session = UserSession.from_dict(data)
    except (ValueError, KeyError, TypeError):
        return None
    if session.is_expired:
        return None
    return session


# =============================================================================
# Request / Response Helpers
# =============================================================================


def read_session(request: Request, secret: str) -> Optional[UserSession]:
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        return None
    return verify_session(token, secret)


def set_session_cookie(response: Response, session: UserSession, secret: str, secure: bool = False) -> None:
    remaining = int((session.expires_at - datetime.now(timezone.utc)).total_seconds())
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=sign_session(session, secret),
        max_age=max(remaining, 0),
        httponly=True,
        secure=secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=SESSION_COOKIE_NAME)
