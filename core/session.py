"""
Authentication session state machine.

One AuthSession per signed-in browser session. It is created by the web
layer and passed to whatever needs it; there is no module-level store.

    ANONYMOUS --sign_in/restore--> AUTHENTICATING --ok--> AUTHENTICATED
                                                   --fail--> ERROR
    any state --sign_out--> ANONYMOUS
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .backend.auth import AuthClient, AuthTokens, AuthUser
from .backend.client import BackendClient, BackendError


logger = logging.getLogger(__name__)


PROFILES_TABLE = "profiles"
PROFILE_COLUMNS = "id, name, phone, email, role"


class SessionState(Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    ERROR = "error"


class Role(str, Enum):
    USER = "user"
    AGENT = "agent"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: Any) -> "Role":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.USER


class AuthError(Exception):
    """Sign-in, profile or role failure."""


@dataclass(frozen=True)
class Profile:
    id: str
    name: str
    email: str
    phone: str = ""
    role: Role = Role.USER

    @classmethod
    def from_record(cls, record: dict) -> "Profile":
        return cls(
            id=str(record.get("id") or ""),
            name=record.get("name") or "Unknown",
            email=record.get("email") or "",
            phone=record.get("phone") or "",
            role=Role.parse(record.get("role")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role.value,
        }


class AuthSession:
    """
    Typed auth state for one user session.

    Args:
        client: Backend client used for the profiles table.
        auth: Auth client (defaults to one built on `client`).
        reset_redirect: URL passed with password-reset emails.
    """

    def __init__(
        self,
        client: BackendClient,
        auth: Optional[AuthClient] = None,
        reset_redirect: Optional[str] = None,
    ):
        self.client = client
        self.auth = auth or AuthClient(client)
        self.reset_redirect = reset_redirect
        self._lock = threading.RLock()
        self.state = SessionState.ANONYMOUS
        self.user: Optional[AuthUser] = None
        self.profile: Optional[Profile] = None
        self.access_token: Optional[str] = None
        self.error: Optional[str] = None

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def is_authenticated(self) -> bool:
        return self.state == SessionState.AUTHENTICATED and self.profile is not None

    @property
    def role(self) -> Optional[Role]:
        return self.profile.role if self.profile else None

    def has_role(self, *roles: Role) -> bool:
        """True when authenticated with one of `roles` (any role when none given)."""
        if not self.is_authenticated:
            return False
        return not roles or self.profile.role in roles

    def _fail(self, message: str) -> AuthError:
        self.state = SessionState.ERROR
        self.error = message
        self.profile = None
        self.access_token = None
        logger.warning("Auth failed: %s", message)
        return AuthError(message)

    def _clear(self) -> None:
        self.state = SessionState.ANONYMOUS
        self.user = None
        self.profile = None
        self.access_token = None
        self.error = None

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def sign_in(self, email: str, password: str, required_role: Optional[Role] = None) -> Profile:
        """
        Sign in with email and password.

        Raises:
            AuthError: Bad credentials, backend failure, or a profile whose
                role is not `required_role`. The session is left in ERROR.
        """
        with self._lock:
            self._clear()
            self.state = SessionState.AUTHENTICATING
            try:
                tokens: AuthTokens = self.auth.sign_in_with_password(email, password)
            except BackendError as e:
                raise self._fail(e.message) from e
            self.user = tokens.user
            self.access_token = tokens.access_token
            profile = self._load_profile()
            if required_role is not None and profile.role != required_role:
                self._sign_out_quietly()
                raise self._fail(f"Access denied: {required_role.value.capitalize()} role required")
            return profile

    def restore(self, access_token: str) -> Profile:
        """
        Rebuild the session from a previously issued access token.

        Raises:
            AuthError: If the token is no longer valid.
        """
        with self._lock:
            self._clear()
            self.state = SessionState.AUTHENTICATING
            try:
                self.user = self.auth.get_user(access_token)
            except BackendError as e:
                raise self._fail(e.message) from e
            self.access_token = access_token
            return self._load_profile()

    def fetch_profile(self) -> Profile:
        """Reload the profile for the current user."""
        with self._lock:
            if self.user is None:
                raise AuthError("No signed-in user")
            return self._load_profile()

    def _load_profile(self) -> Profile:
        try:
            record = (
                self.client.table(PROFILES_TABLE, token=self.access_token)
                .select(PROFILE_COLUMNS)
                .eq("id", self.user.id)
                .single()
                .execute()
            )
        except BackendError as e:
            if not e.is_not_found:
                raise self._fail(f"fetchProfile error: {e.message}") from e
            record = self._create_profile()
        self.profile = Profile.from_record(record)
        self.state = SessionState.AUTHENTICATED
        self.error = None
        logger.info("Session authenticated for %s as %s", self.user.id, self.profile.role.value)
        return self.profile

    def _create_profile(self) -> dict:
        """First sign-in: create a profile with the agent role."""
        email = self.user.email or ""
        logger.info("No profile found for %s, creating one", self.user.id)
        try:
            return (
                self.client.table(PROFILES_TABLE, token=self.access_token)
                .insert({
                    "id": self.user.id,
                    "name": email.split("@")[0] if email else "Unknown",
                    "phone": "",
                    "email": email,
                    "role": Role.AGENT.value,
                })
                .select()
                .single()
                .execute()
            )
        except BackendError as e:
            raise self._fail(f"Profile creation error: {e.message}") from e

    def register(
        self,
        email: str,
        password: str,
        name: str,
        phone: str = "",
        role: Role = Role.AGENT,
    ) -> AuthUser:
        """
        Create an account and its profile. The session stays anonymous.

        Raises:
            AuthError: If sign-up or the profile insert fails.
        """
        try:
            user = self.auth.sign_up(email, password, metadata={"name": name})
            self.client.table(PROFILES_TABLE).insert({
                "id": user.id,
                "name": name,
                "phone": phone,
                "email": email,
                "role": role.value,
            }).execute()
        except BackendError as e:
            raise AuthError(e.message) from e
        logger.info("Registered %s with role %s", user.id, role.value)
        return user

    def request_password_reset(self, email: str) -> None:
        """
        Raises:
            AuthError: If the backend rejects the request.
        """
        try:
            self.auth.reset_password_for_email(email, redirect_to=self.reset_redirect)
        except BackendError as e:
            raise AuthError(e.message) from e

    def sign_out(self) -> None:
        with self._lock:
            self._sign_out_quietly()
            self._clear()

    def _sign_out_quietly(self) -> None:
        if not self.access_token:
            return
        try:
            self.auth.sign_out(self.access_token)
        except BackendError as e:
            logger.warning("Backend sign-out failed: %s", e)
