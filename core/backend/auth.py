"""
Backend auth surface (/auth/v1).

Email/password sign-in, registration, session lookup, sign-out and
password-reset requests. Failures surface as BackendError.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .client import BackendClient, BackendError


logger = logging.getLogger(__name__)


AUTH_PATH = "/auth/v1"


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict) -> "AuthUser":
        if not payload or not payload.get("id"):
            raise BackendError("Auth response did not include a user")
        return cls(id=str(payload["id"]), email=payload.get("email"))


@dataclass(frozen=True)
class AuthTokens:
    """A signed-in session as returned by the auth provider."""
    access_token: str
    refresh_token: Optional[str]
    expires_in: Optional[int]
    user: AuthUser

    @classmethod
    def from_payload(cls, payload: Any) -> "AuthTokens":
        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise BackendError("Auth response did not include an access token")
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            expires_in=payload.get("expires_in"),
            user=AuthUser.from_payload(payload.get("user") or {}),
        )


class AuthClient:
    """Auth calls made through a BackendClient's session."""

    def __init__(self, client: BackendClient):
        self._client = client

    def sign_in_with_password(self, email: str, password: str) -> AuthTokens:
        payload = self._client.request(
            "POST",
            f"{AUTH_PATH}/token",
            params=[("grant_type", "password")],
            json={"email": email, "password": password},
        )
        tokens = AuthTokens.from_payload(payload)
        logger.info("Signed in user %s", tokens.user.id)
        return tokens

    def sign_up(self, email: str, password: str, metadata: Optional[dict] = None) -> AuthUser:
        """
        Register a new account.

        The provider may or may not return a session (email confirmation);
        only the created user is returned.
        """
        payload = self._client.request(
            "POST",
            f"{AUTH_PATH}/signup",
            json={"email": email, "password": password, "data": metadata or {}},
        )
        user = payload.get("user") if isinstance(payload, dict) and "user" in payload else payload
        return AuthUser.from_payload(user or {})

    def get_user(self, access_token: str) -> AuthUser:
        payload = self._client.request("GET", f"{AUTH_PATH}/user", token=access_token)
        return AuthUser.from_payload(payload or {})

    def sign_out(self, access_token: str) -> None:
        self._client.request("POST", f"{AUTH_PATH}/logout", token=access_token)

    def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> None:
        params = [("redirect_to", redirect_to)] if redirect_to else None
        self._client.request("POST", f"{AUTH_PATH}/recover", params=params, json={"email": email})
        logger.info("Password reset requested for %s", email)
