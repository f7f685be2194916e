"""
Application services and request dependencies.

AppServices holds the long-lived collaborators (backend client, realtime
hub, repository) and the per-session report pipelines. Route handlers
reach it through request.app.state.services.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from fastapi import Depends, Request

from core.backend import AuthClient, BackendClient, PropertyRepository, RealtimeHub
from core.notifications import Notifier
from core.pipeline import ReportPipeline
from core.session import AuthSession, Role
from utils.config import Config

from web.session_cookie import UserSession, read_session, resolve_session_secret


logger = logging.getLogger(__name__)


LOGIN_URL = "/login"
AGENT_LOGIN_URL = "/agent-login"
ADMIN_LOGIN_URL = "/admin-login"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LoginRequired(Exception):
    """Raised by route guards; answered with a 303 redirect to `login_url`."""

    def __init__(self, login_url: str):
        super().__init__(login_url)
        self.login_url = login_url


@dataclass
class AppServices:
    config: Config
    repository: PropertyRepository
    auth: AuthClient
    hub: RealtimeHub
    client: Optional[BackendClient] = None
    session_secret: str = ""
    pipelines: Dict[str, ReportPipeline] = field(default_factory=dict)
    notifiers: Dict[str, Notifier] = field(default_factory=dict)
    expires_at: Dict[str, datetime] = field(default_factory=dict)
    clock: Callable[[], datetime] = field(default=_utcnow)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    @classmethod
    def from_config(cls, config: Config) -> "AppServices":
        client = BackendClient(config.backend_url, config.backend_anon_key, timeout=config.request_timeout)
        hub = RealtimeHub()
        return cls(
            config=config,
            repository=PropertyRepository(client, hub),
            auth=AuthClient(client),
            hub=hub,
            client=client,
            session_secret=resolve_session_secret(config.session_secret),
        )

    def new_auth_session(self) -> AuthSession:
        return AuthSession(self.client, auth=self.auth, reset_redirect=self.config.password_reset_redirect)

    def notifier_for(self, session: Optional[UserSession]) -> Notifier:
        if session is None:
            with self._lock:
                return self.notifiers.setdefault("", Notifier())
        with self._lock:
            self.expires_at[session.session_id] = session.expires_at
            return self.notifiers.setdefault(session.session_id, Notifier())

    def repository_for(self, session: UserSession) -> PropertyRepository:
        return self.repository.for_token(session.access_token)

    def pipeline_for(self, session: UserSession) -> ReportPipeline:
        """The session's report pipeline, created, attached and loaded on first use."""
        self.sweep_expired()
        with self._lock:
            self.expires_at[session.session_id] = session.expires_at
            pipeline = self.pipelines.get(session.session_id)
            created = pipeline is None
            if created:
                pipeline = ReportPipeline(
                    self.repository_for(session),
                    notifier=self.notifiers.setdefault(session.session_id, Notifier()),
                    debounce_seconds=self.config.metrics_debounce_seconds,
                    our_agency=self.config.operator_agency,
                )
                pipeline.attach(self.hub)
                self.pipelines[session.session_id] = pipeline
        if created:
            logger.info("Created report pipeline for session %s", session.session_id[:8])
        pipeline.ensure_loaded()
        return pipeline

    def drop_session(self, session_id: str) -> None:
        with self._lock:
            pipeline = self._forget(session_id)
        if pipeline is not None:
            pipeline.detach()

    def sweep_expired(self) -> int:
        """
        Drop the state of every session whose cookie has expired.

        This is the only release for sessions that end without /logout.

        Returns:
            Number of sessions dropped.
        """
        now = self.clock()
        with self._lock:
            expired = [sid for sid, expires in self.expires_at.items() if expires <= now]
            pipelines = [self._forget(sid) for sid in expired]
        for pipeline in pipelines:
            if pipeline is not None:
                pipeline.detach()
        if expired:
            logger.info("Dropped %d expired sessions", len(expired))
        return len(expired)

    def _forget(self, session_id: str) -> Optional[ReportPipeline]:
        self.expires_at.pop(session_id, None)
        self.notifiers.pop(session_id, None)
        return self.pipelines.pop(session_id, None)


# =============================================================================
# Dependencies
# =============================================================================


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def current_session(request: Request) -> Optional[UserSession]:
    return read_session(request, get_services(request).session_secret)


def require_roles(*roles: Role, login_url: str = AGENT_LOGIN_URL) -> Callable[..., UserSession]:
    """
    Dependency factory: the signed-in session, if its role is one of `roles`.

    With no roles any signed-in user passes. Anyone else is redirected to
    `login_url`.
    """

    def dependency(session: Optional[UserSession] = Depends(current_session)) -> UserSession:
        if session is None or not session.has_role(*roles):
            raise LoginRequired(login_url)
        return session

    return dependency


require_authenticated = require_roles(login_url=LOGIN_URL)
require_agent = require_roles(Role.AGENT, Role.ADMIN, login_url=AGENT_LOGIN_URL)
require_admin = require_roles(Role.ADMIN, login_url=ADMIN_LOGIN_URL)
