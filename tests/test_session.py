"""
Tests for the auth session state machine.

Verifies:
- Sign-in loads the profile and enforces the required role
- A first sign-in creates an agent profile
- Restore from an access token
- Registration and password reset requests
"""

from pathlib import Path
import sys

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.session import AuthError, AuthSession, Profile, Role, SessionState

from fakes import FakeBackend


@pytest.fixture
def backend():
    backend = FakeBackend()
    backend.add_user("alice@example.com", "secret", role="agent", name="Alice Smith")
    backend.add_user("root@example.com", "admin-pass", role="admin", name="Admin")
    return backend


@pytest.fixture
def session(backend):
    return AuthSession(backend.client(), reset_redirect="http://app/reset-password")


class TestSignIn:

    def test_agent_sign_in(self, session):
        profile = session.sign_in("alice@example.com", "secret")
        assert profile.name == "Alice Smith"
        assert profile.role == Role.AGENT
        assert session.state == SessionState.AUTHENTICATED
        assert session.is_authenticated
        assert session.access_token

    def test_bad_password(self, session):
        with pytest.raises(AuthError, match="Invalid login credentials"):
            session.sign_in("alice@example.com", "nope")
        assert session.state == SessionState.ERROR
        assert session.error == "Invalid login credentials"
        assert not session.is_authenticated

    def test_required_role_matches(self, session):
        profile = session.sign_in("root@example.com", "admin-pass", required_role=Role.ADMIN)
        assert profile.role == Role.ADMIN
        assert session.has_role(Role.ADMIN)
        assert not session.has_role(Role.AGENT)

    def test_required_role_mismatch_signs_out(self, session, backend):
        with pytest.raises(AuthError, match="Access denied: Admin role required"):
            session.sign_in("alice@example.com", "secret", required_role=Role.ADMIN)
        assert session.state == SessionState.ERROR
        assert session.profile is None
        assert backend.tokens == {}

    def test_first_sign_in_creates_agent_profile(self, backend):
        backend.add_user("new@example.com", "pw")
        session = AuthSession(backend.client())
        profile = session.sign_in("new@example.com", "pw")
        assert profile.role == Role.AGENT
        assert profile.name == "new"
        assert any(r["email"] == "new@example.com" for r in backend.rows("profiles"))

    def test_profile_failure(self, session, backend):
        backend.failing.add("profiles")
        with pytest.raises(AuthError, match="fetchProfile error"):
            session.sign_in("alice@example.com", "secret")
        assert session.state == SessionState.ERROR


class TestRestoreAndSignOut:

    def test_restore(self, backend, session):
        session.sign_in("alice@example.com", "secret")
        restored = AuthSession(backend.client())
        profile = restored.restore(session.access_token)
        assert profile.email == "alice@example.com"
        assert restored.is_authenticated

    def test_restore_after_sign_out_fails(self, backend, session):
        session.sign_in("alice@example.com", "secret")
        token = session.access_token
        session.sign_out()
        assert session.state == SessionState.ANONYMOUS
        assert session.profile is None
        with pytest.raises(AuthError):
            AuthSession(backend.client()).restore(token)

    def test_sign_out_when_anonymous(self, session, backend):
        session.sign_out()
        assert backend.requests_to("/logout") == []

    def test_fetch_profile_requires_user(self, session):
        with pytest.raises(AuthError, match="No signed-in user"):
            session.fetch_profile()


class TestRegistration:

    def test_register_creates_profile(self, session, backend):
        user = session.register("carol@example.com", "pw", name="Carol White", phone="0400")
        row = next(r for r in backend.rows("profiles") if r["id"] == user.id)
        assert row["role"] == "agent"
        assert row["name"] == "Carol White"
        assert session.state == SessionState.ANONYMOUS

    def test_register_existing_email(self, session):
        with pytest.raises(AuthError, match="User already registered"):
            session.register("alice@example.com", "pw", name="Alice")

    def test_password_reset(self, session, backend):
        session.request_password_reset("alice@example.com")
        assert backend.reset_requests == [("alice@example.com", "http://app/reset-password")]

    def test_password_reset_failure(self, session, backend):
        backend.failing.add("recover")
        with pytest.raises(AuthError, match="Auth service unavailable"):
            session.request_password_reset("alice@example.com")


class TestProfile:

    def test_unknown_role_is_user(self):
        profile = Profile.from_record({"id": 1, "role": "owner"})
        assert profile.role == Role.USER
        assert profile.name == "Unknown"

    def test_role_parse_is_case_insensitive(self):
        assert Role.parse(" Admin ") == Role.ADMIN
