"""
Auth Routes - Sign-in, registration and password reset

Routes:
- GET  /login            - Login page for any account
- POST /login            - Sign in with any role
- GET  /agent-login      - Agent login page
- POST /agent-login      - Sign in; only the agent role is accepted
- GET  /admin-login      - Admin login page
- POST /admin-login      - Sign in; only the admin role is accepted
- GET  /agent-register   - Registration page
- POST /agent-register   - Create an agent account
- GET  /password-reset   - Password reset page
- POST /password-reset   - Send the reset email
- GET  /session          - Current session as JSON
- POST /logout           - Sign out
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from core.session import AuthError, Role

from web.services import (
    ADMIN_LOGIN_URL,
    AGENT_LOGIN_URL,
    LOGIN_URL,
    AppServices,
    current_session,
    get_services,
)
from web.session_cookie import (
    UserSession,
    clear_session_cookie,
    create_session,
    set_session_cookie,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Router Setup
# =============================================================================

TEMPLATES_DIR = Path(__file__).parent / "templates"

router = APIRouter(tags=["auth"])
templates = Jinja2Templates(directory=TEMPLATES_DIR)

LOGIN_PAGES = {
    None: {"title": "Sign In", "action": LOGIN_URL},
    Role.AGENT: {"title": "Agent Login", "action": AGENT_LOGIN_URL},
    Role.ADMIN: {"title": "Admin Login", "action": ADMIN_LOGIN_URL},
}

HOME_PAGES = {
    Role.USER: "/market-reports",
    Role.AGENT: "/agent-dashboard",
    Role.ADMIN: "/admin",
}


def _login_page(
    request: Request,
    role: Optional[Role],
    error: Optional[str] = None,
    email: str = "",
    notice: Optional[str] = None,
    status_code: int = 200,
):
    return templates.TemplateResponse(
        request,
        "login.html",
        {
            "page": LOGIN_PAGES[role],
            "error": error,
            "email": email,
            "notice": notice,
            "show_register": role == Role.AGENT,
        },
        status_code=status_code,
    )


def _sign_in(services: AppServices, request: Request, role: Optional[Role], email: str, password: str):
    auth_session = services.new_auth_session()
    try:
        profile = auth_session.sign_in(email, password, required_role=role)
    except AuthError as e:
        return _login_page(request, role, error=str(e), email=email, status_code=401)

    session = create_session(profile, auth_session.access_token, hours=services.config.session_duration_hours)
    response = RedirectResponse(url=HOME_PAGES[profile.role], status_code=303)
    set_session_cookie(response, session, services.session_secret, secure=not services.config.debug)
    logger.info("%s signed in as %s", profile.email, profile.role.value)
    return response


# =============================================================================
# Login/Logout Routes
# =============================================================================


@router.get(LOGIN_URL, response_class=HTMLResponse)
async def login_page(request: Request, session: Optional[UserSession] = Depends(current_session)):
    if session:
        return RedirectResponse(url=HOME_PAGES[session.role], status_code=303)
    return _login_page(request, None)


@router.post(LOGIN_URL)
def login(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    services: AppServices = Depends(get_services),
):
    """Sign in with any role; the home page follows the profile's role."""
    return _sign_in(services, request, None, email, password)


@router.get(AGENT_LOGIN_URL, response_class=HTMLResponse)
async def agent_login_page(
    request: Request,
    registered: bool = False,
    session: Optional[UserSession] = Depends(current_session),
):
    if session and session.has_role(Role.AGENT, Role.ADMIN):
        return RedirectResponse(url="/agent-dashboard", status_code=303)
    notice = "Registration successful. Please check your email, then sign in." if registered else None
    return _login_page(request, Role.AGENT, notice=notice)


@router.post(AGENT_LOGIN_URL)
def agent_login(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    services: AppServices = Depends(get_services),
):
    return _sign_in(services, request, Role.AGENT, email, password)


@router.get(ADMIN_LOGIN_URL, response_class=HTMLResponse)
async def admin_login_page(request: Request, session: Optional[UserSession] = Depends(current_session)):
    if session and session.has_role(Role.ADMIN):
        return RedirectResponse(url="/admin", status_code=303)
    return _login_page(request, Role.ADMIN)


@router.post(ADMIN_LOGIN_URL)
def admin_login(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    services: AppServices = Depends(get_services),
):
    return _sign_in(services, request, Role.ADMIN, email, password)


@router.post("/logout")
def logout(
    session: Optional[UserSession] = Depends(current_session),
    services: AppServices = Depends(get_services),
):
    """Sign out of the backend and drop the session's report state."""
    if session is not None:
        auth_session = services.new_auth_session()
        auth_session.access_token = session.access_token
        auth_session.sign_out()
        services.drop_session(session.session_id)
    response = RedirectResponse(url=AGENT_LOGIN_URL, status_code=303)
    clear_session_cookie(response)
    return response


@router.get("/session")
async def session_info(session: Optional[UserSession] = Depends(current_session)):
    if session is None:
        return JSONResponse({"authenticated": False})
    return {
        "authenticated": True,
        "user_id": session.user_id,
        "email": session.email,
        "name": session.name,
        "role": session.role.value,
        "expires_at": session.expires_at.isoformat(),
    }


# =============================================================================
# Registration
# =============================================================================


@router.get("/agent-register", response_class=HTMLResponse)
async def register_page(request: Request):
    return templates.TemplateResponse(request, "register.html", {"error": None, "form": {}})


@router.post("/agent-register")
def register(
    request: Request,
    name: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    phone: str = Form(""),
    services: AppServices = Depends(get_services),
):
    form = {"name": name, "email": email, "phone": phone}
    if not name.strip():
        return templates.TemplateResponse(
            request, "register.html", {"error": "Name is required", "form": form}, status_code=400
        )
    try:
        services.new_auth_session().register(email, password, name.strip(), phone=phone.strip())
    except AuthError as e:
        return templates.TemplateResponse(
            request, "register.html", {"error": str(e), "form": form}, status_code=400
        )
    return RedirectResponse(url=f"{AGENT_LOGIN_URL}?registered=1", status_code=303)


# =============================================================================
# Password Reset
# =============================================================================


@router.get("/password-reset", response_class=HTMLResponse)
async def password_reset_page(request: Request):
    return templates.TemplateResponse(request, "password_reset.html", {"error": None, "sent": False})


@router.post("/password-reset", response_class=HTMLResponse)
def password_reset(
    request: Request,
    email: str = Form(...),
    services: AppServices = Depends(get_services),
):
    try:
        services.new_auth_session().request_password_reset(email)
    except AuthError as e:
        return templates.TemplateResponse(
            request, "password_reset.html", {"error": str(e), "sent": False, "email": email}, status_code=400
        )
    return templates.TemplateResponse(request, "password_reset.html", {"error": None, "sent": True, "email": email})
