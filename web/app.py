"""
FastAPI application for the agency reports service.

Production deployment configuration via environment variables.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from core.backend import BackendError
from utils.config import Config

from web.admin_routes import router as admin_router
from web.auth_routes import router as auth_router
from web.report_routes import router as report_router
from web.services import AppServices, LoginRequired


logger = logging.getLogger(__name__)


# =============================================================================
# Environment Configuration
# =============================================================================

IS_PRODUCTION = os.getenv("PRODUCTION", "").lower() == "true"

# CORS configuration, locked down for production
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "").split(",") if os.getenv("ALLOWED_ORIGINS") else []
if not ALLOWED_ORIGINS and not IS_PRODUCTION:
    ALLOWED_ORIGINS = ["http://localhost:8000", "http://127.0.0.1:8000"]


def create_app(config: Optional[Config] = None, services: Optional[AppServices] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Settings (loaded from the environment when omitted).
        services: Pre-built collaborators; tests pass in-memory fakes here.
    """
    config = config or (services.config if services else Config.load())
    app = FastAPI(
        title="Agency Reports",
        description="Property listing and sales reporting for agents and admins",
        version="0.1.0",
        docs_url=None if IS_PRODUCTION else "/docs",
        redoc_url=None if IS_PRODUCTION else "/redoc",
        openapi_url=None if IS_PRODUCTION else "/openapi.json",
        debug=config.debug and not IS_PRODUCTION,
    )

    # ==========================================================================
    # Healthcheck endpoints are registered first and perform no IO.
    # ==========================================================================
    @app.get("/", include_in_schema=False)
    def root():
        return {"status": "ok"}

    @app.get("/health", include_in_schema=False)
    def health():
        return {"status": "healthy"}

    if ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    app.state.services = services or AppServices.from_config(config)

    @app.on_event("startup")
    def on_startup():
        Path(config.reports_dir).mkdir(parents=True, exist_ok=True)
        logger.info("Agency Reports started (backend %s)", config.backend_url)

    @app.on_event("shutdown")
    def on_shutdown():
        client = app.state.services.client
        if client is not None:
            client.close()

    # ==========================================================================
    # Error handlers
    # ==========================================================================
    @app.exception_handler(LoginRequired)
    async def login_required_handler(request: Request, exc: LoginRequired):
        return RedirectResponse(url=exc.login_url, status_code=303)

    @app.exception_handler(BackendError)
    async def backend_error_handler(request: Request, exc: BackendError):
        logger.error("Backend error on %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=502,
            content={
                "error": exc.message or "Failed to fetch data",
                "notices": [{"level": "error", "message": exc.message or "Failed to fetch data"}],
                "retry": True,
            },
        )

    app.include_router(auth_router)
    app.include_router(report_router)
    app.include_router(admin_router)

    return app


# Default app instance
app = create_app()
