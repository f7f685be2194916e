"""
Configuration management.
"""

import os
from dataclasses import dataclass, field


@dataclass
class Config:
    """
    Application configuration.

    Loads from environment variables with sensible defaults.
    """

    # Server
    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")

    # Hosted backend (query + auth surfaces)
    backend_url: str = field(
        default_factory=lambda: os.getenv("BACKEND_URL", "http://localhost:54321")
    )
    backend_anon_key: str = field(default_factory=lambda: os.getenv("BACKEND_ANON_KEY", ""))
    request_timeout: int = field(default_factory=lambda: int(os.getenv("REQUEST_TIMEOUT", "30")))

    # Reporting
    operator_agency: str = field(
        default_factory=lambda: os.getenv("OPERATOR_AGENCY", "Harcourt Success")
    )
    metrics_debounce_seconds: float = field(
        default_factory=lambda: float(os.getenv("METRICS_DEBOUNCE_SECONDS", "0.3"))
    )
    reports_dir: str = field(default_factory=lambda: os.getenv("REPORTS_DIR", "./reports"))

    # Sessions
    session_secret: str = field(default_factory=lambda: os.getenv("SESSION_SECRET", ""))
    session_duration_hours: int = field(
        default_factory=lambda: int(os.getenv("SESSION_DURATION_HOURS", "8"))
    )
    password_reset_redirect: str = field(
        default_factory=lambda: os.getenv(
            "PASSWORD_RESET_REDIRECT", "http://localhost:3000/reset-password"
        )
    )

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment."""
        return cls()

    def to_dict(self) -> dict:
        """Convert config to dictionary. The session secret is never included."""
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "backend_url": self.backend_url,
            "request_timeout": self.request_timeout,
            "operator_agency": self.operator_agency,
            "metrics_debounce_seconds": self.metrics_debounce_seconds,
            "reports_dir": self.reports_dir,
            "session_duration_hours": self.session_duration_hours,
            "password_reset_redirect": self.password_reset_redirect,
        }
