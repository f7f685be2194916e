"""
Backend collaborators: query client, auth, realtime hub and the property repository.
"""

from .client import BackendClient, BackendError, Query
from .auth import AuthClient, AuthTokens, AuthUser
from .realtime import ChangeEvent, Channel, RealtimeHub
from .repository import CommissionRateError, PropertyRepository, validate_commission_rate

__all__ = [
    "BackendClient",
    "BackendError",
    "Query",
    "AuthClient",
    "AuthTokens",
    "AuthUser",
    "ChangeEvent",
    "Channel",
    "RealtimeHub",
    "CommissionRateError",
    "PropertyRepository",
    "validate_commission_rate",
]
