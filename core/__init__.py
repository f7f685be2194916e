"""
Agency Reports - Core Business Logic

This module provides the reporting pipeline:
1. Suburb normalisation (canonical grouping keys)
2. Commission calculation (with admin rate overrides)
3. Filtering (conjunctive multi-value filters, suggestion lists)
4. Metrics aggregation (counts, averages, trend projection, comparisons)
5. Debounced recompute and per-session report state
"""

from .models import (
    CATEGORY_LISTING,
    CATEGORY_SOLD,
    FILTER_FIELDS,
    Filters,
    PropertyDetails,
    PropertyMetrics,
    properties_from_records,
)
from .suburbs import ALLOWED_SUBURBS, normalize_suburb, is_allowed_suburb
from .commission import (
    CommissionResult,
    compute_commission,
    commission_impact,
    simulate_agency_commission,
    top_earner,
)
from .filters import FilterEngine, FilterValueError, apply_filters, build_suggestions
from .metrics import compute_metrics, predict_future_avg_price
from .scheduler import Debouncer
from .notifications import Notice, NoticeLevel, Notifier
from .prediction import analyze_price_trend

# Backend-bound state (import after the pure modules above)
from .session import AuthError, AuthSession, Role, SessionState
from .pipeline import ReportPipeline

__all__ = [
    # Models
    "CATEGORY_LISTING",
    "CATEGORY_SOLD",
    "FILTER_FIELDS",
    "Filters",
    "PropertyDetails",
    "PropertyMetrics",
    "properties_from_records",
    # Suburbs
    "ALLOWED_SUBURBS",
    "normalize_suburb",
    "is_allowed_suburb",
    # Commission
    "CommissionResult",
    "compute_commission",
    "commission_impact",
    "simulate_agency_commission",
    "top_earner",
    # Filters
    "FilterEngine",
    "FilterValueError",
    "apply_filters",
    "build_suggestions",
    # Metrics
    "compute_metrics",
    "predict_future_avg_price",
    # Scheduling and notices
    "Debouncer",
    "Notice",
    "NoticeLevel",
    "Notifier",
    # Prediction
    "analyze_price_trend",
    # Session and pipeline
    "AuthError",
    "AuthSession",
    "Role",
    "SessionState",
    "ReportPipeline",
]
