"""
Report Routes - Agent dashboard, filtered reports, exports and analysis

Market reports and property predictions are open to any signed-in user;
the rest require an agent or admin. Each browser session owns a
ReportPipeline; the pages below read its filtered properties and metrics.

Routes:
- GET  /agent-dashboard                - Summary for the signed-in agent
- GET  /reports                        - Report page (HTML, or JSON with ?format=json)
- POST /reports/filters/preview        - Count matches for staged filters
- POST /reports/filters                - Apply filters
- POST /reports/filters/reset          - Clear filters
- POST /reports/refresh                - Refetch from the backend
- GET  /reports/charts                 - Chart series for the current metrics
- GET  /reports/export/{fmt}           - Download PDF, CSV or HTML export
- GET  /activity-logger                - Activity form and recent activities
- POST /activity-logger                - Log an activity
- GET  /comparisons                    - Market leaders vs the operator agency
- GET  /market-reports                 - Suburb price trends and predictions
- GET  /property-prediction/{id}       - Buy/sell recommendation for a property
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

from core.activities import COUNTER_EXAMPLES, ActivityForm, ActivityValidationError
from core.models import Filters
from core.prediction import analyze_price_trend, neutral_prediction
from reporting import PROPERTY_EXPORTERS, ExportSuccess, run_export
from reporting.charts import build_all_series, build_comparison_series
from utils.formatting import format_currency, format_date

from web.services import AppServices, get_services, require_agent, require_authenticated
from web.session_cookie import UserSession


logger = logging.getLogger(__name__)


# =============================================================================
# Router Setup
# =============================================================================

TEMPLATES_DIR = Path(__file__).parent / "templates"

router = APIRouter(tags=["reports"])
templates = Jinja2Templates(directory=TEMPLATES_DIR)
templates.env.filters["currency"] = format_currency
templates.env.filters["date"] = format_date


# =============================================================================
# Request Models
# =============================================================================


class FilterRequest(BaseModel):
    """Accepted values per field; empty lists place no constraint."""
    suburbs: List[str] = []
    street_names: List[str] = []
    street_numbers: List[str] = []
    agents: List[str] = []
    agency_names: List[str] = []

    def to_filters(self) -> Filters:
        return Filters.from_mapping({
            "suburbs": self.suburbs,
            "street_names": self.street_names,
            "street_numbers": self.street_numbers,
            "agents": self.agents,
            "agency_names": self.agency_names,
        })


def _state(services: AppServices, user: UserSession, pipeline) -> dict:
    """JSON view of a pipeline after a filter or refresh action."""
    metrics = pipeline.current_metrics()
    return {
        "filters": pipeline.filters.to_dict(),
        "preview_count": pipeline.preview_count,
        "property_count": len(pipeline.properties),
        "metrics": metrics.to_dict() if metrics else None,
        "error": pipeline.error,
        "notices": [n.to_dict() for n in services.notifier_for(user).drain()],
    }


# =============================================================================
# Dashboard and Reports
# =============================================================================


@router.get("/agent-dashboard", response_class=HTMLResponse)
def agent_dashboard(
    request: Request,
    user: UserSession = Depends(require_agent),
    services: AppServices = Depends(get_services),
):
    """Headline figures and the agent's most recent activities."""
    pipeline = services.pipeline_for(user)
    activities = services.repository_for(user).fetch_activities(agent_id=user.user_id)[:10]
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "user": user,
            "metrics": pipeline.current_metrics(),
            "activities": activities,
            "error": pipeline.error,
            "notices": services.notifier_for(user).drain(),
        },
    )


@router.get("/reports")
def reports_page(
    request: Request,
    format: str = "html",
    user: UserSession = Depends(require_agent),
    services: AppServices = Depends(get_services),
):
    pipeline = services.pipeline_for(user)
    if format == "json":
        state = _state(services, user, pipeline)
        state["suggestions"] = pipeline.engine.suggestions.to_dict()
        return state

    metrics = pipeline.current_metrics()
    return templates.TemplateResponse(
        request,
        "reports.html",
        {
            "user": user,
            "metrics": metrics,
            "properties": pipeline.properties,
            "filters": pipeline.filters,
            "suggestions": pipeline.engine.suggestions,
            "error": pipeline.error,
            "loading": pipeline.loading,
            "notices": services.notifier_for(user).drain(),
        },
    )


@router.post("/reports/filters/preview")
def preview_filters(
    body: FilterRequest,
    user: UserSession = Depends(require_agent),
    services: AppServices = Depends(get_services),
):
    """Stage filters without changing the displayed list."""
    pipeline = services.pipeline_for(user)
    return {"preview_count": pipeline.stage_filters(body.to_filters())}


@router.post("/reports/filters")
def apply_filters(
    body: FilterRequest,
    user: UserSession = Depends(require_agent),
    services: AppServices = Depends(get_services),
):
    pipeline = services.pipeline_for(user)
    pipeline.apply_filters(body.to_filters())
    return _state(services, user, pipeline)


@router.post("/reports/filters/reset")
def reset_filters(
    user: UserSession = Depends(require_agent),
    services: AppServices = Depends(get_services),
):
    pipeline = services.pipeline_for(user)
    pipeline.reset_filters()
    return _state(services, user, pipeline)


@router.post("/reports/refresh")
def refresh_reports(
    user: UserSession = Depends(require_agent),
    services: AppServices = Depends(get_services),
):
    """Retry the fetch; stale data stays visible when it fails again."""
    pipeline = services.pipeline_for(user)
    pipeline.refresh()
    return _state(services, user, pipeline)


@router.get("/reports/charts")
def report_charts(
    user: UserSession = Depends(require_agent),
    services: AppServices = Depends(get_services),
):
    return build_all_series(services.pipeline_for(user).current_metrics())


@router.get("/reports/export/{fmt}")
def export_report(
    fmt: str,
    user: UserSession = Depends(require_agent),
    services: AppServices = Depends(get_services),
):
    """Export the currently displayed properties."""
    exporter_cls = PROPERTY_EXPORTERS.get(fmt.lower())
    if exporter_cls is None:
        raise HTTPException(status_code=404, detail=f"Unknown export format: {fmt}")

    pipeline = services.pipeline_for(user)
    notifier = services.notifier_for(user)
    destination = Path(services.config.reports_dir) / user.session_id
    result = run_export(exporter_cls(), pipeline.properties, destination, notifier=notifier)

    if not isinstance(result, ExportSuccess):
        return JSONResponse(
            status_code=500,
            content={
                "error": result.message,
                "notices": [n.to_dict() for n in notifier.drain()],
            },
        )
    return FileResponse(result.path, media_type=result.media_type, filename=result.path.name)


# =============================================================================
# Activity Logger
# =============================================================================


@router.get("/activity-logger", response_class=HTMLResponse)
def activity_logger_page(
    request: Request,
    user: UserSession = Depends(require_agent),
    services: AppServices = Depends(get_services),
):
    activities = services.repository_for(user).fetch_activities(agent_id=user.user_id)
    return templates.TemplateResponse(
        request,
        "activity.html",
        {
            "user": user,
            "activities": activities,
            "examples": COUNTER_EXAMPLES,
            "errors": {},
            "form": ActivityForm(),
        },
    )


@router.post("/activity-logger")
async def log_activity(
    request: Request,
    user: UserSession = Depends(require_agent),
    services: AppServices = Depends(get_services),
):
    """Accepts a form post or a JSON body; invalid input gives 422 with per-field errors."""
    if request.headers.get("content-type", "").startswith("application/json"):
        data = await request.json()
    else:
        data = dict(await request.form())
    form = ActivityForm.from_mapping(data)

    try:
        row = services.repository_for(user).log_activity(form, agent_id=user.user_id)
    except ActivityValidationError as e:
        return JSONResponse(status_code=422, content={"error": str(e), "errors": e.errors})

    services.notifier_for(user).success("Activity logged successfully!")
    return {"activity": row, "notices": [n.to_dict() for n in services.notifier_for(user).drain()]}


# =============================================================================
# Comparisons and Market Reports
# =============================================================================


@router.get("/comparisons")
def comparisons(
    request: Request,
    format: str = "html",
    user: UserSession = Depends(require_agent),
    services: AppServices = Depends(get_services),
):
    """Top agents, agencies and commission earners against the operator agency."""
    metrics = services.pipeline_for(user).current_metrics()
    charts = {}
    for kind in ("commission", "agents", "agencies"):
        chart = build_comparison_series(metrics, kind)
        charts[kind] = chart.to_dict() if chart else None
    if format == "json":
        return {"charts": charts, "metrics": metrics.to_dict() if metrics else None}
    return templates.TemplateResponse(
        request,
        "comparisons.html",
        {"user": user, "metrics": metrics, "charts": charts},
    )


@router.get("/market-reports")
def market_reports(
    user: UserSession = Depends(require_authenticated),
    services: AppServices = Depends(get_services),
):
    """Per-suburb averages, monthly trends and next-period predictions."""
    metrics = services.pipeline_for(user).current_metrics()
    if metrics is None:
        return {"suburbs": [], "charts": build_all_series(None)}
    suburbs = [
        {
            "suburb": suburb,
            "listed": counts.listed,
            "sold": counts.sold,
            "average_price": metrics.avg_sale_price_by_suburb.get(suburb),
            "predicted_price": metrics.predicted_avg_price_by_suburb.get(suburb),
            "confidence": (
                metrics.predicted_confidence_by_suburb[suburb].to_dict()
                if suburb in metrics.predicted_confidence_by_suburb else None
            ),
            "trend": metrics.price_trends_by_suburb.get(suburb, {}),
            "top_lister": (
                metrics.top_listers_by_suburb[suburb].agent
                if suburb in metrics.top_listers_by_suburb else None
            ),
            "our_listings": metrics.our_listings_by_suburb.get(suburb, 0),
        }
        for suburb, counts in metrics.listings_by_suburb.items()
    ]
    return {"suburbs": suburbs, "charts": build_all_series(metrics)}


@router.get("/property-prediction/{property_id}")
def property_prediction(
    property_id: str,
    user: UserSession = Depends(require_authenticated),
    services: AppServices = Depends(get_services),
):
    """
    Buy/sell recommendation from the last year of sales in the
    property's suburb for the same property type.
    """
    repository = services.repository_for(user)
    prop = repository.get_property(property_id)
    if prop is None:
        raise HTTPException(status_code=404, detail="Property not found")

    current_price = prop.price_basis
    if not prop.suburb or not prop.property_type:
        prediction = neutral_prediction(current_price)
    else:
        history = repository.fetch_price_history(prop.suburb, prop.property_type)
        prediction = analyze_price_trend(history, current_price=current_price)
    return {"property_id": prop.id, "address": prop.address, "prediction": prediction.to_dict()}
