"""
Admin Routes - Commission management and agency overview

All routes require a signed-in admin; anyone else is redirected to
/admin-login.

Routes:
- GET  /admin                          - Commission tables, properties and agents
- POST /admin/properties/{id}          - Edit a property
- POST /admin/properties/{id}/delete   - Delete a property
- GET  /admin-commission               - Commission page (HTML, or JSON with ?format=json)
- POST /admin-commission/preview       - Old/new totals for a proposed rate
- POST /admin-commission/update        - Set the rate on one property
- POST /admin-commission/batch         - Set the rate on several properties
- POST /admin-commission/simulate      - Agency-wide what-if at a new rate
- GET  /admin-commission/trend         - Monthly commission per agency
- GET  /admin-commission/export/{fmt}  - CSV or PDF commission report
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

from core.backend import CommissionRateError, PropertyRepository, validate_commission_rate
from core.commission import (
    agency_commission_totals,
    by_agency,
    by_agent,
    commission_impact,
    commission_totals,
    effective_rate,
    earned_with_overrides,
    monthly_commission_trend,
    simulate_agency_commission,
    top_earner,
)
from core.models import PropertyDetails
from reporting import CommissionReportExporter, ExportSuccess, run_export
from utils.formatting import format_currency, format_percent

from web.services import AppServices, get_services, require_admin
from web.session_cookie import UserSession


logger = logging.getLogger(__name__)


# =============================================================================
# Router Setup
# =============================================================================

TEMPLATES_DIR = Path(__file__).parent / "templates"

router = APIRouter(tags=["admin"])
templates = Jinja2Templates(directory=TEMPLATES_DIR)
templates.env.filters["currency"] = format_currency
templates.env.filters["percent"] = format_percent


# =============================================================================
# Request Models
# =============================================================================


class RateChange(BaseModel):
    property_ids: List[str]
    rate: float


class SingleRateChange(BaseModel):
    property_id: str
    rate: float


class AgencySimulation(BaseModel):
    agency: str
    rate: float


class PropertyUpdate(BaseModel):
    """Editable property fields; only the fields sent are changed."""
    category: Optional[str] = None
    property_type: Optional[str] = None
    price: Optional[float] = None
    sold_price: Optional[float] = None
    expected_price: Optional[float] = None
    commission: Optional[float] = None
    agent_name: Optional[str] = None
    agency_name: Optional[str] = None
    contract_status: Optional[str] = None
    listed_date: Optional[str] = None
    sold_date: Optional[str] = None


def _property_row(prop: PropertyDetails) -> dict:
    return {
        "id": prop.id,
        "address": prop.address,
        "category": prop.category,
        "agent": prop.agent_name,
        "agency": prop.agency_name,
        "price": prop.price,
        "sold_price": prop.sold_price,
        "commission": prop.commission,
        "status": prop.contract_status,
    }


def _load(repository: PropertyRepository):
    """Every property plus the current per-property rate overrides."""
    return repository.fetch_properties(enrich=False), repository.commission_overrides()


def _rate_error(e: CommissionRateError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": str(e)})


def _apply_rate(services: AppServices, user: UserSession, property_ids: List[str], rate: float):
    repository = services.repository_for(user)
    try:
        validate_commission_rate(rate)
    except CommissionRateError as e:
        return _rate_error(e)

    properties, _ = _load(repository)
    known = {p.id: p for p in properties}
    missing = [pid for pid in property_ids if pid not in known]
    if missing:
        raise HTTPException(status_code=404, detail=f"Unknown properties: {', '.join(missing)}")

    agents = {pid: known[pid].agent_name for pid in property_ids}
    updated = repository.set_commission_rate(property_ids, rate, agents=agents)
    notifier = services.notifier_for(user)
    notifier.success(f"Commission rate updated to {rate}% for {updated} properties")
    return {"updated": updated, "rate": rate, "notices": [n.to_dict() for n in notifier.drain()]}


# =============================================================================
# Admin Dashboard
# =============================================================================


@router.get("/admin")
def admin_dashboard(
    request: Request,
    format: str = "html",
    admin: UserSession = Depends(require_admin),
    services: AppServices = Depends(get_services),
):
    """Commission tables, every property and the agent list."""
    repository = services.repository_for(admin)
    properties, overrides = _load(repository)
    agencies, agents = agency_commission_totals(properties, overrides)
    agent_profiles = repository.fetch_agents()
    if format == "json":
        return {
            "properties": [_property_row(p) for p in properties],
            "agents": agent_profiles,
            "agencies": [{"agency": r.agency, "total_commission": r.total_commission} for r in agencies],
        }
    return templates.TemplateResponse(
        request,
        "admin.html",
        {
            "user": admin,
            "agencies": sorted(agencies, key=lambda r: r.total_commission, reverse=True),
            "agents": sorted(agents, key=lambda r: r.commission, reverse=True),
            "properties": [_property_row(p) for p in properties],
            "agent_profiles": agent_profiles,
            "property_count": len(properties),
            "notices": services.notifier_for(admin).drain(),
        },
    )


# =============================================================================
# Property Management
# =============================================================================


@router.post("/admin/properties/{property_id}")
def update_property(
    property_id: str,
    body: PropertyUpdate,
    admin: UserSession = Depends(require_admin),
    services: AppServices = Depends(get_services),
):
    """Edit the given fields and write the whole record back."""
    repository = services.repository_for(admin)
    prop = repository.get_property(property_id)
    if prop is None:
        raise HTTPException(status_code=404, detail="Property not found")

    changes = body.model_dump(exclude_unset=True)
    if changes.get("commission") is not None:
        try:
            validate_commission_rate(changes["commission"])
        except CommissionRateError as e:
            return _rate_error(e)

    updated = repository.update_property(PropertyDetails.from_record({**prop.to_record(), **changes}))
    notifier = services.notifier_for(admin)
    notifier.success("Property updated successfully")
    return {"property": _property_row(updated), "notices": [n.to_dict() for n in notifier.drain()]}


@router.post("/admin/properties/{property_id}/delete")
def delete_property(
    property_id: str,
    admin: UserSession = Depends(require_admin),
    services: AppServices = Depends(get_services),
):
    repository = services.repository_for(admin)
    if repository.get_property(property_id) is None:
        raise HTTPException(status_code=404, detail="Property not found")
    repository.delete_property(property_id)
    services.notifier_for(admin).success("Property deleted successfully")
    logger.info("Admin %s deleted property %s", admin.email, property_id)
    return RedirectResponse(url="/admin", status_code=303)


# =============================================================================
# Commission Management
# =============================================================================


@router.get("/admin-commission")
def commission_page(
    request: Request,
    format: str = "html",
    admin: UserSession = Depends(require_admin),
    services: AppServices = Depends(get_services),
):
    """Every property with its effective rate, plus the top earners."""
    properties, overrides = _load(services.repository_for(admin))
    rows = [
        {
            "id": p.id,
            "address": p.address,
            "agency": by_agency(p),
            "agent": by_agent(p),
            "rate": effective_rate(p, overrides),
            "earned": earned_with_overrides(p, overrides),
            "price": p.sold_price or p.price or 0,
            "status": p.contract_status,
        }
        for p in properties
    ]
    agency = top_earner(commission_totals(properties, by_agency, overrides))
    agent = top_earner(commission_totals(properties, by_agent, overrides))
    summary = {
        "top_agency": {"name": agency.name, "total": agency.total},
        "top_agent": {"name": agent.name, "total": agent.total},
    }
    if format == "json":
        return {"properties": rows, "summary": summary}
    return templates.TemplateResponse(
        request,
        "admin_commission.html",
        {
            "user": admin,
            "rows": rows,
            "summary": summary,
            "notices": services.notifier_for(admin).drain(),
        },
    )


@router.post("/admin-commission/preview")
def preview_rate_change(
    body: RateChange,
    admin: UserSession = Depends(require_admin),
    services: AppServices = Depends(get_services),
):
    try:
        validate_commission_rate(body.rate)
    except CommissionRateError as e:
        return _rate_error(e)
    properties, overrides = _load(services.repository_for(admin))
    impact = commission_impact(properties, body.property_ids, body.rate, overrides)
    return {
        "old_total": impact.old_total,
        "new_total": impact.new_total,
        "difference": impact.difference,
    }


@router.post("/admin-commission/update")
def update_rate(
    body: SingleRateChange,
    admin: UserSession = Depends(require_admin),
    services: AppServices = Depends(get_services),
):
    return _apply_rate(services, admin, [body.property_id], body.rate)


@router.post("/admin-commission/batch")
def batch_update_rate(
    body: RateChange,
    admin: UserSession = Depends(require_admin),
    services: AppServices = Depends(get_services),
):
    if not body.property_ids:
        return JSONResponse(status_code=400, content={"error": "Select at least one property."})
    return _apply_rate(services, admin, body.property_ids, body.rate)


@router.post("/admin-commission/simulate")
def simulate_rate(
    body: AgencySimulation,
    admin: UserSession = Depends(require_admin),
    services: AppServices = Depends(get_services),
):
    try:
        validate_commission_rate(body.rate)
    except CommissionRateError as e:
        return _rate_error(e)
    properties, overrides = _load(services.repository_for(admin))
    impact = simulate_agency_commission(properties, body.agency, body.rate, overrides)
    return {
        "agency": body.agency,
        "current_total": impact.old_total,
        "simulated_total": impact.new_total,
        "difference": impact.difference,
    }


@router.get("/admin-commission/trend")
def commission_trend(
    months: int = 12,
    admin: UserSession = Depends(require_admin),
    services: AppServices = Depends(get_services),
):
    if months < 1 or months > 60:
        raise HTTPException(status_code=400, detail="months must be between 1 and 60")
    properties, overrides = _load(services.repository_for(admin))
    labels, series = monthly_commission_trend(properties, overrides, months=months)
    return {"labels": labels, "series": series}


@router.get("/admin-commission/export/{fmt}")
def export_commission_report(
    fmt: str,
    admin: UserSession = Depends(require_admin),
    services: AppServices = Depends(get_services),
):
    properties, overrides = _load(services.repository_for(admin))
    try:
        exporter = CommissionReportExporter(overrides).for_format(fmt.lower())
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown export format: {fmt}")

    notifier = services.notifier_for(admin)
    destination = Path(services.config.reports_dir) / admin.session_id
    result = run_export(exporter, properties, destination, notifier=notifier)
    if not isinstance(result, ExportSuccess):
        return JSONResponse(
            status_code=500,
            content={"error": result.message, "notices": [n.to_dict() for n in notifier.drain()]},
        )
    return FileResponse(result.path, media_type=result.media_type, filename=result.path.name)
