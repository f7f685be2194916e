"""
Property Repository

All table access used by the reporting screens goes through here:
- properties (read, whole-record update, delete, commission rate)
- past_records / same-street sales (enrichment)
- agent_commissions (per-property commission overrides)
- profiles (agent list), agents, agent_activities (activity logger)
- property_history (price trend analysis)

Writes publish a change event on the realtime hub when one is attached.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, timedelta
from typing import Any, Iterable, Optional

from core.activities import ActivityForm, ActivityValidationError, build_activity_row, validate_activity
from core.commission import normalize_agent_name
from core.models import PropertyDetails, UNKNOWN, properties_from_records
from core.suburbs import normalize_suburb

from .client import BackendClient, BackendError
from .realtime import BATCH_IDS_KEY, EVENT_DELETE, EVENT_INSERT, EVENT_UPDATE, RealtimeHub


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

PROPERTIES_TABLE = "properties"
PAST_RECORDS_TABLE = "past_records"
AGENT_COMMISSIONS_TABLE = "agent_commissions"
AGENTS_TABLE = "agents"
PROFILES_TABLE = "profiles"
ACTIVITIES_TABLE = "agent_activities"
PRICE_HISTORY_TABLE = "property_history"

SAME_STREET_SALES_LIMIT = 5

SAME_STREET_COLUMNS = "id, street_number, street_name, suburb, property_type, price, sold_price, sold_date"
PAST_RECORD_COLUMNS = (
    "suburb, postcode, property_type, price, bedrooms, bathrooms, car_garage, "
    "sqm, landsize, listing_date, sale_date, status, notes"
)
AGENT_COMMISSION_COLUMNS = "id, property_id, agent_name, commission_rate"
AGENT_PROFILE_COLUMNS = "id, name, email, phone, role"

MIN_COMMISSION_RATE = 0.0
MAX_COMMISSION_RATE = 10.0


class CommissionRateError(ValueError):
    def __init__(self, rate: float):
        self.rate = rate
        super().__init__("Commission rate must be between 0% and 10%.")


def validate_commission_rate(rate: float) -> float:
    """Accept 0 < rate <= 10 (percent)."""
    if rate is None or not (MIN_COMMISSION_RATE < rate <= MAX_COMMISSION_RATE):
        raise CommissionRateError(rate)
    return rate


class PropertyRepository:
    """Table access for the reporting and admin screens."""

    def __init__(
        self,
        client: BackendClient,
        hub: Optional[RealtimeHub] = None,
        token: Optional[str] = None,
    ):
        self.client = client
        self.hub = hub
        self.token = token

    def _table(self, name: str):
        return self.client.table(name, token=self.token)

    def for_token(self, token: Optional[str]) -> "PropertyRepository":
        """Same repository, acting as the given signed-in user."""
        return PropertyRepository(self.client, self.hub, token=token)

    def _publish(self, table: str, event: str, record: dict) -> None:
        if self.hub is not None:
            self.hub.publish(table, event, record)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    def fetch_properties(self, enrich: bool = True) -> list[PropertyDetails]:
        """
        Fetch every property, newest first, with suburbs normalised.

        When enrich is set each property is given up to five same-street
        sales and its past records. A failed enrichment query is logged and
        that property is returned un-enriched.

        Raises:
            BackendError: If the properties query itself fails.
        """
        rows = self._table(PROPERTIES_TABLE).select("*").order("created_at", desc=True).execute()
        properties = [p.with_suburb(normalize_suburb(p.suburb)) for p in properties_from_records(rows)]
        logger.info("Fetched %d properties", len(properties))
        if not enrich:
            return properties
        return [self._enrich(p) for p in properties]

    def _enrich(self, prop: PropertyDetails) -> PropertyDetails:
        try:
            sales = (
                self._table(PROPERTIES_TABLE)
                .select(SAME_STREET_COLUMNS)
                .eq("street_name", prop.street_name or "")
                .neq("id", prop.id)
                .limit(SAME_STREET_SALES_LIMIT)
                .execute()
            )
            records = (
                self._table(PAST_RECORDS_TABLE)
                .select(PAST_RECORD_COLUMNS)
                .eq("property_id", prop.id)
                .execute()
            )
        except BackendError as e:
            logger.warning("Could not enrich property %s: %s", prop.id, e)
            return prop
        return replace(
            prop,
            same_street_sales=[{**s, "suburb": normalize_suburb(s.get("suburb"))} for s in sales],
            past_records=[{**r, "suburb": normalize_suburb(r.get("suburb"))} for r in records],
        )

    def get_property(self, property_id: str) -> Optional[PropertyDetails]:
        """Fetch one property, or None when it does not exist."""
        try:
            row = self._table(PROPERTIES_TABLE).select("*").eq("id", property_id).single().execute()
        except BackendError as e:
            if e.is_not_found:
                return None
            raise
        prop = PropertyDetails.from_record(row)
        return self._enrich(prop.with_suburb(normalize_suburb(prop.suburb)))

    def update_property(self, prop: PropertyDetails) -> PropertyDetails:
        """Write the whole record back."""
        record = prop.to_record()
        record.pop("id", None)
        rows = self._table(PROPERTIES_TABLE).update(record).eq("id", prop.id).execute()
        updated = PropertyDetails.from_record(rows[0]) if rows else prop
        self._publish(PROPERTIES_TABLE, EVENT_UPDATE, {"id": prop.id, **record})
        return updated

    def delete_property(self, property_id: str) -> None:
        self._table(PROPERTIES_TABLE).delete().eq("id", property_id).execute()
        self._publish(PROPERTIES_TABLE, EVENT_DELETE, {"id": property_id})

    # -------------------------------------------------------------------------
    # Commission overrides
    # -------------------------------------------------------------------------

    def fetch_agent_commissions(self) -> list[dict]:
        return self._table(AGENT_COMMISSIONS_TABLE).select(AGENT_COMMISSION_COLUMNS).execute()

    def commission_overrides(self) -> dict[str, float]:
        """Property id -> override rate, from the agent_commissions table."""
        overrides: dict[str, float] = {}
        for row in self.fetch_agent_commissions():
            rate = row.get("commission_rate")
            if row.get("property_id") is not None and rate:
                overrides[str(row["property_id"])] = float(rate)
        return overrides

    def set_commission_rate(
        self,
        property_ids: Iterable[str],
        rate: float,
        agents: Optional[dict[str, Optional[str]]] = None,
    ) -> int:
        """
        Set the commission rate on properties and their agent overrides.

        Publishes one UPDATE event for the whole batch.

        Args:
            property_ids: Properties to update.
            rate: New commission percentage, 0 < rate <= 10.
            agents: Property id -> agent name, used to upsert overrides.
                Properties without a known agent get no override row.

        Returns:
            Number of properties updated.

        Raises:
            CommissionRateError: If the rate is out of range.
            BackendError: If any write fails.
        """
        validate_commission_rate(rate)
        ids = list(dict.fromkeys(str(i) for i in property_ids))
        if not ids:
            return 0

        self._table(PROPERTIES_TABLE).update({"commission": rate}).in_("id", ids).execute()

        existing = {
            (str(row.get("property_id")), row.get("agent_name")): row
            for row in self.fetch_agent_commissions()
        }
        for property_id in ids:
            agent = normalize_agent_name((agents or {}).get(property_id))
            current = existing.get((property_id, agent))
            if current is not None:
                (
                    self._table(AGENT_COMMISSIONS_TABLE)
                    .update({"commission_rate": rate})
                    .eq("id", current["id"])
                    .execute()
                )
            elif agent != UNKNOWN:
                (
                    self._table(AGENT_COMMISSIONS_TABLE)
                    .insert({"property_id": property_id, "agent_name": agent, "commission_rate": rate})
                    .execute()
                )

        self._publish(PROPERTIES_TABLE, EVENT_UPDATE, {BATCH_IDS_KEY: ids, "commission": rate})
        logger.info("Set commission %.2f%% on %d properties", rate, len(ids))
        return len(ids)

    # -------------------------------------------------------------------------
    # Agents and activities
    # -------------------------------------------------------------------------

    def fetch_agents(self) -> list[dict]:
        """Profiles with the agent role, by name."""
        return (
            self._table(PROFILES_TABLE)
            .select(AGENT_PROFILE_COLUMNS)
            .eq("role", "agent")
            .order("name")
            .execute()
        )

    def agency_for_agent(self, agent_id: str) -> Optional[str]:
        """The agent's agency, or None when the agent has no agents row."""
        try:
            row = self._table(AGENTS_TABLE).select("agency_name").eq("id", agent_id).single().execute()
        except BackendError as e:
            if e.is_not_found:
                return None
            raise
        return row.get("agency_name") if row else None

    def log_activity(self, form: ActivityForm, agent_id: str) -> dict:
        """
        Validate and insert one agent activity.

        Raises:
            ActivityValidationError: If the form does not validate.
            BackendError: If the agency lookup or the insert fails.
        """
        errors = validate_activity(form)
        if errors:
            raise ActivityValidationError(errors)
        agency = self.agency_for_agent(agent_id)
        row = build_activity_row(form, agent_id=agent_id, agency_name=agency)
        inserted = self._table(ACTIVITIES_TABLE).insert([row]).execute()
        self._publish(ACTIVITIES_TABLE, EVENT_INSERT, row)
        logger.info("Logged %s activity for agent %s", form.type, agent_id)
        return inserted[0] if inserted else row

    def fetch_activities(self, agent_id: Optional[str] = None) -> list[dict]:
        query = self._table(ACTIVITIES_TABLE).select("*")
        if agent_id:
            query = query.eq("agent_id", agent_id)
        return query.order("activity_date", desc=True).execute()

    # -------------------------------------------------------------------------
    # Price history
    # -------------------------------------------------------------------------

    def fetch_price_history(
        self,
        city: str,
        property_type: str,
        since: Optional[date] = None,
    ) -> list[dict[str, Any]]:
        """Sales for a city and property type over the last year, oldest first."""
        since = since or (date.today() - timedelta(days=365))
        return (
            self._table(PRICE_HISTORY_TABLE)
            .select("sale_date, price")
            .eq("city", city)
            .eq("property_type", property_type)
            .gte("sale_date", since.isoformat())
            .order("sale_date")
            .execute()
        )
