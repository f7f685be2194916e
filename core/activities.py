"""
Agent Activity Logging - Validation and Row Building

Agents record prospecting work as either a phone-call session or a
door-knock session. Counters are optional; when given they must be
non-negative whole numbers, and "answered" can never exceed "connected"
(calls) or "made" (knocks).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Any, Mapping, Optional


ACTIVITY_PHONE_CALL = "phone_call"
ACTIVITY_DOOR_KNOCK = "door_knock"
ACTIVITY_TYPES = (ACTIVITY_PHONE_CALL, ACTIVITY_DOOR_KNOCK)

ACTIVITY_STATUS_COMPLETED = "Completed"

COUNTER_FIELDS: dict[str, tuple[str, ...]] = {
    ACTIVITY_PHONE_CALL: (
        "calls_connected",
        "calls_answered",
        "desktop_appraisals",
        "face_to_face_appraisals",
    ),
    ACTIVITY_DOOR_KNOCK: (
        "knocks_made",
        "knocks_answered",
        "desktop_appraisals",
        "face_to_face_appraisals",
    ),
}

COUNTER_EXAMPLES = {
    "calls_connected": "0 or 5",
    "calls_answered": "0 or 3",
    "knocks_made": "0 or 15",
    "knocks_answered": "0 or 5",
    "desktop_appraisals": "0 or 2",
    "face_to_face_appraisals": "0 or 1",
}

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class ActivityValidationError(ValueError):
    """Raised with a field -> message map when an activity form is invalid."""

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        super().__init__("Please fix the errors in the form before submitting.")


@dataclass
class ActivityForm:
    """Raw activity form values, as typed by the agent."""

    type: str = ACTIVITY_PHONE_CALL
    date: str = ""
    street_name: str = ""
    suburb: str = ""
    notes: str = ""
    counters: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ActivityForm":
        counters = {
            name: str(data[name])
            for name in COUNTER_EXAMPLES
            if data.get(name) not in (None, "")
        }
        return cls(
            type=str(data.get("type") or data.get("activity_type") or ACTIVITY_PHONE_CALL),
            date=str(data.get("date") or ""),
            street_name=str(data.get("street_name") or ""),
            suburb=str(data.get("suburb") or ""),
            notes=str(data.get("notes") or ""),
            counters=counters,
        )


def _parse_int(value: Optional[str]) -> Optional[int]:
    """Leading-integer parse; None when there is no leading integer."""
    if value is None:
        return None
    match = LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def _is_iso_date(text: str) -> bool:
    if not DATE_PATTERN.match(text):
        return False
    try:
        date.fromisoformat(text)
    except ValueError:
        return False
    return True


def capitalize_first(text: str) -> str:
    return text[:1].upper() + text[1:] if text else ""


# =============================================================================
# Validation
# =============================================================================


def validate_activity(form: ActivityForm, today: Optional[date] = None) -> dict[str, str]:
    """
    Validate an activity form.

    Args:
        form: Raw form values.
        today: Latest accepted activity date (defaults to today, UTC).

    Returns:
        Field -> error message. Empty when the form is valid.
    """
    errors: dict[str, str] = {}
    today = today or datetime.now(timezone.utc).date()

    if form.type not in ACTIVITY_TYPES:
        errors["type"] = f"Unknown activity type: {form.type}"

    if not form.suburb.strip():
        errors["suburb"] = "Please select or enter a suburb (e.g., Moggill 4070)"
    if not form.street_name.strip():
        errors["street_name"] = "Please enter a street name"

    if not form.date:
        errors["date"] = "Please select a date"
    elif not _is_iso_date(form.date):
        errors["date"] = "Please enter a valid date (YYYY-MM-DD)"
    elif form.date > today.isoformat():
        errors["date"] = f"Please select today ({today.strftime('%d/%m/%Y')}) or a past date"

    for name in COUNTER_FIELDS.get(form.type, ()):
        raw = form.counters.get(name)
        if raw is None:
            continue
        parsed = _parse_int(raw)
        if parsed is None or parsed < 0:
            errors[name] = f"Please enter a number like {COUNTER_EXAMPLES[name]}"

    pairs = {
        ACTIVITY_PHONE_CALL: ("calls_connected", "calls_answered", "calls connected"),
        ACTIVITY_DOOR_KNOCK: ("knocks_made", "knocks_answered", "knocks made"),
    }
    if form.type in pairs:
        total_field, answered_field, label = pairs[form.type]
        total = _parse_int(form.counters.get(total_field))
        answered = _parse_int(form.counters.get(answered_field))
        if total is not None and answered is not None and answered > total:
            errors[answered_field] = f"Cannot be more than {label}"

    return errors


# =============================================================================
# Row Building
# =============================================================================


def build_activity_row(form: ActivityForm, agent_id: str, agency_name: Optional[str]) -> dict[str, Any]:
    """
    Build the `agent_activities` row for a validated form.

    Raises:
        ActivityValidationError: If the form does not validate.
    """
    errors = validate_activity(form)
    if errors:
        raise ActivityValidationError(errors)

    activity_date = datetime.combine(date.fromisoformat(form.date), time.min, tzinfo=timezone.utc)
    row: dict[str, Any] = {
        "agent_id": agent_id,
        "agency_name": agency_name or "",
        "activity_type": form.type,
        "activity_date": activity_date.isoformat(),
        "street_name": form.street_name.strip(),
        "suburb": capitalize_first(form.suburb.strip()),
        "notes": form.notes.strip() or None,
        "status": ACTIVITY_STATUS_COMPLETED,
    }
    for name in COUNTER_FIELDS[form.type]:
        row[name] = _parse_int(form.counters.get(name)) or 0
    return row
