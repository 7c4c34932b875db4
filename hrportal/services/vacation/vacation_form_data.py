"""
Extraction of vacation fields from a request's form data.

Form data stays opaque to the workflow engine; only vacation templates
read these fields. Explicit keys win; otherwise ISO dates found in string
values are taken in order (first start, then end) and the leave type is
recognised from its name or a keyword.
"""

import re
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from hrportal.core.exceptions import ValidationError
from hrportal.models.base import LeaveType
from hrportal.schemas.vacation import VacationRequestData

_ISO_DATE = re.compile(r"\b(\d{4}-\d{2}-\d{2})\b")

LEAVE_TYPE_KEYS = ("leave_type", "leaveType", "vacation_type", "vacationType")
START_KEYS = ("start_date", "startDate")
END_KEYS = ("end_date", "endDate")
SUBSTITUTE_KEYS = ("substitute_user_id", "substituteUserId")


def _first_present(form_data: Mapping[str, Any], keys) -> Optional[Any]:
    for key in keys:
        value = form_data.get(key)
        if value not in (None, ""):
            return value
    return None


def parse_leave_type(value: Any) -> Optional[LeaveType]:
    """Match a leave type by exact value or keyword; None when unrecognised."""
    if isinstance(value, LeaveType):
        return value
    if not isinstance(value, str):
        return None
    normalized = re.sub(r"[\s_\-]", "", value).lower()
    for leave_type in LeaveType:
        if normalized == leave_type.value.lower():
            return leave_type
    if "demand" in normalized:
        return LeaveType.ON_DEMAND
    if "circumstan" in normalized or "occasional" in normalized:
        return LeaveType.CIRCUMSTANTIAL
    if "annual" in normalized or "vacation" in normalized or "standard" in normalized:
        return LeaveType.ANNUAL
    return None


def _scan_dates(form_data: Mapping[str, Any]) -> List[str]:
    found: List[str] = []
    for value in form_data.values():
        if isinstance(value, str):
            found.extend(_ISO_DATE.findall(value))
    return found


def extract_vacation_data(form_data: Optional[Dict[str, Any]]) -> VacationRequestData:
    """
    Raises:
        ValidationError: If dates are missing or malformed, the leave type is
            unrecognised, or the end date precedes the start date
    """
    form_data = form_data or {}
    errors: Dict[str, List[str]] = {}

    raw_type = _first_present(form_data, LEAVE_TYPE_KEYS)
    leave_type = LeaveType.ANNUAL
    if raw_type is not None:
        parsed = parse_leave_type(raw_type)
        if parsed is None:
            errors.setdefault("leave_type", []).append(f"Unrecognised leave type: {raw_type}")
        else:
            leave_type = parsed

    start = _first_present(form_data, START_KEYS)
    end = _first_present(form_data, END_KEYS)
    if start is None:
        scanned = _scan_dates(form_data)
        if scanned:
            start = scanned[0]
            if end is None:
                end = scanned[1] if len(scanned) > 1 else scanned[0]
    if start is None:
        errors.setdefault("start_date", []).append("Vacation start date is required")
    if end is None:
        end = start

    if errors:
        raise ValidationError("Invalid vacation request data", errors)

    try:
        return VacationRequestData(
            leave_type=leave_type,
            start_date=start if isinstance(start, date) else str(start),
            end_date=end if isinstance(end, date) else str(end),
            substitute_user_id=_first_present(form_data, SUBSTITUTE_KEYS),
        )
    except PydanticValidationError as e:
        field_errors: Dict[str, List[str]] = {}
        for err in e.errors():
            name = ".".join(str(p) for p in err.get("loc", ())) or "date_range"
            field_errors.setdefault(name, []).append(err.get("msg", "invalid value"))
        raise ValidationError("Invalid vacation request data", field_errors) from e
