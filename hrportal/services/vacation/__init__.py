from hrportal.services.vacation.vacation_form_data import extract_vacation_data, parse_leave_type
from hrportal.services.vacation.vacation_ledger import AvailabilityCheck, VacationLedger, counter_snapshot
from hrportal.services.vacation.vacation_service import VacationService

__all__ = [
    "AvailabilityCheck",
    "VacationLedger",
    "VacationService",
    "counter_snapshot",
    "extract_vacation_data",
    "parse_leave_type",
]
