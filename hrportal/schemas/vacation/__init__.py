from hrportal.schemas.vacation.vacation import (
    AdminAdjustVacationDaysCommand,
    CancelVacationCommand,
    CounterDriftReport,
    VacationRequestData,
    VacationSummary,
)

__all__ = [
    "AdminAdjustVacationDaysCommand",
    "CancelVacationCommand",
    "CounterDriftReport",
    "VacationRequestData",
    "VacationSummary",
]
