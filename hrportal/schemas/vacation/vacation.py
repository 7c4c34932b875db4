"""
Vacation ledger schemas.
"""

from datetime import date
from typing import Dict, Optional

from pydantic import Field, field_validator, model_validator

from hrportal.models.base import LeaveType
from hrportal.schemas.common import BaseCommandSchema, BaseResponseSchema, BaseSchema

__all__ = [
    "VacationRequestData",
    "VacationSummary",
    "AdminAdjustVacationDaysCommand",
    "CancelVacationCommand",
    "CounterDriftReport",
]


class VacationRequestData(BaseSchema):
    """Vacation fields extracted from a request's form data."""

    leave_type: LeaveType = LeaveType.ANNUAL
    start_date: date
    end_date: date
    substitute_user_id: Optional[str] = None

    @model_validator(mode="after")
    def validate_range(self) -> "VacationRequestData":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class VacationSummary(BaseResponseSchema):
    """
    Balance view of one user.

    ``remaining`` is clamped at zero; ``counters_in_sync`` is False when the
    counters disagree with the schedules they are projected from.
    """

    user_id: str
    entitlement: int
    used: int
    remaining: int
    on_demand_used: int
    on_demand_remaining: int
    circumstantial_used: int
    carried_over: int
    carried_over_expiry: Optional[date] = None
    total_available: int
    counters_in_sync: bool = True


class AdminAdjustVacationDaysCommand(BaseCommandSchema):
    user_id: str = Field(..., min_length=1)
    amount: int = Field(..., description="Signed change to the annual entitlement")
    reason: str = Field(..., min_length=1, max_length=2000)
    admin_id: str = Field(..., min_length=1)

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: int) -> int:
        if v == 0:
            raise ValueError("amount must not be zero")
        return v


class CancelVacationCommand(BaseCommandSchema):
    request_id: str = Field(..., min_length=1)
    actor_id: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1, max_length=2000)


class CounterDriftReport(BaseResponseSchema):
    """Difference between user counters and schedule-derived totals."""

    user_id: str
    counters: Dict[str, int]
    derived: Dict[str, int]
    resynced: bool = False

    @property
    def drift(self) -> Dict[str, int]:
        return {
            key: self.counters[key] - self.derived.get(key, 0)
            for key in self.counters
            if self.counters[key] != self.derived.get(key, 0)
        }

    @property
    def in_sync(self) -> bool:
        return not self.drift
