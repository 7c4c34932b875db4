"""
Vacation entitlement ledger.

Counts business days, validates availability against a user's counters and
moves the counters when a vacation request is committed or reverted.

Schedules are the record of every committed vacation; the counters on the
user row are a projection of them, updated in the same unit of work as the
schedule change and read under a row lock.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Optional, Protocol

from sqlalchemy.orm import Session

from hrportal.config.settings import VacationSettings
from hrportal.core.exceptions import (
    BusinessRuleError,
    InvalidStateError,
    ResourceNotFoundError,
    ValidationError,
)
from hrportal.core.logging import get_logger
from hrportal.models.base import AuditAction, LeaveType, VacationStatus, utc_now
from hrportal.models.directory import User
from hrportal.models.vacation import VacationSchedule
from hrportal.models.workflow import Request
from hrportal.repositories.audit import AuditLogRepository
from hrportal.repositories.directory import UserRepository
from hrportal.repositories.vacation import VacationScheduleRepository
from hrportal.services.base.audit_service import AuditService
from hrportal.services.vacation.vacation_form_data import extract_vacation_data


class BusinessDayCalendar(Protocol):
    def is_business_day(self, day: date) -> bool:
        ...


@dataclass(frozen=True)
class AvailabilityCheck:
    can_take: bool
    reason: Optional[str] = None
    shortfall: int = 0
    available: Optional[int] = None


def _plural(n: int) -> str:
    return "day" if n == 1 else "days"


def overlap_message(schedule: VacationSchedule) -> str:
    return (
        f"Overlaps an approved vacation from {schedule.start_date.isoformat()} "
        f"to {schedule.end_date.isoformat()}"
    )


def counter_snapshot(user: User) -> Dict[str, int]:
    return {
        "vacation_days_used": user.vacation_days_used,
        "on_demand_vacation_days_used": user.on_demand_vacation_days_used,
        "circumstantial_leave_days_used": user.circumstantial_leave_days_used,
    }


class VacationLedger:
    """
    Accounting rules:

    - Annual leave draws from ``annual + usable carried-over - used``.
    - On-demand leave is capped per year and also draws from the annual pool.
    - Circumstantial leave is capped per event and has its own counter.
    - Carried-over days cannot cover days after ``carried_over_expiry_date``.
    """

    ENTITY_TYPE = "User"

    def __init__(self, settings: VacationSettings, calendar: BusinessDayCalendar):
        self.settings = settings
        self.calendar = calendar
        self._logger = get_logger(self.__class__.__name__)

    # -------------------------------------------------------------------------
    # Day arithmetic
    # -------------------------------------------------------------------------

    def compute_business_days(self, start: date, end: date) -> int:
        """
        Business days in ``[start, end]`` inclusive.

        Raises:
            ValidationError: If ``end`` is before ``start``
        """
        if end < start:
            raise ValidationError.for_field("end_date", "End date must not be before start date")
        days = 0
        current = start
        while current <= end:
            if self.calendar.is_business_day(current):
                days += 1
            current += timedelta(days=1)
        return days

    def usable_carried_over(
        self,
        user: User,
        start: Optional[date] = None,
        end: Optional[date] = None,
        today: Optional[date] = None,
    ) -> int:
        """
        Carried-over days that may cover the requested range.

        Only business days on or before the expiry date can draw from the
        carried-over balance.
        """
        carried = max(0, user.carried_over_vacation_days or 0)
        expiry = user.carried_over_expiry_date
        if carried == 0 or expiry is None:
            return carried
        if start is None or end is None:
            return carried if expiry >= (today or date.today()) else 0
        if start > expiry:
            return 0
        covered = self.compute_business_days(start, min(end, expiry))
        return min(carried, covered)

    def standard_available(
        self,
        user: User,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> int:
        return user.annual_vacation_days + self.usable_carried_over(user, start, end) - user.vacation_days_used

    # -------------------------------------------------------------------------
    # Availability
    # -------------------------------------------------------------------------

    def validate_availability(
        self,
        user: User,
        leave_type: LeaveType,
        days: int,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> AvailabilityCheck:
        if days < 0:
            raise ValidationError.for_field("days", "Day count must not be negative")
        if days == 0:
            return AvailabilityCheck(False, "The requested period contains no business days")

        if leave_type == LeaveType.CIRCUMSTANTIAL:
            cap = self.settings.CIRCUMSTANTIAL_DAYS_PER_EVENT
            if days > cap:
                return AvailabilityCheck(
                    False,
                    f"Circumstantial leave is limited to {cap} {_plural(cap)} per event, "
                    f"requested {days}",
                    shortfall=days - cap,
                    available=cap,
                )
            return AvailabilityCheck(True, available=cap)

        if leave_type == LeaveType.ON_DEMAND:
            cap = self.settings.MAX_ON_DEMAND_DAYS
            used = user.on_demand_vacation_days_used
            if used + days > cap:
                remaining = max(0, cap - used)
                return AvailabilityCheck(
                    False,
                    f"On-demand leave cap exceeded: {used} of {cap} days used, "
                    f"requested {days} (short by {used + days - cap} {_plural(used + days - cap)})",
                    shortfall=used + days - cap,
                    available=remaining,
                )

        available = self.standard_available(user, start, end)
        if days > available:
            shortfall = days - max(0, available)
            return AvailabilityCheck(
                False,
                f"Insufficient vacation days: requested {days}, available {max(0, available)} "
                f"(short by {shortfall} {_plural(shortfall)})",
                shortfall=shortfall,
                available=max(0, available),
            )
        return AvailabilityCheck(True, available=available)

    # -------------------------------------------------------------------------
    # Commit / revert
    # -------------------------------------------------------------------------

    def commit(self, session: Session, request: Request, actor_id: Optional[str]) -> VacationSchedule:
        """
        Draw the request's days from the submitter's balance and create its schedule.

        Runs inside the caller's unit of work. The user row is locked and
        versioned, so of two concurrent commits for the same user only one
        writes from a given read; the other fails with ``ConcurrentUpdateError``
        at flush and its unit is re-run against the new counters.

        Raises:
            InvalidStateError: If the request was already committed
            BusinessRuleError: If the balance no longer covers the request, or
                the range overlaps another committed vacation of the user
        """
        schedules = VacationScheduleRepository(session)
        users = UserRepository(session)

        vacation = extract_vacation_data(request.form_data)
        if schedules.find_by_request(request.id) is not None:
            raise InvalidStateError(
                f"Vacation for request {request.request_number} was already committed",
                details={"request_id": request.id},
            )

        user = users.get_for_update(request.submitted_by_id)
        if user is None:
            raise ResourceNotFoundError("User", request.submitted_by_id)

        overlapping = schedules.find_overlapping(user.id, vacation.start_date, vacation.end_date)
        if overlapping:
            raise BusinessRuleError(
                overlap_message(overlapping[0]),
                {
                    "conflicting_schedule_ids": [s.id for s in overlapping],
                    "start_date": vacation.start_date.isoformat(),
                    "end_date": vacation.end_date.isoformat(),
                },
            )

        days = self.compute_business_days(vacation.start_date, vacation.end_date)
        check = self.validate_availability(user, vacation.leave_type, days, vacation.start_date, vacation.end_date)
        if not check.can_take:
            raise BusinessRuleError(
                check.reason,
                {"shortfall": check.shortfall, "requested_days": days, "leave_type": vacation.leave_type.value},
            )

        before = counter_snapshot(user)
        self._apply(user, vacation.leave_type, days)

        schedule = schedules.create(
            VacationSchedule(
                user_id=user.id,
                substitute_user_id=vacation.substitute_user_id,
                source_request_id=request.id,
                leave_type=vacation.leave_type,
                start_date=vacation.start_date,
                end_date=vacation.end_date,
                days_count=days,
                status=VacationStatus.SCHEDULED,
            ),
            flush=False,
        )
        AuditService(AuditLogRepository(session)).record_change(
            self.ENTITY_TYPE,
            user.id,
            AuditAction.VACATION_COMMITTED,
            actor_id,
            old_value=before,
            new_value={**counter_snapshot(user), "request_id": request.id, "days": days},
        )
        self._logger.info(
            f"Committed {days} {vacation.leave_type.value} days for user {user.id}",
            extra={"request_id": request.id, "user_id": user.id},
        )
        return schedule

    def revert(
        self,
        session: Session,
        request: Request,
        actor_id: Optional[str],
        reason: Optional[str] = None,
    ) -> VacationSchedule:
        """
        Return a committed request's days to the balance and cancel its schedule.

        Raises:
            InvalidStateError: If the request was never committed or already reverted
        """
        schedules = VacationScheduleRepository(session)
        schedule = schedules.find_by_request(request.id, for_update=True)
        if schedule is None or not schedule.is_committed:
            raise InvalidStateError(
                f"Vacation for request {request.request_number} is not committed",
                current_state=schedule.status.value if schedule is not None else None,
                details={"request_id": request.id},
            )

        user = UserRepository(session).get_for_update(schedule.user_id)
        if user is None:
            raise ResourceNotFoundError("User", schedule.user_id)

        before = counter_snapshot(user)
        self._apply(user, schedule.leave_type, -schedule.days_count)

        schedule.status = VacationStatus.CANCELLED
        schedule.cancelled_at = utc_now()
        schedule.cancelled_by_id = actor_id
        schedule.cancellation_reason = reason

        AuditService(AuditLogRepository(session)).record_change(
            self.ENTITY_TYPE,
            user.id,
            AuditAction.VACATION_REVERTED,
            actor_id,
            old_value=before,
            new_value={**counter_snapshot(user), "request_id": request.id, "days": schedule.days_count},
            reason=reason,
        )
        self._logger.info(
            f"Reverted {schedule.days_count} {schedule.leave_type.value} days for user {user.id}",
            extra={"request_id": request.id, "user_id": user.id},
        )
        return schedule

    @staticmethod
    def _apply(user: User, leave_type: LeaveType, days: int) -> None:
        if leave_type == LeaveType.ANNUAL:
            user.vacation_days_used += days
        elif leave_type == LeaveType.ON_DEMAND:
            user.on_demand_vacation_days_used += days
            user.vacation_days_used += days
        elif leave_type == LeaveType.CIRCUMSTANTIAL:
            user.circumstantial_leave_days_used += days

    @staticmethod
    def derived_counters(totals_by_type: Dict[LeaveType, int]) -> Dict[str, int]:
        """Counter values implied by the non-cancelled schedules."""
        return {
            "vacation_days_used": totals_by_type.get(LeaveType.ANNUAL, 0) + totals_by_type.get(LeaveType.ON_DEMAND, 0),
            "on_demand_vacation_days_used": totals_by_type.get(LeaveType.ON_DEMAND, 0),
            "circumstantial_leave_days_used": totals_by_type.get(LeaveType.CIRCUMSTANTIAL, 0),
        }
