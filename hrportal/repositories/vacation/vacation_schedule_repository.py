"""
Vacation schedule data access.
"""

from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from hrportal.models.base import LeaveType, VacationStatus
from hrportal.models.vacation import VacationSchedule
from hrportal.repositories.base import BaseRepository


class VacationScheduleRepository(BaseRepository[VacationSchedule]):
    """Repository for vacation schedules."""

    def __init__(self, db: Session):
        super().__init__(VacationSchedule, db)

    def find_by_request(self, request_id: str, for_update: bool = False) -> Optional[VacationSchedule]:
        stmt = select(VacationSchedule).where(VacationSchedule.source_request_id == request_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalars().first()

    def find_by_user(self, user_id: str, include_cancelled: bool = False) -> List[VacationSchedule]:
        stmt = select(VacationSchedule).where(VacationSchedule.user_id == user_id)
        if not include_cancelled:
            stmt = stmt.where(VacationSchedule.status != VacationStatus.CANCELLED)
        return list(self.db.execute(stmt.order_by(VacationSchedule.start_date)).scalars().all())

    def committed_days_by_leave_type(self, user_id: str) -> Dict[LeaveType, int]:
        """Sum of days of every non-cancelled schedule, grouped by leave type."""
        stmt = (
            select(VacationSchedule.leave_type, func.coalesce(func.sum(VacationSchedule.days_count), 0))
            .where(VacationSchedule.user_id == user_id)
            .where(VacationSchedule.status != VacationStatus.CANCELLED)
            .group_by(VacationSchedule.leave_type)
        )
        totals = {leave_type: 0 for leave_type in LeaveType}
        for leave_type, days in self.db.execute(stmt).all():
            totals[leave_type] = int(days)
        return totals

    def find_due_for_activation(self, today: date) -> List[VacationSchedule]:
        stmt = (
            select(VacationSchedule)
            .where(VacationSchedule.status == VacationStatus.SCHEDULED)
            .where(VacationSchedule.start_date <= today)
            .where(VacationSchedule.end_date >= today)
        )
        return list(self.db.execute(stmt).scalars().all())

    def find_due_for_completion(self, today: date) -> List[VacationSchedule]:
        stmt = (
            select(VacationSchedule)
            .where(VacationSchedule.status.in_([VacationStatus.SCHEDULED, VacationStatus.ACTIVE]))
            .where(VacationSchedule.end_date < today)
        )
        return list(self.db.execute(stmt).scalars().all())

    def find_active_with_substitute(self, user_id: str, day: date) -> Optional[VacationSchedule]:
        """Committed vacation covering ``day`` that names a substitute."""
        stmt = (
            select(VacationSchedule)
            .where(VacationSchedule.user_id == user_id)
            .where(VacationSchedule.status.in_([VacationStatus.SCHEDULED, VacationStatus.ACTIVE]))
            .where(VacationSchedule.start_date <= day)
            .where(VacationSchedule.end_date >= day)
            .where(VacationSchedule.substitute_user_id.is_not(None))
            .order_by(VacationSchedule.start_date)
            .limit(1)
        )
        return self.db.execute(stmt).scalars().first()

    def find_overlapping(self, user_id: str, start: date, end: date) -> List[VacationSchedule]:
        """Committed vacations of the user sharing at least one day with ``[start, end]``."""
        stmt = (
            select(VacationSchedule)
            .where(VacationSchedule.user_id == user_id)
            .where(VacationSchedule.status != VacationStatus.CANCELLED)
            .where(VacationSchedule.start_date <= end)
            .where(VacationSchedule.end_date >= start)
            .order_by(VacationSchedule.start_date)
        )
        return list(self.db.execute(stmt).scalars().all())
