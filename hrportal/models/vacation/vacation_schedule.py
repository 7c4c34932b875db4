"""
Vacation schedule model.

A schedule row is created when a vacation request is approved and is the
record the user counters are projected from.
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hrportal.models.base import LeaveType, TimestampModel, VacationStatus, enum_type

__all__ = ["VacationSchedule"]


class VacationSchedule(TimestampModel):
    """Date range tied one-to-one to an approved vacation request."""

    __tablename__ = "vacation_schedules"
    __table_args__ = (
        CheckConstraint("days_count >= 0", name="ck_vacation_schedule_days_non_negative"),
        CheckConstraint("end_date >= start_date", name="ck_vacation_schedule_date_range"),
        Index("ix_vacation_schedule_user_id", "user_id"),
        Index("ix_vacation_schedule_status_dates", "status", "start_date", "end_date"),
        {"comment": "Approved vacations"},
    )

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Employee on vacation",
    )
    substitute_user_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="Substitute during the absence",
    )
    source_request_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("requests.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        comment="Approved request the schedule was created from",
    )
    leave_type: Mapped[LeaveType] = mapped_column(
        enum_type(LeaveType, "leave_type_enum"),
        nullable=False,
        comment="Pool the days were drawn from",
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False, comment="First day of absence")
    end_date: Mapped[date] = mapped_column(Date, nullable=False, comment="Last day of absence")
    days_count: Mapped[int] = mapped_column(Integer, nullable=False, comment="Business days")
    status: Mapped[VacationStatus] = mapped_column(
        enum_type(VacationStatus, "vacation_status_enum"),
        nullable=False,
        default=VacationStatus.SCHEDULED,
        comment="Schedule status",
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, comment="Cancellation time"
    )
    cancelled_by_id: Mapped[Optional[str]] = mapped_column(
        String(36), nullable=True, comment="Actor who cancelled the vacation"
    )
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Reason given")

    @property
    def is_committed(self) -> bool:
        return self.status != VacationStatus.CANCELLED
