"""
Directory user model with vacation entitlement counters.

The counter columns are written only by the vacation ledger; request
handling never touches them directly. ``version`` is the optimistic lock
column: a counter update against a stale row raises ``StaleDataError`` at
flush time, so two commits for the same user cannot both write from the
same read.
"""

from datetime import date
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrportal.models.base import TimestampModel

__all__ = ["User", "UserRole"]


class User(TimestampModel):
    """Employee record as seen by the approval engine."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("annual_vacation_days >= 0", name="ck_user_annual_days_non_negative"),
        CheckConstraint("carried_over_vacation_days >= 0", name="ck_user_carried_over_non_negative"),
        Index("ix_user_department_id", "department_id"),
        Index("ix_user_supervisor_id", "supervisor_id"),
        {"comment": "Employees and their vacation counters"},
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Login email",
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, comment="Given name")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, comment="Family name")

    department_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("departments.id", ondelete="SET NULL", use_alter=True, name="fk_user_department"),
        nullable=True,
        comment="Department the user belongs to",
    )
    supervisor_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="Direct supervisor",
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, comment="Active account")
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, comment="HR administrator")

    # Vacation counters
    annual_vacation_days: Mapped[int] = mapped_column(
        Integer, nullable=False, default=26, comment="Annual entitlement"
    )
    vacation_days_used: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Days drawn from the annual pool"
    )
    on_demand_vacation_days_used: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="On-demand days used this year"
    )
    circumstantial_leave_days_used: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Circumstantial leave days used"
    )
    carried_over_vacation_days: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Days carried over from last year"
    )
    carried_over_expiry_date: Mapped[Optional[date]] = mapped_column(
        Date, nullable=True, comment="Last day carried-over days may be used"
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, comment="Optimistic lock version")

    roles: Mapped[List["UserRole"]] = relationship(
        "UserRole",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def has_role(self, role_name: str) -> bool:
        wanted = role_name.strip().lower()
        return any(r.role_name.lower() == wanted for r in self.roles)


class UserRole(TimestampModel):
    """Named role held by a user (Manager, HR, ...)."""

    __tablename__ = "user_roles"
    __table_args__ = (
        UniqueConstraint("user_id", "role_name", name="uq_user_role"),
        Index("ix_user_role_role_name", "role_name"),
    )

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Role holder",
    )
    role_name: Mapped[str] = mapped_column(String(100), nullable=False, comment="Role name")
