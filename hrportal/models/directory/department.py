"""
Department and user group models.
"""

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from hrportal.models.base import TimestampModel

__all__ = ["Department", "RoleGroup", "RoleGroupMember"]


class Department(TimestampModel):
    """Organisational unit; its head is the preferred role holder for members."""

    __tablename__ = "departments"

    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, comment="Department name")
    head_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL", use_alter=True, name="fk_department_head"),
        nullable=True,
        comment="Department head",
    )
    parent_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("departments.id", ondelete="SET NULL"),
        nullable=True,
        comment="Parent department",
    )


class RoleGroup(TimestampModel):
    """Named group of users that can be assigned to an approval step."""

    __tablename__ = "role_groups"

    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, comment="Group name")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, comment="Group enabled")


class RoleGroupMember(TimestampModel):
    """Membership of a user in a role group."""

    __tablename__ = "role_group_members"
    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_role_group_member"),
        Index("ix_role_group_member_group_id", "group_id"),
    )

    group_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("role_groups.id", ondelete="CASCADE"),
        nullable=False,
        comment="Group",
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Member",
    )
