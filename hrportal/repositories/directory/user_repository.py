"""
User data access for approver resolution and the vacation ledger.
"""

from datetime import date
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from hrportal.models.directory import User, UserRole
from hrportal.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for directory users."""

    def __init__(self, db: Session):
        super().__init__(User, db)

    def find_active_by_role(self, role_name: str, department_id: Optional[str] = None) -> List[User]:
        """
        Active holders of a role, in deterministic (last name, first name, id) order.

        Args:
            role_name: Role to look for, matched case-insensitively
            department_id: Restrict to one department when given
        """
        stmt = (
            select(User)
            .join(UserRole, UserRole.user_id == User.id)
            .where(func.lower(UserRole.role_name) == role_name.strip().lower())
            .where(User.is_active.is_(True))
            .order_by(User.last_name, User.first_name, User.id)
        )
        if department_id is not None:
            stmt = stmt.where(User.department_id == department_id)
        return list(self.db.execute(stmt).scalars().all())

    def find_with_expired_carry_over(self, today: date) -> List[User]:
        stmt = (
            select(User)
            .where(User.carried_over_vacation_days > 0)
            .where(User.carried_over_expiry_date.is_not(None))
            .where(User.carried_over_expiry_date < today)
            .order_by(User.id)
            .with_for_update()
        )
        return list(self.db.execute(stmt).scalars().all())
