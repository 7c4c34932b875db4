"""
Department and role group data access.
"""

from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrportal.models.directory import Department, RoleGroup, RoleGroupMember, User
from hrportal.repositories.base import BaseRepository


class DepartmentRepository(BaseRepository[Department]):
    def __init__(self, db: Session):
        super().__init__(Department, db)


class RoleGroupRepository(BaseRepository[RoleGroup]):
    """Repository for approver groups."""

    def __init__(self, db: Session):
        super().__init__(RoleGroup, db)

    def find_active_members(self, group_id: str) -> List[User]:
        stmt = (
            select(User)
            .join(RoleGroupMember, RoleGroupMember.user_id == User.id)
            .where(RoleGroupMember.group_id == group_id)
            .where(User.is_active.is_(True))
            .order_by(User.last_name, User.first_name, User.id)
        )
        return list(self.db.execute(stmt).scalars().all())
