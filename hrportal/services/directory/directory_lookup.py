"""
Directory lookup used by approver resolution.

The engine depends only on the ``DirectoryLookup`` protocol; ``SqlDirectory``
is the implementation over the local directory tables.
"""

from typing import List, Optional, Protocol

from sqlalchemy.orm import Session

from hrportal.models.directory import Department, RoleGroup, User
from hrportal.repositories.directory import DepartmentRepository, RoleGroupRepository, UserRepository


class DirectoryLookup(Protocol):
    def get_user(self, user_id: str) -> Optional[User]:
        ...

    def get_users_by_role(self, role: str, scope_hint: Optional[str] = None) -> List[User]:
        """Active role holders; ``scope_hint`` is a department id, None means organisation-wide."""
        ...

    def get_group(self, group_id: str) -> Optional[RoleGroup]:
        ...

    def get_group_members(self, group_id: str) -> List[User]:
        """Active members of a group in deterministic order."""
        ...

    def get_department(self, department_id: str) -> Optional[Department]:
        ...


class SqlDirectory:
    """DirectoryLookup backed by the session of the current unit of work."""

    def __init__(self, db: Session):
        self.users = UserRepository(db)
        self.departments = DepartmentRepository(db)
        self.groups = RoleGroupRepository(db)

    def get_user(self, user_id: str) -> Optional[User]:
        return self.users.find_by_id(user_id)

    def get_users_by_role(self, role: str, scope_hint: Optional[str] = None) -> List[User]:
        return self.users.find_active_by_role(role, department_id=scope_hint)

    def get_group(self, group_id: str) -> Optional[RoleGroup]:
        return self.groups.find_by_id(group_id)

    def get_group_members(self, group_id: str) -> List[User]:
        return self.groups.find_active_members(group_id)

    def get_department(self, department_id: str) -> Optional[Department]:
        return self.departments.find_by_id(department_id)
