from hrportal.repositories.directory.department_repository import DepartmentRepository, RoleGroupRepository
from hrportal.repositories.directory.user_repository import UserRepository

__all__ = ["DepartmentRepository", "RoleGroupRepository", "UserRepository"]
