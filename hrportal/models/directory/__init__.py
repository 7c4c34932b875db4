from hrportal.models.directory.department import Department, RoleGroup, RoleGroupMember
from hrportal.models.directory.user import User, UserRole

__all__ = ["Department", "RoleGroup", "RoleGroupMember", "User", "UserRole"]
