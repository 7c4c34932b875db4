"""
ORM models. Importing this package registers every mapper on ``Base``.
"""

from hrportal.models.audit import AuditLog
from hrportal.models.base import Base
from hrportal.models.holiday import Holiday
from hrportal.models.directory import Department, RoleGroup, RoleGroupMember, User, UserRole
from hrportal.models.notification import Notification
from hrportal.models.vacation import VacationSchedule
from hrportal.models.workflow import (
    ApprovalStep,
    ApprovalStepTemplate,
    QuizQuestion,
    Request,
    RequestTemplate,
)

__all__ = [
    "AuditLog",
    "ApprovalStep",
    "ApprovalStepTemplate",
    "Base",
    "Department",
    "Holiday",
    "Notification",
    "QuizQuestion",
    "Request",
    "RequestTemplate",
    "RoleGroup",
    "RoleGroupMember",
    "User",
    "UserRole",
    "VacationSchedule",
]
