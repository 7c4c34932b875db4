"""
Data access layer. Repositories are bound to the session of one unit of work.
"""

from hrportal.repositories.audit import AuditLogRepository
from hrportal.repositories.base import BaseRepository
from hrportal.repositories.directory import DepartmentRepository, RoleGroupRepository, UserRepository
from hrportal.repositories.holiday import HolidayRepository
from hrportal.repositories.notification import NotificationRepository
from hrportal.repositories.vacation import VacationScheduleRepository
from hrportal.repositories.workflow import (
    ApprovalStepRepository,
    RequestRepository,
    RequestTemplateRepository,
)

__all__ = [
    "ApprovalStepRepository",
    "AuditLogRepository",
    "BaseRepository",
    "DepartmentRepository",
    "HolidayRepository",
    "NotificationRepository",
    "RequestRepository",
    "RequestTemplateRepository",
    "RoleGroupRepository",
    "UserRepository",
    "VacationScheduleRepository",
]
