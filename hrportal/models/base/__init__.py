from hrportal.models.base.base_model import Base, BaseModel, TimestampModel, enum_type, new_id, utc_now
from hrportal.models.base.enums import (
    ApprovalStepStatus,
    ApproverType,
    AuditAction,
    LeaveType,
    NotificationType,
    RequestStatus,
    VacationStatus,
)

__all__ = [
    "Base",
    "BaseModel",
    "TimestampModel",
    "enum_type",
    "new_id",
    "utc_now",
    "ApprovalStepStatus",
    "ApproverType",
    "AuditAction",
    "LeaveType",
    "NotificationType",
    "RequestStatus",
    "VacationStatus",
]
