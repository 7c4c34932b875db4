"""
Database enums shared by models, schemas and services.
"""

import enum


class RequestStatus(str, enum.Enum):
    """Lifecycle of a submitted request."""
    SUBMITTED = "Submitted"
    IN_REVIEW = "InReview"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (RequestStatus.APPROVED, RequestStatus.REJECTED, RequestStatus.CANCELLED)


class ApprovalStepStatus(str, enum.Enum):
    """Status of one approval step."""
    PENDING = "Pending"
    IN_REVIEW = "InReview"
    APPROVED = "Approved"
    REJECTED = "Rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (ApprovalStepStatus.APPROVED, ApprovalStepStatus.REJECTED)


class ApproverType(str, enum.Enum):
    """How a step template's approver is resolved."""
    ROLE = "Role"
    SPECIFIC_USER = "SpecificUser"
    USER_GROUP = "UserGroup"
    SUBMITTER = "Submitter"


class LeaveType(str, enum.Enum):
    """Vacation pools drawn from by a vacation request."""
    ANNUAL = "Annual"
    ON_DEMAND = "OnDemand"
    CIRCUMSTANTIAL = "Circumstantial"


class VacationStatus(str, enum.Enum):
    """Status of a scheduled vacation."""
    SCHEDULED = "Scheduled"
    ACTIVE = "Active"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class NotificationType(str, enum.Enum):
    """Kinds of notifications emitted by the engine."""
    REQUEST_PENDING_APPROVAL = "RequestPendingApproval"
    REQUEST_APPROVED = "RequestApproved"
    REQUEST_REJECTED = "RequestRejected"
    VACATION_CANCELLED = "VacationCancelled"
    VACATION_ADJUSTED = "VacationAdjusted"


class AuditAction(str, enum.Enum):
    """Audit trail action names."""
    REQUEST_SUBMITTED = "RequestSubmitted"
    REQUEST_APPROVED = "RequestApproved"
    REQUEST_REJECTED = "RequestRejected"
    STEP_APPROVED = "StepApproved"
    STEP_REJECTED = "StepRejected"
    STEP_ACTIVATED = "StepActivated"
    STEP_REASSIGNED = "StepReassigned"
    QUIZ_EVALUATED = "QuizEvaluated"
    BULK_APPROVAL = "BulkApproval"
    VACATION_COMMITTED = "VacationCommitted"
    VACATION_REVERTED = "VacationReverted"
    VACATION_ADJUSTED = "VacationAdjusted"
    VACATION_STATUS_CHANGED = "VacationStatusChanged"
    CARRIED_OVER_EXPIRED = "CarriedOverExpired"
    COUNTERS_RESYNCED = "CountersResynced"
    TEMPLATE_CREATED = "TemplateCreated"
    TEMPLATE_DEACTIVATED = "TemplateDeactivated"
    TEMPLATE_DELETED = "TemplateDeleted"
