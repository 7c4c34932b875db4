from hrportal.schemas.workflow.approver import (
    ApproverSpec,
    RoleApprover,
    SpecificUserApprover,
    SubmitterApprover,
    UserGroupApprover,
)
from hrportal.schemas.workflow.commands import (
    ApproveStepCommand,
    BulkApproveCommand,
    RejectStepCommand,
    SubmitRequestCommand,
)
from hrportal.schemas.workflow.responses import (
    ApprovalStepResponse,
    BulkApprovalItemResult,
    BulkApprovalResponse,
    RequestResponse,
    StepTransitionResponse,
    SubmissionError,
)
from hrportal.schemas.workflow.template import (
    ApprovalStepTemplateCreate,
    ApprovalStepTemplateResponse,
    QuizOption,
    QuizQuestionCreate,
    RequestTemplateCreate,
    RequestTemplateResponse,
)

__all__ = [
    "ApprovalStepResponse",
    "ApprovalStepTemplateCreate",
    "ApprovalStepTemplateResponse",
    "ApproveStepCommand",
    "ApproverSpec",
    "BulkApprovalItemResult",
    "BulkApprovalResponse",
    "BulkApproveCommand",
    "QuizOption",
    "QuizQuestionCreate",
    "RejectStepCommand",
    "RequestResponse",
    "RequestTemplateCreate",
    "RequestTemplateResponse",
    "RoleApprover",
    "SpecificUserApprover",
    "StepTransitionResponse",
    "SubmissionError",
    "SubmitRequestCommand",
    "SubmitterApprover",
    "UserGroupApprover",
]
