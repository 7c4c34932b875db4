"""
Response schemas for requests, steps and approval outcomes.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from hrportal.models.base import ApprovalStepStatus, ApproverType, RequestStatus
from hrportal.schemas.common import BaseResponseSchema

__all__ = [
    "ApprovalStepResponse",
    "RequestResponse",
    "StepTransitionResponse",
    "BulkApprovalItemResult",
    "BulkApprovalResponse",
    "SubmissionError",
]


class ApprovalStepResponse(BaseResponseSchema):
    id: str
    request_id: str
    step_order: int
    approver_type: ApproverType
    approver_id: str
    requires_quiz: bool
    status: ApprovalStepStatus
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    comment: Optional[str] = None
    quiz_score: Optional[int] = None
    quiz_passed: Optional[bool] = None


class RequestResponse(BaseResponseSchema):
    id: str
    request_number: str
    template_id: str
    submitted_by_id: str
    form_data: Dict[str, Any] = Field(default_factory=dict)
    status: RequestStatus
    submitted_at: datetime
    completed_at: Optional[datetime] = None
    steps: List[ApprovalStepResponse] = Field(default_factory=list)


class StepTransitionResponse(BaseResponseSchema):
    """Outcome of a successful approve or reject call."""

    request_id: str
    step_id: str
    step_status: ApprovalStepStatus
    request_status: RequestStatus
    next_step_id: Optional[str] = None
    next_approver_id: Optional[str] = None
    quiz_score: Optional[int] = None


class BulkApprovalItemResult(BaseResponseSchema):
    step_id: str
    is_success: bool
    error_code: Optional[str] = None
    message: Optional[str] = None
    request_status: Optional[RequestStatus] = None


class BulkApprovalResponse(BaseResponseSchema):
    results: List[BulkApprovalItemResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.is_success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.is_success)


class SubmissionError(BaseResponseSchema):
    """One structural problem found while validating a submission."""

    code: str
    message: str
    field: Optional[str] = None
    step_order: Optional[int] = None
    approver_type: Optional[ApproverType] = None
