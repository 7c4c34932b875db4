"""
Command schemas for request submission and approver actions.

Configurable limits (reason length, comment length, batch size) are
enforced by the services from ``WorkflowSettings``; these schemas cover
shape and normalization.
"""

from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from hrportal.schemas.common import BaseCommandSchema

__all__ = [
    "SubmitRequestCommand",
    "ApproveStepCommand",
    "RejectStepCommand",
    "BulkApproveCommand",
]


def _blank_to_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class SubmitRequestCommand(BaseCommandSchema):
    template_id: str = Field(..., min_length=1)
    submitter_id: str = Field(..., min_length=1)
    form_data: Dict[str, Any] = Field(default_factory=dict)


class ApproveStepCommand(BaseCommandSchema):
    request_id: str = Field(..., min_length=1)
    step_id: str = Field(..., min_length=1)
    approver_id: str = Field(..., min_length=1)
    comment: Optional[str] = None
    quiz_answers: Optional[Dict[str, str]] = Field(
        None, description="Question id to chosen option value"
    )

    @field_validator("comment")
    @classmethod
    def normalize_comment(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class RejectStepCommand(BaseCommandSchema):
    request_id: str = Field(..., min_length=1)
    step_id: str = Field(..., min_length=1)
    approver_id: str = Field(..., min_length=1)
    reason: str = Field(..., description="Mandatory rejection reason")


class BulkApproveCommand(BaseCommandSchema):
    approver_id: str = Field(..., min_length=1)
    step_ids: List[str] = Field(..., description="Steps to approve, processed in the given order")
    comment: Optional[str] = None

    @field_validator("step_ids")
    @classmethod
    def deduplicate(cls, v: List[str]) -> List[str]:
        seen = []
        for step_id in v:
            if step_id not in seen:
                seen.append(step_id)
        return seen

    @field_validator("comment")
    @classmethod
    def normalize_comment(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)
