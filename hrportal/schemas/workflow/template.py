"""
Request template creation schemas.
"""

from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from hrportal.models.base import ApproverType
from hrportal.schemas.common import BaseCommandSchema, BaseResponseSchema
from hrportal.schemas.workflow.approver import ApproverSpec

__all__ = [
    "QuizOption",
    "QuizQuestionCreate",
    "ApprovalStepTemplateCreate",
    "RequestTemplateCreate",
    "RequestTemplateResponse",
    "ApprovalStepTemplateResponse",
]


class QuizOption(BaseCommandSchema):
    value: str = Field(..., min_length=1, max_length=200)
    label: str = Field(..., min_length=1, max_length=500)
    is_correct: bool = False


class QuizQuestionCreate(BaseCommandSchema):
    """
    A quiz question; ``step_order`` scopes it to one step, otherwise it
    belongs to the template-wide bank.
    """

    question: str = Field(..., min_length=1, max_length=2000)
    options: List[QuizOption] = Field(..., min_length=2)
    step_order: Optional[int] = Field(None, ge=1)
    order: int = Field(0, ge=0)

    @field_validator("options")
    @classmethod
    def validate_options(cls, v: List[QuizOption]) -> List[QuizOption]:
        if not any(o.is_correct for o in v):
            raise ValueError("at least one option must be marked correct")
        values = [o.value for o in v]
        if len(values) != len(set(values)):
            raise ValueError("option values must be unique")
        return v


class ApprovalStepTemplateCreate(BaseCommandSchema):
    step_order: int = Field(..., ge=1)
    approver: ApproverSpec
    requires_quiz: bool = False
    passing_score: Optional[int] = Field(None, ge=0, le=100)


class RequestTemplateCreate(BaseCommandSchema):
    """
    New request template.

    Structural rules checked together so the author sees every problem at once:
    contiguous step orders, quiz steps backed by questions, question scopes
    pointing at existing steps, and approval chains that are not pure
    self-attestation.
    """

    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=4000)
    category: Optional[str] = Field(None, max_length=100)
    requires_approval: bool = True
    is_vacation_request: bool = False
    passing_score: Optional[int] = Field(None, ge=0, le=100)
    steps: List[ApprovalStepTemplateCreate] = Field(default_factory=list)
    quiz_questions: List[QuizQuestionCreate] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_structure(self) -> "RequestTemplateCreate":
        problems = []
        orders = sorted(s.step_order for s in self.steps)
        if orders != list(range(1, len(orders) + 1)):
            problems.append("step orders must be unique and contiguous starting at 1")

        if self.requires_approval:
            if not self.steps:
                problems.append("a template that requires approval needs at least one step")
            elif all(s.approver.approver_type == ApproverType.SUBMITTER for s in self.steps):
                problems.append("a template that requires approval cannot consist only of Submitter steps")
        elif self.steps:
            problems.append("a template without approval cannot define approval steps")

        step_orders = set(orders)
        template_wide = any(q.step_order is None for q in self.quiz_questions)
        for q in self.quiz_questions:
            if q.step_order is not None and q.step_order not in step_orders:
                problems.append(f"quiz question '{q.question}' refers to missing step {q.step_order}")
        for s in self.steps:
            if s.requires_quiz and not template_wide and not any(
                q.step_order == s.step_order for q in self.quiz_questions
            ):
                problems.append(f"step {s.step_order} requires a quiz but has no questions")

        if problems:
            raise ValueError("; ".join(problems))
        return self


class ApprovalStepTemplateResponse(BaseResponseSchema):
    id: str
    step_order: int
    approver_type: ApproverType
    approver_role: Optional[str] = None
    approver_user_id: Optional[str] = None
    approver_group_id: Optional[str] = None
    requires_quiz: bool
    passing_score: Optional[int] = None


class RequestTemplateResponse(BaseResponseSchema):
    id: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    requires_approval: bool
    is_vacation_request: bool
    passing_score: Optional[int] = None
    is_active: bool
    step_templates: List[ApprovalStepTemplateResponse] = Field(default_factory=list)
