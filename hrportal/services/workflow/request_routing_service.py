"""
Request routing: turns a template's step definitions into a concrete,
ordered approval chain for one submitter.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from hrportal.core.exceptions import ErrorCode, SubmissionRejectedError, UnresolvableApproverError
from hrportal.core.logging import get_logger
from hrportal.models.base import ApprovalStepStatus, ApproverType, utc_now
from hrportal.models.workflow import ApprovalStep, ApprovalStepTemplate
from hrportal.schemas.workflow import SubmissionError
from hrportal.services.workflow.approver_resolver import ApproverResolver, approver_spec_from_template


@dataclass(frozen=True)
class ResolvedStep:
    step_template: ApprovalStepTemplate
    approver_id: str


@dataclass
class RoutingValidation:
    is_valid: bool
    errors: List[SubmissionError] = field(default_factory=list)
    resolved: List[ResolvedStep] = field(default_factory=list)


class RequestRoutingService:
    """
    Validates that every step of a template can be bound to an approver for
    this submitter, collecting all failures instead of stopping at the first,
    and materializes the step records.
    """

    def __init__(self, resolver: ApproverResolver):
        self.resolver = resolver
        self._logger = get_logger(self.__class__.__name__)

    def validate_approval_structure(
        self,
        submitter_id: str,
        step_templates: Sequence[ApprovalStepTemplate],
        requires_approval: bool = True,
    ) -> RoutingValidation:
        submitter = self.resolver.directory.get_user(submitter_id)
        if submitter is None:
            return RoutingValidation(
                False,
                [SubmissionError(code=ErrorCode.NOT_FOUND.value, message=f"User {submitter_id} not found", field="submitter_id")],
            )
        if not requires_approval:
            return RoutingValidation(True)

        errors: List[SubmissionError] = []
        ordered = sorted(step_templates, key=lambda s: s.step_order)
        if not ordered:
            errors.append(
                SubmissionError(
                    code=ErrorCode.BUSINESS_RULE_VIOLATION.value,
                    message="Template requires approval but defines no approval steps",
                )
            )
        elif all(s.approver_type == ApproverType.SUBMITTER for s in ordered):
            errors.append(
                SubmissionError(
                    code=ErrorCode.BUSINESS_RULE_VIOLATION.value,
                    message="Template requires approval but only the submitter would approve it",
                )
            )

        resolved: List[ResolvedStep] = []
        for step_template in ordered:
            try:
                spec = approver_spec_from_template(step_template)
                approver_id = self.resolver.resolve(spec, submitter, step_template.step_order)
                resolved.append(ResolvedStep(step_template, approver_id))
            except UnresolvableApproverError as e:
                errors.append(
                    SubmissionError(
                        code=ErrorCode.BUSINESS_RULE_VIOLATION.value,
                        message=e.message,
                        step_order=step_template.step_order,
                        approver_type=step_template.approver_type,
                    )
                )

        if errors:
            self._logger.warning(
                f"Approval structure invalid for submitter {submitter_id}: {len(errors)} problem(s)",
                extra={"submitter_id": submitter_id, "error_count": len(errors)},
            )
        return RoutingValidation(not errors, errors, resolved if not errors else [])

    def build_steps(
        self,
        resolved: Sequence[ResolvedStep],
        request_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[ApprovalStep]:
        """
        Materialize step records numbered 1..N; step 1 starts InReview.
        """
        now = now or utc_now()
        steps = []
        for position, item in enumerate(resolved, start=1):
            first = position == 1
            steps.append(
                ApprovalStep(
                    request_id=request_id,
                    step_template_id=item.step_template.id,
                    step_order=position,
                    approver_type=item.step_template.approver_type,
                    approver_id=item.approver_id,
                    requires_quiz=item.step_template.requires_quiz,
                    status=ApprovalStepStatus.IN_REVIEW if first else ApprovalStepStatus.PENDING,
                    started_at=now if first else None,
                )
            )
        return steps

    def route(self, submitter_id: str, step_templates: Sequence[ApprovalStepTemplate]) -> List[ApprovalStep]:
        """
        Validate and build in one call.

        Raises:
            SubmissionRejectedError: With every structural problem found
        """
        validation = self.validate_approval_structure(submitter_id, step_templates)
        if not validation.is_valid:
            raise SubmissionRejectedError([e.model_dump(mode="json") for e in validation.errors])
        return self.build_steps(validation.resolved)
