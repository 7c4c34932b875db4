"""
Approval step state machine.

Steps move ``Pending -> InReview -> {Approved, Rejected}`` strictly in order
and exactly one step of an open request is InReview. Every approve or
reject call is one unit of work: the decided step, the activation of the
next step, the ledger commit and the request status change persist together
or not at all. Notifications go out only after that unit committed.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional, Tuple

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from hrportal.config.settings import WorkflowSettings
from hrportal.core.exceptions import (
    ConcurrentUpdateError,
    ForbiddenError,
    InvalidStateError,
    ResourceNotFoundError,
    ValidationError,
)
from hrportal.models.base import (
    ApprovalStepStatus,
    AuditAction,
    NotificationType,
    RequestStatus,
    utc_now,
)
from hrportal.models.workflow import ApprovalStep, Request
from hrportal.repositories.audit import AuditLogRepository
from hrportal.repositories.directory import UserRepository
from hrportal.repositories.vacation import VacationScheduleRepository
from hrportal.repositories.workflow import (
    ApprovalStepRepository,
    RequestRepository,
    RequestTemplateRepository,
)
from hrportal.schemas.workflow import ApproveStepCommand, RejectStepCommand, StepTransitionResponse
from hrportal.services.base.audit_service import AuditService
from hrportal.services.base.base_service import BaseService
from hrportal.services.base.notification_dispatcher import NotificationDispatcher
from hrportal.services.base.service_result import ServiceResult
from hrportal.services.base.transaction_manager import TransactionContext, TransactionManager
from hrportal.services.vacation.vacation_ledger import VacationLedger
from hrportal.services.workflow.quiz_evaluator import QuizEvaluator, QuizResult, resolve_passing_score


@dataclass
class _Transition:
    response: StepTransitionResponse
    quiz_result: Optional[QuizResult] = None


class ApprovalStepMachine(BaseService):
    """Approve and reject operations for a single approval step."""

    REQUEST_ENTITY = "Request"
    STEP_ENTITY = "ApprovalStep"

    def __init__(
        self,
        transaction_manager: TransactionManager,
        settings: WorkflowSettings,
        ledger: VacationLedger,
        dispatcher: NotificationDispatcher,
        quiz_evaluator: Optional[QuizEvaluator] = None,
    ):
        super().__init__(transaction_manager)
        self.settings = settings
        self.ledger = ledger
        self.dispatcher = dispatcher
        self.quiz_evaluator = quiz_evaluator or QuizEvaluator()

    # -------------------------------------------------------------------------
    # Public operations
    # -------------------------------------------------------------------------

    def approve(
        self,
        request_id: str,
        step_id: str,
        approver_id: str,
        comment: Optional[str] = None,
        quiz_answers: Optional[Dict[str, str]] = None,
    ) -> ServiceResult[StepTransitionResponse]:
        """
        Approve the active step of a request.

        A failed quiz rejects the step and the request; the rejection is
        committed and the call returns a BUSINESS_RULE_VIOLATION carrying the
        score. Quiz attempts are not repeatable.
        """
        context = {"request_id": request_id, "step_id": step_id, "approver_id": approver_id}
        try:
            cmd = self._parse(
                ApproveStepCommand,
                request_id=request_id,
                step_id=step_id,
                approver_id=approver_id,
                comment=comment,
                quiz_answers=quiz_answers,
            )
            self._check_comment(cmd.comment, "comment")
            transition = self.tx.run(lambda ctx: self._approve_in_unit(ctx, cmd))
        except Exception as e:
            return self._handle_exception(e, "approve step", step_id, context)

        if transition.quiz_result is not None and not transition.quiz_result.passed:
            result = transition.quiz_result
            self._logger.warning(
                f"Quiz failed on step {step_id}: {result.score}% < {result.passing_score}%",
                extra=context,
            )
            return ServiceResult.business_failure(
                f"Quiz score {result.score}% is below the passing score of {result.passing_score}%; "
                "the request was rejected",
                details={
                    "quiz_score": result.score,
                    "passing_score": result.passing_score,
                    "request_status": transition.response.request_status.value,
                },
            )

        self._logger.info(
            f"Step {step_id} approved; request is {transition.response.request_status.value}",
            extra=context,
        )
        return ServiceResult.success(transition.response, message="Step approved")

    def reject(
        self,
        request_id: str,
        step_id: str,
        approver_id: str,
        reason: str,
    ) -> ServiceResult[StepTransitionResponse]:
        """Reject the active step, which terminates the whole request."""
        context = {"request_id": request_id, "step_id": step_id, "approver_id": approver_id}
        try:
            cmd = self._parse(
                RejectStepCommand,
                request_id=request_id,
                step_id=step_id,
                approver_id=approver_id,
                reason=reason,
            )
            self._check_reason(cmd.reason)
            response = self.tx.run(lambda ctx: self._reject_in_unit(ctx, cmd))
        except Exception as e:
            return self._handle_exception(e, "reject step", step_id, context)

        self._logger.info(f"Step {step_id} rejected; request {request_id} is Rejected", extra=context)
        return ServiceResult.success(response, message="Step rejected")

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def _check_comment(self, comment: Optional[str], field: str) -> None:
        if comment is not None and len(comment) > self.settings.COMMENT_MAX_LENGTH:
            raise ValidationError.for_field(
                field, f"Must not exceed {self.settings.COMMENT_MAX_LENGTH} characters"
            )

    def _check_reason(self, reason: str) -> None:
        minimum = self.settings.REJECTION_REASON_MIN_LENGTH
        if len(reason or "") < minimum:
            raise ValidationError.for_field("reason", f"Rejection reason must be at least {minimum} characters")
        self._check_comment(reason, "reason")

    # -------------------------------------------------------------------------
    # Preconditions
    # -------------------------------------------------------------------------

    def _load_for_action(
        self,
        session: Session,
        request_id: str,
        step_id: str,
        approver_id: str,
    ) -> Tuple[Request, ApprovalStep]:
        """
        Fail fast, in order: NotFound, Forbidden, InvalidState.

        The step row is read with a lock so the status check and the write
        are serialized per step.
        """
        request = RequestRepository(session).find_by_id(request_id)
        if request is None:
            raise ResourceNotFoundError("Request", request_id)
        step = ApprovalStepRepository(session).get_for_update(step_id)
        if step is None or step.request_id != request.id:
            raise ResourceNotFoundError("ApprovalStep", step_id)
        if step.approver_id != approver_id:
            raise ForbiddenError(
                "Only the assigned approver can act on this step",
                {"step_id": step_id, "approver_id": approver_id},
            )
        if step.status != ApprovalStepStatus.IN_REVIEW or request.status.is_terminal:
            raise InvalidStateError(
                f"Step {step.step_order} is {step.status.value}, expected InReview",
                current_state=step.status.value,
                details={"request_status": request.status.value},
            )
        return request, step

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def _approve_in_unit(self, ctx: TransactionContext, cmd: ApproveStepCommand) -> _Transition:
        session = ctx.session
        request, step = self._load_for_action(session, cmd.request_id, cmd.step_id, cmd.approver_id)
        audit = AuditService(AuditLogRepository(session))
        now = utc_now()

        if step.requires_quiz:
            quiz_result = self._evaluate_quiz(session, request, step, cmd.quiz_answers)
            audit.record_change(
                self.STEP_ENTITY,
                step.id,
                AuditAction.QUIZ_EVALUATED,
                cmd.approver_id,
                new_value={"score": quiz_result.score, "passed": quiz_result.passed},
            )
            if not quiz_result.passed:
                reason = (
                    f"Automatically rejected: quiz score {quiz_result.score}% is below "
                    f"the passing score of {quiz_result.passing_score}%"
                )
                self._reject(ctx, audit, request, step, cmd.approver_id, reason, now)
                self._flush(session, step)
                return _Transition(self._response(request, step), quiz_result)
        else:
            quiz_result = None

        step.status = ApprovalStepStatus.APPROVED
        step.finished_at = now
        step.comment = cmd.comment
        audit.record_change(
            self.STEP_ENTITY,
            step.id,
            AuditAction.STEP_APPROVED,
            cmd.approver_id,
            old_value={"status": ApprovalStepStatus.IN_REVIEW},
            new_value={"status": step.status},
            reason=cmd.comment,
        )

        next_step = ApprovalStepRepository(session).find_next_step(request.id, step.step_order)
        if next_step is not None:
            self._activate(ctx, audit, request, next_step, cmd.approver_id, now)
        else:
            self._complete(ctx, audit, request, cmd.approver_id, now)

        self._flush(session, step)
        return _Transition(self._response(request, step, next_step), quiz_result)

    def _reject_in_unit(self, ctx: TransactionContext, cmd: RejectStepCommand) -> StepTransitionResponse:
        session = ctx.session
        request, step = self._load_for_action(session, cmd.request_id, cmd.step_id, cmd.approver_id)
        audit = AuditService(AuditLogRepository(session))
        self._reject(ctx, audit, request, step, cmd.approver_id, cmd.reason, utc_now())
        self._flush(session, step)
        return self._response(request, step)

    def _evaluate_quiz(
        self,
        session: Session,
        request: Request,
        step: ApprovalStep,
        answers: Optional[Dict[str, str]],
    ) -> QuizResult:
        if not answers:
            raise ValidationError.for_field("quiz_answers", "Quiz must be completed before approval")

        templates = RequestTemplateRepository(session)
        template = templates.get_by_id(request.template_id)
        step_template = next((s for s in template.step_templates if s.id == step.step_template_id), None)
        questions = templates.find_questions_for_step(template.id, step.step_template_id)

        unknown = self.quiz_evaluator.unknown_answers(questions, answers)
        if unknown:
            raise ValidationError(
                "Quiz answers refer to unknown questions",
                {"quiz_answers": [f"Unknown question {qid}" for qid in unknown]},
            )

        passing_score = resolve_passing_score(
            step_template.passing_score if step_template is not None else None,
            template.passing_score,
            self.settings.DEFAULT_QUIZ_PASSING_SCORE,
        )
        result = self.quiz_evaluator.evaluate(questions, answers, passing_score)
        step.quiz_score = result.score
        step.quiz_passed = result.passed
        return result

    def _activate(
        self,
        ctx: TransactionContext,
        audit: AuditService,
        request: Request,
        next_step: ApprovalStep,
        actor_id: str,
        now: datetime,
    ) -> None:
        if next_step.status != ApprovalStepStatus.PENDING:
            raise InvalidStateError(
                f"Step {next_step.step_order} is {next_step.status.value}, expected Pending",
                current_state=next_step.status.value,
            )
        absent_approver = self._route_to_substitute(ctx.session, audit, request, next_step, actor_id, now)
        next_step.status = ApprovalStepStatus.IN_REVIEW
        next_step.started_at = now
        request.status = RequestStatus.IN_REVIEW
        audit.record_change(
            self.STEP_ENTITY,
            next_step.id,
            AuditAction.STEP_ACTIVATED,
            actor_id,
            old_value={"status": ApprovalStepStatus.PENDING},
            new_value={"status": next_step.status, "approver_id": next_step.approver_id},
        )

        approver_id, number, order, request_id = (
            next_step.approver_id,
            request.request_number,
            next_step.step_order,
            request.id,
        )
        message = f"Request {number} is waiting for your approval (step {order})."
        if absent_approver is not None:
            message = f"{message} You are substituting for {absent_approver}."
        ctx.after_commit(
            lambda: self.dispatcher.notify(
                approver_id,
                NotificationType.REQUEST_PENDING_APPROVAL,
                "Approval required",
                message,
                self.REQUEST_ENTITY,
                request_id,
            )
        )

    def _route_to_substitute(
        self,
        session: Session,
        audit: AuditService,
        request: Request,
        step: ApprovalStep,
        actor_id: str,
        now: datetime,
    ) -> Optional[str]:
        """
        Hand the step to the substitute of an approver who is on vacation today.

        The step keeps its approver when the substitute is inactive or is the
        submitter. Returns the absent approver's name when the step moved.
        """
        vacation = VacationScheduleRepository(session).find_active_with_substitute(step.approver_id, now.date())
        if vacation is None:
            return None
        users = UserRepository(session)
        substitute = users.find_by_id(vacation.substitute_user_id)
        if substitute is None or not substitute.is_active or substitute.id == request.submitted_by_id:
            self._logger.info(
                f"Approver {step.approver_id} is on vacation but the substitute cannot take step {step.id}",
                extra={"request_id": request.id, "substitute_user_id": vacation.substitute_user_id},
            )
            return None

        absent = users.get_by_id(step.approver_id)
        step.approver_id = substitute.id
        audit.record_change(
            self.STEP_ENTITY,
            step.id,
            AuditAction.STEP_REASSIGNED,
            actor_id,
            old_value={"approver_id": absent.id},
            new_value={"approver_id": substitute.id},
            reason=f"Approver on vacation until {vacation.end_date.isoformat()}",
        )
        self._logger.info(
            f"Step {step.id} routed from {absent.id} to substitute {substitute.id}",
            extra={"request_id": request.id, "vacation_id": vacation.id},
        )
        return absent.full_name

    def _complete(
        self,
        ctx: TransactionContext,
        audit: AuditService,
        request: Request,
        actor_id: str,
        now: datetime,
    ) -> None:
        template = RequestTemplateRepository(ctx.session).get_by_id(request.template_id)
        if template.is_vacation_request:
            self.ledger.commit(ctx.session, request, actor_id)

        old_status = request.status
        request.status = RequestStatus.APPROVED
        request.completed_at = now
        audit.record_change(
            self.REQUEST_ENTITY,
            request.id,
            AuditAction.REQUEST_APPROVED,
            actor_id,
            old_value={"status": old_status},
            new_value={"status": request.status},
        )

        submitter_id, number, request_id = request.submitted_by_id, request.request_number, request.id
        ctx.after_commit(
            lambda: self.dispatcher.notify(
                submitter_id,
                NotificationType.REQUEST_APPROVED,
                "Request approved",
                f"Your request {number} has been approved.",
                self.REQUEST_ENTITY,
                request_id,
            )
        )

    def _reject(
        self,
        ctx: TransactionContext,
        audit: AuditService,
        request: Request,
        step: ApprovalStep,
        actor_id: str,
        reason: str,
        now: datetime,
    ) -> None:
        step.status = ApprovalStepStatus.REJECTED
        step.finished_at = now
        step.comment = reason
        old_status = request.status
        request.status = RequestStatus.REJECTED
        request.completed_at = now

        audit.record_change(
            self.STEP_ENTITY,
            step.id,
            AuditAction.STEP_REJECTED,
            actor_id,
            old_value={"status": ApprovalStepStatus.IN_REVIEW},
            new_value={"status": step.status},
            reason=reason,
        )
        audit.record_change(
            self.REQUEST_ENTITY,
            request.id,
            AuditAction.REQUEST_REJECTED,
            actor_id,
            old_value={"status": old_status},
            new_value={"status": request.status},
            reason=reason,
        )

        submitter_id, number, request_id = request.submitted_by_id, request.request_number, request.id
        ctx.after_commit(
            lambda: self.dispatcher.notify(
                submitter_id,
                NotificationType.REQUEST_REJECTED,
                "Request rejected",
                f"Your request {number} was rejected: {reason}",
                self.REQUEST_ENTITY,
                request_id,
            )
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _flush(session: Session, step: ApprovalStep) -> None:
        """Write the transition; a concurrent writer of the step or the ledger row surfaces here."""
        try:
            session.flush()
        except StaleDataError as e:
            raise ConcurrentUpdateError(
                f"Step {step.id} or a row it updates was changed by another action",
                details={"step_id": step.id},
            ) from e

    @staticmethod
    def _response(
        request: Request,
        step: ApprovalStep,
        next_step: Optional[ApprovalStep] = None,
    ) -> StepTransitionResponse:
        return StepTransitionResponse(
            request_id=request.id,
            step_id=step.id,
            step_status=step.status,
            request_status=request.status,
            next_step_id=next_step.id if next_step is not None else None,
            next_approver_id=next_step.approver_id if next_step is not None else None,
            quiz_score=step.quiz_score,
        )
