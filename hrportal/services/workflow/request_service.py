"""
Request submission and queries.
"""

import json
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from hrportal.config.settings import WorkflowSettings
from hrportal.core.exceptions import (
    ErrorCode,
    ResourceNotFoundError,
    SubmissionRejectedError,
    ValidationError,
)
from hrportal.models.base import AuditAction, NotificationType, RequestStatus, utc_now
from hrportal.models.directory import User
from hrportal.models.workflow import Request
from hrportal.repositories.audit import AuditLogRepository
from hrportal.repositories.directory import UserRepository
from hrportal.repositories.vacation import VacationScheduleRepository
from hrportal.repositories.workflow import (
    ApprovalStepRepository,
    RequestRepository,
    RequestTemplateRepository,
)
from hrportal.schemas.workflow import ApprovalStepResponse, RequestResponse, SubmitRequestCommand
from hrportal.services.base.audit_service import AuditService
from hrportal.services.base.base_service import BaseService
from hrportal.services.base.notification_dispatcher import NotificationDispatcher
from hrportal.services.base.service_result import ServiceResult
from hrportal.services.base.transaction_manager import TransactionContext, TransactionManager
from hrportal.services.directory.directory_lookup import DirectoryLookup, SqlDirectory
from hrportal.services.vacation.vacation_form_data import extract_vacation_data
from hrportal.services.vacation.vacation_ledger import VacationLedger, overlap_message
from hrportal.services.workflow.approver_resolver import ApproverResolver
from hrportal.services.workflow.request_routing_service import RequestRoutingService


class RequestService(BaseService):
    """
    Submits requests against a template and answers request queries.

    Submission is validated as a batch: routing problems and vacation
    availability problems are reported together in one
    ``SubmissionRejectedError``.
    """

    ENTITY_TYPE = "Request"

    def __init__(
        self,
        transaction_manager: TransactionManager,
        settings: WorkflowSettings,
        ledger: VacationLedger,
        dispatcher: NotificationDispatcher,
        directory_factory: Callable[[Session], DirectoryLookup] = SqlDirectory,
    ):
        super().__init__(transaction_manager)
        self.settings = settings
        self.ledger = ledger
        self.dispatcher = dispatcher
        self.directory_factory = directory_factory

    def submit_request(
        self,
        template_id: str,
        submitter_id: str,
        form_data: Optional[Dict[str, Any]] = None,
    ) -> ServiceResult[RequestResponse]:
        context = {"template_id": template_id, "submitter_id": submitter_id}
        try:
            cmd = self._parse(
                SubmitRequestCommand,
                template_id=template_id,
                submitter_id=submitter_id,
                form_data=form_data if form_data is not None else {},
            )
            self._check_form_size(cmd.form_data)
            response = self.tx.run(lambda ctx: self._submit_in_unit(ctx, cmd))
        except Exception as e:
            return self._handle_exception(e, "submit request", template_id, context)

        self._logger.info(
            f"Request {response.request_number} submitted with {len(response.steps)} step(s)",
            extra={**context, "request_id": response.id},
        )
        return ServiceResult.success(response, message="Request submitted")

    def _submit_in_unit(self, ctx: TransactionContext, cmd: SubmitRequestCommand) -> RequestResponse:
        """
        Validate and create the request; re-run when another submission took
        the request number first.
        """
        session = ctx.session
        template = RequestTemplateRepository(session).find_by_id(cmd.template_id)
        if template is None:
            raise ResourceNotFoundError("RequestTemplate", cmd.template_id)
        if not template.is_active:
            raise ValidationError.for_field("template_id", "Template is not available for new requests")
        submitter = UserRepository(session).find_by_id(cmd.submitter_id)
        if submitter is None:
            raise ResourceNotFoundError("User", cmd.submitter_id)
        if not submitter.is_active:
            raise ValidationError.for_field("submitter_id", "Inactive users cannot submit requests")

        routing = RequestRoutingService(ApproverResolver(self.directory_factory(session)))
        validation = routing.validate_approval_structure(
            submitter.id, template.step_templates, template.requires_approval
        )
        errors = [e.model_dump(mode="json") for e in validation.errors]
        if template.is_vacation_request:
            errors.extend(self._vacation_errors(session, submitter, cmd.form_data))
        if errors:
            raise SubmissionRejectedError(errors)

        now = utc_now()
        requests = RequestRepository(session)
        request = Request(
            request_number=requests.next_request_number(now.year),
            template_id=template.id,
            submitted_by_id=submitter.id,
            form_data=cmd.form_data,
            status=RequestStatus.SUBMITTED,
            submitted_at=now,
        )
        if template.requires_approval:
            request.steps = routing.build_steps(validation.resolved, now=now)
            request.status = RequestStatus.IN_REVIEW
        else:
            request.status = RequestStatus.APPROVED
            request.completed_at = now
        requests.create(request)

        AuditService(AuditLogRepository(session)).record_change(
            self.ENTITY_TYPE,
            request.id,
            AuditAction.REQUEST_SUBMITTED,
            submitter.id,
            new_value={
                "request_number": request.request_number,
                "template_id": template.id,
                "status": request.status,
                "steps": len(request.steps),
            },
        )
        if not template.requires_approval and template.is_vacation_request:
            self.ledger.commit(session, request, submitter.id)

        self._schedule_submission_notice(ctx, request, submitter.full_name)
        return RequestResponse.model_validate(request)

    def get_request(self, request_id: str) -> ServiceResult[RequestResponse]:
        try:
            with self.tx.start() as ctx:
                request = RequestRepository(ctx.session).get_by_id(request_id)
                response = RequestResponse.model_validate(request)
        except Exception as e:
            return self._handle_exception(e, "get request", request_id)
        return ServiceResult.success(response)

    def get_requests_by_submitter(self, submitter_id: str) -> ServiceResult[List[RequestResponse]]:
        try:
            with self.tx.start() as ctx:
                requests = RequestRepository(ctx.session).find_by_submitter(submitter_id)
                response = [RequestResponse.model_validate(r) for r in requests]
        except Exception as e:
            return self._handle_exception(e, "list requests", submitter_id)
        return ServiceResult.success(response, metadata={"count": len(response)})

    def get_pending_approvals(self, approver_id: str) -> ServiceResult[List[ApprovalStepResponse]]:
        """Steps currently waiting on this approver."""
        try:
            with self.tx.start() as ctx:
                steps = ApprovalStepRepository(ctx.session).find_in_review_for_approver(approver_id)
                response = [ApprovalStepResponse.model_validate(s) for s in steps]
        except Exception as e:
            return self._handle_exception(e, "get pending approvals", approver_id)
        return ServiceResult.success(response, metadata={"count": len(response)})

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _check_form_size(self, form_data: Dict[str, Any]) -> None:
        try:
            size = len(json.dumps(form_data, default=str))
        except (TypeError, ValueError) as e:
            raise ValidationError.for_field("form_data", "Form data must be JSON serializable") from e
        if size > self.settings.FORM_DATA_MAX_LENGTH:
            raise ValidationError.for_field(
                "form_data", f"Form data must not exceed {self.settings.FORM_DATA_MAX_LENGTH} characters"
            )

    def _vacation_errors(self, session: Session, submitter: User, form_data: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Vacation data and availability problems, as submission error entries."""
        try:
            vacation = extract_vacation_data(form_data)
            days = self.ledger.compute_business_days(vacation.start_date, vacation.end_date)
        except ValidationError as e:
            return [
                {"code": ErrorCode.VALIDATION_ERROR.value, "message": message, "field": field}
                for field, messages in e.field_errors.items()
                for message in messages
            ]

        errors = []
        if vacation.substitute_user_id:
            substitute = UserRepository(session).find_by_id(vacation.substitute_user_id)
            if substitute is None or not substitute.is_active:
                errors.append(
                    {
                        "code": ErrorCode.VALIDATION_ERROR.value,
                        "message": "Substitute must be an active user",
                        "field": "substitute_user_id",
                    }
                )
            elif substitute.id == submitter.id:
                errors.append(
                    {
                        "code": ErrorCode.VALIDATION_ERROR.value,
                        "message": "Submitter cannot be their own substitute",
                        "field": "substitute_user_id",
                    }
                )

        for schedule in VacationScheduleRepository(session).find_overlapping(
            submitter.id, vacation.start_date, vacation.end_date
        ):
            errors.append(
                {
                    "code": ErrorCode.BUSINESS_RULE_VIOLATION.value,
                    "message": overlap_message(schedule),
                    "field": "form_data",
                    "vacation_id": schedule.id,
                }
            )

        check = self.ledger.validate_availability(
            submitter, vacation.leave_type, days, vacation.start_date, vacation.end_date
        )
        if not check.can_take:
            errors.append(
                {
                    "code": ErrorCode.BUSINESS_RULE_VIOLATION.value,
                    "message": check.reason,
                    "field": "form_data",
                    "shortfall": check.shortfall,
                }
            )
        return errors

    def _schedule_submission_notice(self, ctx: TransactionContext, request: Request, submitter_name: str) -> None:
        number, request_id = request.request_number, request.id
        active = request.active_step
        if active is not None:
            approver_id, order = active.approver_id, active.step_order
            ctx.after_commit(
                lambda: self.dispatcher.notify(
                    approver_id,
                    NotificationType.REQUEST_PENDING_APPROVAL,
                    "Approval required",
                    f"Request {number} from {submitter_name} is waiting for your approval (step {order}).",
                    self.ENTITY_TYPE,
                    request_id,
                )
            )
        elif request.status == RequestStatus.APPROVED:
            submitter_id = request.submitted_by_id
            ctx.after_commit(
                lambda: self.dispatcher.notify(
                    submitter_id,
                    NotificationType.REQUEST_APPROVED,
                    "Request approved",
                    f"Your request {number} has been approved.",
                    self.ENTITY_TYPE,
                    request_id,
                )
            )
