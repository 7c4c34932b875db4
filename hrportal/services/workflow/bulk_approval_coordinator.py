"""
Bulk approval: one approver, many steps, one independent unit per step.
"""

from typing import List, Optional, Sequence

from hrportal.config.settings import WorkflowSettings
from hrportal.core.exceptions import ErrorCode, ValidationError
from hrportal.models.base import AuditAction
from hrportal.repositories.audit import AuditLogRepository
from hrportal.repositories.workflow import ApprovalStepRepository
from hrportal.schemas.workflow import BulkApprovalItemResult, BulkApprovalResponse, BulkApproveCommand
from hrportal.services.base.audit_service import AuditService
from hrportal.services.base.base_service import BaseService
from hrportal.services.base.service_result import ServiceResult
from hrportal.services.base.transaction_manager import TransactionManager
from hrportal.services.workflow.approval_step_machine import ApprovalStepMachine


class BulkApprovalCoordinator(BaseService):
    """
    Approves each step through ``ApprovalStepMachine`` in input order.

    A failing step never rolls back the ones already approved; every step
    gets its own entry in the response.
    """

    def __init__(
        self,
        transaction_manager: TransactionManager,
        settings: WorkflowSettings,
        step_machine: ApprovalStepMachine,
    ):
        super().__init__(transaction_manager)
        self.settings = settings
        self.step_machine = step_machine

    def approve_many(
        self,
        approver_id: str,
        step_ids: Sequence[str],
        comment: Optional[str] = None,
    ) -> ServiceResult[BulkApprovalResponse]:
        try:
            cmd = self._parse(
                BulkApproveCommand,
                approver_id=approver_id,
                step_ids=list(step_ids or []),
                comment=comment,
            )
            if not cmd.step_ids:
                raise ValidationError.for_field("step_ids", "At least one step is required")
            if len(cmd.step_ids) > self.settings.BULK_APPROVAL_LIMIT:
                raise ValidationError.for_field(
                    "step_ids",
                    f"At most {self.settings.BULK_APPROVAL_LIMIT} steps can be approved at once",
                )
            bulk_comment = f"Bulk approved: {cmd.comment}" if cmd.comment else "Bulk approved"
            if len(bulk_comment) > self.settings.COMMENT_MAX_LENGTH:
                raise ValidationError.for_field(
                    "comment", f"Must not exceed {self.settings.COMMENT_MAX_LENGTH} characters"
                )

            with self.tx.start() as ctx:
                owners = {
                    step.id: step.request_id
                    for step in ApprovalStepRepository(ctx.session).find_by_ids(cmd.step_ids)
                }
        except Exception as e:
            return self._handle_exception(e, "bulk approve steps", approver_id, {"approver_id": approver_id})

        results: List[BulkApprovalItemResult] = []
        for step_id in cmd.step_ids:
            request_id = owners.get(step_id)
            if request_id is None:
                results.append(
                    BulkApprovalItemResult(
                        step_id=step_id,
                        is_success=False,
                        error_code=ErrorCode.NOT_FOUND.value,
                        message=f"ApprovalStep not found (ID: {step_id})",
                    )
                )
                continue
            results.append(self._approve_one(request_id, step_id, cmd.approver_id, bulk_comment))

        response = BulkApprovalResponse(results=results)
        self._record(cmd.approver_id, response, cmd.comment)
        self._logger.info(
            f"Bulk approval by {cmd.approver_id}: {response.succeeded} succeeded, {response.failed} failed",
            extra={"approver_id": cmd.approver_id, "total": len(results)},
        )
        return ServiceResult.success(
            response,
            message=f"{response.succeeded} of {len(results)} steps approved",
            metadata={"succeeded": response.succeeded, "failed": response.failed},
        )

    def _approve_one(self, request_id: str, step_id: str, approver_id: str, comment: str) -> BulkApprovalItemResult:
        try:
            outcome = self.step_machine.approve(request_id, step_id, approver_id, comment=comment)
        except Exception as e:
            self._logger.error(f"Bulk approval of step {step_id} failed: {e}", exc_info=True)
            return BulkApprovalItemResult(
                step_id=step_id,
                is_success=False,
                error_code=ErrorCode.INTERNAL_ERROR.value,
                message=str(e),
            )
        if outcome.is_success:
            return BulkApprovalItemResult(
                step_id=step_id,
                is_success=True,
                request_status=outcome.data.request_status,
            )
        return BulkApprovalItemResult(
            step_id=step_id,
            is_success=False,
            error_code=outcome.error_code.value,
            message=outcome.message,
        )

    def _record(self, approver_id: str, response: BulkApprovalResponse, comment: Optional[str]) -> None:
        """Audit the batch; a failure here never changes the per-step outcomes."""
        try:
            with self.tx.start() as ctx:
                AuditService(AuditLogRepository(ctx.session)).record_change(
                    "BulkApproval",
                    approver_id,
                    AuditAction.BULK_APPROVAL,
                    approver_id,
                    new_value={
                        "succeeded": [r.step_id for r in response.results if r.is_success],
                        "failed": [
                            {"step_id": r.step_id, "error_code": r.error_code}
                            for r in response.results
                            if not r.is_success
                        ],
                    },
                    reason=comment,
                )
        except Exception as e:
            self._logger.error(f"Failed to audit bulk approval by {approver_id}: {e}", exc_info=True)
