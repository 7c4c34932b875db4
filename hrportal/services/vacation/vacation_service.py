"""
Vacation balance queries, administrative corrections, cancellation and
the periodic maintenance jobs over vacation schedules.
"""

from datetime import date, timedelta
from typing import Dict, List, Optional

from hrportal.config.settings import VacationSettings
from hrportal.core.exceptions import (
    BusinessRuleError,
    ForbiddenError,
    InvalidStateError,
    ResourceNotFoundError,
)
from hrportal.models.base import AuditAction, NotificationType, RequestStatus, VacationStatus
from hrportal.repositories.audit import AuditLogRepository
from hrportal.repositories.directory import UserRepository
from hrportal.repositories.vacation import VacationScheduleRepository
from hrportal.repositories.workflow import ApprovalStepRepository, RequestRepository
from hrportal.schemas.vacation import (
    AdminAdjustVacationDaysCommand,
    CancelVacationCommand,
    CounterDriftReport,
    VacationSummary,
)
from hrportal.services.base.audit_service import AuditService
from hrportal.services.base.base_service import BaseService
from hrportal.services.base.notification_dispatcher import NotificationDispatcher
from hrportal.services.base.service_result import ServiceResult
from hrportal.services.base.transaction_manager import TransactionContext, TransactionManager
from hrportal.services.vacation.vacation_ledger import VacationLedger, counter_snapshot


class VacationService(BaseService):
    ENTITY_USER = "User"
    ENTITY_SCHEDULE = "VacationSchedule"

    def __init__(
        self,
        transaction_manager: TransactionManager,
        settings: VacationSettings,
        ledger: VacationLedger,
        dispatcher: NotificationDispatcher,
    ):
        super().__init__(transaction_manager)
        self.settings = settings
        self.ledger = ledger
        self.dispatcher = dispatcher

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_vacation_summary(self, user_id: str, today: Optional[date] = None) -> ServiceResult[VacationSummary]:
        """
        Balance view read from the user counters.

        Remaining values are clamped at zero. ``counters_in_sync`` reports
        whether the counters still match the committed schedules.
        """
        today = today or date.today()
        try:
            with self.tx.start() as ctx:
                user = UserRepository(ctx.session).get_by_id(user_id)
                totals = VacationScheduleRepository(ctx.session).committed_days_by_leave_type(user.id)
                in_sync = counter_snapshot(user) == self.ledger.derived_counters(totals)

                carried = self.ledger.usable_carried_over(user, today=today)
                used = user.vacation_days_used
                on_demand_used = user.on_demand_vacation_days_used
                summary = VacationSummary(
                    user_id=user.id,
                    entitlement=user.annual_vacation_days,
                    used=used,
                    remaining=max(0, user.annual_vacation_days - used),
                    on_demand_used=on_demand_used,
                    on_demand_remaining=max(0, self.settings.MAX_ON_DEMAND_DAYS - on_demand_used),
                    circumstantial_used=user.circumstantial_leave_days_used,
                    carried_over=carried,
                    carried_over_expiry=user.carried_over_expiry_date,
                    total_available=max(0, user.annual_vacation_days + carried - used),
                    counters_in_sync=in_sync,
                )
        except Exception as e:
            return self._handle_exception(e, "get vacation summary", user_id)

        if not summary.counters_in_sync:
            self._logger.warning(
                f"Vacation counters of user {user_id} disagree with committed schedules",
                extra={"user_id": user_id},
            )
        return ServiceResult.success(summary)

    def reconcile_counters(self, user_id: str, resync: bool = False) -> ServiceResult[CounterDriftReport]:
        """
        Compare counters with schedule-derived totals.

        With ``resync`` the counters are overwritten from the schedules and
        the correction is audited.
        """
        try:
            report = self.tx.run(lambda ctx: self._reconcile_in_unit(ctx, user_id, resync))
        except Exception as e:
            return self._handle_exception(e, "reconcile vacation counters", user_id)

        if not report.in_sync:
            self._logger.warning(
                f"Counter drift for user {user_id}: {report.drift}",
                extra={"user_id": user_id, "resynced": report.resynced},
            )
        return ServiceResult.success(report)

    def _reconcile_in_unit(self, ctx: TransactionContext, user_id: str, resync: bool) -> CounterDriftReport:
        user = UserRepository(ctx.session).get_for_update(user_id)
        if user is None:
            raise ResourceNotFoundError("User", user_id)
        totals = VacationScheduleRepository(ctx.session).committed_days_by_leave_type(user.id)
        counters = counter_snapshot(user)
        derived = self.ledger.derived_counters(totals)
        report = CounterDriftReport(user_id=user.id, counters=counters, derived=derived)

        if resync and not report.in_sync:
            user.vacation_days_used = derived["vacation_days_used"]
            user.on_demand_vacation_days_used = derived["on_demand_vacation_days_used"]
            user.circumstantial_leave_days_used = derived["circumstantial_leave_days_used"]
            AuditService(AuditLogRepository(ctx.session)).record_change(
                self.ENTITY_USER,
                user.id,
                AuditAction.COUNTERS_RESYNCED,
                None,
                old_value=counters,
                new_value=derived,
                reason="Counters resynchronized from vacation schedules",
            )
            report.resynced = True
        return report

    # -------------------------------------------------------------------------
    # Administrative adjustment
    # -------------------------------------------------------------------------

    def admin_adjust_vacation_days(
        self,
        user_id: str,
        amount: int,
        reason: str,
        admin_id: str,
    ) -> ServiceResult[VacationSummary]:
        """Change a user's annual entitlement outside the approval path; always audited."""
        try:
            cmd = self._parse(
                AdminAdjustVacationDaysCommand,
                user_id=user_id,
                amount=amount,
                reason=reason,
                admin_id=admin_id,
            )
            self.tx.run(lambda ctx: self._adjust_in_unit(ctx, cmd))
        except Exception as e:
            return self._handle_exception(e, "adjust vacation days", user_id, {"admin_id": admin_id})

        self._logger.info(
            f"Vacation entitlement of {user_id} adjusted by {amount:+d}",
            extra={"user_id": user_id, "admin_id": admin_id},
        )
        return self.get_vacation_summary(user_id)

    def _adjust_in_unit(self, ctx: TransactionContext, cmd: AdminAdjustVacationDaysCommand) -> None:
        users = UserRepository(ctx.session)
        admin = users.find_by_id(cmd.admin_id)
        if admin is None or not admin.is_active or not admin.is_admin:
            raise ForbiddenError("Only administrators can adjust vacation days", {"admin_id": cmd.admin_id})
        user = users.get_for_update(cmd.user_id)
        if user is None:
            raise ResourceNotFoundError("User", cmd.user_id)

        before = user.annual_vacation_days
        after = before + cmd.amount
        if after < 0:
            raise BusinessRuleError(
                f"Adjustment would make the entitlement negative ({before} {cmd.amount:+d})",
                {"current": before, "amount": cmd.amount},
            )
        user.annual_vacation_days = after
        AuditService(AuditLogRepository(ctx.session)).record_change(
            self.ENTITY_USER,
            user.id,
            AuditAction.VACATION_ADJUSTED,
            cmd.admin_id,
            old_value={"annual_vacation_days": before},
            new_value={"annual_vacation_days": after},
            reason=cmd.reason,
        )

        target_id, message = user.id, (
            f"Your annual vacation entitlement changed by {cmd.amount:+d} days "
            f"(now {after}). Reason: {cmd.reason}"
        )
        ctx.after_commit(
            lambda: self.dispatcher.notify(
                target_id,
                NotificationType.VACATION_ADJUSTED,
                "Vacation entitlement adjusted",
                message,
                self.ENTITY_USER,
                target_id,
            )
        )

    # -------------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------------

    def cancel_vacation(
        self,
        request_id: str,
        actor_id: str,
        reason: str,
        today: Optional[date] = None,
    ) -> ServiceResult[bool]:
        """
        Cancel an approved vacation and return its days to the balance.

        Administrators may always cancel. An approver of the request may
        cancel until ``APPROVER_CANCEL_GRACE_DAYS`` after the vacation
        started. The request keeps its Approved status.
        """
        today = today or date.today()
        try:
            cmd = self._parse(CancelVacationCommand, request_id=request_id, actor_id=actor_id, reason=reason)
            self.tx.run(lambda ctx: self._cancel_in_unit(ctx, cmd, today))
        except Exception as e:
            return self._handle_exception(e, "cancel vacation", request_id, {"actor_id": actor_id})

        self._logger.info(f"Vacation of request {request_id} cancelled", extra={"actor_id": actor_id})
        return ServiceResult.success(True, message="Vacation cancelled")

    def _cancel_in_unit(self, ctx: TransactionContext, cmd: CancelVacationCommand, today: date) -> None:
        session = ctx.session
        request = RequestRepository(session).get_by_id(cmd.request_id)
        if request.status != RequestStatus.APPROVED:
            raise InvalidStateError(
                f"Request {request.request_number} is not approved",
                current_state=request.status.value,
            )
        schedule = VacationScheduleRepository(session).find_by_request(request.id)
        if schedule is None or not schedule.is_committed:
            raise InvalidStateError(
                f"Request {request.request_number} has no active vacation",
                current_state=schedule.status.value if schedule is not None else None,
            )

        actor = UserRepository(session).find_by_id(cmd.actor_id)
        if actor is None:
            raise ResourceNotFoundError("User", cmd.actor_id)
        self._authorize_cancellation(session, actor, request.id, schedule.start_date, today)

        self.ledger.revert(session, request, actor.id, cmd.reason)

        employee_id, number, request_id = request.submitted_by_id, request.request_number, request.id
        start, end = schedule.start_date, schedule.end_date
        ctx.after_commit(
            lambda: self.dispatcher.notify(
                employee_id,
                NotificationType.VACATION_CANCELLED,
                "Vacation cancelled",
                f"Your vacation {start.isoformat()} to {end.isoformat()} ({number}) "
                f"was cancelled: {cmd.reason}",
                self.ENTITY_SCHEDULE,
                request_id,
            )
        )

    def _authorize_cancellation(self, session, actor, request_id: str, start_date: date, today: date) -> None:
        if actor.is_admin and actor.is_active:
            return
        approved = ApprovalStepRepository(session).find_decided_by_approver(request_id, actor.id)
        if not approved:
            raise ForbiddenError(
                "Only administrators or approvers of the request can cancel it",
                {"actor_id": actor.id},
            )
        deadline = start_date + timedelta(days=self.settings.APPROVER_CANCEL_GRACE_DAYS)
        if today > deadline:
            raise ForbiddenError(
                f"Approvers can cancel only until {deadline.isoformat()}",
                {"actor_id": actor.id, "deadline": deadline.isoformat()},
            )

    # -------------------------------------------------------------------------
    # Maintenance jobs
    # -------------------------------------------------------------------------

    def update_vacation_statuses(self, today: Optional[date] = None) -> ServiceResult[Dict[str, int]]:
        """Move schedules Scheduled -> Active -> Completed by date."""
        today = today or date.today()
        try:
            with self.tx.start() as ctx:
                schedules = VacationScheduleRepository(ctx.session)
                audit = AuditService(AuditLogRepository(ctx.session))
                completed = self._move(audit, schedules.find_due_for_completion(today), VacationStatus.COMPLETED)
                activated = self._move(audit, schedules.find_due_for_activation(today), VacationStatus.ACTIVE)
        except Exception as e:
            return self._handle_exception(e, "update vacation statuses")

        counts = {"activated": activated, "completed": completed}
        self._logger.info(f"Vacation statuses updated for {today.isoformat()}: {counts}")
        return ServiceResult.success(counts)

    def _move(self, audit: AuditService, schedules: List, status: VacationStatus) -> int:
        for schedule in schedules:
            previous = schedule.status
            schedule.status = status
            audit.record_change(
                self.ENTITY_SCHEDULE,
                schedule.id,
                AuditAction.VACATION_STATUS_CHANGED,
                None,
                old_value={"status": previous},
                new_value={"status": status},
            )
        return len(schedules)

    def expire_carried_over_days(self, today: Optional[date] = None) -> ServiceResult[int]:
        """Zero carried-over balances whose expiry date has passed."""
        today = today or date.today()
        try:
            with self.tx.start() as ctx:
                users = UserRepository(ctx.session).find_with_expired_carry_over(today)
                audit = AuditService(AuditLogRepository(ctx.session))
                for user in users:
                    expired = user.carried_over_vacation_days
                    user.carried_over_vacation_days = 0
                    audit.record_change(
                        self.ENTITY_USER,
                        user.id,
                        AuditAction.CARRIED_OVER_EXPIRED,
                        None,
                        old_value={
                            "carried_over_vacation_days": expired,
                            "carried_over_expiry_date": user.carried_over_expiry_date,
                        },
                        new_value={"carried_over_vacation_days": 0},
                    )
        except Exception as e:
            return self._handle_exception(e, "expire carried-over days")

        self._logger.info(f"Expired carried-over days for {len(users)} user(s)")
        return ServiceResult.success(len(users))
