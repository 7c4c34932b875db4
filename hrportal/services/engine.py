"""
Composition root.

``ApprovalEngine`` wires settings, the unit-of-work manager, the holiday
cache and the notification channels into the workflow and vacation
services, and exposes the engine's command and query operations.
"""

from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import sessionmaker

from hrportal.config.settings import Settings, get_settings
from hrportal.core.logging import get_logger, setup_logging
from hrportal.db.session import create_db_engine, create_session_factory, init_db
from hrportal.schemas.vacation import CounterDriftReport, VacationSummary
from hrportal.schemas.workflow import (
    ApprovalStepResponse,
    BulkApprovalResponse,
    RequestResponse,
    RequestTemplateCreate,
    RequestTemplateResponse,
    StepTransitionResponse,
)
from hrportal.services.base.cache_service import CacheService, build_cache_service
from hrportal.services.base.notification_dispatcher import NotificationChannel, NotificationDispatcher
from hrportal.services.base.service_result import ServiceResult
from hrportal.services.base.transaction_manager import TransactionManager
from hrportal.services.directory.holiday_calendar import HolidayCalendar, sql_holiday_loader
from hrportal.services.vacation.vacation_ledger import VacationLedger
from hrportal.services.vacation.vacation_service import VacationService
from hrportal.services.workflow.approval_step_machine import ApprovalStepMachine
from hrportal.services.workflow.bulk_approval_coordinator import BulkApprovalCoordinator
from hrportal.services.workflow.quiz_evaluator import QuizEvaluator
from hrportal.services.workflow.request_service import RequestService
from hrportal.services.workflow.request_template_service import RequestTemplateService

logger = get_logger(__name__)


class ApprovalEngine:
    """Request approval workflow engine and vacation ledger."""

    def __init__(
        self,
        session_factory: sessionmaker,
        settings: Optional[Settings] = None,
        cache: Optional[CacheService] = None,
        channels: Optional[Sequence[NotificationChannel]] = None,
    ):
        self.settings = settings or get_settings()
        self.transaction_manager = TransactionManager(
            session_factory, retry_attempts=self.settings.database.DB_CONFLICT_RETRY_ATTEMPTS
        )
        self.cache = cache or build_cache_service(self.settings.cache)

        self.holidays = HolidayCalendar(
            self.cache,
            sql_holiday_loader(self.transaction_manager),
            ttl_seconds=self.settings.cache.HOLIDAY_CACHE_TTL_SECONDS,
        )
        self.ledger = VacationLedger(self.settings.vacation, self.holidays)
        self.dispatcher = NotificationDispatcher(self.transaction_manager, channels)

        self.step_machine = ApprovalStepMachine(
            self.transaction_manager,
            self.settings.workflow,
            self.ledger,
            self.dispatcher,
            QuizEvaluator(),
        )
        self.bulk_coordinator = BulkApprovalCoordinator(
            self.transaction_manager, self.settings.workflow, self.step_machine
        )
        self.requests = RequestService(
            self.transaction_manager, self.settings.workflow, self.ledger, self.dispatcher
        )
        self.templates = RequestTemplateService(self.transaction_manager)
        self.vacations = VacationService(
            self.transaction_manager, self.settings.vacation, self.ledger, self.dispatcher
        )

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        channels: Optional[Sequence[NotificationChannel]] = None,
        create_schema: bool = False,
    ) -> "ApprovalEngine":
        """Build an engine with its own database engine from settings."""
        settings = settings or get_settings()
        setup_logging(settings.logging)
        db_engine = create_db_engine(settings.database)
        if create_schema:
            init_db(db_engine)
        logger.info(f"{settings.APP_NAME} engine started ({settings.ENVIRONMENT})")
        return cls(create_session_factory(db_engine), settings, channels=channels)

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    def submit_request(
        self,
        template_id: str,
        submitter_id: str,
        form_data: Optional[Dict[str, Any]] = None,
    ) -> ServiceResult[RequestResponse]:
        return self.requests.submit_request(template_id, submitter_id, form_data)

    def approve_step(
        self,
        request_id: str,
        step_id: str,
        approver_id: str,
        comment: Optional[str] = None,
        quiz_answers: Optional[Dict[str, str]] = None,
    ) -> ServiceResult[StepTransitionResponse]:
        return self.step_machine.approve(request_id, step_id, approver_id, comment, quiz_answers)

    def reject_step(
        self,
        request_id: str,
        step_id: str,
        approver_id: str,
        reason: str,
    ) -> ServiceResult[StepTransitionResponse]:
        return self.step_machine.reject(request_id, step_id, approver_id, reason)

    def bulk_approve(
        self,
        approver_id: str,
        step_ids: Sequence[str],
        comment: Optional[str] = None,
    ) -> ServiceResult[BulkApprovalResponse]:
        return self.bulk_coordinator.approve_many(approver_id, step_ids, comment)

    def get_request(self, request_id: str) -> ServiceResult[RequestResponse]:
        return self.requests.get_request(request_id)

    def get_requests_by_submitter(self, submitter_id: str) -> ServiceResult[List[RequestResponse]]:
        return self.requests.get_requests_by_submitter(submitter_id)

    def get_pending_approvals(self, approver_id: str) -> ServiceResult[List[ApprovalStepResponse]]:
        return self.requests.get_pending_approvals(approver_id)

    # -------------------------------------------------------------------------
    # Templates
    # -------------------------------------------------------------------------

    def create_template(self, payload: RequestTemplateCreate, actor_id: Optional[str] = None) -> ServiceResult[RequestTemplateResponse]:
        return self.templates.create_template(payload, actor_id)

    def get_template(self, template_id: str) -> ServiceResult[RequestTemplateResponse]:
        return self.templates.get_template(template_id)

    def list_active_templates(self) -> ServiceResult[List[RequestTemplateResponse]]:
        return self.templates.list_active_templates()

    def deactivate_template(self, template_id: str, actor_id: Optional[str] = None) -> ServiceResult[RequestTemplateResponse]:
        return self.templates.deactivate_template(template_id, actor_id)

    def delete_template(self, template_id: str, actor_id: Optional[str] = None) -> ServiceResult[bool]:
        return self.templates.delete_template(template_id, actor_id)

    # -------------------------------------------------------------------------
    # Vacation
    # -------------------------------------------------------------------------

    def get_vacation_summary(self, user_id: str, today: Optional[date] = None) -> ServiceResult[VacationSummary]:
        return self.vacations.get_vacation_summary(user_id, today)

    def admin_adjust_vacation_days(
        self,
        user_id: str,
        amount: int,
        reason: str,
        admin_id: str,
    ) -> ServiceResult[VacationSummary]:
        return self.vacations.admin_adjust_vacation_days(user_id, amount, reason, admin_id)

    def cancel_vacation(
        self,
        request_id: str,
        actor_id: str,
        reason: str,
        today: Optional[date] = None,
    ) -> ServiceResult[bool]:
        return self.vacations.cancel_vacation(request_id, actor_id, reason, today)

    def update_vacation_statuses(self, today: Optional[date] = None) -> ServiceResult[Dict[str, int]]:
        return self.vacations.update_vacation_statuses(today)

    def expire_carried_over_days(self, today: Optional[date] = None) -> ServiceResult[int]:
        return self.vacations.expire_carried_over_days(today)

    def reconcile_counters(self, user_id: str, resync: bool = False) -> ServiceResult[CounterDriftReport]:
        return self.vacations.reconcile_counters(user_id, resync)
