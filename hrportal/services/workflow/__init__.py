from hrportal.services.workflow.approval_step_machine import ApprovalStepMachine
from hrportal.services.workflow.approver_resolver import ApproverResolver, approver_spec_from_template
from hrportal.services.workflow.bulk_approval_coordinator import BulkApprovalCoordinator
from hrportal.services.workflow.quiz_evaluator import QuizEvaluator, QuizResult, resolve_passing_score
from hrportal.services.workflow.request_routing_service import RequestRoutingService, ResolvedStep, RoutingValidation
from hrportal.services.workflow.request_service import RequestService
from hrportal.services.workflow.request_template_service import RequestTemplateService

__all__ = [
    "ApprovalStepMachine",
    "ApproverResolver",
    "BulkApprovalCoordinator",
    "QuizEvaluator",
    "QuizResult",
    "RequestRoutingService",
    "RequestService",
    "RequestTemplateService",
    "ResolvedStep",
    "RoutingValidation",
    "approver_spec_from_template",
    "resolve_passing_score",
]
