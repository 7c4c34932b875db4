from hrportal.repositories.workflow.request_repository import ApprovalStepRepository, RequestRepository
from hrportal.repositories.workflow.request_template_repository import RequestTemplateRepository

__all__ = ["ApprovalStepRepository", "RequestRepository", "RequestTemplateRepository"]
