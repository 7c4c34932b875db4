from hrportal.models.workflow.request import ApprovalStep, Request
from hrportal.models.workflow.request_template import (
    ApprovalStepTemplate,
    QuizQuestion,
    RequestTemplate,
)

__all__ = ["ApprovalStep", "ApprovalStepTemplate", "QuizQuestion", "Request", "RequestTemplate"]
