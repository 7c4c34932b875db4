"""
Custom Exceptions for the HR portal workflow engine

Exceptions are raised inside a unit of work so that the surrounding
transaction rolls back; the service layer converts them into
``ServiceResult`` failures carrying the matching error code.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(str, Enum):
    """Application error codes"""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    INVALID_STATE = "INVALID_STATE"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    BUSINESS_RULE_VIOLATION = "BUSINESS_RULE_VIOLATION"
    DATABASE_ERROR = "DATABASE_ERROR"


class BaseAppException(Exception):
    """
    Base exception class for all application exceptions.

    Provides consistent error handling with structured error information.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "message": self.message,
                "code": self.error_code.value,
                "details": self.details,
                "type": self.__class__.__name__,
            }
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', error_code='{self.error_code.value}')"


class ResourceNotFoundError(BaseAppException):
    """Referenced request, step, template or user does not exist"""

    def __init__(
        self,
        resource_type: str = "Resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
    ):
        if not message:
            message = f"{resource_type} not found"
            if resource_id:
                message += f" (ID: {resource_id})"
        details = {"resource_type": resource_type, "resource_id": resource_id}
        super().__init__(message, ErrorCode.NOT_FOUND, details, 404)


class ForbiddenError(BaseAppException):
    """Actor may not perform the action on the resource"""

    def __init__(
        self,
        message: str = "Action not permitted",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, ErrorCode.FORBIDDEN, details, 403)


class InvalidStateError(BaseAppException):
    """Entity is not in the state the transition expects"""

    def __init__(
        self,
        message: str = "Invalid state for this operation",
        current_state: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if current_state is not None:
            details["current_state"] = current_state
        super().__init__(message, ErrorCode.INVALID_STATE, details, 409)


class ConcurrentUpdateError(InvalidStateError):
    """A row read by this unit of work was changed by another one before the write"""

    def __init__(
        self,
        message: str = "Record was changed by another action",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class ValidationError(BaseAppException):
    """Malformed input; carries field-level messages"""

    def __init__(
        self,
        message: str = "Validation failed",
        field_errors: Optional[Dict[str, List[str]]] = None,
    ):
        self.field_errors = field_errors or {}
        details = {"field_errors": self.field_errors} if self.field_errors else {}
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details, 400)

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, {field: [message]})


class BusinessRuleError(BaseAppException):
    """Expected business outcome such as an entitlement violation"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, ErrorCode.BUSINESS_RULE_VIOLATION, details, 400)


class UnresolvableApproverError(BusinessRuleError):
    """An approval step template cannot be bound to a concrete approver"""

    def __init__(
        self,
        message: str,
        approver_type: Optional[str] = None,
        step_order: Optional[int] = None,
    ):
        self.approver_type = approver_type
        self.step_order = step_order
        super().__init__(
            message,
            {"approver_type": approver_type, "step_order": step_order},
        )


class RepositoryError(BaseAppException):
    """Data access failure"""

    def __init__(
        self,
        message: str = "Database operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, ErrorCode.DATABASE_ERROR, details, 500)


class SubmissionRejectedError(BaseAppException):
    """
    A submission failed batch validation.

    ``errors`` lists every structural problem found; the error code is
    VALIDATION_ERROR when any entry is malformed input, otherwise
    BUSINESS_RULE_VIOLATION.
    """

    def __init__(self, errors: List[Dict[str, Any]], message: str = "Request submission rejected"):
        self.errors = errors
        code = (
            ErrorCode.VALIDATION_ERROR
            if any(e.get("code") == ErrorCode.VALIDATION_ERROR.value for e in errors)
            else ErrorCode.BUSINESS_RULE_VIOLATION
        )
        super().__init__(message, code, {"errors": errors}, 400)
