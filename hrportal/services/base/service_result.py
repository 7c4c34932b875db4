"""
Service result patterns for standardized response handling.

Every public engine operation returns a ``ServiceResult``; expected business
outcomes (not found, forbidden, invalid state, validation, entitlement
violations) are failures carried as values rather than raised.
"""

from dataclasses import dataclass
from dataclasses import field as dataclass_field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from hrportal.core.exceptions import BaseAppException, ErrorCode

__all__ = ["ErrorCode", "ErrorSeverity", "ServiceError", "ServiceResult"]


class ErrorSeverity(str, Enum):
    """Error severity levels."""

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class ServiceError:
    """Represents a service operation error with context."""

    code: ErrorCode
    message: str
    severity: ErrorSeverity = ErrorSeverity.ERROR
    details: Optional[Dict[str, Any]] = None
    field: Optional[str] = None
    errors: List[Dict[str, Any]] = dataclass_field(default_factory=list)
    timestamp: Optional[datetime] = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "severity": self.severity.value,
            "details": self.details,
            "field": self.field,
            "errors": self.errors,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


TData = TypeVar("TData")


@dataclass
class ServiceResult(Generic[TData]):
    """
    Standardized service operation result with success/failure pattern.

    Attributes:
        is_success: Operation success indicator
        data: Result data (if successful)
        error: Error information (if failed)
        message: Human-readable status message
        metadata: Additional context information
    """

    is_success: bool
    data: Optional[TData] = None
    error: Optional[ServiceError] = None
    message: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @property
    def error_code(self) -> Optional[ErrorCode]:
        return self.error.code if self.error else None

    @classmethod
    def success(
        cls,
        data: Optional[TData] = None,
        message: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "ServiceResult[TData]":
        return cls(is_success=True, data=data, message=message, metadata=metadata or {})

    @classmethod
    def failure(
        cls,
        error: ServiceError,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "ServiceResult[TData]":
        return cls(is_success=False, error=error, message=error.message, metadata=metadata or {})

    @classmethod
    def from_app_exception(cls, exception: BaseAppException) -> "ServiceResult[TData]":
        """Create a failed result carrying the exception's code and details."""
        severity = ErrorSeverity.CRITICAL if exception.status_code >= 500 else ErrorSeverity.WARNING
        field_errors = exception.details.get("field_errors") or {}
        errors = list(exception.details.get("errors") or [])
        errors.extend(
            {"field": name, "message": msg}
            for name, messages in field_errors.items()
            for msg in messages
        )
        return cls.failure(
            ServiceError(
                code=exception.error_code,
                message=exception.message,
                severity=severity,
                details=exception.details or None,
                errors=errors,
            )
        )

    @classmethod
    def not_found(
        cls,
        resource_type: str,
        resource_id: Optional[str] = None,
    ) -> "ServiceResult[TData]":
        message = f"{resource_type} not found"
        if resource_id:
            message += f" (ID: {resource_id})"
        return cls.failure(
            ServiceError(
                code=ErrorCode.NOT_FOUND,
                message=message,
                severity=ErrorSeverity.WARNING,
                details={"resource_type": resource_type, "resource_id": resource_id},
            )
        )

    @classmethod
    def business_failure(
        cls,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
    ) -> "ServiceResult[TData]":
        return cls.failure(
            ServiceError(
                code=ErrorCode.BUSINESS_RULE_VIOLATION,
                message=message,
                severity=ErrorSeverity.WARNING,
                details=details,
                errors=errors or [],
            )
        )

    def unwrap(self) -> TData:
        """Return the data of a successful result or raise with the error message."""
        if not self.is_success:
            raise ValueError(f"{self.error_code.value}: {self.message}")
        return self.data
