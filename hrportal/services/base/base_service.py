"""
Base service class providing common functionality for all services.
"""

from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel as PydanticModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from hrportal.core.exceptions import BaseAppException, ValidationError
from hrportal.core.logging import get_logger
from hrportal.services.base.service_result import (
    ErrorCode,
    ErrorSeverity,
    ServiceError,
    ServiceResult,
)
from hrportal.services.base.transaction_manager import TransactionManager

TSchema = TypeVar("TSchema", bound=PydanticModel)


class BaseService:
    """
    Base service with common behaviors:
    - Shared logger and transaction manager
    - Command validation through pydantic schemas
    - Consistent error handling via ServiceResult
    """

    def __init__(self, transaction_manager: TransactionManager):
        self.tx = transaction_manager
        self._logger = get_logger(self.__class__.__name__)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    @staticmethod
    def _parse(schema: Type[TSchema], **data: Any) -> TSchema:
        """
        Build a command schema, converting pydantic errors into a
        ``ValidationError`` with field-level messages.
        """
        try:
            return schema(**data)
        except PydanticValidationError as e:
            field_errors: Dict[str, List[str]] = {}
            for err in e.errors():
                name = ".".join(str(p) for p in err.get("loc", ())) or "__root__"
                field_errors.setdefault(name, []).append(err.get("msg", "invalid value"))
            raise ValidationError("Invalid input", field_errors) from e

    # -------------------------------------------------------------------------
    # Exception & Error Handling
    # -------------------------------------------------------------------------

    def _handle_exception(
        self,
        exception: Exception,
        operation: str,
        entity_ref: Optional[Any] = None,
        additional_context: Optional[Dict[str, Any]] = None,
    ) -> ServiceResult:
        """
        Convert an exception into a ServiceResult failure, logging at source.

        Application exceptions are expected outcomes and log at warning level;
        anything else is a fault and logs with its traceback.
        """
        context = {
            "operation": operation,
            "entity_ref": str(entity_ref) if entity_ref is not None else None,
            "exception_type": type(exception).__name__,
        }
        if additional_context:
            context.update(additional_context)

        if isinstance(exception, BaseAppException):
            self._logger.warning(f"{operation} failed: {exception}", extra=context)
            return ServiceResult.from_app_exception(exception)

        self._logger.error(f"Error during {operation}: {exception}", exc_info=True, extra=context)
        return ServiceResult.failure(
            ServiceError(
                code=self._map_exception_to_error_code(exception),
                message=f"Failed to {operation}",
                severity=ErrorSeverity.CRITICAL,
                details={
                    "error": str(exception),
                    "entity_ref": str(entity_ref) if entity_ref is not None else None,
                },
            )
        )

    def _map_exception_to_error_code(self, exception: Exception) -> ErrorCode:
        exception_mapping = {
            SQLAlchemyError: ErrorCode.DATABASE_ERROR,
        }
        for exc_type, error_code in exception_mapping.items():
            if isinstance(exception, exc_type):
                return error_code
        return ErrorCode.INTERNAL_ERROR
