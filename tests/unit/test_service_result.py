from hrportal.core.exceptions import (
    ErrorCode,
    ForbiddenError,
    InvalidStateError,
    ResourceNotFoundError,
    SubmissionRejectedError,
    ValidationError,
)
from hrportal.services.base.service_result import ErrorSeverity, ServiceError, ServiceResult


def test_not_found_exception_maps_to_not_found_result():
    result = ServiceResult.from_app_exception(ResourceNotFoundError("Request", "r-1"))
    assert not result.is_success
    assert result.error_code == ErrorCode.NOT_FOUND
    assert result.error.severity == ErrorSeverity.WARNING
    assert "r-1" in result.message


def test_status_codes():
    assert ResourceNotFoundError("Request", "x").status_code == 404
    assert ForbiddenError().status_code == 403
    assert InvalidStateError("done").status_code == 409
    assert ValidationError().status_code == 400


def test_field_errors_are_flattened():
    exc = ValidationError("Invalid input", {"reason": ["too short"], "comment": ["too long", "bad"]})
    result = ServiceResult.from_app_exception(exc)

    assert result.error_code == ErrorCode.VALIDATION_ERROR
    assert {"field": "reason", "message": "too short"} in result.error.errors
    assert len(result.error.errors) == 3


def test_submission_errors_keep_their_entries():
    errors = [
        {"code": "BUSINESS_RULE_VIOLATION", "message": "no HR", "step_order": 2},
        {"code": "BUSINESS_RULE_VIOLATION", "message": "no IT", "step_order": 3},
    ]
    result = ServiceResult.from_app_exception(SubmissionRejectedError(errors))

    assert result.error_code == ErrorCode.BUSINESS_RULE_VIOLATION
    assert result.error.errors == errors


def test_submission_with_any_validation_entry_is_a_validation_error():
    exc = SubmissionRejectedError(
        [{"code": "BUSINESS_RULE_VIOLATION", "message": "x"}, {"code": "VALIDATION_ERROR", "message": "y"}]
    )
    assert exc.error_code == ErrorCode.VALIDATION_ERROR


def test_unwrap():
    assert ServiceResult.success(5).unwrap() == 5
    failure = ServiceResult.not_found("User", "u-1")
    try:
        failure.unwrap()
    except ValueError as e:
        assert "NOT_FOUND" in str(e)
    else:
        raise AssertionError("unwrap of a failure must raise")


def test_error_to_dict():
    result = ServiceResult.business_failure("Insufficient vacation days", details={"shortfall": 1})
    data = result.error.to_dict()
    assert data["code"] == "BUSINESS_RULE_VIOLATION"
    assert data["details"] == {"shortfall": 1}
    assert data["timestamp"]


def test_service_error_defaults():
    error = ServiceError(code=ErrorCode.INVALID_STATE, message="Step is Approved", field="step_id")
    assert error.errors == []
    assert error.field == "step_id"
    assert error.timestamp is not None
    assert ServiceError(code=ErrorCode.NOT_FOUND, message="missing").errors is not error.errors
