from datetime import date, timedelta

import pytest
from sqlalchemy import select

from conftest import FRIDAY, MONDAY, WEDNESDAY, vacation_form
from hrportal.core.exceptions import ErrorCode
from hrportal.models.audit import AuditLog
from hrportal.models.base import (
    ApprovalStepStatus,
    LeaveType,
    NotificationType,
    RequestStatus,
    VacationStatus,
)
from hrportal.repositories.directory import UserRepository
from hrportal.repositories.vacation import VacationScheduleRepository


def schedules_of(session_factory, user_id):
    with session_factory() as session:
        return VacationScheduleRepository(session).find_by_user(user_id, include_cancelled=True)


def audit_actions(session_factory, entity_id):
    with session_factory() as session:
        stmt = select(AuditLog.action).where(AuditLog.entity_id == entity_id).order_by(AuditLog.occurred_at)
        return list(session.execute(stmt).scalars().all())


def approve_all(engine, org, request):
    first = engine.approve_step(request.id, request.steps[0].id, org.manager)
    assert first.is_success, first.error
    return engine.approve_step(request.id, request.steps[1].id, org.hr)


@pytest.fixture
def approved_vacation(engine, org, vacation_template):
    request = engine.submit_request(vacation_template, org.employee, vacation_form(MONDAY, WEDNESDAY)).data
    result = approve_all(engine, org, request)
    assert result.is_success, result.error
    return request


def test_final_approval_commits_days(engine, org, directory, session_factory, approved_vacation):
    user = directory.load_user(org.employee)
    assert user.vacation_days_used == 3
    assert user.on_demand_vacation_days_used == 0

    [schedule] = schedules_of(session_factory, org.employee)
    assert schedule.source_request_id == approved_vacation.id
    assert schedule.days_count == 3
    assert schedule.status == VacationStatus.SCHEDULED
    assert "VacationCommitted" in audit_actions(session_factory, org.employee)
    assert engine.get_request(approved_vacation.id).data.status == RequestStatus.APPROVED


def test_on_demand_leave_moves_both_counters(engine, org, directory, session_factory, vacation_template):
    form = vacation_form(MONDAY, MONDAY + timedelta(days=1), leave_type="OnDemand")
    request = engine.submit_request(vacation_template, org.employee, form).data

    assert approve_all(engine, org, request).is_success

    user = directory.load_user(org.employee)
    assert user.vacation_days_used == 2
    assert user.on_demand_vacation_days_used == 2
    assert schedules_of(session_factory, org.employee)[0].leave_type == LeaveType.ON_DEMAND


def test_circumstantial_leave_has_its_own_counter(engine, org, directory, vacation_template):
    form = vacation_form(MONDAY, MONDAY + timedelta(days=1), leave_type="Circumstantial")
    request = engine.submit_request(vacation_template, org.employee, form).data

    assert approve_all(engine, org, request).is_success

    user = directory.load_user(org.employee)
    assert user.vacation_days_used == 0
    assert user.circumstantial_leave_days_used == 2


def test_holidays_are_not_counted(engine, org, directory, session_factory, vacation_template):
    directory.holiday(MONDAY + timedelta(days=1), "Founders day")
    request = engine.submit_request(vacation_template, org.employee, vacation_form(MONDAY, WEDNESDAY)).data

    assert approve_all(engine, org, request).is_success

    [schedule] = schedules_of(session_factory, org.employee)
    assert schedule.days_count == 2


def test_expiring_carry_over_only_covers_days_before_expiry(engine, org, directory, vacation_template):
    directory.update_user(
        org.employee,
        annual_vacation_days=0,
        carried_over_vacation_days=3,
        carried_over_expiry_date=MONDAY + timedelta(days=1),
    )

    result = engine.submit_request(vacation_template, org.employee, vacation_form(MONDAY, WEDNESDAY))

    assert result.error_code == ErrorCode.BUSINESS_RULE_VIOLATION
    assert result.error.errors[0]["shortfall"] == 1


def test_final_approval_rolls_back_when_balance_changed(engine, org, directory, session_factory, vacation_template, channel):
    request = engine.submit_request(vacation_template, org.employee, vacation_form(MONDAY, WEDNESDAY)).data
    assert engine.approve_step(request.id, request.steps[0].id, org.manager).is_success
    directory.update_user(org.employee, vacation_days_used=25)
    delivered = len(channel.messages)

    result = engine.approve_step(request.id, request.steps[1].id, org.hr)

    assert result.error_code == ErrorCode.BUSINESS_RULE_VIOLATION
    assert "short by 2 days" in result.message
    fetched = engine.get_request(request.id).data
    assert fetched.status == RequestStatus.IN_REVIEW
    assert fetched.steps[1].status == ApprovalStepStatus.IN_REVIEW
    assert schedules_of(session_factory, org.employee) == []
    assert directory.load_user(org.employee).vacation_days_used == 25
    assert len(channel.messages) == delivered


def test_concurrent_final_approvals_for_one_user_both_count(
    engine, org, directory, session_factory, vacation_template, monkeypatch
):
    first = engine.submit_request(vacation_template, org.employee, vacation_form(MONDAY, WEDNESDAY)).data
    second = engine.submit_request(
        vacation_template, org.employee, vacation_form(WEDNESDAY + timedelta(days=1), FRIDAY)
    ).data
    for request in (first, second):
        assert engine.approve_step(request.id, request.steps[0].id, org.manager).is_success

    original = UserRepository.get_for_update
    competing = []

    def lock_then_race(self, id):
        user = original(self, id)
        if not competing:
            competing.append(None)
            competing[0] = engine.approve_step(second.id, second.steps[1].id, org.hr)
        return user

    monkeypatch.setattr(UserRepository, "get_for_update", lock_then_race)

    late = engine.approve_step(first.id, first.steps[1].id, org.hr)

    assert competing[0].is_success, competing[0].error
    assert late.is_success, late.error
    assert directory.load_user(org.employee).vacation_days_used == 5
    assert sorted(s.days_count for s in schedules_of(session_factory, org.employee)) == [2, 3]
    assert audit_actions(session_factory, org.employee).count("VacationCommitted") == 2
    assert engine.reconcile_counters(org.employee).data.in_sync


def test_overlapping_vacation_is_rejected_at_submission(engine, org, vacation_template, approved_vacation):
    result = engine.submit_request(vacation_template, org.employee, vacation_form(WEDNESDAY, FRIDAY))

    assert result.error_code == ErrorCode.BUSINESS_RULE_VIOLATION
    [error] = result.error.errors
    assert error["message"] == "Overlaps an approved vacation from 2030-03-04 to 2030-03-06"
    [only] = engine.get_requests_by_submitter(org.employee).data
    assert only.id == approved_vacation.id


def test_cancelled_vacation_frees_its_dates(engine, org, vacation_template, approved_vacation):
    assert engine.cancel_vacation(approved_vacation.id, org.admin, "Plans changed", today=MONDAY).is_success

    result = engine.submit_request(vacation_template, org.employee, vacation_form(MONDAY, WEDNESDAY))

    assert result.is_success, result.error


def test_overlap_is_checked_again_at_final_approval(engine, org, directory, session_factory, vacation_template):
    first = engine.submit_request(vacation_template, org.employee, vacation_form(MONDAY, WEDNESDAY)).data
    second = engine.submit_request(vacation_template, org.employee, vacation_form(WEDNESDAY, FRIDAY)).data
    assert approve_all(engine, org, first).is_success
    assert engine.approve_step(second.id, second.steps[0].id, org.manager).is_success

    result = engine.approve_step(second.id, second.steps[1].id, org.hr)

    assert result.error_code == ErrorCode.BUSINESS_RULE_VIOLATION
    assert "Overlaps an approved vacation" in result.message
    assert engine.get_request(second.id).data.steps[1].status == ApprovalStepStatus.IN_REVIEW
    assert [s.source_request_id for s in schedules_of(session_factory, org.employee)] == [first.id]
    assert directory.load_user(org.employee).vacation_days_used == 3


def test_admin_cancellation_reverts_days(engine, org, directory, session_factory, approved_vacation, channel):
    result = engine.cancel_vacation(approved_vacation.id, org.admin, "Project deadline", today=FRIDAY)

    assert result.is_success, result.error
    assert directory.load_user(org.employee).vacation_days_used == 0
    [schedule] = schedules_of(session_factory, org.employee)
    assert schedule.status == VacationStatus.CANCELLED
    assert schedule.cancelled_by_id == org.admin
    assert schedule.cancellation_reason == "Project deadline"
    assert engine.get_request(approved_vacation.id).data.status == RequestStatus.APPROVED
    [notice] = [
        m for m in channel.for_user(org.employee) if m.notification_type == NotificationType.VACATION_CANCELLED
    ]
    assert "Project deadline" in notice.message
    assert "VacationReverted" in audit_actions(session_factory, org.employee)


def test_cancelling_twice_is_invalid(engine, org, approved_vacation):
    assert engine.cancel_vacation(approved_vacation.id, org.admin, "first").is_success

    result = engine.cancel_vacation(approved_vacation.id, org.admin, "second")

    assert result.error_code == ErrorCode.INVALID_STATE


def test_approver_can_cancel_within_grace_period(engine, org, approved_vacation):
    result = engine.cancel_vacation(approved_vacation.id, org.manager, "Team emergency", today=MONDAY + timedelta(days=1))
    assert result.is_success, result.error


def test_approver_cannot_cancel_after_grace_period(engine, org, approved_vacation):
    result = engine.cancel_vacation(approved_vacation.id, org.manager, "Too late", today=WEDNESDAY)
    assert result.error_code == ErrorCode.FORBIDDEN


def test_unrelated_user_cannot_cancel(engine, org, approved_vacation):
    result = engine.cancel_vacation(approved_vacation.id, org.colleague, "Not mine", today=MONDAY)
    assert result.error_code == ErrorCode.FORBIDDEN


def test_cannot_cancel_request_in_review(engine, org, vacation_template):
    request = engine.submit_request(vacation_template, org.employee, vacation_form(MONDAY, WEDNESDAY)).data
    result = engine.cancel_vacation(request.id, org.admin, "Never approved")
    assert result.error_code == ErrorCode.INVALID_STATE


def test_summary_reports_balances(engine, org, directory, approved_vacation):
    directory.update_user(org.employee, carried_over_vacation_days=2, carried_over_expiry_date=FRIDAY)

    summary = engine.get_vacation_summary(org.employee, today=MONDAY).data

    assert summary.entitlement == 26
    assert summary.used == 3
    assert summary.remaining == 23
    assert summary.carried_over == 2
    assert summary.total_available == 25
    assert summary.on_demand_remaining == 4
    assert summary.counters_in_sync is True

    after_expiry = engine.get_vacation_summary(org.employee, today=FRIDAY + timedelta(days=1)).data
    assert after_expiry.carried_over == 0


def test_summary_clamps_remaining_and_flags_drift(engine, org, directory):
    directory.update_user(org.employee, vacation_days_used=30, on_demand_vacation_days_used=6)

    summary = engine.get_vacation_summary(org.employee).data

    assert summary.remaining == 0
    assert summary.on_demand_remaining == 0
    assert summary.total_available == 0
    assert summary.counters_in_sync is False


def test_reconcile_reports_and_resyncs_drift(engine, org, directory, session_factory, approved_vacation):
    directory.update_user(org.employee, vacation_days_used=7)

    report = engine.reconcile_counters(org.employee).data
    assert report.drift == {"vacation_days_used": 4}
    assert report.resynced is False
    assert directory.load_user(org.employee).vacation_days_used == 7

    fixed = engine.reconcile_counters(org.employee, resync=True).data
    assert fixed.resynced is True
    assert directory.load_user(org.employee).vacation_days_used == 3
    assert "CountersResynced" in audit_actions(session_factory, org.employee)
    assert engine.reconcile_counters(org.employee).data.in_sync


def test_admin_adjustment(engine, org, directory, session_factory, channel):
    result = engine.admin_adjust_vacation_days(org.employee, 5, "Long service award", org.admin)

    assert result.is_success, result.error
    assert result.data.entitlement == 31
    assert directory.load_user(org.employee).annual_vacation_days == 31
    assert "VacationAdjusted" in audit_actions(session_factory, org.employee)
    [notice] = channel.for_user(org.employee)
    assert notice.notification_type == NotificationType.VACATION_ADJUSTED


def test_adjustment_requires_admin(engine, org):
    result = engine.admin_adjust_vacation_days(org.employee, 5, "Self service", org.manager)
    assert result.error_code == ErrorCode.FORBIDDEN


def test_adjustment_cannot_go_negative(engine, org, directory):
    result = engine.admin_adjust_vacation_days(org.employee, -27, "Correction", org.admin)

    assert result.error_code == ErrorCode.BUSINESS_RULE_VIOLATION
    assert directory.load_user(org.employee).annual_vacation_days == 26


def test_zero_adjustment_is_invalid(engine, org):
    result = engine.admin_adjust_vacation_days(org.employee, 0, "Nothing", org.admin)
    assert result.error_code == ErrorCode.VALIDATION_ERROR


def test_vacation_statuses_follow_dates(engine, org, session_factory, approved_vacation):
    assert engine.update_vacation_statuses(MONDAY - timedelta(days=1)).data == {"activated": 0, "completed": 0}
    assert engine.update_vacation_statuses(MONDAY).data == {"activated": 1, "completed": 0}
    assert schedules_of(session_factory, org.employee)[0].status == VacationStatus.ACTIVE

    assert engine.update_vacation_statuses(FRIDAY).data == {"activated": 0, "completed": 1}
    assert schedules_of(session_factory, org.employee)[0].status == VacationStatus.COMPLETED


def test_expired_carry_over_is_cleared(engine, org, directory, session_factory):
    directory.update_user(org.employee, carried_over_vacation_days=5, carried_over_expiry_date=date(2030, 1, 31))
    directory.update_user(org.colleague, carried_over_vacation_days=4, carried_over_expiry_date=date(2030, 6, 30))

    assert engine.expire_carried_over_days(date(2030, 2, 1)).data == 1

    assert directory.load_user(org.employee).carried_over_vacation_days == 0
    assert directory.load_user(org.colleague).carried_over_vacation_days == 4
    assert "CarriedOverExpired" in audit_actions(session_factory, org.employee)
    assert engine.expire_carried_over_days(date(2030, 2, 1)).data == 0
