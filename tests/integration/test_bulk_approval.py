from sqlalchemy import select

from conftest import create_template, role_step
from hrportal.core.exceptions import ErrorCode
from hrportal.models.audit import AuditLog
from hrportal.models.base import ApprovalStepStatus, RequestStatus


def first_step(engine, template_id, submitter_id):
    request = engine.submit_request(template_id, submitter_id, {}).data
    return request.id, request.steps[0].id


def test_partial_failure_keeps_successful_steps(engine, org, two_step_template):
    request_a, step_a = first_step(engine, two_step_template, org.employee)
    request_b, step_b = first_step(engine, two_step_template, org.colleague)
    request_c, step_c = first_step(engine, two_step_template, org.employee)
    engine.approve_step(request_c, step_c, org.manager)
    hr_step = engine.get_request(request_c).data.steps[1].id

    result = engine.bulk_approve(org.manager, [step_a, hr_step, step_b], "quarterly batch")

    assert result.is_success
    items = result.data.results
    assert [i.step_id for i in items] == [step_a, hr_step, step_b]
    assert [i.is_success for i in items] == [True, False, True]
    assert items[1].error_code == ErrorCode.FORBIDDEN.value
    assert result.data.succeeded == 2
    assert result.data.failed == 1

    for request_id in (request_a, request_b):
        steps = engine.get_request(request_id).data.steps
        assert steps[0].status == ApprovalStepStatus.APPROVED
        assert steps[0].comment == "Bulk approved: quarterly batch"
        assert steps[1].status == ApprovalStepStatus.IN_REVIEW
    assert engine.get_request(request_c).data.steps[1].status == ApprovalStepStatus.IN_REVIEW


def test_unknown_and_already_decided_steps_are_reported(engine, org, two_step_template):
    request_a, step_a = first_step(engine, two_step_template, org.employee)
    engine.approve_step(request_a, step_a, org.manager)
    _, step_b = first_step(engine, two_step_template, org.colleague)

    result = engine.bulk_approve(org.manager, ["missing", step_a, step_b])

    codes = [i.error_code for i in result.data.results]
    assert codes == [ErrorCode.NOT_FOUND.value, ErrorCode.INVALID_STATE.value, None]


def test_default_comment_and_final_step_completion(engine, org):
    template_id = create_template(engine, [role_step(1, "Manager")], name="Parking permit")
    request_id, step_id = first_step(engine, template_id, org.employee)

    result = engine.bulk_approve(org.manager, [step_id, step_id])

    [item] = result.data.results
    assert item.request_status == RequestStatus.APPROVED
    fetched = engine.get_request(request_id).data
    assert fetched.status == RequestStatus.APPROVED
    assert fetched.steps[0].comment == "Bulk approved"


def test_quiz_steps_fail_without_answers(engine, org):
    template_id = create_template(
        engine,
        [role_step(1, "Manager", requires_quiz=True)],
        name="Lab access",
        quiz_questions=[
            {
                "question": "Goggles?",
                "options": [{"value": "yes", "label": "Yes", "is_correct": True}, {"value": "no", "label": "No"}],
            }
        ],
    )
    _, step_id = first_step(engine, template_id, org.employee)

    result = engine.bulk_approve(org.manager, [step_id])

    assert result.data.results[0].error_code == ErrorCode.VALIDATION_ERROR.value


def test_empty_batch_is_invalid(engine, org):
    assert engine.bulk_approve(org.manager, []).error_code == ErrorCode.VALIDATION_ERROR


def test_batch_limit(engine, org, settings):
    ids = [f"step-{n}" for n in range(settings.workflow.BULK_APPROVAL_LIMIT + 1)]
    result = engine.bulk_approve(org.manager, ids)
    assert result.error_code == ErrorCode.VALIDATION_ERROR


def test_batch_is_audited_once(engine, org, two_step_template, db):
    _, step_a = first_step(engine, two_step_template, org.employee)

    engine.bulk_approve(org.manager, [step_a, "missing"], "ok")

    [entry] = db.execute(select(AuditLog).where(AuditLog.action == "BulkApproval")).scalars().all()
    assert entry.actor_id == org.manager
    assert entry.new_value["succeeded"] == [step_a]
    assert entry.new_value["failed"] == [{"step_id": "missing", "error_code": "NOT_FOUND"}]
