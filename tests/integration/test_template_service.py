from sqlalchemy import select

from conftest import create_template, role_step
from hrportal.core.exceptions import ErrorCode
from hrportal.models.base import ApproverType
from hrportal.models.workflow import QuizQuestion
from hrportal.repositories.audit import AuditLogRepository
from hrportal.services.base.audit_service import AuditService


def test_create_maps_approvers_and_questions(engine, org, directory, session_factory):
    group = directory.group("Facilities", [org.hr])
    result = engine.create_template(
        {
            "name": "Office move",
            "category": "Facilities",
            "steps": [
                {"step_order": 2, "approver": {"approver_type": "UserGroup", "group_id": group}, "requires_quiz": True},
                {"step_order": 1, "approver": {"approver_type": "SpecificUser", "user_id": org.manager}},
            ],
            "quiz_questions": [
                {
                    "question": "Boxes labelled?",
                    "step_order": 2,
                    "options": [{"value": "y", "label": "Yes", "is_correct": True}, {"value": "n", "label": "No"}],
                }
            ],
        },
        actor_id=org.admin,
    )

    assert result.is_success, result.error
    template = result.data
    assert template.is_active
    first, second = template.step_templates
    assert (first.step_order, first.approver_type, first.approver_user_id) == (1, ApproverType.SPECIFIC_USER, org.manager)
    assert first.approver_role is None
    assert (second.approver_type, second.approver_group_id, second.requires_quiz) == (ApproverType.USER_GROUP, group, True)

    with session_factory() as session:
        [question] = session.execute(select(QuizQuestion).where(QuizQuestion.template_id == template.id)).scalars().all()
        assert question.step_template_id == second.id
        [entry] = AuditService(AuditLogRepository(session)).get_entity_history("RequestTemplate", template.id)
        assert entry.action == "TemplateCreated"
        assert entry.actor_id == org.admin


def test_invalid_structure_is_a_validation_error(engine, org):
    result = engine.create_template({"name": "Broken", "steps": [role_step(1, "Manager"), role_step(3, "HR")]})

    assert result.error_code == ErrorCode.VALIDATION_ERROR
    assert any("contiguous" in e["message"] for e in result.error.errors)


def test_get_and_list_templates(engine, org, two_step_template):
    other = create_template(engine, [role_step(1, "HR")], name="Training budget")
    engine.deactivate_template(other)

    assert engine.get_template(two_step_template).data.name == "Equipment request"
    assert [t.id for t in engine.list_active_templates().data] == [two_step_template]
    assert engine.get_template("missing").error_code == ErrorCode.NOT_FOUND


def test_deactivating_twice_is_invalid(engine, org, two_step_template):
    assert engine.deactivate_template(two_step_template, org.admin).data.is_active is False

    assert engine.deactivate_template(two_step_template, org.admin).error_code == ErrorCode.INVALID_STATE


def test_unreferenced_template_can_be_deleted(engine, org, two_step_template):
    result = engine.delete_template(two_step_template, org.admin)

    assert result.is_success
    assert engine.get_template(two_step_template).error_code == ErrorCode.NOT_FOUND


def test_referenced_template_cannot_be_deleted(engine, org, two_step_template):
    assert engine.submit_request(two_step_template, org.employee, {}).is_success

    result = engine.delete_template(two_step_template, org.admin)

    assert result.error_code == ErrorCode.INVALID_STATE
    assert result.error.details["request_count"] == 1
    assert engine.get_template(two_step_template).is_success


def test_deleting_unknown_template(engine):
    assert engine.delete_template("missing").error_code == ErrorCode.NOT_FOUND
