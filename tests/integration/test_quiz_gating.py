import pytest
from sqlalchemy import select

from conftest import create_template, role_step
from hrportal.core.exceptions import ErrorCode
from hrportal.models.base import ApprovalStepStatus, NotificationType, RequestStatus
from hrportal.models.workflow import QuizQuestion


def question(text, correct, wrong, step_order=None, order=0):
    return {
        "question": text,
        "options": [
            {"value": correct, "label": correct.upper(), "is_correct": True},
            {"value": wrong, "label": wrong.upper()},
        ],
        "step_order": step_order,
        "order": order,
    }


def question_ids(session_factory, template_id):
    with session_factory() as session:
        stmt = select(QuizQuestion.id).where(QuizQuestion.template_id == template_id).order_by(QuizQuestion.order)
        return list(session.execute(stmt).scalars().all())


@pytest.fixture
def quiz_template(engine, org):
    return create_template(
        engine,
        [role_step(1, "Manager", requires_quiz=True), role_step(2, "HR")],
        name="Safety sign-off",
        passing_score=75,
        quiz_questions=[
            question("Fire exit?", "north", "south", step_order=1, order=1),
            question("Assembly point?", "parking", "lobby", step_order=1, order=2),
        ],
    )


@pytest.fixture
def quiz_request(engine, org, quiz_template):
    return engine.submit_request(quiz_template, org.employee, {}).data


def test_passing_quiz_approves_and_stores_score(engine, org, quiz_template, quiz_request, session_factory):
    q1, q2 = question_ids(session_factory, quiz_template)
    step1 = quiz_request.steps[0]

    result = engine.approve_step(quiz_request.id, step1.id, org.manager, quiz_answers={q1: "north", q2: "parking"})

    assert result.is_success, result.error
    assert result.data.quiz_score == 100
    stored = engine.get_request(quiz_request.id).data.steps[0]
    assert stored.quiz_score == 100
    assert stored.quiz_passed is True
    assert stored.status == ApprovalStepStatus.APPROVED


def test_failing_quiz_rejects_the_request(engine, org, quiz_template, quiz_request, channel, session_factory):
    q1, q2 = question_ids(session_factory, quiz_template)
    step1 = quiz_request.steps[0]

    result = engine.approve_step(quiz_request.id, step1.id, org.manager, quiz_answers={q1: "north", q2: "lobby"})

    assert result.error_code == ErrorCode.BUSINESS_RULE_VIOLATION
    assert result.error.details["quiz_score"] == 50
    assert result.error.details["passing_score"] == 75

    fetched = engine.get_request(quiz_request.id).data
    assert fetched.status == RequestStatus.REJECTED
    assert fetched.steps[0].status == ApprovalStepStatus.REJECTED
    assert fetched.steps[0].quiz_passed is False
    assert fetched.steps[0].comment.startswith("Automatically rejected")
    assert fetched.steps[1].status == ApprovalStepStatus.PENDING
    assert channel.for_user(org.employee)[-1].notification_type == NotificationType.REQUEST_REJECTED


def test_quiz_cannot_be_retried(engine, org, quiz_template, quiz_request, session_factory):
    q1, q2 = question_ids(session_factory, quiz_template)
    step1 = quiz_request.steps[0]
    engine.approve_step(quiz_request.id, step1.id, org.manager, quiz_answers={q1: "south", q2: "lobby"})

    retry = engine.approve_step(quiz_request.id, step1.id, org.manager, quiz_answers={q1: "north", q2: "parking"})

    assert retry.error_code == ErrorCode.INVALID_STATE


def test_missing_answers_do_not_consume_the_attempt(engine, org, quiz_template, quiz_request, session_factory):
    step1 = quiz_request.steps[0]

    result = engine.approve_step(quiz_request.id, step1.id, org.manager)

    assert result.error_code == ErrorCode.VALIDATION_ERROR
    stored = engine.get_request(quiz_request.id).data.steps[0]
    assert stored.status == ApprovalStepStatus.IN_REVIEW
    assert stored.quiz_score is None


def test_answers_to_unknown_questions_are_rejected(engine, org, quiz_request):
    step1 = quiz_request.steps[0]
    result = engine.approve_step(quiz_request.id, step1.id, org.manager, quiz_answers={"nope": "north"})
    assert result.error_code == ErrorCode.VALIDATION_ERROR


def test_template_wide_questions_and_step_threshold(engine, org, session_factory):
    template_id = create_template(
        engine,
        [role_step(1, "Manager", requires_quiz=True, passing_score=50)],
        name="Badge request",
        passing_score=100,
        quiz_questions=[question("Badge colour?", "blue", "red", order=1), question("Floor?", "3", "4", order=2)],
    )
    request = engine.submit_request(template_id, org.employee, {}).data
    q1, q2 = question_ids(session_factory, template_id)

    result = engine.approve_step(request.id, request.steps[0].id, org.manager, quiz_answers={q1: "blue", q2: "4"})

    assert result.is_success, result.error
    assert result.data.quiz_score == 50
    assert result.data.request_status == RequestStatus.APPROVED


def test_default_threshold_applies_when_none_configured(engine, org, session_factory, settings):
    template_id = create_template(
        engine,
        [role_step(1, "Manager", requires_quiz=True)],
        name="Training",
        quiz_questions=[
            question("A?", "a", "b", order=1),
            question("C?", "c", "d", order=2),
            question("E?", "e", "f", order=3),
        ],
    )
    request = engine.submit_request(template_id, org.employee, {}).data
    q1, q2, q3 = question_ids(session_factory, template_id)

    result = engine.approve_step(
        request.id, request.steps[0].id, org.manager, quiz_answers={q1: "a", q2: "c", q3: "f"}
    )

    assert settings.workflow.DEFAULT_QUIZ_PASSING_SCORE == 70
    assert result.error_code == ErrorCode.BUSINESS_RULE_VIOLATION
    assert result.error.details["quiz_score"] == 67
