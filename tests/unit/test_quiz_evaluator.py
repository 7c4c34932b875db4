import pytest

from hrportal.core.exceptions import BusinessRuleError
from hrportal.models.workflow import QuizQuestion
from hrportal.services.workflow.quiz_evaluator import QuizEvaluator, resolve_passing_score


def question(qid: str, correct: str, *others: str) -> QuizQuestion:
    options = [{"value": correct, "label": correct.title(), "is_correct": True}]
    options += [{"value": o, "label": o.title(), "is_correct": False} for o in others]
    return QuizQuestion(id=qid, template_id="tpl", question=f"Question {qid}", options=options, order=0)


@pytest.fixture
def questions():
    return [question("q1", "a", "b"), question("q2", "c", "d"), question("q3", "e", "f")]


def test_all_correct_scores_100(questions):
    result = QuizEvaluator().evaluate(questions, {"q1": "a", "q2": "c", "q3": "e"}, 70)
    assert result.score == 100
    assert result.passed
    assert result.wrong_question_ids == []


def test_score_is_rounded_percentage(questions):
    result = QuizEvaluator().evaluate(questions, {"q1": "a", "q2": "c", "q3": "f"}, 70)
    assert result.score == 67
    assert result.correct == 2
    assert not result.passed
    assert result.wrong_question_ids == ["q3"]


def test_unanswered_questions_count_as_wrong(questions):
    result = QuizEvaluator().evaluate(questions, {"q1": "a"}, 30)
    assert result.score == 33
    assert result.passed


def test_threshold_is_inclusive(questions):
    result = QuizEvaluator().evaluate(questions, {"q1": "a", "q2": "c", "q3": "f"}, 67)
    assert result.passed


def test_no_questions_is_a_business_error():
    with pytest.raises(BusinessRuleError):
        QuizEvaluator().evaluate([], {"q1": "a"}, 70)


def test_unknown_answers_are_reported(questions):
    assert QuizEvaluator.unknown_answers(questions, {"q1": "a", "zz": "x"}) == {"zz": "x"}


@pytest.mark.parametrize(
    "step, template, expected",
    [(90, 80, 90), (None, 80, 80), (None, None, 70), (0, 80, 0)],
)
def test_passing_score_precedence(step, template, expected):
    assert resolve_passing_score(step, template, 70) == expected
