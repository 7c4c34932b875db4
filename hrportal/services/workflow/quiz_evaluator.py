"""
Quiz scoring for quiz-gated approval steps.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from hrportal.core.exceptions import BusinessRuleError
from hrportal.models.workflow import QuizQuestion


@dataclass(frozen=True)
class QuizResult:
    score: int
    passed: bool
    passing_score: int
    correct: int
    total: int
    wrong_question_ids: List[str] = field(default_factory=list)


def resolve_passing_score(
    step_score: Optional[int],
    template_score: Optional[int],
    default_score: int,
) -> int:
    """Step threshold, else template threshold, else the configured default."""
    if step_score is not None:
        return step_score
    if template_score is not None:
        return template_score
    return default_score


class QuizEvaluator:
    """
    Scores an answer set as ``round(correct / total * 100)``.

    Unanswered questions count as wrong. A question is answered correctly
    when the chosen option value is one of its options marked correct.
    """

    def evaluate(
        self,
        questions: Sequence[QuizQuestion],
        answers: Mapping[str, str],
        passing_score: int,
    ) -> QuizResult:
        if not questions:
            raise BusinessRuleError("No quiz questions are configured for this step")

        wrong: List[str] = []
        correct = 0
        for question in questions:
            chosen = answers.get(question.id)
            if chosen is not None and str(chosen) in question.correct_values:
                correct += 1
            else:
                wrong.append(question.id)

        total = len(questions)
        score = int(round(correct / total * 100))
        return QuizResult(
            score=score,
            passed=score >= passing_score,
            passing_score=passing_score,
            correct=correct,
            total=total,
            wrong_question_ids=wrong,
        )

    @staticmethod
    def unknown_answers(questions: Sequence[QuizQuestion], answers: Mapping[str, str]) -> Dict[str, str]:
        """Answers that refer to questions outside the step's question set."""
        known = {q.id for q in questions}
        return {qid: value for qid, value in answers.items() if qid not in known}
