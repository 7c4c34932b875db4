"""
Request template data access.
"""

from typing import List

from sqlalchemy.orm import Session

from hrportal.models.workflow import QuizQuestion, RequestTemplate
from hrportal.repositories.base import BaseRepository


class RequestTemplateRepository(BaseRepository[RequestTemplate]):
    """Repository for request templates."""

    def __init__(self, db: Session):
        super().__init__(RequestTemplate, db)

    def find_active(self) -> List[RequestTemplate]:
        return self.find_by_criteria({"is_active": True}, order_by=["name"])

    def find_questions_for_step(self, template_id: str, step_template_id: str) -> List[QuizQuestion]:
        """
        Questions scoped to the step, falling back to the template-wide bank.
        """
        template = self.get_by_id(template_id)
        scoped = [q for q in template.quiz_questions if q.step_template_id == step_template_id]
        if scoped:
            return scoped
        return [q for q in template.quiz_questions if q.step_template_id is None]
