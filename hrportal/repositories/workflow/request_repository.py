"""
Request and approval step data access.
"""

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from hrportal.core.exceptions import ConcurrentUpdateError, RepositoryError
from hrportal.models.base import ApprovalStepStatus
from hrportal.models.workflow import ApprovalStep, Request
from hrportal.repositories.base import BaseRepository


class RequestRepository(BaseRepository[Request]):
    """Repository for submitted requests."""

    NUMBER_PREFIX = "REQ"

    def __init__(self, db: Session):
        super().__init__(Request, db)

    def next_request_number(self, year: int) -> str:
        """Next ``REQ-{year}-{n:04d}`` number for the calendar year."""
        prefix = f"{self.NUMBER_PREFIX}-{year}-"
        stmt = select(func.count()).select_from(Request).where(Request.request_number.like(f"{prefix}%"))
        issued = int(self.db.execute(stmt).scalar_one())
        return f"{prefix}{issued + 1:04d}"

    def create(self, entity: Request, flush: bool = True) -> Request:
        """
        Raises:
            ConcurrentUpdateError: If another submission was issued the same number first
            RepositoryError: If the flush violates any other constraint
        """
        try:
            return super().create(entity, flush)
        except RepositoryError as e:
            if "request_number" not in str(e.details.get("error", "")):
                raise
            raise ConcurrentUpdateError(
                f"Request number {entity.request_number} was issued to another submission",
                {"request_number": entity.request_number},
            ) from e

    def count_by_template(self, template_id: str) -> int:
        return self.count({"template_id": template_id})

    def find_by_submitter(self, submitted_by_id: str) -> List[Request]:
        return self.find_by_criteria({"submitted_by_id": submitted_by_id}, order_by=["-submitted_at"])


class ApprovalStepRepository(BaseRepository[ApprovalStep]):
    """Repository for approval steps."""

    def __init__(self, db: Session):
        super().__init__(ApprovalStep, db)

    def find_by_request(self, request_id: str) -> List[ApprovalStep]:
        return self.find_by_criteria({"request_id": request_id}, order_by=["step_order"])

    def find_next_step(self, request_id: str, after_order: int) -> Optional[ApprovalStep]:
        stmt = (
            select(ApprovalStep)
            .where(ApprovalStep.request_id == request_id)
            .where(ApprovalStep.step_order > after_order)
            .order_by(ApprovalStep.step_order)
            .limit(1)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalars().first()

    def count_in_review(self, request_id: str) -> int:
        return self.count({"request_id": request_id, "status": ApprovalStepStatus.IN_REVIEW})

    def find_in_review_for_approver(self, approver_id: str) -> List[ApprovalStep]:
        return self.find_by_criteria(
            {"approver_id": approver_id, "status": ApprovalStepStatus.IN_REVIEW},
            order_by=["started_at"],
        )

    def find_decided_by_approver(self, request_id: str, approver_id: str) -> List[ApprovalStep]:
        return self.find_by_criteria(
            {"request_id": request_id, "approver_id": approver_id, "status": ApprovalStepStatus.APPROVED}
        )
