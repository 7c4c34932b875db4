"""
Audit log data access.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from hrportal.models.audit import AuditLog
from hrportal.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository[AuditLog]):
    def __init__(self, db: Session):
        super().__init__(AuditLog, db)

    def find_by_entity(self, entity_type: str, entity_id: str, action: Optional[str] = None) -> List[AuditLog]:
        criteria = {"entity_type": entity_type, "entity_id": entity_id}
        if action is not None:
            criteria["action"] = action
        return self.find_by_criteria(criteria, order_by=["occurred_at"])
