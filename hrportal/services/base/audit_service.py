"""
Audit trail service.

Records are added to the caller's unit of work, so an audit entry exists
exactly when the change it describes was committed.
"""

import json
from enum import Enum
from typing import Any, List, Optional, Union

from hrportal.core.logging import get_logger
from hrportal.models.audit import AuditLog
from hrportal.models.base import utc_now
from hrportal.repositories.audit import AuditLogRepository


def _jsonable(value: Any) -> Any:
    if value is None:
        return None
    return json.loads(json.dumps(value, default=lambda v: v.value if isinstance(v, Enum) else str(v)))


class AuditService:
    """Thin wrapper around AuditLogRepository with the engine's audit contract."""

    def __init__(self, repository: AuditLogRepository):
        self.repository = repository
        self._logger = get_logger(self.__class__.__name__)

    def record_change(
        self,
        entity_type: str,
        entity_id: str,
        action: Union[str, Enum],
        actor_id: Optional[str],
        old_value: Any = None,
        new_value: Any = None,
        reason: Optional[str] = None,
    ) -> AuditLog:
        action_name = action.value if isinstance(action, Enum) else action
        record = self.repository.create(
            AuditLog(
                entity_type=entity_type,
                entity_id=entity_id,
                action=action_name,
                actor_id=actor_id,
                old_value=_jsonable(old_value),
                new_value=_jsonable(new_value),
                reason=reason,
                occurred_at=utc_now(),
            ),
            flush=False,
        )
        self._logger.debug(
            f"Audit {action_name} on {entity_type} {entity_id}",
            extra={"entity_type": entity_type, "entity_id": entity_id, "actor_id": actor_id},
        )
        return record

    def get_entity_history(self, entity_type: str, entity_id: str) -> List[AuditLog]:
        return self.repository.find_by_entity(entity_type, entity_id)
