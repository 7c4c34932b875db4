"""
Notification data access.
"""

from typing import List

from sqlalchemy.orm import Session

from hrportal.models.notification import Notification
from hrportal.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    def __init__(self, db: Session):
        super().__init__(Notification, db)

    def find_for_user(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        criteria = {"user_id": user_id}
        if unread_only:
            criteria["is_read"] = False
        return self.find_by_criteria(criteria, order_by=["created_at"])
