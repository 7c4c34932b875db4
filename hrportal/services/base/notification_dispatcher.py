"""
Notification dispatcher.

Dispatch is fire-and-forget from the engine's point of view: it runs after
the approval transaction committed, persists an in-app notification in its
own unit of work and hands it to the configured delivery channels. Any
failure is logged and reported in the returned result, never raised.
"""

from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

from hrportal.core.logging import get_logger
from hrportal.models.base import NotificationType
from hrportal.models.notification import Notification
from hrportal.repositories.notification import NotificationRepository
from hrportal.services.base.service_result import ErrorCode, ServiceError, ServiceResult
from hrportal.services.base.transaction_manager import TransactionManager


@dataclass(frozen=True)
class NotificationMessage:
    """Payload handed to delivery channels."""

    user_id: str
    notification_type: NotificationType
    title: str
    message: str
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[str] = None
    notification_id: Optional[str] = None


class NotificationChannel(Protocol):
    """Delivery mechanism (email, push, chat); out of scope beyond this contract."""

    def deliver(self, message: NotificationMessage) -> None:
        ...


class NotificationDispatcher:
    """
    Persist and deliver notifications with:
    - one unit of work per notification
    - multiple delivery channels
    - failure isolation from the caller
    """

    def __init__(
        self,
        transaction_manager: TransactionManager,
        channels: Optional[Sequence[NotificationChannel]] = None,
    ):
        self.tx = transaction_manager
        self.channels: List[NotificationChannel] = list(channels or [])
        self._logger = get_logger(self.__class__.__name__)

    def notify(
        self,
        user_id: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        related_entity_type: Optional[str] = None,
        related_entity_id: Optional[str] = None,
    ) -> ServiceResult[NotificationMessage]:
        try:
            with self.tx.start() as ctx:
                record = NotificationRepository(ctx.session).create(
                    Notification(
                        user_id=user_id,
                        notification_type=notification_type,
                        title=title,
                        message=message,
                        related_entity_type=related_entity_type,
                        related_entity_id=related_entity_id,
                    )
                )
                notification_id = record.id
        except Exception as e:
            self._logger.error(
                f"Failed to store notification {notification_type.value} for {user_id}: {e}",
                exc_info=True,
            )
            return ServiceResult.failure(
                ServiceError(
                    code=ErrorCode.INTERNAL_ERROR,
                    message="Failed to store notification",
                    details={"error": str(e)},
                )
            )

        payload = NotificationMessage(
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id,
            notification_id=notification_id,
        )

        failed_channels = []
        for channel in self.channels:
            try:
                channel.deliver(payload)
            except Exception as e:
                failed_channels.append(type(channel).__name__)
                self._logger.warning(
                    f"Notification delivery failed via {type(channel).__name__}: {e}",
                    extra={"notification_id": notification_id, "recipient_id": user_id},
                )

        self._logger.info(
            f"Notification dispatched: {notification_type.value} to {user_id}",
            extra={"notification_id": notification_id, "recipient_id": user_id},
        )
        return ServiceResult.success(payload, metadata={"failed_channels": failed_channels})
