"""In-app notification records."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hrportal.models.base import NotificationType, TimestampModel, enum_type

__all__ = ["Notification"]


class Notification(TimestampModel):
    """Notification addressed to one user."""

    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notification_user_unread", "user_id", "is_read"),)

    user_id: Mapped[str] = mapped_column(String(36), nullable=False, comment="Recipient")
    notification_type: Mapped[NotificationType] = mapped_column(
        enum_type(NotificationType, "notification_type_enum"),
        nullable=False,
        comment="Notification kind",
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False, comment="Title")
    message: Mapped[str] = mapped_column(Text, nullable=False, comment="Body")
    related_entity_type: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, comment="Entity kind")
    related_entity_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, comment="Entity id")
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, comment="Read flag")
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, comment="Read time")
