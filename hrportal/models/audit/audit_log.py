"""Audit trail records."""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hrportal.models.base import BaseModel, utc_now

__all__ = ["AuditLog"]


class AuditLog(BaseModel):
    """One recorded change; written in the same transaction as the change."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_log_entity", "entity_type", "entity_id"),
        Index("ix_audit_log_actor_id", "actor_id"),
        Index("ix_audit_log_occurred_at", "occurred_at"),
    )

    entity_type: Mapped[str] = mapped_column(String(64), nullable=False, comment="Entity kind")
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False, comment="Entity id")
    action: Mapped[str] = mapped_column(String(64), nullable=False, comment="Action name")
    actor_id: Mapped[Optional[str]] = mapped_column(
        String(36), nullable=True, comment="Acting user; empty for system jobs"
    )
    old_value: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True, comment="Value before the change")
    new_value: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True, comment="Value after the change")
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Reason or comment")
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, comment="Time of the change"
    )
