"""
Request and approval step models.

A request owns its ordered approval steps by value; templates are
referenced by id only.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrportal.models.base import (
    ApprovalStepStatus,
    ApproverType,
    RequestStatus,
    TimestampModel,
    enum_type,
    utc_now,
)

__all__ = ["Request", "ApprovalStep"]


class Request(TimestampModel):
    """One submission of a request template."""

    __tablename__ = "requests"
    __table_args__ = (
        Index("ix_request_submitted_by_id", "submitted_by_id"),
        Index("ix_request_template_id", "template_id"),
        Index("ix_request_status", "status"),
        {"comment": "Submitted requests"},
    )

    request_number: Mapped[str] = mapped_column(
        String(32), nullable=False, unique=True, comment="Human readable number REQ-YYYY-NNNN"
    )
    template_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("request_templates.id", ondelete="RESTRICT"),
        nullable=False,
        comment="Template the request was created from",
    )
    submitted_by_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        comment="Submitter",
    )
    form_data: Mapped[Dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict, comment="Opaque form payload"
    )
    status: Mapped[RequestStatus] = mapped_column(
        enum_type(RequestStatus, "request_status_enum"),
        nullable=False,
        default=RequestStatus.SUBMITTED,
        comment="Request status",
    )
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, comment="Submission time"
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, comment="Time the request reached a terminal status"
    )

    steps: Mapped[List["ApprovalStep"]] = relationship(
        "ApprovalStep",
        order_by="ApprovalStep.step_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def active_step(self) -> Optional["ApprovalStep"]:
        for step in self.steps:
            if step.status == ApprovalStepStatus.IN_REVIEW:
                return step
        return None


class ApprovalStep(TimestampModel):
    """
    One ordinal position in a request's approval chain, bound to a concrete approver.

    ``version`` is the optimistic lock column; an UPDATE against a stale
    version raises ``StaleDataError`` at flush time.
    """

    __tablename__ = "approval_steps"
    __table_args__ = (
        UniqueConstraint("request_id", "step_order", name="uq_approval_step_order"),
        CheckConstraint("step_order >= 1", name="ck_approval_step_order_positive"),
        CheckConstraint(
            "quiz_score IS NULL OR (quiz_score >= 0 AND quiz_score <= 100)",
            name="ck_approval_step_quiz_score_range",
        ),
        Index("ix_approval_step_request_id", "request_id"),
        Index("ix_approval_step_approver_status", "approver_id", "status"),
    )

    request_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("requests.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owning request",
    )
    step_template_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("approval_step_templates.id", ondelete="SET NULL"),
        nullable=True,
        comment="Template position the step was copied from",
    )
    step_order: Mapped[int] = mapped_column(Integer, nullable=False, comment="1-based position")
    approver_type: Mapped[ApproverType] = mapped_column(
        enum_type(ApproverType, "approval_step_approver_type_enum"),
        nullable=False,
        comment="Resolution strategy used at submission",
    )
    approver_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        comment="Resolved approver",
    )
    requires_quiz: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, comment="Quiz gate")
    status: Mapped[ApprovalStepStatus] = mapped_column(
        enum_type(ApprovalStepStatus, "approval_step_status_enum"),
        nullable=False,
        default=ApprovalStepStatus.PENDING,
        comment="Step status",
    )
    started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, comment="Time the step became active"
    )
    finished_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, comment="Time the step was decided"
    )
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Approver comment or reason")
    quiz_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="Quiz score percent")
    quiz_passed: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True, comment="Quiz outcome")
    version: Mapped[int] = mapped_column(Integer, nullable=False, comment="Optimistic lock version")

    __mapper_args__ = {"version_id_col": version}
