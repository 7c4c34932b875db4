"""
Request template models.

A template defines a request type: its ordered approval step templates,
an optional quiz question bank and the passing score applied to quiz steps.
"""

from typing import Any, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrportal.models.base import ApproverType, TimestampModel, enum_type

__all__ = ["RequestTemplate", "ApprovalStepTemplate", "QuizQuestion"]


class RequestTemplate(TimestampModel):
    """Definition of a request type."""

    __tablename__ = "request_templates"
    __table_args__ = (
        CheckConstraint(
            "passing_score IS NULL OR (passing_score >= 0 AND passing_score <= 100)",
            name="ck_request_template_passing_score_range",
        ),
        {"comment": "Request types and their approval configuration"},
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False, comment="Template name")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Description")
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="Catalog category")

    requires_approval: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, comment="Whether requests pass through approval steps"
    )
    is_vacation_request: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, comment="Approved requests consume vacation days"
    )
    passing_score: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, comment="Default quiz passing score (percent)"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, comment="Available for new submissions"
    )
    created_by_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, comment="Author"
    )

    step_templates: Mapped[List["ApprovalStepTemplate"]] = relationship(
        "ApprovalStepTemplate",
        order_by="ApprovalStepTemplate.step_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    quiz_questions: Mapped[List["QuizQuestion"]] = relationship(
        "QuizQuestion",
        order_by="QuizQuestion.order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class ApprovalStepTemplate(TimestampModel):
    """
    One ordinal position in a template.

    ``approver_type`` selects which payload column is meaningful:
    ``approver_role`` for Role, ``approver_user_id`` for SpecificUser,
    ``approver_group_id`` for UserGroup and none for Submitter.
    """

    __tablename__ = "approval_step_templates"
    __table_args__ = (
        UniqueConstraint("template_id", "step_order", name="uq_step_template_order"),
        CheckConstraint("step_order >= 1", name="ck_step_template_order_positive"),
        Index("ix_step_template_template_id", "template_id"),
    )

    template_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("request_templates.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owning template",
    )
    step_order: Mapped[int] = mapped_column(Integer, nullable=False, comment="1-based position")
    approver_type: Mapped[ApproverType] = mapped_column(
        enum_type(ApproverType, "approver_type_enum"),
        nullable=False,
        comment="Approver resolution strategy",
    )
    approver_role: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="Role name")
    approver_user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, comment="Specific user")
    approver_group_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, comment="User group")
    requires_quiz: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, comment="Approver must pass the quiz"
    )
    passing_score: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, comment="Step-specific quiz passing score"
    )


class QuizQuestion(TimestampModel):
    """
    Quiz question attached to a template, optionally scoped to one step.

    ``options`` holds a list of ``{"value", "label", "is_correct"}`` objects.
    """

    __tablename__ = "quiz_questions"
    __table_args__ = (Index("ix_quiz_question_template_id", "template_id"),)

    template_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("request_templates.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owning template",
    )
    step_template_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("approval_step_templates.id", ondelete="CASCADE"),
        nullable=True,
        comment="Step the question belongs to; template-wide when empty",
    )
    question: Mapped[str] = mapped_column(Text, nullable=False, comment="Question text")
    options: Mapped[List[Any]] = mapped_column(JSON, nullable=False, default=list, comment="Answer options")
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Display order")

    step_template: Mapped[Optional["ApprovalStepTemplate"]] = relationship("ApprovalStepTemplate")

    @property
    def correct_values(self) -> List[str]:
        return [str(o.get("value")) for o in (self.options or []) if o.get("is_correct")]
