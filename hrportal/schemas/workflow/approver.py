"""
Approver specification as a tagged union.

Each variant carries only its own payload; ``approver_type`` is the
discriminator.
"""

from typing import Annotated, Literal, Union

from pydantic import Field

from hrportal.models.base import ApproverType
from hrportal.schemas.common import BaseSchema

__all__ = [
    "RoleApprover",
    "SpecificUserApprover",
    "UserGroupApprover",
    "SubmitterApprover",
    "ApproverSpec",
]


class RoleApprover(BaseSchema):
    approver_type: Literal[ApproverType.ROLE] = ApproverType.ROLE
    role: str = Field(..., min_length=1, max_length=100, description="Role name")


class SpecificUserApprover(BaseSchema):
    approver_type: Literal[ApproverType.SPECIFIC_USER] = ApproverType.SPECIFIC_USER
    user_id: str = Field(..., min_length=1, description="Approving user id")


class UserGroupApprover(BaseSchema):
    approver_type: Literal[ApproverType.USER_GROUP] = ApproverType.USER_GROUP
    group_id: str = Field(..., min_length=1, description="Approving group id")


class SubmitterApprover(BaseSchema):
    """Self-attestation by the submitter."""

    approver_type: Literal[ApproverType.SUBMITTER] = ApproverType.SUBMITTER


ApproverSpec = Annotated[
    Union[RoleApprover, SpecificUserApprover, UserGroupApprover, SubmitterApprover],
    Field(discriminator="approver_type"),
]
