"""
Approver resolution.

Turns an approval step definition plus the submitter's identity into one
concrete approver id. Resolution only reads the directory.
"""

from typing import Iterable, List, Optional, Set

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from hrportal.core.exceptions import UnresolvableApproverError
from hrportal.core.logging import get_logger
from hrportal.models.base import ApproverType
from hrportal.models.directory import User
from hrportal.models.workflow import ApprovalStepTemplate
from hrportal.schemas.workflow.approver import (
    ApproverSpec,
    RoleApprover,
    SpecificUserApprover,
    SubmitterApprover,
    UserGroupApprover,
)
from hrportal.services.directory.directory_lookup import DirectoryLookup

_approver_adapter = TypeAdapter(ApproverSpec)

MAX_SUPERVISOR_DEPTH = 32


def approver_spec_from_template(step_template: ApprovalStepTemplate) -> ApproverSpec:
    """
    Build the tagged approver spec from a step template's columns.

    Raises:
        UnresolvableApproverError: If the payload for the approver type is missing
    """
    data = {"approver_type": step_template.approver_type}
    if step_template.approver_type == ApproverType.ROLE:
        data["role"] = step_template.approver_role or ""
    elif step_template.approver_type == ApproverType.SPECIFIC_USER:
        data["user_id"] = step_template.approver_user_id or ""
    elif step_template.approver_type == ApproverType.USER_GROUP:
        data["group_id"] = step_template.approver_group_id or ""
    try:
        return _approver_adapter.validate_python(data)
    except PydanticValidationError as e:
        raise UnresolvableApproverError(
            f"Step {step_template.step_order} is misconfigured for approver type "
            f"{step_template.approver_type.value}",
            approver_type=step_template.approver_type.value,
            step_order=step_template.step_order,
        ) from e


def _sorted_users(users: Iterable[User]) -> List[User]:
    return sorted(users, key=lambda u: (u.last_name, u.first_name, u.id))


class ApproverResolver:
    """
    Resolve approver specs against a directory snapshot.

    Role steps are resolved within the submitter's visibility scope, in order:
    the supervisor chain, the head of the submitter's department, other
    holders in that department, then holders anywhere in the organisation.
    The submitter never approves their own Role step.
    """

    def __init__(self, directory: DirectoryLookup):
        self.directory = directory
        self._logger = get_logger(self.__class__.__name__)

    def resolve(self, spec: ApproverSpec, submitter: User, step_order: Optional[int] = None) -> str:
        """
        Returns:
            Id of the single approver for the step

        Raises:
            UnresolvableApproverError: If no eligible approver exists
        """
        if isinstance(spec, RoleApprover):
            approver = self._resolve_role(spec.role, submitter, step_order)
        elif isinstance(spec, SpecificUserApprover):
            approver = self._resolve_specific_user(spec.user_id, step_order)
        elif isinstance(spec, UserGroupApprover):
            approver = self._resolve_group(spec.group_id, step_order)
        elif isinstance(spec, SubmitterApprover):
            approver = submitter
        else:
            raise TypeError(f"Unknown approver spec: {type(spec).__name__}")

        self._logger.debug(
            f"Resolved step {step_order} ({spec.approver_type.value}) to {approver.id}",
            extra={"step_order": step_order, "submitter_id": submitter.id},
        )
        return approver.id

    def _resolve_role(self, role: str, submitter: User, step_order: Optional[int]) -> User:
        def eligible(user: Optional[User]) -> bool:
            return user is not None and user.is_active and user.id != submitter.id and user.has_role(role)

        # Supervisor chain
        seen: Set[str] = {submitter.id}
        current = submitter
        for _ in range(MAX_SUPERVISOR_DEPTH):
            if not current.supervisor_id or current.supervisor_id in seen:
                break
            seen.add(current.supervisor_id)
            current = self.directory.get_user(current.supervisor_id)
            if current is None:
                break
            if eligible(current):
                return current

        if submitter.department_id:
            department = self.directory.get_department(submitter.department_id)
            if department is not None and department.head_id:
                head = self.directory.get_user(department.head_id)
                if eligible(head):
                    return head

            for user in _sorted_users(self.directory.get_users_by_role(role, submitter.department_id)):
                if eligible(user):
                    return user

        for user in _sorted_users(self.directory.get_users_by_role(role, None)):
            if eligible(user):
                return user

        raise UnresolvableApproverError(
            f"No active user holds the role '{role}' for this submitter",
            approver_type=ApproverType.ROLE.value,
            step_order=step_order,
        )

    def _resolve_specific_user(self, user_id: str, step_order: Optional[int]) -> User:
        user = self.directory.get_user(user_id)
        if user is None:
            raise UnresolvableApproverError(
                f"Approver user {user_id} does not exist",
                approver_type=ApproverType.SPECIFIC_USER.value,
                step_order=step_order,
            )
        if not user.is_active:
            raise UnresolvableApproverError(
                f"Approver user {user_id} is inactive",
                approver_type=ApproverType.SPECIFIC_USER.value,
                step_order=step_order,
            )
        return user

    def _resolve_group(self, group_id: str, step_order: Optional[int]) -> User:
        group = self.directory.get_group(group_id)
        if group is None or not group.is_active:
            raise UnresolvableApproverError(
                f"Approver group {group_id} does not exist or is inactive",
                approver_type=ApproverType.USER_GROUP.value,
                step_order=step_order,
            )
        members = _sorted_users(m for m in self.directory.get_group_members(group_id) if m.is_active)
        if not members:
            raise UnresolvableApproverError(
                f"Approver group {group.name} has no active members",
                approver_type=ApproverType.USER_GROUP.value,
                step_order=step_order,
            )
        return members[0]
