from typing import Dict, List, Optional

import pytest

from hrportal.core.exceptions import UnresolvableApproverError
from hrportal.models.base import ApproverType
from hrportal.models.directory import Department, RoleGroup, User, UserRole
from hrportal.models.workflow import ApprovalStepTemplate
from hrportal.schemas.workflow import RoleApprover, SpecificUserApprover, SubmitterApprover, UserGroupApprover
from hrportal.services.workflow.approver_resolver import ApproverResolver, approver_spec_from_template


def make_user(uid, first, last, roles=(), department_id=None, supervisor_id=None, is_active=True) -> User:
    user = User(
        id=uid,
        first_name=first,
        last_name=last,
        email=f"{uid}@example.com",
        department_id=department_id,
        supervisor_id=supervisor_id,
        is_active=is_active,
    )
    user.roles = [UserRole(user_id=uid, role_name=r) for r in roles]
    return user


class FakeDirectory:
    def __init__(self, users: List[User], departments=(), groups=(), members: Optional[Dict[str, List[str]]] = None):
        self.users = {u.id: u for u in users}
        self.departments = {d.id: d for d in departments}
        self.groups = {g.id: g for g in groups}
        self.members = members or {}

    def get_user(self, user_id):
        return self.users.get(user_id)

    def get_users_by_role(self, role, scope_hint=None):
        return [
            u
            for u in self.users.values()
            if u.is_active and u.has_role(role) and (scope_hint is None or u.department_id == scope_hint)
        ]

    def get_group(self, group_id):
        return self.groups.get(group_id)

    def get_group_members(self, group_id):
        return [self.users[uid] for uid in self.members.get(group_id, [])]

    def get_department(self, department_id):
        return self.departments.get(department_id)


@pytest.fixture
def directory():
    users = [
        make_user("boss", "Bea", "Boss", roles=["Director"], department_id="ops"),
        make_user("aaron", "Al", "Aaron", roles=["Director"], department_id="ops"),
        make_user("mgr", "Mia", "Manager", roles=["Manager"], department_id="ops", supervisor_id="boss"),
        make_user("lead", "Leo", "Lead", department_id="ops", supervisor_id="mgr"),
        make_user("emp", "Eve", "Employee", department_id="ops", supervisor_id="lead"),
        make_user("hr-b", "Hal", "Brown", roles=["HR"], department_id="hr"),
        make_user("hr-a", "Ann", "Adams", roles=["HR"], department_id="hr"),
        make_user("gone", "Gus", "Gone", roles=["HR"], department_id="hr", is_active=False),
    ]
    departments = [Department(id="ops", name="Operations", head_id="boss"), Department(id="hr", name="HR")]
    groups = [RoleGroup(id="it", name="IT desk", is_active=True), RoleGroup(id="empty", name="Empty", is_active=True)]
    members = {"it": ["hr-b", "gone", "hr-a"], "empty": ["gone"]}
    return FakeDirectory(users, departments, groups, members)


@pytest.fixture
def resolver(directory):
    return ApproverResolver(directory)


def test_role_walks_the_supervisor_chain(resolver, directory):
    assert resolver.resolve(RoleApprover(role="manager"), directory.get_user("emp"), 1) == "mgr"


def test_role_falls_back_to_department_head(resolver, directory):
    directory.users["emp"].supervisor_id = None
    assert resolver.resolve(RoleApprover(role="Director"), directory.get_user("emp"), 1) == "boss"


def test_role_falls_back_to_department_holders_in_name_order(resolver, directory):
    directory.departments["ops"].head_id = None
    directory.users["emp"].supervisor_id = None
    assert resolver.resolve(RoleApprover(role="Director"), directory.get_user("emp"), 1) == "aaron"


def test_role_falls_back_to_organisation_in_name_order(resolver, directory):
    assert resolver.resolve(RoleApprover(role="HR"), directory.get_user("emp"), 2) == "hr-a"


def test_role_never_resolves_to_the_submitter(resolver, directory):
    assert resolver.resolve(RoleApprover(role="HR"), directory.get_user("hr-a"), 1) == "hr-b"


def test_role_without_holders_is_unresolvable(resolver, directory):
    with pytest.raises(UnresolvableApproverError) as exc:
        resolver.resolve(RoleApprover(role="Auditor"), directory.get_user("emp"), 3)
    assert exc.value.details["step_order"] == 3
    assert exc.value.details["approver_type"] == ApproverType.ROLE.value


def test_supervisor_cycle_terminates(directory):
    directory.users["boss"].supervisor_id = "emp"
    resolver = ApproverResolver(directory)
    assert resolver.resolve(RoleApprover(role="HR"), directory.get_user("emp"), 1) == "hr-a"


def test_specific_user(resolver, directory):
    assert resolver.resolve(SpecificUserApprover(user_id="hr-b"), directory.get_user("emp")) == "hr-b"


@pytest.mark.parametrize("user_id", ["gone", "missing"])
def test_specific_user_inactive_or_missing(resolver, directory, user_id):
    with pytest.raises(UnresolvableApproverError):
        resolver.resolve(SpecificUserApprover(user_id=user_id), directory.get_user("emp"))


def test_group_picks_first_active_member(resolver, directory):
    assert resolver.resolve(UserGroupApprover(group_id="it"), directory.get_user("emp")) == "hr-a"


@pytest.mark.parametrize("group_id", ["empty", "missing"])
def test_group_without_active_members(resolver, directory, group_id):
    with pytest.raises(UnresolvableApproverError):
        resolver.resolve(UserGroupApprover(group_id=group_id), directory.get_user("emp"))


def test_submitter_resolves_to_submitter(resolver, directory):
    assert resolver.resolve(SubmitterApprover(), directory.get_user("emp")) == "emp"


def test_spec_from_template_columns():
    step = ApprovalStepTemplate(step_order=1, approver_type=ApproverType.USER_GROUP, approver_group_id="it")
    assert approver_spec_from_template(step) == UserGroupApprover(group_id="it")


def test_spec_from_template_with_missing_payload():
    step = ApprovalStepTemplate(step_order=2, approver_type=ApproverType.ROLE, approver_role=None)
    with pytest.raises(UnresolvableApproverError) as exc:
        approver_spec_from_template(step)
    assert exc.value.details["step_order"] == 2


# Routing over the same directory


def step_template(order, approver_type, **payload) -> ApprovalStepTemplate:
    return ApprovalStepTemplate(
        id=f"st-{order}",
        step_order=order,
        approver_type=approver_type,
        requires_quiz=False,
        **payload,
    )


def test_routing_collects_every_unresolvable_step(directory):
    from hrportal.services.workflow.request_routing_service import RequestRoutingService

    routing = RequestRoutingService(ApproverResolver(directory))
    validation = routing.validate_approval_structure(
        "emp",
        [
            step_template(1, ApproverType.ROLE, approver_role="Manager"),
            step_template(2, ApproverType.ROLE, approver_role="Auditor"),
            step_template(3, ApproverType.USER_GROUP, approver_group_id="empty"),
        ],
    )

    assert not validation.is_valid
    assert [e.step_order for e in validation.errors] == [2, 3]
    assert validation.resolved == []


def test_routing_rejects_submitter_only_chain(directory):
    from hrportal.services.workflow.request_routing_service import RequestRoutingService

    routing = RequestRoutingService(ApproverResolver(directory))
    validation = routing.validate_approval_structure("emp", [step_template(1, ApproverType.SUBMITTER)])
    assert not validation.is_valid
    assert "only the submitter" in validation.errors[0].message


def test_routing_builds_steps_with_first_in_review(directory):
    from hrportal.models.base import ApprovalStepStatus
    from hrportal.services.workflow.request_routing_service import RequestRoutingService

    routing = RequestRoutingService(ApproverResolver(directory))
    steps = routing.route(
        "emp",
        [
            step_template(2, ApproverType.ROLE, approver_role="HR"),
            step_template(1, ApproverType.ROLE, approver_role="Manager"),
        ],
    )

    assert [(s.step_order, s.approver_id, s.status) for s in steps] == [
        (1, "mgr", ApprovalStepStatus.IN_REVIEW),
        (2, "hr-a", ApprovalStepStatus.PENDING),
    ]
    assert steps[0].started_at is not None
    assert steps[1].started_at is None


def test_route_raises_with_all_errors(directory):
    from hrportal.core.exceptions import SubmissionRejectedError
    from hrportal.services.workflow.request_routing_service import RequestRoutingService

    routing = RequestRoutingService(ApproverResolver(directory))
    with pytest.raises(SubmissionRejectedError) as exc:
        routing.route("emp", [])
    assert exc.value.errors[0]["code"] == "BUSINESS_RULE_VIOLATION"
