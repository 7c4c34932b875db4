"""Shared fixtures: a file-backed SQLite database, explicit settings and directory builders."""

import logging
from datetime import date
from types import SimpleNamespace
from typing import Iterable, List, Optional

import pytest
import structlog

from hrportal.config.settings import (
    CacheSettings,
    DatabaseSettings,
    LoggingSettings,
    Settings,
    VacationSettings,
    WorkflowSettings,
)
from hrportal.db.session import create_db_engine, create_session_factory, init_db
from hrportal.models.directory import Department, RoleGroup, RoleGroupMember, User, UserRole
from hrportal.models.holiday import Holiday
from hrportal.services.base.cache_service import CacheService, InMemoryCacheBackend
from hrportal.services.base.notification_dispatcher import NotificationMessage
from hrportal.services.engine import ApprovalEngine

# Monday 4 March 2030 to Wednesday 6 March 2030
MONDAY = date(2030, 3, 4)
WEDNESDAY = date(2030, 3, 6)
FRIDAY = date(2030, 3, 8)
SATURDAY = date(2030, 3, 2)


class RecordingChannel:
    """Notification channel that keeps every delivered message."""

    def __init__(self):
        self.messages: List[NotificationMessage] = []

    def deliver(self, message: NotificationMessage) -> None:
        self.messages.append(message)

    def for_user(self, user_id: str) -> List[NotificationMessage]:
        return [m for m in self.messages if m.user_id == user_id]


class FailingChannel:
    def deliver(self, message: NotificationMessage) -> None:
        raise ConnectionError("smtp relay unavailable")


class DirectoryBuilder:
    """Creates directory rows in their own committed sessions and returns ids."""

    def __init__(self, session_factory):
        self.session_factory = session_factory
        self._seq = 0

    def _save(self, *entities):
        with self.session_factory() as session:
            session.add_all(entities)
            session.commit()
        return entities[0].id

    def department(self, name: str, head_id: Optional[str] = None) -> str:
        return self._save(Department(name=name, head_id=head_id))

    def set_head(self, department_id: str, user_id: str) -> None:
        with self.session_factory() as session:
            session.get(Department, department_id).head_id = user_id
            session.commit()

    def user(
        self,
        first_name: str,
        last_name: str,
        roles: Iterable[str] = (),
        department_id: Optional[str] = None,
        supervisor_id: Optional[str] = None,
        **fields,
    ) -> str:
        self._seq += 1
        values = dict(
            email=f"{first_name.lower()}.{last_name.lower()}.{self._seq}@example.com",
            first_name=first_name,
            last_name=last_name,
            department_id=department_id,
            supervisor_id=supervisor_id,
            is_active=True,
            is_admin=False,
            annual_vacation_days=26,
            vacation_days_used=0,
            on_demand_vacation_days_used=0,
            circumstantial_leave_days_used=0,
            carried_over_vacation_days=0,
        )
        values.update(fields)
        user = User(**values)
        user.roles = [UserRole(role_name=r) for r in roles]
        return self._save(user)

    def update_user(self, user_id: str, **fields) -> None:
        with self.session_factory() as session:
            user = session.get(User, user_id)
            for key, value in fields.items():
                setattr(user, key, value)
            session.commit()

    def group(self, name: str, member_ids: Iterable[str] = (), is_active: bool = True) -> str:
        group_id = self._save(RoleGroup(name=name, is_active=is_active))
        for user_id in member_ids:
            self._save(RoleGroupMember(group_id=group_id, user_id=user_id))
        return group_id

    def holiday(self, day: date, name: str = "Public holiday") -> str:
        return self._save(Holiday(holiday_date=day, name=name))

    def load_user(self, user_id: str) -> User:
        with self.session_factory() as session:
            return session.get(User, user_id)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        ENVIRONMENT="test",
        database=DatabaseSettings(DATABASE_URL=f"sqlite:///{tmp_path / 'hrportal.db'}"),
        cache=CacheSettings(CACHE_BACKEND="memory", HOLIDAY_CACHE_TTL_SECONDS=60),
        logging=LoggingSettings(LOG_LEVEL="DEBUG"),
        workflow=WorkflowSettings(),
        vacation=VacationSettings(),
    )


@pytest.fixture
def db_engine(settings):
    engine = create_db_engine(settings.database)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def engine(session_factory, settings, channel):
    cache = CacheService(InMemoryCacheBackend(), namespace="test", default_ttl=60)
    return ApprovalEngine(session_factory, settings, cache=cache, channels=[channel])


@pytest.fixture
def directory(session_factory):
    return DirectoryBuilder(session_factory)


@pytest.fixture
def restore_logging():
    """Undo root logger and structlog changes made by ``setup_logging``."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.fixture
def org(directory):
    """
    Operations department headed by a Manager who supervises two employees,
    an HR department with one HR holder, and an administrator.
    """
    operations = directory.department("Operations")
    human_resources = directory.department("Human Resources")
    manager = directory.user("Mia", "Manager", roles=["Manager"], department_id=operations)
    directory.set_head(operations, manager)
    hr = directory.user("Harry", "Resources", roles=["HR"], department_id=human_resources)
    directory.set_head(human_resources, hr)
    employee = directory.user("Eve", "Employee", department_id=operations, supervisor_id=manager)
    colleague = directory.user("Carl", "Colleague", department_id=operations, supervisor_id=manager)
    admin = directory.user("Ada", "Admin", department_id=human_resources, is_admin=True)
    return SimpleNamespace(
        operations=operations,
        human_resources=human_resources,
        manager=manager,
        hr=hr,
        employee=employee,
        colleague=colleague,
        admin=admin,
    )


def role_step(order: int, role: str, **extra) -> dict:
    return {"step_order": order, "approver": {"approver_type": "Role", "role": role}, **extra}


def create_template(engine, steps, name="Equipment request", **fields) -> str:
    payload = {"name": name, "steps": steps, **fields}
    result = engine.create_template(payload)
    assert result.is_success, result.error
    return result.data.id


@pytest.fixture
def two_step_template(engine, org):
    return create_template(engine, [role_step(1, "Manager"), role_step(2, "HR")])


@pytest.fixture
def vacation_template(engine, org):
    return create_template(
        engine,
        [role_step(1, "Manager"), role_step(2, "HR")],
        name="Vacation",
        is_vacation_request=True,
    )


def vacation_form(start: date = MONDAY, end: date = WEDNESDAY, leave_type: str = "Annual", **extra) -> dict:
    return {"leave_type": leave_type, "start_date": start.isoformat(), "end_date": end.isoformat(), **extra}
