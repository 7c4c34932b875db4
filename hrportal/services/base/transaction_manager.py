"""
Transaction manager for service layer units of work.

Each ``start()`` opens a fresh session from the session factory, so no
session state survives between engine calls.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterator, List, Optional, TypeVar
from uuid import uuid4

from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from hrportal.core.exceptions import ConcurrentUpdateError
from hrportal.core.logging import get_logger, transaction_id


T = TypeVar("T")


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TransactionContext:
    """Context information for one unit of work."""

    session: Session
    transaction_id: str = field(default_factory=lambda: str(uuid4()))
    started_at: datetime = field(default_factory=_now)
    committed: bool = False
    rolled_back: bool = False
    completed_at: Optional[datetime] = None
    error: Optional[Exception] = None
    after_commit_callbacks: List[Callable[[], None]] = field(default_factory=list)

    def after_commit(self, callback: Callable[[], None]) -> None:
        """Register a side effect that runs only once the commit succeeded."""
        self.after_commit_callbacks.append(callback)

    @property
    def duration_ms(self) -> Optional[float]:
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds() * 1000
        return None


class TransactionManager:
    """
    Unit-of-work management with:
    - one session per transaction
    - commit on success, rollback on any exception
    - after-commit callbacks whose failures never undo the commit
    - bounded re-runs of a unit that lost an optimistic-lock race
    """

    def __init__(self, session_factory: sessionmaker, retry_attempts: int = 3):
        self.session_factory = session_factory
        self.retry_attempts = retry_attempts
        self._logger = get_logger(self.__class__.__name__)

    @contextmanager
    def start(self) -> Iterator[TransactionContext]:
        """
        Start a new unit of work.

        Example:
            with transaction_manager.start() as ctx:
                repo = RequestRepository(ctx.session)
                ...
        """
        ctx = TransactionContext(session=self.session_factory())
        token = transaction_id.set(ctx.transaction_id)
        self._logger.debug(f"Transaction started: {ctx.transaction_id}")
        try:
            yield ctx
            self._commit(ctx)
        except Exception as exc:
            ctx.error = exc
            self._rollback(ctx)
            raise
        finally:
            ctx.session.close()
            ctx.completed_at = _now()
            transaction_id.reset(token)
            self._logger.debug(
                f"Transaction completed: {ctx.transaction_id} "
                f"({'committed' if ctx.committed else 'rolled back'}) in {ctx.duration_ms:.2f}ms"
            )

        self._run_after_commit(ctx)

    def run(self, work: Callable[[TransactionContext], T]) -> T:
        """
        Run ``work`` in a unit of work, starting over on ``ConcurrentUpdateError``.

        Every attempt gets a fresh session and re-reads its rows; callbacks
        registered by a rolled-back attempt never run.
        """
        attempt = 1
        while True:
            try:
                with self.start() as ctx:
                    return work(ctx)
            except ConcurrentUpdateError as e:
                if attempt >= self.retry_attempts:
                    raise
                self._logger.warning(
                    f"Concurrent update (attempt {attempt} of {self.retry_attempts}), retrying: {e}"
                )
                attempt += 1

    @staticmethod
    def _commit(ctx: TransactionContext) -> None:
        try:
            ctx.session.commit()
        except StaleDataError as e:
            raise ConcurrentUpdateError(
                "Record was changed by another action", {"transaction_id": ctx.transaction_id}
            ) from e
        ctx.committed = True

    def _rollback(self, ctx: TransactionContext) -> None:
        try:
            ctx.session.rollback()
            ctx.rolled_back = True
        except Exception as e:
            # Keep the original error; a failed rollback must not mask it
            self._logger.warning(f"Rollback failed: {e}")

    def _run_after_commit(self, ctx: TransactionContext) -> None:
        for callback in ctx.after_commit_callbacks:
            try:
                callback()
            except Exception as e:
                self._logger.error(
                    f"After-commit callback failed: {e}",
                    exc_info=True,
                    extra={"transaction_id": ctx.transaction_id},
                )
