from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional
import logging
import threading

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from medicare.core.clock import Clock
from medicare.core.config import settings
from medicare.core.exceptions import (
    BaseCustomException, DeadlineExceededError, UnavailableError, handle_database_error
)

logger = logging.getLogger(__name__)

# Base model
Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine with settings suited to the backend"""
    if database_url.lower().startswith("sqlite"):
        engine = create_engine(
            database_url,
            echo=echo,
            # Writers wait for each other instead of failing immediately.
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_engine(
        database_url,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=echo,
    )


def create_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(
        bind=bind,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False
    )


engine = create_db_engine(settings.DATABASE_URL, echo=settings.DEBUG)
SessionLocal = create_session_factory(engine)


def get_db() -> Iterator[Session]:
    """Dependency to get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class MaintenanceLock:
    """Reader/writer gate between ordinary mutations and destructive DDL.

    Mutations enter in shared mode and fail fast with ``UnavailableError``
    while maintenance runs. Maintenance enters exclusively and waits for
    in-flight mutations to drain.
    """

    def __init__(self):
        self._cond = threading.Condition()
        self._active = 0
        self._maintenance = False

    @property
    def in_maintenance(self) -> bool:
        with self._cond:
            return self._maintenance

    @contextmanager
    def shared(self) -> Iterator[None]:
        with self._cond:
            if self._maintenance:
                raise UnavailableError(
                    "Store is under maintenance, retry shortly",
                    error_code="MAINTENANCE_IN_PROGRESS"
                )
            self._active += 1
        try:
            yield
        finally:
            with self._cond:
                self._active -= 1
                if self._active == 0:
                    self._cond.notify_all()

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        with self._cond:
            while self._maintenance:
                self._cond.wait()
            self._maintenance = True
            while self._active:
                self._cond.wait()
        logger.warning("Maintenance lock acquired")
        try:
            yield
        finally:
            with self._cond:
                self._maintenance = False
                self._cond.notify_all()
            logger.warning("Maintenance lock released")


maintenance_lock = MaintenanceLock()


def check_deadline(clock: Clock, deadline: Optional[datetime], operation: str) -> None:
    if deadline is not None and clock.now() >= deadline:
        raise DeadlineExceededError(
            f"Deadline exceeded during {operation}",
            details={"operation": operation, "deadline": deadline.isoformat()}
        )


@contextmanager
def unit_of_work(
    db: Session,
    clock: Clock,
    operation: str,
    deadline: Optional[datetime] = None,
    lock: Optional[MaintenanceLock] = None,
) -> Iterator[Session]:
    """Run one mutating operation as a single transaction.

    Commits on success; rolls back on any failure, including a deadline that
    passes before commit. ``IntegrityError`` is re-raised untouched so the
    caller can translate the specific constraint; other driver failures
    become ``UnavailableError``/``DeadlineExceededError``.
    """
    with (lock or maintenance_lock).shared():
        check_deadline(clock, deadline, operation)
        try:
            yield db
            check_deadline(clock, deadline, operation)
            db.commit()
        except (BaseCustomException, IntegrityError):
            db.rollback()
            raise
        except DBAPIError as exc:
            db.rollback()
            raise handle_database_error(exc, operation) from exc
        except Exception:
            db.rollback()
            raise
