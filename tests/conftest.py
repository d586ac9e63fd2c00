import pytest
from datetime import date, datetime, time
from decimal import Decimal
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from medicare.main import app
from medicare.api import deps
from medicare.core.clock import FixedClock
from medicare.core.permissions import Caller
from medicare.core.security import create_access_token
from medicare.domain.appointments.models import Appointment  # noqa: F401
from medicare.domain.appointments.policy import BookingWindow
from medicare.domain.appointments.service import (
    AppointmentService, AvailabilityChecker, BookingService,
    LifecycleManager, ReportingService
)
from medicare.domain.directory.models import Category, Doctor, User, UserRole
from medicare.domain.directory.service import DirectoryService
from medicare.domain.schema.manager import SchemaManager
from medicare.infrastructure.database import (
    Base, MaintenanceLock, create_db_engine, create_session_factory, get_db
)


# Monday 2026-03-02, 08:00; the doctor fixture works Mon-Fri 09:00-17:00.
NOW = datetime(2026, 3, 2, 8, 0)
TODAY = NOW.date()
TUESDAY = date(2026, 3, 3)
SATURDAY = date(2026, 3, 7)
NINE = time(9, 0)

FAKE_HASH = "$2b$12$testhashtesthashtesthashtesthashtesthashtesthashtestha"


def fake_hasher(password: str) -> str:
    return f"hashed:{password}"


@pytest.fixture(scope="function")
def engine(tmp_path) -> Generator[Engine, None, None]:
    """A fresh file-backed SQLite database per test."""
    test_engine = create_db_engine(f"sqlite:///{tmp_path / 'scheduling.db'}")
    Base.metadata.create_all(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture(scope="function")
def bare_engine(tmp_path) -> Generator[Engine, None, None]:
    """An engine pointing at an empty database with no tables."""
    test_engine = create_db_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    yield test_engine
    test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine: Engine) -> sessionmaker:
    return create_session_factory(engine)


@pytest.fixture(scope="function")
def db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture(scope="function")
def lock() -> MaintenanceLock:
    return MaintenanceLock()


@pytest.fixture(scope="function")
def service_kwargs(clock: FixedClock, lock: MaintenanceLock) -> dict:
    return {"clock": clock, "lock": lock, "window": BookingWindow(lookahead_months=3), "slot_minutes": 30}


# ==================== Seeded records ====================

def _add_user(db: Session, username: str, role: UserRole, is_active: bool = True) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=FAKE_HASH,
        role=role,
        full_name=username.title(),
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture(scope="function")
def admin_user(db_session: Session) -> User:
    return _add_user(db_session, "admin", UserRole.ADMIN)


@pytest.fixture(scope="function")
def patient_user(db_session: Session) -> User:
    return _add_user(db_session, "alice", UserRole.PATIENT)


@pytest.fixture(scope="function")
def other_patient(db_session: Session) -> User:
    return _add_user(db_session, "bob", UserRole.PATIENT)


@pytest.fixture(scope="function")
def category(db_session: Session) -> Category:
    category = Category(name="Cardiology", description="Heart specialists")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope="function")
def doctor(db_session: Session, category: Category) -> Doctor:
    doctor = Doctor(
        name="Dr. John Smith",
        specialty="Cardiologist",
        category_id=category.id,
        experience_years=15,
        consultation_fee=Decimal("150.00"),
        available_days="Mon,Tue,Wed,Thu,Fri",
        available_hours="09:00-17:00",
    )
    db_session.add(doctor)
    db_session.commit()
    return doctor


@pytest.fixture(scope="function")
def second_doctor(db_session: Session, category: Category) -> Doctor:
    doctor = Doctor(
        name="Dr. Emily Davis",
        specialty="Cardiologist",
        category_id=category.id,
        experience_years=10,
        consultation_fee=Decimal("120.00"),
        available_days="Mon,Wed,Fri",
        available_hours="10:00-16:00",
    )
    db_session.add(doctor)
    db_session.commit()
    return doctor


@pytest.fixture(scope="function")
def admin_caller(admin_user: User) -> Caller:
    return Caller(user_id=admin_user.id, role=UserRole.ADMIN)


@pytest.fixture(scope="function")
def patient_caller(patient_user: User) -> Caller:
    return Caller(user_id=patient_user.id, role=UserRole.PATIENT)


@pytest.fixture(scope="function")
def other_caller(other_patient: User) -> Caller:
    return Caller(user_id=other_patient.id, role=UserRole.PATIENT)


# ==================== Services ====================

@pytest.fixture(scope="function")
def checker(db_session: Session, service_kwargs: dict) -> AvailabilityChecker:
    return AvailabilityChecker(db_session, **service_kwargs)


@pytest.fixture(scope="function")
def booking(db_session: Session, service_kwargs: dict) -> BookingService:
    return BookingService(db_session, **service_kwargs)


@pytest.fixture(scope="function")
def lifecycle(db_session: Session, service_kwargs: dict) -> LifecycleManager:
    return LifecycleManager(db_session, **service_kwargs)


@pytest.fixture(scope="function")
def appointments(db_session: Session, service_kwargs: dict) -> AppointmentService:
    return AppointmentService(db_session, **service_kwargs)


@pytest.fixture(scope="function")
def reporting(db_session: Session, service_kwargs: dict) -> ReportingService:
    return ReportingService(db_session, **service_kwargs)


@pytest.fixture(scope="function")
def directory(db_session: Session, clock: FixedClock, lock: MaintenanceLock) -> DirectoryService:
    return DirectoryService(db_session, clock=clock, lock=lock)


@pytest.fixture(scope="function")
def schema_manager(bare_engine: Engine, lock: MaintenanceLock, clock: FixedClock) -> SchemaManager:
    return SchemaManager(bare_engine, lock=lock, hasher=fake_hasher, clock=clock)


@pytest.fixture(scope="function")
def booked(booking: BookingService, patient_caller: Caller, patient_user: User, doctor: Doctor) -> Appointment:
    """A booked appointment for alice with Dr. Smith on Tuesday 09:00."""
    return booking.book(patient_caller, patient_user.id, doctor.id, TUESDAY, NINE, "Chest pain")


# ==================== HTTP ====================

@pytest.fixture(scope="function")
def client(
    engine: Engine,
    session_factory: sessionmaker,
    clock: FixedClock,
    lock: MaintenanceLock
) -> Generator[TestClient, None, None]:
    """Create a test client with database, clock and lock overrides."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_clock] = lambda: clock
    app.dependency_overrides[deps.get_maintenance_lock] = lambda: lock
    app.dependency_overrides[deps.get_schema_manager] = lambda: SchemaManager(
        engine, lock=lock, hasher=fake_hasher, clock=clock
    )

    yield TestClient(app)

    app.dependency_overrides.clear()


def make_token(user: User) -> str:
    return create_access_token(str(user.id), {"role": user.role.value})


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {make_token(user)}"}


@pytest.fixture(scope="function")
def admin_headers(admin_user: User) -> dict:
    return auth_headers(admin_user)


@pytest.fixture(scope="function")
def patient_headers(patient_user: User) -> dict:
    return auth_headers(patient_user)


@pytest.fixture(scope="function")
def other_headers(other_patient: User) -> dict:
    return auth_headers(other_patient)


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "concurrency: mark test as exercising concurrent callers"
    )
