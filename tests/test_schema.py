import pytest
from datetime import date, time
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import func, inspect, select, text
from sqlalchemy.exc import IntegrityError

from medicare.domain.appointments.models import Appointment, AppointmentStatus
from medicare.domain.directory.models import Category, User, UserRole
from medicare.domain.schema.manager import SchemaManager, MANAGED_TABLES
from medicare.infrastructure.database import create_db_engine

from conftest import NOW, fake_hasher

TABLES = {"users", "categories", "doctors", "appointments"}
ROOT = Path(__file__).resolve().parents[1]


def row_counts(engine) -> dict:
    with engine.connect() as conn:
        return {
            table.name: conn.scalar(select(func.count()).select_from(table))
            for table in MANAGED_TABLES
        }


def insert_booked(conn, patient_id: int, doctor_id: int, status: str = "booked"):
    conn.execute(Appointment.__table__.insert().values(
        patient_id=patient_id,
        doctor_id=doctor_id,
        appointment_date=date(2026, 3, 3),
        appointment_time=time(9, 0),
        reason="Raw insert",
        status=status,
        created_at=NOW,
        updated_at=NOW,
    ))


@pytest.mark.integration
class TestSchemaManager:
    """Create, seed, reset and clear the store."""

    def test_ensure_schema_is_idempotent(self, schema_manager: SchemaManager, bare_engine) -> None:
        assert schema_manager.ensure_schema() is True
        assert TABLES <= set(inspect(bare_engine).get_table_names())

        schema_manager.seed_defaults()
        before = row_counts(bare_engine)

        assert schema_manager.ensure_schema() is False
        assert row_counts(bare_engine) == before

    def test_partial_unique_index_created(self, schema_manager: SchemaManager, bare_engine) -> None:
        schema_manager.ensure_schema()

        indexes = {ix["name"]: ix for ix in inspect(bare_engine).get_indexes("appointments")}
        assert indexes["uq_appointments_booked_slot"]["unique"]

    def test_seed_defaults_on_fresh_store(self, schema_manager: SchemaManager, bare_engine) -> None:
        schema_manager.ensure_schema()

        summary = schema_manager.seed_defaults()

        assert summary == {"categories": 10, "doctors": 10, "admin_created": True}
        counts = row_counts(bare_engine)
        assert counts == {"users": 1, "categories": 10, "doctors": 10, "appointments": 0}

        with bare_engine.connect() as conn:
            admin = conn.execute(select(User.__table__)).mappings().one()
            assert admin["username"] == "admin"
            assert admin["role"] == UserRole.ADMIN.value
            assert admin["password_hash"] == fake_hasher("admin123")
            stored = conn.execute(
                text("SELECT available_days, available_hours FROM doctors WHERE name = :name"),
                {"name": "Dr. Robert Wilson"}
            ).one()
            assert tuple(stored) == ("Tue,Thu", "09:00-15:00")

    def test_seed_is_repeatable(self, schema_manager: SchemaManager, bare_engine) -> None:
        schema_manager.initialize()

        summary = schema_manager.seed_defaults()

        assert summary == {"categories": 0, "doctors": 0, "admin_created": False}
        assert row_counts(bare_engine)["categories"] == 10

    def test_seed_without_sample_doctors(self, schema_manager: SchemaManager, bare_engine) -> None:
        schema_manager.ensure_schema()

        schema_manager.seed_defaults(include_sample_doctors=False)

        assert row_counts(bare_engine)["doctors"] == 0

    def test_populated_store_without_admin_gets_exactly_one(self, schema_manager, bare_engine) -> None:
        schema_manager.initialize()
        with bare_engine.begin() as conn:
            conn.execute(User.__table__.delete())
            conn.execute(User.__table__.insert().values(
                username="pat", email="pat@example.com", password_hash="x",
                role=UserRole.PATIENT.value, is_active=True
            ))

        assert schema_manager.seed_defaults()["admin_created"] is True
        assert schema_manager.seed_defaults()["admin_created"] is False

        with bare_engine.connect() as conn:
            admins = conn.scalar(
                select(func.count()).select_from(User.__table__).where(User.__table__.c.role == "admin")
            )
        assert admins == 1
        assert row_counts(bare_engine)["categories"] == 10

    def test_deactivated_default_admin_is_reactivated(self, schema_manager, bare_engine) -> None:
        schema_manager.initialize()
        with bare_engine.begin() as conn:
            conn.execute(text("UPDATE users SET is_active = :off WHERE role = 'admin'"), {"off": False})

        assert schema_manager.seed_defaults()["admin_created"] is True

        with bare_engine.connect() as conn:
            rows = conn.execute(text("SELECT username, is_active FROM users WHERE role = 'admin'")).all()
        assert [(row.username, bool(row.is_active)) for row in rows] == [("admin", True)]

    def test_deactivated_other_admin_does_not_count(self, schema_manager, bare_engine) -> None:
        schema_manager.ensure_schema()
        with bare_engine.begin() as conn:
            conn.execute(User.__table__.insert().values(
                username="former", email="former@example.com", password_hash="x",
                role=UserRole.ADMIN.value, is_active=False
            ))

        assert schema_manager.seed_defaults()["admin_created"] is True

        with bare_engine.connect() as conn:
            active = conn.scalar(text("SELECT username FROM users WHERE role = 'admin' AND is_active = :on"),
                                 {"on": True})
            admins = conn.scalar(text("SELECT COUNT(*) FROM users WHERE role = 'admin'"))
        assert active == "admin"
        assert admins == 2

    def test_clear_keeps_tables(self, schema_manager: SchemaManager, bare_engine) -> None:
        schema_manager.initialize()

        schema_manager.clear()

        assert TABLES <= set(inspect(bare_engine).get_table_names())
        assert set(row_counts(bare_engine).values()) == {0}

    def test_reset_restores_seed_data(self, schema_manager: SchemaManager, bare_engine) -> None:
        schema_manager.initialize()
        with bare_engine.begin() as conn:
            conn.execute(Category.__table__.insert().values(name="Extra", is_active=True))

        summary = schema_manager.reset()

        assert summary["categories"] == 10
        assert row_counts(bare_engine) == {"users": 1, "categories": 10, "doctors": 10, "appointments": 0}

    def test_health(self, schema_manager: SchemaManager) -> None:
        schema_manager.initialize()

        report = schema_manager.health()

        assert report["status"] == "healthy"
        assert report["tables"]["doctors"] == 10
        assert report["timestamp"] == NOW.isoformat()

    def test_health_reports_unreachable_store(self, tmp_path, lock, clock) -> None:
        broken = create_db_engine(f"sqlite:///{tmp_path / 'missing' / 'nowhere.db'}")
        report = SchemaManager(broken, lock=lock, clock=clock).health()

        assert report["status"] == "unhealthy"
        assert report["error"]


@pytest.mark.integration
class TestStorageGuard:
    """The store itself refuses a second booked row for one slot."""

    def test_raw_duplicate_booked_row_rejected(self, schema_manager: SchemaManager, bare_engine) -> None:
        schema_manager.initialize()
        with bare_engine.begin() as conn:
            conn.execute(User.__table__.insert().values(
                id=50, username="pat", email="pat@example.com", password_hash="x",
                role=UserRole.PATIENT.value, is_active=True
            ))
            insert_booked(conn, 50, 1)

        with pytest.raises(IntegrityError):
            with bare_engine.begin() as conn:
                insert_booked(conn, 50, 1)

        # Non-booked rows may share the slot.
        with bare_engine.begin() as conn:
            insert_booked(conn, 50, 1, status=AppointmentStatus.CANCELLED.value)
            insert_booked(conn, 50, 1, status=AppointmentStatus.COMPLETED.value)

        with bare_engine.connect() as conn:
            booked = conn.scalar(
                select(func.count()).select_from(Appointment.__table__)
                .where(Appointment.__table__.c.status == "booked")
            )
        assert booked == 1

    def test_unknown_status_rejected(self, schema_manager: SchemaManager, bare_engine) -> None:
        schema_manager.initialize()
        with bare_engine.begin() as conn:
            conn.execute(User.__table__.insert().values(
                id=50, username="pat", email="pat@example.com", password_hash="x",
                role=UserRole.PATIENT.value, is_active=True
            ))

        with pytest.raises(IntegrityError):
            with bare_engine.begin() as conn:
                insert_booked(conn, 50, 1, status="postponed")


@pytest.mark.integration
class TestMigrations:
    """The Alembic revision builds the same schema."""

    def test_upgrade_head_creates_guarded_schema(self, tmp_path) -> None:
        url = f"sqlite:///{tmp_path / 'migrated.db'}"
        config = Config(str(ROOT / "alembic.ini"))
        config.set_main_option("script_location", str(ROOT / "alembic"))
        config.set_main_option("sqlalchemy.url", url)

        command.upgrade(config, "head")

        engine = create_db_engine(url)
        try:
            inspector = inspect(engine)
            assert TABLES <= set(inspector.get_table_names())
            indexes = {ix["name"]: ix for ix in inspector.get_indexes("appointments")}
            assert indexes["uq_appointments_booked_slot"]["unique"]
        finally:
            engine.dispose()
