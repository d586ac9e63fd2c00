"""
Schema Manager

Creates, seeds, resets and clears the scheduling store. Every method runs
its statements on a single connection while holding the maintenance lock
exclusively, so no booking can interleave with DDL or bulk deletes.
"""

from datetime import datetime
from typing import Callable, Dict, Any, Optional
import logging

from sqlalchemy import func, inspect, select, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medicare.core.clock import Clock, SystemClock
from medicare.core.config import Settings, settings as default_settings
from medicare.core.security import get_password_hash
from medicare.domain.appointments.models import Appointment
from medicare.domain.directory.models import Category, Doctor, User, UserRole
from medicare.domain.directory.repository import UserRepository
from medicare.domain.schema.seed import DEFAULT_CATEGORIES, SAMPLE_DOCTORS
from medicare.infrastructure.database import Base, MaintenanceLock, maintenance_lock

logger = logging.getLogger(__name__)

# Parent tables first; drops and deletes walk this in reverse.
MANAGED_TABLES = [User.__table__, Category.__table__, Doctor.__table__, Appointment.__table__]


class SchemaManager:
    """Lifecycle operations on the whole store"""

    def __init__(
        self,
        engine: Engine,
        lock: Optional[MaintenanceLock] = None,
        hasher: Callable[[str], str] = get_password_hash,
        clock: Optional[Clock] = None,
        config: Optional[Settings] = None
    ):
        self.engine = engine
        self.lock = lock or maintenance_lock
        self.hasher = hasher
        self.clock = clock or SystemClock()
        self.config = config or default_settings

    # ==================== DDL ====================

    def _create_all(self, conn: Connection) -> bool:
        existing = set(inspect(conn).get_table_names())
        missing = [table.name for table in MANAGED_TABLES if table.name not in existing]
        Base.metadata.create_all(conn, tables=MANAGED_TABLES, checkfirst=True)
        if missing:
            logger.info("Created tables: %s", ", ".join(missing))
        return bool(missing)

    def ensure_schema(self) -> bool:
        """Create missing tables and indexes; never touches existing data.

        Returns True when any table was created.
        """
        with self.lock.exclusive():
            with self.engine.begin() as conn:
                return self._create_all(conn)

    # ==================== Seeding ====================

    def _seed(self, conn: Connection, include_sample_doctors: bool) -> Dict[str, Any]:
        summary = {"categories": 0, "doctors": 0, "admin_created": False}
        db = Session(bind=conn)
        try:
            now = self.clock.now()
            fresh = not db.scalar(select(func.count(Category.id))) and not db.scalar(select(func.count(Doctor.id)))

            if fresh:
                categories = {}
                for name, description in DEFAULT_CATEGORIES:
                    category = Category(name=name, description=description, is_active=True, created_at=now)
                    db.add(category)
                    categories[name] = category
                db.flush()
                summary["categories"] = len(categories)

                if include_sample_doctors:
                    for sample in SAMPLE_DOCTORS:
                        values = dict(sample)
                        category = categories[values.pop("category")]
                        db.add(Doctor(
                            category_id=category.id, is_active=True,
                            created_at=now, updated_at=now, **values
                        ))
                    db.flush()
                    summary["doctors"] = len(SAMPLE_DOCTORS)

            summary["admin_created"] = self._ensure_admin(db, now)
            db.flush()
        finally:
            db.close()
        logger.info("Seeded defaults: %s", summary)
        return summary

    def _ensure_admin(self, db: Session, now: datetime) -> bool:
        if UserRepository(db).count_admins():
            return False

        username = self.config.DEFAULT_ADMIN_USERNAME
        email = self.config.DEFAULT_ADMIN_EMAIL.lower()
        holder = db.scalars(
            select(User).where((User.username == username) | (User.email == email)).order_by(User.id)
        ).first()
        if holder is not None:
            if holder.role == UserRole.ADMIN:
                holder.is_active = True
                holder.updated_at = now
                logger.warning("Reactivated deactivated administrator %s", holder.username)
                return True
            logger.warning("No active administrator exists and default admin identity %s is taken", username)
            return False

        db.add(User(
            username=username,
            email=email,
            password_hash=self.hasher(self.config.DEFAULT_ADMIN_PASSWORD),
            role=UserRole.ADMIN,
            full_name=self.config.DEFAULT_ADMIN_FULL_NAME,
            phone=self.config.DEFAULT_ADMIN_PHONE,
            is_active=True,
            created_at=now,
            updated_at=now,
        ))
        logger.info("Created default administrator %s", username)
        return True

    def seed_defaults(self, include_sample_doctors: Optional[bool] = None) -> Dict[str, Any]:
        """Load default categories, sample doctors and the admin into an empty store.

        On a populated store only guarantees that an administrator exists.
        """
        if include_sample_doctors is None:
            include_sample_doctors = self.config.SEED_SAMPLE_DOCTORS
        with self.lock.exclusive():
            with self.engine.begin() as conn:
                return self._seed(conn, include_sample_doctors)

    def initialize(self) -> Dict[str, Any]:
        """Process-start hook: ensure tables exist, then seed"""
        created = self.ensure_schema()
        summary = self.seed_defaults()
        return {"created_tables": created, **summary}

    # ==================== Destructive ====================

    def reset(self, include_sample_doctors: Optional[bool] = None) -> Dict[str, Any]:
        """Drop every table, recreate and reseed"""
        if include_sample_doctors is None:
            include_sample_doctors = self.config.SEED_SAMPLE_DOCTORS
        with self.lock.exclusive():
            logger.warning("Resetting database: dropping all tables")
            with self.engine.begin() as conn:
                Base.metadata.drop_all(conn, tables=MANAGED_TABLES, checkfirst=True)
                self._create_all(conn)
                return self._seed(conn, include_sample_doctors)

    def clear(self) -> None:
        """Delete every row; table definitions stay"""
        with self.lock.exclusive():
            logger.warning("Clearing all rows from the database")
            with self.engine.begin() as conn:
                if conn.dialect.name == "postgresql":
                    names = ", ".join(table.name for table in reversed(MANAGED_TABLES))
                    conn.execute(text(f"TRUNCATE TABLE {names} RESTART IDENTITY CASCADE"))
                else:
                    for table in reversed(MANAGED_TABLES):
                        conn.execute(table.delete())

    # ==================== Health ====================

    def health(self) -> Dict[str, Any]:
        """Row counts per table, or the error when the store is unreachable"""
        timestamp = self.clock.now().isoformat()
        try:
            with self.engine.connect() as conn:
                tables = {
                    table.name: conn.scalar(select(func.count()).select_from(table))
                    for table in MANAGED_TABLES
                }
        except SQLAlchemyError as exc:
            logger.error("Database health check failed: %s", exc)
            return {"status": "unhealthy", "persistent": False, "error": str(exc), "timestamp": timestamp}

        return {"status": "healthy", "persistent": True, "tables": tables, "timestamp": timestamp}
