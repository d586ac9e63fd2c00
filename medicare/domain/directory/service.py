"""
Directory Service Layer

Business logic for users, specialty categories and doctors. These records
are reference data for scheduling: doctors supply availability descriptors
and users supply the patient side of every appointment.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, List
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from medicare.core.clock import Clock, SystemClock
from medicare.core.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from medicare.core.permissions import Caller, require_admin, require_owner_or_admin
from medicare.domain.directory.availability import (
    AvailabilityDescriptor, DEFAULT_DAYS, DEFAULT_HOURS
)
from medicare.domain.directory.models import User, UserRole, Category, Doctor
from medicare.domain.directory.repository import (
    UserRepository, CategoryRepository, DoctorRepository
)
from medicare.infrastructure.database import MaintenanceLock, unit_of_work

logger = logging.getLogger(__name__)

DOCTOR_FIELDS = (
    "name", "specialty", "category_id", "details", "experience_years",
    "consultation_fee", "available_days", "available_hours", "is_active",
)


@dataclass
class DoctorFilter:
    """Criteria for ``DirectoryService.list_doctors``"""
    category_id: Optional[int] = None
    specialty: Optional[str] = None
    search: Optional[str] = None
    include_inactive: bool = False
    skip: int = 0
    limit: int = 100


class DirectoryService:
    """Service layer for users, categories and doctors"""

    def __init__(self, db: Session, clock: Optional[Clock] = None, lock: Optional[MaintenanceLock] = None):
        self.db = db
        self.clock = clock or SystemClock()
        self.lock = lock
        self.user_repo = UserRepository(db)
        self.category_repo = CategoryRepository(db)
        self.doctor_repo = DoctorRepository(db)

    def _transaction(self, operation: str, deadline: Optional[datetime] = None):
        return unit_of_work(self.db, self.clock, operation, deadline=deadline, lock=self.lock)

    # ==================== Users ====================

    def create_user(
        self,
        username: str,
        email: str,
        password_hash: str,
        role: UserRole = UserRole.PATIENT,
        full_name: Optional[str] = None,
        phone: Optional[str] = None,
        deadline: Optional[datetime] = None
    ) -> User:
        """Create a user; ``password_hash`` is an opaque credential hash"""
        if not password_hash:
            raise InvalidArgumentError("A password hash is required")

        try:
            with self._transaction("create user", deadline):
                self._ensure_unique_identity(username, email)
                now = self.clock.now()
                user = self.user_repo.create({
                    "username": username,
                    "email": email,
                    "password_hash": password_hash,
                    "role": UserRole(role),
                    "full_name": full_name.strip() if full_name else None,
                    "phone": phone.strip() if phone else None,
                    "is_active": True,
                    "created_at": now,
                    "updated_at": now,
                })
        except IntegrityError as exc:
            raise ConflictError("Username or email already exists") from exc

        logger.info("Created %s user %s (id=%s)", user.role.value, user.username, user.id)
        return user

    def _ensure_unique_identity(self, username: str, email: str, exclude_id: Optional[int] = None) -> None:
        if username is not None and not username.strip():
            raise InvalidArgumentError("Username is required")
        if email is not None and not email.strip():
            raise InvalidArgumentError("Email is required")
        if username is not None and self.user_repo.username_exists(username, exclude_id):
            raise ConflictError("Username already exists", details={"username": username.strip()})
        if email is not None and self.user_repo.email_exists(email, exclude_id):
            raise ConflictError("Email already exists", details={"email": email.strip().lower()})

    def get_user(self, user_id: int) -> User:
        user = self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found", details={"user_id": user_id})
        return user

    def get_user_by_username(self, username: str) -> User:
        user = self.user_repo.get_by_username(username)
        if not user:
            raise NotFoundError("User not found", details={"username": username})
        return user

    def get_user_by_email(self, email: str) -> User:
        user = self.user_repo.get_by_email(email)
        if not user:
            raise NotFoundError("User not found", details={"email": email})
        return user

    def list_users(
        self,
        role: Optional[UserRole] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[User]:
        return self.user_repo.get_all(role=role, is_active=is_active, search=search, skip=skip, limit=limit)

    def update_user(
        self,
        caller: Caller,
        user_id: int,
        email: Optional[str] = None,
        full_name: Optional[str] = None,
        phone: Optional[str] = None,
        password_hash: Optional[str] = None,
        deadline: Optional[datetime] = None
    ) -> User:
        """Update profile fields; email uniqueness is re-checked against other users"""
        require_owner_or_admin(caller, user_id, "edit this profile")
        try:
            with self._transaction("update user", deadline):
                user = self.get_user(user_id)
                if email is not None:
                    self._ensure_unique_identity(None, email, exclude_id=user.id)
                    user.email = email
                if full_name is not None:
                    user.full_name = full_name.strip() or None
                if phone is not None:
                    user.phone = phone.strip() or None
                if password_hash:
                    user.password_hash = password_hash
                user.updated_at = self.clock.now()
                self.db.flush()
        except IntegrityError as exc:
            raise ConflictError("Email already exists") from exc
        return user

    def set_user_active(self, caller: Caller, user_id: int, active: bool, deadline: Optional[datetime] = None) -> User:
        """Activate or soft-disable a user account (admin only)"""
        require_admin(caller, "change account status")
        with self._transaction("set user active", deadline):
            user = self.get_user(user_id)
            user.is_active = active
            user.updated_at = self.clock.now()
        logger.info("User %s %s by admin %s", user_id, "activated" if active else "deactivated", caller.user_id)
        return user

    # ==================== Categories ====================

    def list_categories(self, include_inactive: bool = False) -> List[Category]:
        return self.category_repo.get_all(include_inactive)

    def get_category(self, category_id: int) -> Category:
        category = self.category_repo.get_by_id(category_id)
        if not category:
            raise NotFoundError("Category not found", details={"category_id": category_id})
        return category

    def create_category(
        self,
        caller: Caller,
        name: str,
        description: Optional[str] = None,
        deadline: Optional[datetime] = None
    ) -> Category:
        require_admin(caller, "create categories")
        if not name or not name.strip():
            raise InvalidArgumentError("Category name is required")
        try:
            with self._transaction("create category", deadline):
                if self.category_repo.get_by_name(name):
                    raise ConflictError("Category already exists", details={"name": name.strip()})
                category = self.category_repo.create({
                    "name": name.strip(),
                    "description": description,
                    "is_active": True,
                    "created_at": self.clock.now(),
                })
        except IntegrityError as exc:
            raise ConflictError("Category already exists") from exc
        return category

    # ==================== Doctors ====================

    def list_doctors(self, doctor_filter: Optional[DoctorFilter] = None) -> List[Doctor]:
        """Active doctors by default, ordered by name"""
        doctor_filter = doctor_filter or DoctorFilter()
        return self.doctor_repo.get_all(
            category_id=doctor_filter.category_id,
            specialty=doctor_filter.specialty,
            search=doctor_filter.search,
            include_inactive=doctor_filter.include_inactive,
            skip=doctor_filter.skip,
            limit=doctor_filter.limit
        )

    def get_doctor(self, doctor_id: int) -> Doctor:
        doctor = self.doctor_repo.get_by_id(doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found", details={"doctor_id": doctor_id})
        return doctor

    def _doctor_values(self, fields: dict) -> dict:
        unknown = set(fields) - set(DOCTOR_FIELDS) - {"availability"}
        if unknown:
            raise InvalidArgumentError(
                "Unknown doctor fields",
                details={"fields": sorted(unknown)}
            )
        values = {key: value for key, value in fields.items() if value is not None}
        availability = values.pop("availability", None)
        if isinstance(availability, AvailabilityDescriptor):
            values["available_days"] = availability.days
            values["available_hours"] = availability.hours
        for key in ("name", "specialty"):
            if key in values and not str(values[key]).strip():
                raise InvalidArgumentError(f"Doctor {key} is required")
        if values.get("category_id") is not None:
            self.get_category(values["category_id"])
        return values

    def create_doctor(self, caller: Caller, deadline: Optional[datetime] = None, **fields) -> Doctor:
        """Create a doctor (admin only)"""
        require_admin(caller, "create doctors")
        with self._transaction("create doctor", deadline):
            values = self._doctor_values(fields)
            for key in ("name", "specialty"):
                if key not in values:
                    raise InvalidArgumentError(f"Doctor {key} is required")
            now = self.clock.now()
            values.setdefault("available_days", DEFAULT_DAYS)
            values.setdefault("available_hours", DEFAULT_HOURS)
            values.setdefault("is_active", True)
            values.update({"created_at": now, "updated_at": now})
            doctor = self.doctor_repo.create(values)
        logger.info("Created doctor %s (id=%s)", doctor.name, doctor.id)
        return doctor

    def update_doctor(self, caller: Caller, doctor_id: int, deadline: Optional[datetime] = None, **fields) -> Doctor:
        """Edit a doctor (admin only); existing appointments are left as they are"""
        require_admin(caller, "edit doctors")
        with self._transaction("update doctor", deadline):
            doctor = self.get_doctor(doctor_id)
            values = self._doctor_values(fields)
            values["updated_at"] = self.clock.now()
            self.doctor_repo.update(doctor, values)
        return doctor

    def deactivate_doctor(self, caller: Caller, doctor_id: int, deadline: Optional[datetime] = None) -> Doctor:
        """Soft delete: hide the doctor from new bookings, keep history"""
        require_admin(caller, "remove doctors")
        with self._transaction("deactivate doctor", deadline):
            doctor = self.get_doctor(doctor_id)
            doctor.is_active = False
            doctor.updated_at = self.clock.now()
        logger.info("Doctor %s deactivated by admin %s", doctor_id, caller.user_id)
        return doctor
