"""
Directory Domain Models

Users (patients and administrators), medical specialty categories and
bookable doctors.
"""

from sqlalchemy import (
    Column, String, Boolean, DateTime, ForeignKey, Integer, Numeric, Text,
    Enum, CheckConstraint
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship, validates
from decimal import Decimal
from typing import Optional
import enum

from medicare.core.exceptions import InvalidArgumentError
from medicare.domain.directory.availability import (
    AvailabilityDescriptor, TimeRangeType, WeekdaySetType,
    DEFAULT_DAYS, DEFAULT_HOURS, parse_weekdays, TimeRange
)
from medicare.infrastructure.database import Base


def enum_values(enum_cls):
    """Persist enum values (``"no-show"``) rather than member names"""
    return [member.value for member in enum_cls]


class UserRole(str, enum.Enum):
    """User roles"""
    PATIENT = "patient"
    ADMIN = "admin"


class ActivatableMixin:
    """Soft-disable flag shared by records that must never be hard-deleted
    while appointments reference them."""
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    @classmethod
    def visible(cls):
        """Criterion selecting rows open to new bookings"""
        return cls.is_active.is_(True)


class User(ActivatableMixin, Base):
    """User model for patients and administrators"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(100), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    role = Column(
        Enum(UserRole, name="user_role", values_callable=enum_values,
             native_enum=False, create_constraint=True, length=20),
        nullable=False, default=UserRole.PATIENT, index=True
    )
    full_name = Column(String(100))
    phone = Column(String(20))

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    @validates("username")
    def _normalize_username(self, key, value):
        value = (value or "").strip()
        if not value:
            raise InvalidArgumentError("Username is required")
        return value

    @validates("email")
    def _normalize_email(self, key, value):
        value = (value or "").strip().lower()
        if not value:
            raise InvalidArgumentError("Email is required")
        return value

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}')>"


class Category(ActivatableMixin, Base):
    """Medical specialty grouping"""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text)
    created_at = Column(DateTime, default=func.now())


class Doctor(ActivatableMixin, Base):
    """Bookable provider"""
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    specialty = Column(String(100), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), index=True)
    details = Column(Text)
    experience_years = Column(Integer, nullable=False, default=0)
    consultation_fee = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))

    # Availability descriptor
    available_days = Column(WeekdaySetType(), nullable=False, default=DEFAULT_DAYS)
    available_hours = Column(TimeRangeType(), nullable=False, default=DEFAULT_HOURS)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    category = relationship("Category", lazy="joined")

    __table_args__ = (
        CheckConstraint('experience_years >= 0', name='check_experience_years'),
        CheckConstraint('consultation_fee >= 0', name='check_consultation_fee'),
    )

    @validates("experience_years")
    def _validate_experience(self, key, value):
        value = 0 if value is None else int(value)
        if value < 0:
            raise InvalidArgumentError("experience_years must be >= 0", details={"value": value})
        return value

    @validates("consultation_fee")
    def _validate_fee(self, key, value):
        value = Decimal("0") if value is None else Decimal(str(value))
        if value < 0:
            raise InvalidArgumentError("consultation_fee must be >= 0", details={"value": str(value)})
        return value

    @validates("available_days")
    def _validate_days(self, key, value):
        return parse_weekdays(value)

    @validates("available_hours")
    def _validate_hours(self, key, value):
        return TimeRange.parse(value)

    @property
    def availability(self) -> Optional[AvailabilityDescriptor]:
        """None when a stored days or hours value could not be read"""
        if self.available_days is None or self.available_hours is None:
            return None
        return AvailabilityDescriptor.parse(self.available_days, self.available_hours)

    @property
    def category_name(self):
        return self.category.name if self.category else None

    def __repr__(self):
        return f"<Doctor(id={self.id}, name='{self.name}', specialty='{self.specialty}')>"
