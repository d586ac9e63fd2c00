"""
Appointments Domain Models

The appointment row and its lifecycle status. At most one ``booked``
appointment may exist per doctor/date/time; the partial unique index
below enforces that in the store itself, so no write path (including raw
SQL) can double-book a slot.
"""

from datetime import datetime
from sqlalchemy import (
    Column, Date, DateTime, ForeignKey, Integer, Time, Text, Enum, Index, text
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from medicare.domain.directory.models import enum_values
from medicare.infrastructure.database import Base


class AppointmentStatus(str, enum.Enum):
    """Appointment status enumeration"""
    BOOKED = "booked"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"

    @property
    def is_terminal(self) -> bool:
        return self != AppointmentStatus.BOOKED


BOOKED_ONLY = text("status = 'booked'")


class Appointment(Base):
    """Appointment model for patient-doctor appointments"""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)

    # Patient and doctor
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)

    # Scheduling
    appointment_date = Column(Date, nullable=False, index=True)
    appointment_time = Column(Time, nullable=False)

    # Visit details
    reason = Column(Text, nullable=False)
    notes = Column(Text)

    status = Column(
        Enum(AppointmentStatus, name="appointment_status", values_callable=enum_values,
             native_enum=False, create_constraint=True, length=20),
        nullable=False, default=AppointmentStatus.BOOKED, index=True
    )

    # Audit
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    patient = relationship("User", foreign_keys=[patient_id], lazy="joined")
    doctor = relationship("Doctor", foreign_keys=[doctor_id], lazy="joined")

    __table_args__ = (
        Index("ix_appointments_datetime", "appointment_date", "appointment_time"),
        Index(
            "uq_appointments_booked_slot",
            "doctor_id", "appointment_date", "appointment_time",
            unique=True,
            sqlite_where=BOOKED_ONLY,
            postgresql_where=BOOKED_ONLY,
        ),
    )

    def get_datetime(self) -> datetime:
        """Get appointment datetime"""
        return datetime.combine(self.appointment_date, self.appointment_time)

    def is_upcoming(self, now: datetime) -> bool:
        return self.get_datetime() > now

    @property
    def doctor_name(self):
        return self.doctor.name if self.doctor else None

    @property
    def specialty(self):
        return self.doctor.specialty if self.doctor else None

    @property
    def patient_name(self):
        if not self.patient:
            return None
        return self.patient.full_name or self.patient.username

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, doctor_id={self.doctor_id}, "
            f"date='{self.appointment_date}', time='{self.appointment_time}', status='{self.status}')>"
        )
