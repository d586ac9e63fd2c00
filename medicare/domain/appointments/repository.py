"""
Appointments Repository Layer

Provides data access operations for appointments and the admin reporting
queries built on them. Nothing here commits; services own transactions.
"""

from typing import Optional, List, Dict, Any
from datetime import date, time
from sqlalchemy import and_, func, update, delete
from sqlalchemy.orm import Session

from medicare.domain.appointments.models import Appointment, AppointmentStatus
from medicare.domain.directory.models import Category, Doctor, User, UserRole


class AppointmentRepository:
    """Repository for appointment data access operations"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, appointment_data: dict) -> Appointment:
        """Insert and flush so unique-index violations surface here"""
        appointment = Appointment(**appointment_data)
        self.db.add(appointment)
        self.db.flush()
        return appointment

    def get_by_id(self, appointment_id: int) -> Optional[Appointment]:
        return self.db.query(Appointment).filter(Appointment.id == appointment_id).first()

    def refresh(self, appointment: Appointment) -> Appointment:
        self.db.refresh(appointment)
        return appointment

    def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        patient_id: Optional[int] = None,
        doctor_id: Optional[int] = None,
        status: Optional[AppointmentStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None
    ) -> List[Appointment]:
        """Get appointments with filtering"""
        query = self.db.query(Appointment)

        if patient_id is not None:
            query = query.filter(Appointment.patient_id == patient_id)
        if doctor_id is not None:
            query = query.filter(Appointment.doctor_id == doctor_id)
        if status:
            query = query.filter(Appointment.status == status)
        if date_from:
            query = query.filter(Appointment.appointment_date >= date_from)
        if date_to:
            query = query.filter(Appointment.appointment_date <= date_to)

        return query.order_by(
            Appointment.appointment_date.desc(),
            Appointment.appointment_time.desc(),
            Appointment.id.desc()
        ).offset(skip).limit(limit).all()

    def count_booked_for_slot(
        self,
        doctor_id: int,
        appointment_date: date,
        appointment_time: time,
        exclude_id: Optional[int] = None
    ) -> int:
        """Count booked appointments occupying one doctor/date/time slot"""
        query = self.db.query(func.count(Appointment.id)).filter(
            and_(
                Appointment.doctor_id == doctor_id,
                Appointment.appointment_date == appointment_date,
                Appointment.appointment_time == appointment_time,
                Appointment.status == AppointmentStatus.BOOKED
            )
        )
        if exclude_id is not None:
            query = query.filter(Appointment.id != exclude_id)
        return query.scalar()

    def transition(self, appointment_id: int, values: Dict[str, Any]) -> bool:
        """Apply ``values`` only while the row is still booked.

        Returns False when another transaction moved the row first.
        """
        result = self.db.execute(
            update(Appointment)
            .where(
                Appointment.id == appointment_id,
                Appointment.status == AppointmentStatus.BOOKED
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def delete(self, appointment_id: int) -> bool:
        result = self.db.execute(
            delete(Appointment)
            .where(Appointment.id == appointment_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    # ==================== Reporting ====================

    def count(
        self,
        status: Optional[AppointmentStatus] = None,
        on_date: Optional[date] = None,
        after_date: Optional[date] = None
    ) -> int:
        query = self.db.query(func.count(Appointment.id))
        if status:
            query = query.filter(Appointment.status == status)
        if on_date:
            query = query.filter(Appointment.appointment_date == on_date)
        if after_date:
            query = query.filter(Appointment.appointment_date > after_date)
        return query.scalar()

    def dashboard_counts(self, today: date) -> Dict[str, int]:
        """Headline numbers for the admin dashboard"""
        return {
            "total_patients": self.db.query(func.count(User.id)).filter(User.role == UserRole.PATIENT).scalar(),
            "total_doctors": self.db.query(func.count(Doctor.id)).filter(Doctor.visible()).scalar(),
            "total_appointments": self.count(),
            "total_categories": self.db.query(func.count(Category.id)).filter(Category.visible()).scalar(),
            "today_appointments": self.count(on_date=today),
            "upcoming_appointments": self.count(status=AppointmentStatus.BOOKED, after_date=today),
            "completed_appointments": self.count(status=AppointmentStatus.COMPLETED),
            "cancelled_appointments": self.count(status=AppointmentStatus.CANCELLED),
        }

    def get_recent(self, limit: int = 10) -> List[Appointment]:
        return self.db.query(Appointment).order_by(
            Appointment.created_at.desc(), Appointment.id.desc()
        ).limit(limit).all()

    def get_top_doctors(self, limit: int = 5) -> List[Dict[str, Any]]:
        """Active doctors ranked by non-cancelled appointment count"""
        appointment_count = func.count(Appointment.id).label("appointment_count")
        rows = self.db.query(
            Doctor.id, Doctor.name, Doctor.specialty, appointment_count
        ).outerjoin(
            Appointment,
            and_(
                Appointment.doctor_id == Doctor.id,
                Appointment.status != AppointmentStatus.CANCELLED
            )
        ).filter(
            Doctor.visible()
        ).group_by(
            Doctor.id, Doctor.name, Doctor.specialty
        ).order_by(
            appointment_count.desc(), Doctor.name
        ).limit(limit).all()

        return [
            {
                "doctor_id": row.id,
                "name": row.name,
                "specialty": row.specialty,
                "appointment_count": row.appointment_count,
            }
            for row in rows
        ]
