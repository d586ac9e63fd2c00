"""
Appointments Service Layer

Business logic for slot availability, booking, the appointment lifecycle
and admin reporting.

Every write runs inside ``unit_of_work``: one transaction that re-checks the
slot it is about to occupy and relies on the store's partial unique index
as the final arbiter, so two concurrent bookings of one slot cannot both
commit.
"""

from datetime import date, datetime, time
from typing import Optional, List, Dict, Any, Union
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from medicare.core.clock import Clock, SystemClock
from medicare.core.config import settings
from medicare.core.exceptions import (
    InvalidArgumentError, InvalidTransitionError, NotFoundError,
    SlotConflictError, UnauthorizedError
)
from medicare.core.permissions import Caller, require_admin, require_owner_or_admin
from medicare.domain.appointments.models import Appointment, AppointmentStatus
from medicare.domain.appointments.policy import BookingWindow
from medicare.domain.appointments.repository import AppointmentRepository
from medicare.domain.appointments.slots import candidate_slots, is_slot_boundary
from medicare.domain.directory.availability import Weekday, parse_time_of_day
from medicare.domain.directory.models import Doctor, User, UserRole
from medicare.domain.directory.repository import DoctorRepository, UserRepository
from medicare.infrastructure.database import MaintenanceLock, unit_of_work

logger = logging.getLogger(__name__)


def coerce_date(value: Union[str, date]) -> date:
    """Accept a ``date`` or an ISO ``YYYY-MM-DD`` string"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise InvalidArgumentError(f"Invalid date: {value!r}", details={"value": str(value)}) from None


def _slot_details(doctor_id: int, appointment_date: date, appointment_time: time) -> Dict[str, Any]:
    return {
        "doctor_id": doctor_id,
        "appointment_date": appointment_date.isoformat(),
        "appointment_time": appointment_time.strftime("%H:%M"),
    }


def _is_slot_violation(error: IntegrityError) -> bool:
    text = str(error.orig).lower()
    return "uq_appointments_booked_slot" in text or "unique" in text


class _SchedulingComponent:
    """Shared wiring for the scheduling services"""

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        window: Optional[BookingWindow] = None,
        slot_minutes: Optional[int] = None,
        lock: Optional[MaintenanceLock] = None
    ):
        self.db = db
        self.clock = clock or SystemClock()
        self.window = window or BookingWindow.from_settings()
        self.slot_minutes = slot_minutes or settings.SLOT_MINUTES
        self.lock = lock
        self.appointment_repo = AppointmentRepository(db)
        self.doctor_repo = DoctorRepository(db)
        self.user_repo = UserRepository(db)

    def _transaction(self, operation: str, deadline: Optional[datetime] = None):
        return unit_of_work(self.db, self.clock, operation, deadline=deadline, lock=self.lock)

    def _get_doctor(self, doctor_id: int, for_update: bool = False) -> Doctor:
        if for_update:
            doctor = self.doctor_repo.get_for_update(doctor_id)
        else:
            doctor = self.doctor_repo.get_by_id(doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found", details={"doctor_id": doctor_id})
        return doctor

    def _get_appointment(self, appointment_id: int) -> Appointment:
        appointment = self.appointment_repo.get_by_id(appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found", details={"appointment_id": appointment_id})
        return appointment

    def validate_slot(self, doctor: Doctor, appointment_date: date, appointment_time: time) -> None:
        """Booking-window and availability checks for a prospective slot"""
        self.window.check(self.clock, appointment_date, appointment_time)

        availability = doctor.availability
        details = _slot_details(doctor.id, appointment_date, appointment_time)
        if availability is None:
            raise InvalidArgumentError("Doctor has no readable availability", details=details)
        if not availability.available_on(appointment_date):
            raise InvalidArgumentError(
                f"Doctor is not available on {Weekday.from_date(appointment_date).value}",
                details={**details, "available_days": [d.value for d in availability.ordered_days]}
            )
        if not availability.hours.contains(appointment_time):
            raise InvalidArgumentError(
                "Requested time is outside the doctor's hours",
                details={**details, "available_hours": str(availability.hours)}
            )
        if not is_slot_boundary(availability, appointment_date, appointment_time, self.slot_minutes):
            raise InvalidArgumentError(
                f"Requested time is not on a {self.slot_minutes}-minute slot boundary",
                details=details
            )


class AvailabilityChecker(_SchedulingComponent):
    """Answers whether slots are free. Advisory only: booking re-checks."""

    def is_slot_free(
        self,
        doctor_id: int,
        appointment_date: date,
        appointment_time: time,
        exclude_appointment_id: Optional[int] = None
    ) -> bool:
        return self.appointment_repo.count_booked_for_slot(
            doctor_id, appointment_date, appointment_time, exclude_appointment_id
        ) == 0

    def list_free_slots(self, doctor_id: int, appointment_date: Union[str, date]) -> List[time]:
        """Free slots for a doctor on a date, ascending.

        Inactive doctors, unavailable weekdays and dates outside the booking
        window yield nothing; on the current day, slots already in the past
        are left out.
        """
        appointment_date = coerce_date(appointment_date)
        doctor = self._get_doctor(doctor_id)
        if not doctor.is_active or doctor.availability is None:
            return []

        now = self.clock.now()
        first, last = self.window.bounds(now.date())
        if not first <= appointment_date <= last:
            return []

        free = []
        for slot in candidate_slots(doctor.availability, appointment_date, self.slot_minutes):
            if appointment_date == now.date() and datetime.combine(appointment_date, slot) < now:
                continue
            if self.is_slot_free(doctor.id, appointment_date, slot):
                free.append(slot)
        return free


class BookingService(_SchedulingComponent):
    """Validates and commits new appointments"""

    def __init__(self, db: Session, **kwargs):
        super().__init__(db, **kwargs)
        self.checker = AvailabilityChecker(db, **kwargs)

    def _get_bookable_patient(self, patient_id: int) -> User:
        patient = self.user_repo.get_by_id(patient_id)
        if not patient:
            raise NotFoundError("Patient not found", details={"patient_id": patient_id})
        if patient.role != UserRole.PATIENT:
            raise UnauthorizedError("Only patients can hold appointments", details={"patient_id": patient_id})
        if not patient.is_active:
            raise UnauthorizedError("Patient account is deactivated", details={"patient_id": patient_id})
        return patient

    def book(
        self,
        caller: Caller,
        patient_id: int,
        doctor_id: int,
        appointment_date: Union[str, date],
        appointment_time: Union[str, time],
        reason: str,
        deadline: Optional[datetime] = None
    ) -> Appointment:
        """Reserve a slot.

        The free-slot check and the insert happen in one transaction with
        the doctor row locked. On ``SlotConflictError`` the caller should
        list free slots again and let the user pick; nothing is retried here.
        """
        require_owner_or_admin(caller, patient_id, "book appointments for this patient")
        if reason is None or not reason.strip():
            raise InvalidArgumentError("A reason for the visit is required")
        appointment_date = coerce_date(appointment_date)
        appointment_time = parse_time_of_day(appointment_time)
        details = _slot_details(doctor_id, appointment_date, appointment_time)

        try:
            with self._transaction("book appointment", deadline):
                self._get_bookable_patient(patient_id)
                doctor = self._get_doctor(doctor_id, for_update=True)
                if not doctor.is_active:
                    raise InvalidArgumentError("Doctor is not accepting new appointments", details=details)
                self.validate_slot(doctor, appointment_date, appointment_time)

                if not self.checker.is_slot_free(doctor.id, appointment_date, appointment_time):
                    raise SlotConflictError(details=details)

                now = self.clock.now()
                appointment = self.appointment_repo.create({
                    "patient_id": patient_id,
                    "doctor_id": doctor.id,
                    "appointment_date": appointment_date,
                    "appointment_time": appointment_time,
                    "reason": reason.strip(),
                    "status": AppointmentStatus.BOOKED,
                    "created_at": now,
                    "updated_at": now,
                })
        except IntegrityError as exc:
            if not _is_slot_violation(exc):
                raise InvalidArgumentError("Appointment violates a store constraint", details=details) from exc
            logger.info("Slot taken concurrently: %s", details)
            raise SlotConflictError(details=details) from exc
        except SlotConflictError:
            logger.info("Slot already booked: %s", details)
            raise

        logger.info("Booked appointment %s for patient %s: %s", appointment.id, patient_id, details)
        return appointment


class LifecycleManager(_SchedulingComponent):
    """Enforces appointment state transitions.

    Every transition starts from ``booked``; completed, cancelled and
    no-show are terminal. Cancelling a cancelled appointment is a no-op.
    """

    def __init__(self, db: Session, **kwargs):
        super().__init__(db, **kwargs)
        self.checker = AvailabilityChecker(db, **kwargs)

    def _apply(self, appointment: Appointment, values: Dict[str, Any], action: str) -> Appointment:
        if not self.appointment_repo.transition(appointment.id, values):
            # Lost a race with another transition; judge against the new state.
            self.appointment_repo.refresh(appointment)
            if action == "cancel" and appointment.status == AppointmentStatus.CANCELLED:
                return appointment
            raise self._invalid(appointment, action)
        return self.appointment_repo.refresh(appointment)

    @staticmethod
    def _invalid(appointment: Appointment, action: str) -> InvalidTransitionError:
        return InvalidTransitionError(
            f"Cannot {action} an appointment that is {appointment.status.value}",
            details={"appointment_id": appointment.id, "status": appointment.status.value, "action": action}
        )

    def cancel(self, caller: Caller, appointment_id: int, deadline: Optional[datetime] = None) -> Appointment:
        """booked -> cancelled; by the owning patient or an administrator"""
        with self._transaction("cancel appointment", deadline):
            appointment = self._get_appointment(appointment_id)
            require_owner_or_admin(caller, appointment.patient_id, "cancel this appointment")
            if appointment.status == AppointmentStatus.CANCELLED:
                return appointment
            if appointment.status.is_terminal:
                raise self._invalid(appointment, "cancel")
            appointment = self._apply(appointment, {
                "status": AppointmentStatus.CANCELLED,
                "updated_at": self.clock.now(),
            }, "cancel")
        logger.info("Appointment %s cancelled by user %s", appointment_id, caller.user_id)
        return appointment

    def complete(
        self,
        caller: Caller,
        appointment_id: int,
        notes: Optional[str] = None,
        deadline: Optional[datetime] = None
    ) -> Appointment:
        """booked -> completed; administrators only"""
        require_admin(caller, "complete appointments")
        values = {"status": AppointmentStatus.COMPLETED, "updated_at": self.clock.now()}
        if notes is not None:
            values["notes"] = notes
        with self._transaction("complete appointment", deadline):
            appointment = self._get_appointment(appointment_id)
            if appointment.status.is_terminal:
                raise self._invalid(appointment, "complete")
            appointment = self._apply(appointment, values, "complete")
        logger.info("Appointment %s completed by admin %s", appointment_id, caller.user_id)
        return appointment

    def mark_no_show(self, caller: Caller, appointment_id: int, deadline: Optional[datetime] = None) -> Appointment:
        """booked -> no-show; administrators only"""
        require_admin(caller, "mark no-shows")
        with self._transaction("mark no-show", deadline):
            appointment = self._get_appointment(appointment_id)
            if appointment.status.is_terminal:
                raise self._invalid(appointment, "mark as no-show")
            appointment = self._apply(appointment, {
                "status": AppointmentStatus.NO_SHOW,
                "updated_at": self.clock.now(),
            }, "mark as no-show")
        logger.info("Appointment %s marked no-show by admin %s", appointment_id, caller.user_id)
        return appointment

    def reschedule(
        self,
        caller: Caller,
        appointment_id: int,
        new_date: Union[str, date],
        new_time: Union[str, time],
        deadline: Optional[datetime] = None
    ) -> Appointment:
        """Move a booked appointment to another slot of the same doctor.

        On conflict the original booking is left exactly as it was.
        """
        new_date = coerce_date(new_date)
        new_time = parse_time_of_day(new_time)
        requested = {
            "appointment_id": appointment_id,
            "appointment_date": new_date.isoformat(),
            "appointment_time": new_time.strftime("%H:%M"),
        }

        try:
            with self._transaction("reschedule appointment", deadline):
                appointment = self._get_appointment(appointment_id)
                require_owner_or_admin(caller, appointment.patient_id, "reschedule this appointment")
                if appointment.status.is_terminal:
                    raise self._invalid(appointment, "reschedule")

                doctor = self._get_doctor(appointment.doctor_id, for_update=True)
                details = _slot_details(doctor.id, new_date, new_time)
                if not doctor.is_active:
                    raise InvalidArgumentError("Doctor is not accepting new appointments", details=details)
                self.validate_slot(doctor, new_date, new_time)

                if (appointment.appointment_date, appointment.appointment_time) == (new_date, new_time):
                    return appointment
                if not self.checker.is_slot_free(doctor.id, new_date, new_time, exclude_appointment_id=appointment.id):
                    raise SlotConflictError(details=details)

                appointment = self._apply(appointment, {
                    "appointment_date": new_date,
                    "appointment_time": new_time,
                    "updated_at": self.clock.now(),
                }, "reschedule")
        except IntegrityError as exc:
            if not _is_slot_violation(exc):
                raise InvalidArgumentError("Appointment violates a store constraint", details=requested) from exc
            raise SlotConflictError(details=requested) from exc

        logger.info("Appointment %s rescheduled to %s %s", appointment_id, new_date, new_time)
        return appointment

    def update_notes(
        self,
        caller: Caller,
        appointment_id: int,
        notes: Optional[str],
        deadline: Optional[datetime] = None
    ) -> Appointment:
        """Edit visit notes without touching the status (administrators only)"""
        require_admin(caller, "edit appointment notes")
        with self._transaction("update appointment notes", deadline):
            appointment = self._get_appointment(appointment_id)
            appointment.notes = notes
            appointment.updated_at = self.clock.now()
        return appointment

    def delete(self, caller: Caller, appointment_id: int, deadline: Optional[datetime] = None) -> None:
        """Hard-delete an appointment regardless of status (administrators only)"""
        require_admin(caller, "delete appointments")
        with self._transaction("delete appointment", deadline):
            self._get_appointment(appointment_id)
            self.appointment_repo.delete(appointment_id)
        logger.warning("Appointment %s hard-deleted by admin %s", appointment_id, caller.user_id)


class AppointmentService(_SchedulingComponent):
    """Read access to appointments with ownership rules applied"""

    def list_appointments(
        self,
        caller: Caller,
        patient_id: Optional[int] = None,
        doctor_id: Optional[int] = None,
        status: Optional[AppointmentStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Appointment]:
        """Patients see only their own appointments; admins see all"""
        if not caller.is_admin:
            if patient_id is not None and patient_id != caller.user_id:
                raise UnauthorizedError("Patients may only list their own appointments")
            patient_id = caller.user_id

        return self.appointment_repo.get_all(
            skip=skip,
            limit=limit,
            patient_id=patient_id,
            doctor_id=doctor_id,
            status=status,
            date_from=date_from,
            date_to=date_to
        )

    def get_appointment(self, caller: Caller, appointment_id: int) -> Appointment:
        appointment = self._get_appointment(appointment_id)
        require_owner_or_admin(caller, appointment.patient_id, "view this appointment")
        return appointment


class ReportingService(_SchedulingComponent):
    """Admin dashboard queries"""

    def dashboard_stats(self, caller: Caller) -> Dict[str, int]:
        require_admin(caller, "view statistics")
        return self.appointment_repo.dashboard_counts(self.clock.today())

    def recent_appointments(self, caller: Caller, limit: int = 10) -> List[Appointment]:
        require_admin(caller, "view statistics")
        return self.appointment_repo.get_recent(limit)

    def top_doctors(self, caller: Caller, limit: int = 5) -> List[Dict[str, Any]]:
        require_admin(caller, "view statistics")
        return self.appointment_repo.get_top_doctors(limit)
