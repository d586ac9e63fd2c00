import pytest
from datetime import date, time

from medicare.core.exceptions import UnauthorizedError
from medicare.domain.appointments.models import AppointmentStatus
from medicare.domain.appointments.service import AppointmentService, ReportingService

from conftest import TUESDAY, NINE

WEDNESDAY = date(2026, 3, 4)
THURSDAY = date(2026, 3, 5)


@pytest.fixture
def schedule(booking, lifecycle, clock, admin_caller, patient_caller, other_caller,
             patient_user, other_patient, doctor, second_doctor, booked):
    """Four appointments: three booked, one cancelled, created a minute apart."""
    clock.advance(minutes=1)
    thursday = booking.book(patient_caller, patient_user.id, doctor.id, THURSDAY, time(10, 0), "Follow-up")
    clock.advance(minutes=1)
    davis = booking.book(other_caller, other_patient.id, second_doctor.id, WEDNESDAY, time(10, 0), "Palpitations")
    clock.advance(minutes=1)
    dropped = booking.book(other_caller, other_patient.id, doctor.id, TUESDAY, time(9, 30), "Checkup")
    lifecycle.cancel(other_caller, dropped.id)
    return {"tuesday": booked, "thursday": thursday, "davis": davis, "dropped": dropped}


@pytest.mark.integration
class TestReporting:
    """Admin dashboard queries."""

    def test_dashboard_stats(self, reporting: ReportingService, admin_caller, schedule) -> None:
        stats = reporting.dashboard_stats(admin_caller)

        assert stats == {
            "total_patients": 2,
            "total_doctors": 2,
            "total_appointments": 4,
            "total_categories": 1,
            "today_appointments": 0,
            "upcoming_appointments": 3,
            "completed_appointments": 0,
            "cancelled_appointments": 1,
        }

    def test_stats_follow_transitions(self, reporting, lifecycle, admin_caller, schedule) -> None:
        lifecycle.complete(admin_caller, schedule["tuesday"].id)

        stats = reporting.dashboard_stats(admin_caller)

        assert stats["completed_appointments"] == 1
        assert stats["upcoming_appointments"] == 2

    def test_top_doctors_ignore_cancelled(self, reporting, admin_caller, doctor, second_doctor, schedule) -> None:
        top = reporting.top_doctors(admin_caller)

        assert [(row["doctor_id"], row["appointment_count"]) for row in top] == [
            (doctor.id, 2), (second_doctor.id, 1)
        ]
        assert top[0]["name"] == "Dr. John Smith"
        assert len(reporting.top_doctors(admin_caller, limit=1)) == 1

    def test_recent_appointments_newest_first(self, reporting, admin_caller, schedule) -> None:
        recent = reporting.recent_appointments(admin_caller, limit=2)

        assert [a.id for a in recent] == [schedule["dropped"].id, schedule["davis"].id]

    def test_reports_are_admin_only(self, reporting: ReportingService, patient_caller) -> None:
        with pytest.raises(UnauthorizedError):
            reporting.dashboard_stats(patient_caller)
        with pytest.raises(UnauthorizedError):
            reporting.recent_appointments(patient_caller)
        with pytest.raises(UnauthorizedError):
            reporting.top_doctors(patient_caller)


@pytest.mark.integration
class TestAppointmentQueries:
    """Listing and reading appointments with ownership applied."""

    def test_patient_sees_own_appointments_latest_first(self, appointments: AppointmentService,
                                                        patient_caller, schedule) -> None:
        listed = appointments.list_appointments(patient_caller)

        assert [a.id for a in listed] == [schedule["thursday"].id, schedule["tuesday"].id]

    def test_patient_cannot_list_another_patient(self, appointments, patient_caller, other_patient, schedule) -> None:
        with pytest.raises(UnauthorizedError):
            appointments.list_appointments(patient_caller, patient_id=other_patient.id)

    def test_admin_filters(self, appointments, admin_caller, doctor, schedule) -> None:
        by_doctor = appointments.list_appointments(admin_caller, doctor_id=doctor.id)
        cancelled = appointments.list_appointments(admin_caller, status=AppointmentStatus.CANCELLED)
        midweek = appointments.list_appointments(admin_caller, date_from=WEDNESDAY, date_to=WEDNESDAY)

        assert len(by_doctor) == 3
        assert [a.id for a in cancelled] == [schedule["dropped"].id]
        assert [a.id for a in midweek] == [schedule["davis"].id]
        assert len(appointments.list_appointments(admin_caller, skip=1, limit=2)) == 2

    def test_get_appointment_ownership(self, appointments, patient_caller, other_caller, schedule) -> None:
        own = appointments.get_appointment(patient_caller, schedule["tuesday"].id)

        assert own.appointment_time == NINE
        assert own.doctor_name == "Dr. John Smith"
        with pytest.raises(UnauthorizedError):
            appointments.get_appointment(other_caller, schedule["tuesday"].id)
