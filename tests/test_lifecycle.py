import pytest
from datetime import date, time, timezone

from medicare.core.exceptions import (
    InvalidArgumentError, InvalidTransitionError, NotFoundError, OutOfWindowError,
    SlotConflictError, UnauthorizedError
)
from medicare.domain.appointments.models import Appointment, AppointmentStatus
from medicare.domain.appointments.service import LifecycleManager

from conftest import TUESDAY, NINE

NINE_THIRTY = time(9, 30)


@pytest.mark.integration
class TestTransitions:
    """State machine: booked -> completed | cancelled | no-show."""

    def test_owner_cancels(self, lifecycle: LifecycleManager, patient_caller, booked, clock) -> None:
        clock.advance(minutes=5)

        cancelled = lifecycle.cancel(patient_caller, booked.id)

        assert cancelled.status == AppointmentStatus.CANCELLED
        assert cancelled.updated_at == clock.now()

    def test_cancel_is_idempotent(self, lifecycle: LifecycleManager, patient_caller, booked, clock) -> None:
        first = lifecycle.cancel(patient_caller, booked.id)
        stamped = first.updated_at
        clock.advance(minutes=5)

        second = lifecycle.cancel(patient_caller, booked.id)

        assert second.status == AppointmentStatus.CANCELLED
        assert second.updated_at == stamped

    def test_admin_cancels_any(self, lifecycle: LifecycleManager, admin_caller, booked) -> None:
        assert lifecycle.cancel(admin_caller, booked.id).status == AppointmentStatus.CANCELLED

    def test_other_patient_cannot_cancel(self, lifecycle: LifecycleManager, other_caller, booked) -> None:
        with pytest.raises(UnauthorizedError):
            lifecycle.cancel(other_caller, booked.id)

    def test_complete_with_notes(self, lifecycle: LifecycleManager, admin_caller, booked) -> None:
        completed = lifecycle.complete(admin_caller, booked.id, notes="BP normal")

        assert completed.status == AppointmentStatus.COMPLETED
        assert completed.notes == "BP normal"

    def test_mark_no_show(self, lifecycle: LifecycleManager, admin_caller, booked) -> None:
        assert lifecycle.mark_no_show(admin_caller, booked.id).status == AppointmentStatus.NO_SHOW

    def test_patient_cannot_complete_or_no_show(self, lifecycle, patient_caller, booked) -> None:
        with pytest.raises(UnauthorizedError):
            lifecycle.complete(patient_caller, booked.id)
        with pytest.raises(UnauthorizedError):
            lifecycle.mark_no_show(patient_caller, booked.id)

    def test_authorization_checked_before_state(self, lifecycle, admin_caller, patient_caller, booked) -> None:
        lifecycle.cancel(admin_caller, booked.id)

        with pytest.raises(UnauthorizedError):
            lifecycle.complete(patient_caller, booked.id)

    @pytest.mark.parametrize("terminal", ["complete", "mark_no_show", "cancel"])
    def test_terminal_states_never_move(self, lifecycle, admin_caller, booked, terminal) -> None:
        getattr(lifecycle, terminal)(admin_caller, booked.id)

        for action in ("complete", "mark_no_show"):
            with pytest.raises(InvalidTransitionError):
                getattr(lifecycle, action)(admin_caller, booked.id)
        with pytest.raises(InvalidTransitionError):
            lifecycle.reschedule(admin_caller, booked.id, TUESDAY, NINE_THIRTY)

    def test_cancel_completed_is_invalid(self, lifecycle, admin_caller, patient_caller, booked) -> None:
        lifecycle.complete(admin_caller, booked.id)

        with pytest.raises(InvalidTransitionError):
            lifecycle.cancel(patient_caller, booked.id)

    def test_unknown_appointment(self, lifecycle: LifecycleManager, admin_caller) -> None:
        with pytest.raises(NotFoundError):
            lifecycle.cancel(admin_caller, 9999)
        with pytest.raises(NotFoundError):
            lifecycle.complete(admin_caller, 9999)

    def test_update_notes_keeps_status(self, lifecycle, admin_caller, patient_caller, booked) -> None:
        updated = lifecycle.update_notes(admin_caller, booked.id, "Bring previous ECG")

        assert updated.notes == "Bring previous ECG"
        assert updated.status == AppointmentStatus.BOOKED
        with pytest.raises(UnauthorizedError):
            lifecycle.update_notes(patient_caller, booked.id, "mine")

    def test_admin_hard_delete(self, lifecycle, db_session, admin_caller, patient_caller, booked) -> None:
        with pytest.raises(UnauthorizedError):
            lifecycle.delete(patient_caller, booked.id)

        lifecycle.delete(admin_caller, booked.id)

        db_session.expunge_all()
        assert db_session.get(Appointment, booked.id) is None
        with pytest.raises(NotFoundError):
            lifecycle.delete(admin_caller, booked.id)


@pytest.mark.integration
class TestReschedule:
    """Moving a booked appointment between slots."""

    def test_reschedule_frees_old_slot(self, lifecycle, checker, patient_caller, booked) -> None:
        moved = lifecycle.reschedule(patient_caller, booked.id, TUESDAY, NINE_THIRTY)

        assert moved.appointment_time == NINE_THIRTY
        assert moved.status == AppointmentStatus.BOOKED
        assert checker.is_slot_free(booked.doctor_id, TUESDAY, NINE)
        assert not checker.is_slot_free(booked.doctor_id, TUESDAY, NINE_THIRTY)

    def test_reschedule_onto_taken_slot_keeps_original(self, lifecycle, booking, session_factory,
                                                        other_caller, other_patient, patient_caller,
                                                        booked) -> None:
        blocker = booking.book(other_caller, other_patient.id, booked.doctor_id, TUESDAY, NINE_THIRTY, "Other")

        with pytest.raises(SlotConflictError):
            lifecycle.reschedule(patient_caller, booked.id, TUESDAY, NINE_THIRTY)

        with session_factory() as session:
            original = session.get(Appointment, booked.id)
            assert original.appointment_time == NINE
            assert original.status == AppointmentStatus.BOOKED
            assert session.get(Appointment, blocker.id).appointment_time == NINE_THIRTY

    def test_reschedule_to_same_slot_is_noop(self, lifecycle, patient_caller, booked) -> None:
        same = lifecycle.reschedule(patient_caller, booked.id, TUESDAY, NINE)

        assert same.appointment_time == NINE
        assert same.status == AppointmentStatus.BOOKED

    def test_reschedule_validates_window_and_grid(self, lifecycle, patient_caller, booked) -> None:
        with pytest.raises(OutOfWindowError):
            lifecycle.reschedule(patient_caller, booked.id, date(2026, 7, 1), NINE)
        with pytest.raises(InvalidArgumentError):
            lifecycle.reschedule(patient_caller, booked.id, TUESDAY, time(9, 10))
        with pytest.raises(InvalidArgumentError):
            lifecycle.reschedule(patient_caller, booked.id, date(2026, 3, 8), NINE)

    def test_reschedule_rejects_time_with_utc_offset(self, lifecycle, session_factory,
                                                     patient_caller, booked) -> None:
        with pytest.raises(InvalidArgumentError):
            lifecycle.reschedule(patient_caller, booked.id, TUESDAY, time(9, 30, tzinfo=timezone.utc))

        with session_factory() as session:
            assert session.get(Appointment, booked.id).appointment_time == NINE

    def test_other_patient_cannot_reschedule(self, lifecycle, other_caller, booked) -> None:
        with pytest.raises(UnauthorizedError):
            lifecycle.reschedule(other_caller, booked.id, TUESDAY, NINE_THIRTY)


@pytest.mark.concurrency
@pytest.mark.integration
class TestLostTransitionRace:
    """A transition decided on a stale read is re-judged against the stored row."""

    def test_cancel_after_concurrent_complete_is_invalid(self, session_factory, service_kwargs,
                                                         admin_caller, patient_caller, booked) -> None:
        with session_factory() as stale, session_factory() as fresh:
            stale_manager = LifecycleManager(stale, **service_kwargs)
            assert stale.get(Appointment, booked.id).status == AppointmentStatus.BOOKED

            LifecycleManager(fresh, **service_kwargs).complete(admin_caller, booked.id)

            with pytest.raises(InvalidTransitionError):
                stale_manager.cancel(patient_caller, booked.id)

    def test_cancel_after_concurrent_cancel_is_noop(self, session_factory, service_kwargs,
                                                    admin_caller, patient_caller, booked) -> None:
        with session_factory() as stale, session_factory() as fresh:
            stale_manager = LifecycleManager(stale, **service_kwargs)
            assert stale.get(Appointment, booked.id).status == AppointmentStatus.BOOKED

            LifecycleManager(fresh, **service_kwargs).cancel(admin_caller, booked.id)

            result = stale_manager.cancel(patient_caller, booked.id)
            assert result.status == AppointmentStatus.CANCELLED
