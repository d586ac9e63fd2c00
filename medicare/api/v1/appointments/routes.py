"""
Appointments API Routes

API endpoints for booking, listing and moving appointments through their
lifecycle.
"""

from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
from datetime import date

from medicare.api.deps import (
    get_appointment_service, get_booking_service,
    get_current_caller, get_lifecycle_manager
)
from medicare.core.permissions import Caller
from medicare.domain.appointments.models import AppointmentStatus
from medicare.domain.appointments.service import (
    AppointmentService, BookingService, LifecycleManager
)
from medicare.api.v1.appointments.schemas import (
    AppointmentCreate, AppointmentReschedule, AppointmentComplete,
    AppointmentNotesUpdate, AppointmentResponse
)

router = APIRouter()


@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    appointment_data: AppointmentCreate,
    caller: Caller = Depends(get_current_caller),
    service: BookingService = Depends(get_booking_service)
):
    """Book a slot. 409 means the slot was taken: list free slots and retry."""
    patient_id = appointment_data.patient_id
    if patient_id is None:
        patient_id = caller.user_id
    return service.book(
        caller,
        patient_id=patient_id,
        doctor_id=appointment_data.doctor_id,
        appointment_date=appointment_data.appointment_date,
        appointment_time=appointment_data.appointment_time,
        reason=appointment_data.reason
    )


@router.get("", response_model=List[AppointmentResponse])
def list_appointments(
    patient_id: Optional[int] = None,
    doctor_id: Optional[int] = None,
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status"),
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    caller: Caller = Depends(get_current_caller),
    service: AppointmentService = Depends(get_appointment_service)
):
    """Newest first. Patients only see their own appointments."""
    return service.list_appointments(
        caller,
        patient_id=patient_id,
        doctor_id=doctor_id,
        status=status_filter,
        date_from=date_from,
        date_to=date_to,
        skip=skip,
        limit=limit
    )


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    caller: Caller = Depends(get_current_caller),
    service: AppointmentService = Depends(get_appointment_service)
):
    return service.get_appointment(caller, appointment_id)


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    caller: Caller = Depends(get_current_caller),
    manager: LifecycleManager = Depends(get_lifecycle_manager)
):
    return manager.cancel(caller, appointment_id)


@router.post("/{appointment_id}/complete", response_model=AppointmentResponse)
def complete_appointment(
    appointment_id: int,
    completion: Optional[AppointmentComplete] = None,
    caller: Caller = Depends(get_current_caller),
    manager: LifecycleManager = Depends(get_lifecycle_manager)
):
    notes = completion.notes if completion else None
    return manager.complete(caller, appointment_id, notes=notes)


@router.post("/{appointment_id}/no-show", response_model=AppointmentResponse)
def mark_no_show(
    appointment_id: int,
    caller: Caller = Depends(get_current_caller),
    manager: LifecycleManager = Depends(get_lifecycle_manager)
):
    return manager.mark_no_show(caller, appointment_id)


@router.post("/{appointment_id}/reschedule", response_model=AppointmentResponse)
def reschedule_appointment(
    appointment_id: int,
    reschedule_data: AppointmentReschedule,
    caller: Caller = Depends(get_current_caller),
    manager: LifecycleManager = Depends(get_lifecycle_manager)
):
    return manager.reschedule(
        caller,
        appointment_id,
        reschedule_data.appointment_date,
        reschedule_data.appointment_time
    )


@router.patch("/{appointment_id}/notes", response_model=AppointmentResponse)
def update_appointment_notes(
    appointment_id: int,
    notes_data: AppointmentNotesUpdate,
    caller: Caller = Depends(get_current_caller),
    manager: LifecycleManager = Depends(get_lifecycle_manager)
):
    return manager.update_notes(caller, appointment_id, notes_data.notes)


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: int,
    caller: Caller = Depends(get_current_caller),
    manager: LifecycleManager = Depends(get_lifecycle_manager)
):
    """Hard delete (admin)"""
    manager.delete(caller, appointment_id)
