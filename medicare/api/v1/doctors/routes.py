"""
Doctors API Routes

API endpoints for the doctor directory, specialty categories and free slots.
"""

from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
from datetime import date

from medicare.api.deps import (
    get_availability_checker, get_current_caller, get_directory_service
)
from medicare.core.permissions import Caller
from medicare.domain.appointments.service import AvailabilityChecker
from medicare.domain.directory.availability import format_time_of_day
from medicare.domain.directory.service import DirectoryService, DoctorFilter
from medicare.api.v1.doctors.schemas import (
    CategoryCreate, CategoryResponse,
    DoctorCreate, DoctorUpdate, DoctorResponse,
    FreeSlotsResponse
)

router = APIRouter()
category_router = APIRouter()


# ==================== Doctor Endpoints ====================

@router.get("", response_model=List[DoctorResponse])
def list_doctors(
    category_id: Optional[int] = None,
    specialty: Optional[str] = None,
    search: Optional[str] = None,
    include_inactive: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    service: DirectoryService = Depends(get_directory_service)
):
    """List bookable doctors, ordered by name"""
    return service.list_doctors(DoctorFilter(
        category_id=category_id,
        specialty=specialty,
        search=search,
        include_inactive=include_inactive,
        skip=skip,
        limit=limit
    ))


@router.get("/{doctor_id}", response_model=DoctorResponse)
def get_doctor(
    doctor_id: int,
    service: DirectoryService = Depends(get_directory_service)
):
    return service.get_doctor(doctor_id)


@router.post("", response_model=DoctorResponse, status_code=status.HTTP_201_CREATED)
def create_doctor(
    doctor_data: DoctorCreate,
    caller: Caller = Depends(get_current_caller),
    service: DirectoryService = Depends(get_directory_service)
):
    """Create a doctor (admin)"""
    return service.create_doctor(caller, **doctor_data.model_dump())


@router.patch("/{doctor_id}", response_model=DoctorResponse)
def update_doctor(
    doctor_id: int,
    update_data: DoctorUpdate,
    caller: Caller = Depends(get_current_caller),
    service: DirectoryService = Depends(get_directory_service)
):
    """Update a doctor (admin)"""
    return service.update_doctor(caller, doctor_id, **update_data.model_dump(exclude_unset=True))


@router.delete("/{doctor_id}", response_model=DoctorResponse)
def deactivate_doctor(
    doctor_id: int,
    caller: Caller = Depends(get_current_caller),
    service: DirectoryService = Depends(get_directory_service)
):
    """Hide a doctor from new bookings; past appointments are kept"""
    return service.deactivate_doctor(caller, doctor_id)


@router.get("/{doctor_id}/slots", response_model=FreeSlotsResponse)
def list_free_slots(
    doctor_id: int,
    slot_date: date = Query(..., alias="date"),
    checker: AvailabilityChecker = Depends(get_availability_checker)
):
    """Free slots for a doctor on a date. Advisory: booking re-checks."""
    slots = checker.list_free_slots(doctor_id, slot_date)
    return FreeSlotsResponse(
        doctor_id=doctor_id,
        appointment_date=slot_date,
        slot_minutes=checker.slot_minutes,
        slots=[format_time_of_day(slot) for slot in slots]
    )


# ==================== Category Endpoints ====================

@category_router.get("", response_model=List[CategoryResponse])
def list_categories(
    include_inactive: bool = Query(False),
    service: DirectoryService = Depends(get_directory_service)
):
    return service.list_categories(include_inactive)


@category_router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    category_data: CategoryCreate,
    caller: Caller = Depends(get_current_caller),
    service: DirectoryService = Depends(get_directory_service)
):
    """Create a specialty category (admin)"""
    return service.create_category(caller, category_data.name, category_data.description)
