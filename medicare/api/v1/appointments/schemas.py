"""
Appointments API Schemas

Pydantic models for appointment-related API requests and responses.
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, date, time

from medicare.domain.appointments.models import AppointmentStatus


class AppointmentCreate(BaseModel):
    """Schema for booking an appointment.

    ``patient_id`` defaults to the caller; admins may book for any patient.
    """
    patient_id: Optional[int] = None
    doctor_id: int
    appointment_date: date
    appointment_time: time
    reason: str = Field(..., max_length=1000)


class AppointmentReschedule(BaseModel):
    """Schema for moving an appointment to another slot"""
    appointment_date: date
    appointment_time: time


class AppointmentComplete(BaseModel):
    """Schema for completing an appointment"""
    notes: Optional[str] = None


class AppointmentNotesUpdate(BaseModel):
    """Schema for editing visit notes"""
    notes: Optional[str] = None


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""
    id: int
    patient_id: int
    doctor_id: int
    appointment_date: date
    appointment_time: time
    reason: str
    notes: Optional[str] = None
    status: AppointmentStatus
    doctor_name: Optional[str] = None
    specialty: Optional[str] = None
    patient_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
