"""
Doctors API Schemas

Pydantic models for doctor, category and free-slot requests and responses.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal

from medicare.domain.directory.availability import format_weekdays


# ==================== Category Schemas ====================

class CategoryCreate(BaseModel):
    """Schema for creating a specialty category"""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class CategoryResponse(BaseModel):
    """Schema for category response"""
    id: int
    name: str
    description: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ==================== Doctor Schemas ====================

class DoctorBase(BaseModel):
    """Base schema for doctor"""
    name: str = Field(..., min_length=1, max_length=100)
    specialty: str = Field(..., min_length=1, max_length=100)
    category_id: Optional[int] = None
    details: Optional[str] = None
    experience_years: int = Field(0, ge=0)
    consultation_fee: Decimal = Field(Decimal("0"), ge=0)
    available_days: str = Field("Mon,Tue,Wed,Thu,Fri", description="Comma-separated weekdays, e.g. Mon,Wed,Fri")
    available_hours: str = Field("09:00-17:00", description="Daily hours as HH:MM-HH:MM")


class DoctorCreate(DoctorBase):
    """Schema for creating a doctor"""
    pass


class DoctorUpdate(BaseModel):
    """Schema for updating a doctor"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    specialty: Optional[str] = Field(None, min_length=1, max_length=100)
    category_id: Optional[int] = None
    details: Optional[str] = None
    experience_years: Optional[int] = Field(None, ge=0)
    consultation_fee: Optional[Decimal] = Field(None, ge=0)
    available_days: Optional[str] = None
    available_hours: Optional[str] = None
    is_active: Optional[bool] = None


class DoctorResponse(DoctorBase):
    """Schema for doctor response"""
    id: int
    category_name: Optional[str] = None
    # None when the stored value is unreadable
    available_days: Optional[str] = None
    available_hours: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("available_days", mode="before")
    @classmethod
    def format_days(cls, v):
        if v is None or isinstance(v, str):
            return v
        return format_weekdays(v)

    @field_validator("available_hours", mode="before")
    @classmethod
    def format_hours(cls, v):
        return None if v is None else str(v)

    class Config:
        from_attributes = True


# ==================== Slot Schemas ====================

class FreeSlotsResponse(BaseModel):
    """Free slots for one doctor on one date"""
    doctor_id: int
    appointment_date: date
    slot_minutes: int
    slots: List[str] = Field(default_factory=list, description="Slot start times as HH:MM")
