"""
Admin API Schemas
"""

from pydantic import BaseModel
from typing import Optional, Dict


class SchemaEnsureResponse(BaseModel):
    created_tables: bool


class SeedSummary(BaseModel):
    categories: int
    doctors: int
    admin_created: bool


class ClearResponse(BaseModel):
    cleared: bool


class HealthResponse(BaseModel):
    status: str
    persistent: bool
    tables: Optional[Dict[str, int]] = None
    error: Optional[str] = None
    timestamp: str


class DashboardStats(BaseModel):
    """Headline numbers for the admin dashboard"""
    total_patients: int
    total_doctors: int
    total_appointments: int
    total_categories: int
    today_appointments: int
    upcoming_appointments: int
    completed_appointments: int
    cancelled_appointments: int


class TopDoctor(BaseModel):
    doctor_id: int
    name: str
    specialty: str
    appointment_count: int
