# Appointments domain module
from medicare.domain.appointments.models import (
    Appointment,
    AppointmentStatus,
)

__all__ = [
    "Appointment",
    "AppointmentStatus",
]
