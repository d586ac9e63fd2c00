from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from medicare.core import security
from medicare.core.clock import Clock, SystemClock
from medicare.core.exceptions import UnauthorizedError
from medicare.core.permissions import Caller
from medicare.domain.appointments.service import (
    AppointmentService, AvailabilityChecker, BookingService,
    LifecycleManager, ReportingService
)
from medicare.domain.directory.service import DirectoryService
from medicare.domain.schema.manager import SchemaManager
from medicare.infrastructure.database import MaintenanceLock, engine, get_db, maintenance_lock

# Tokens are issued by the upstream identity layer; this service only reads them.
reusable_bearer = HTTPBearer(auto_error=False)


def get_clock() -> Clock:
    return SystemClock()


def get_maintenance_lock() -> MaintenanceLock:
    return maintenance_lock


def get_schema_manager(
    lock: MaintenanceLock = Depends(get_maintenance_lock),
    clock: Clock = Depends(get_clock)
) -> SchemaManager:
    return SchemaManager(engine, lock=lock, clock=clock)


def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(reusable_bearer)
) -> Caller:
    if credentials is None:
        raise UnauthorizedError("Not authenticated")
    payload = security.verify_token(credentials.credentials)
    if payload is None:
        raise UnauthorizedError("Could not validate credentials")
    return Caller.from_token_payload(payload)


def get_directory_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    lock: MaintenanceLock = Depends(get_maintenance_lock)
) -> DirectoryService:
    return DirectoryService(db, clock=clock, lock=lock)


def get_availability_checker(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    lock: MaintenanceLock = Depends(get_maintenance_lock)
) -> AvailabilityChecker:
    return AvailabilityChecker(db, clock=clock, lock=lock)


def get_booking_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    lock: MaintenanceLock = Depends(get_maintenance_lock)
) -> BookingService:
    return BookingService(db, clock=clock, lock=lock)


def get_lifecycle_manager(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    lock: MaintenanceLock = Depends(get_maintenance_lock)
) -> LifecycleManager:
    return LifecycleManager(db, clock=clock, lock=lock)


def get_appointment_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock)
) -> AppointmentService:
    return AppointmentService(db, clock=clock)


def get_reporting_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock)
) -> ReportingService:
    return ReportingService(db, clock=clock)
