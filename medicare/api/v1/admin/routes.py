"""
Admin API Routes

Schema maintenance, store health and dashboard reporting.
"""

from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from medicare.api.deps import get_current_caller, get_reporting_service, get_schema_manager
from medicare.core.exceptions import InvalidArgumentError
from medicare.core.permissions import Caller, require_admin
from medicare.domain.appointments.service import ReportingService
from medicare.domain.schema.manager import SchemaManager
from medicare.api.v1.appointments.schemas import AppointmentResponse
from medicare.api.v1.admin.schemas import (
    SchemaEnsureResponse, SeedSummary, ClearResponse, HealthResponse,
    DashboardStats, TopDoctor
)

router = APIRouter()


def _require_confirmation(confirm: bool, action: str) -> None:
    if not confirm:
        raise InvalidArgumentError(
            f"{action} is destructive; repeat the request with confirm=true",
            details={"action": action}
        )


# ==================== Schema Maintenance ====================

@router.post("/schema/ensure", response_model=SchemaEnsureResponse)
def ensure_schema(
    caller: Caller = Depends(get_current_caller),
    manager: SchemaManager = Depends(get_schema_manager)
):
    require_admin(caller, "manage the schema")
    return SchemaEnsureResponse(created_tables=manager.ensure_schema())


@router.post("/schema/seed", response_model=SeedSummary)
def seed_defaults(
    include_sample_doctors: Optional[bool] = None,
    caller: Caller = Depends(get_current_caller),
    manager: SchemaManager = Depends(get_schema_manager)
):
    require_admin(caller, "seed the database")
    return manager.seed_defaults(include_sample_doctors)


@router.post("/schema/reset", response_model=SeedSummary)
def reset_database(
    confirm: bool = Query(False),
    caller: Caller = Depends(get_current_caller),
    manager: SchemaManager = Depends(get_schema_manager)
):
    """Drop, recreate and reseed every table"""
    require_admin(caller, "reset the database")
    _require_confirmation(confirm, "reset")
    return manager.reset()


@router.post("/schema/clear", response_model=ClearResponse)
def clear_database(
    confirm: bool = Query(False),
    caller: Caller = Depends(get_current_caller),
    manager: SchemaManager = Depends(get_schema_manager)
):
    """Delete every row, keeping the tables"""
    require_admin(caller, "clear the database")
    _require_confirmation(confirm, "clear")
    manager.clear()
    return ClearResponse(cleared=True)


@router.get("/health", response_model=HealthResponse)
def database_health(manager: SchemaManager = Depends(get_schema_manager)):
    return manager.health()


# ==================== Reporting ====================

@router.get("/stats", response_model=DashboardStats)
def dashboard_stats(
    caller: Caller = Depends(get_current_caller),
    service: ReportingService = Depends(get_reporting_service)
):
    return service.dashboard_stats(caller)


@router.get("/recent-appointments", response_model=List[AppointmentResponse])
def recent_appointments(
    limit: int = Query(10, ge=1, le=100),
    caller: Caller = Depends(get_current_caller),
    service: ReportingService = Depends(get_reporting_service)
):
    return service.recent_appointments(caller, limit)


@router.get("/top-doctors", response_model=List[TopDoctor])
def top_doctors(
    limit: int = Query(5, ge=1, le=50),
    caller: Caller = Depends(get_current_caller),
    service: ReportingService = Depends(get_reporting_service)
):
    return service.top_doctors(caller, limit)
