"""
Users API Routes

Patient registration, profile edits and admin account management.
"""

from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional

from medicare.api.deps import get_current_caller, get_directory_service
from medicare.core.exceptions import InvalidArgumentError
from medicare.core.permissions import Caller, require_admin, require_owner_or_admin
from medicare.core.security import get_password_hash
from medicare.domain.directory.models import UserRole
from medicare.domain.directory.service import DirectoryService
from medicare.api.v1.users.schemas import UserCreate, UserUpdate, UserResponse

router = APIRouter()


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register_patient(
    user_data: UserCreate,
    service: DirectoryService = Depends(get_directory_service)
):
    """Register a patient account"""
    return service.create_user(
        username=user_data.username,
        email=user_data.email,
        password_hash=get_password_hash(user_data.password),
        role=UserRole.PATIENT,
        full_name=user_data.full_name,
        phone=user_data.phone
    )


@router.get("", response_model=List[UserResponse])
def list_users(
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    caller: Caller = Depends(get_current_caller),
    service: DirectoryService = Depends(get_directory_service)
):
    require_admin(caller, "list users")
    return service.list_users(role=role, is_active=is_active, search=search, skip=skip, limit=limit)


@router.get("/lookup", response_model=UserResponse)
def lookup_user(
    username: Optional[str] = None,
    email: Optional[str] = None,
    caller: Caller = Depends(get_current_caller),
    service: DirectoryService = Depends(get_directory_service)
):
    """Find one account by exact username or email (admin)"""
    require_admin(caller, "look up users")
    if username:
        return service.get_user_by_username(username)
    if email:
        return service.get_user_by_email(email)
    raise InvalidArgumentError("Provide a username or an email")


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    caller: Caller = Depends(get_current_caller),
    service: DirectoryService = Depends(get_directory_service)
):
    require_owner_or_admin(caller, user_id, "view this profile")
    return service.get_user(user_id)


@router.patch("/{user_id}", response_model=UserResponse)
def update_profile(
    user_id: int,
    update_data: UserUpdate,
    caller: Caller = Depends(get_current_caller),
    service: DirectoryService = Depends(get_directory_service)
):
    """Edit your own profile; administrators may edit any"""
    fields = update_data.model_dump(exclude_unset=True, exclude={"password"})
    password_hash = get_password_hash(update_data.password) if update_data.password else None
    return service.update_user(caller, user_id, password_hash=password_hash, **fields)


@router.post("/{user_id}/activate", response_model=UserResponse)
def activate_user(
    user_id: int,
    caller: Caller = Depends(get_current_caller),
    service: DirectoryService = Depends(get_directory_service)
):
    return service.set_user_active(caller, user_id, True)


@router.post("/{user_id}/deactivate", response_model=UserResponse)
def deactivate_user(
    user_id: int,
    caller: Caller = Depends(get_current_caller),
    service: DirectoryService = Depends(get_directory_service)
):
    return service.set_user_active(caller, user_id, False)
