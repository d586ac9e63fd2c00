from fastapi import APIRouter

from medicare.api.v1.admin import routes as admin
from medicare.api.v1.appointments import routes as appointments
from medicare.api.v1.doctors import routes as doctors
from medicare.api.v1.users import routes as users

api_router = APIRouter()
api_router.include_router(doctors.router, prefix="/doctors", tags=["doctors"])
api_router.include_router(doctors.category_router, prefix="/categories", tags=["categories"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["appointments"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
