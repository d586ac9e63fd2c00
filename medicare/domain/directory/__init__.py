# Directory domain module
from medicare.domain.directory.models import (
    User,
    UserRole,
    Category,
    Doctor,
)

__all__ = [
    "User",
    "UserRole",
    "Category",
    "Doctor",
]
