"""
Caller identity and role checks

Authentication happens upstream. Every mutating entry point receives a
``Caller`` and checks it explicitly with the helpers below.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from medicare.core.exceptions import UnauthorizedError
from medicare.domain.directory.models import UserRole


@dataclass(frozen=True)
class Caller:
    """Identity and role asserted by the upstream identity layer"""
    user_id: int
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_patient(self) -> bool:
        return self.role == UserRole.PATIENT

    @classmethod
    def from_token_payload(cls, payload: Dict[str, Any]) -> "Caller":
        """Build a caller from decoded JWT claims (``sub`` and ``role``)"""
        try:
            return cls(user_id=int(payload["sub"]), role=UserRole(payload["role"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise UnauthorizedError("Invalid caller identity") from exc


def require_admin(caller: Caller, action: str = "perform this action") -> None:
    if not caller.is_admin:
        raise UnauthorizedError(
            f"Only administrators may {action}",
            details={"caller_id": caller.user_id, "role": caller.role.value}
        )


def require_owner_or_admin(caller: Caller, owner_id: Optional[int], action: str = "access this resource") -> None:
    """Patients may act on their own records; administrators on any"""
    if caller.is_admin:
        return
    if caller.is_patient and owner_id is not None and caller.user_id == owner_id:
        return
    raise UnauthorizedError(
        f"Not allowed to {action}",
        details={"caller_id": caller.user_id, "owner_id": owner_id}
    )
