"""Principal dependencies: who is calling, and are they staff of this tenant."""

import logging

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from alltown_platform.app.tenancy import get_tenant_id
from alltown_platform.domain.models import BusinessStaff
from alltown_platform.infra.database import get_db
from alltown_platform.services.auth_service import decode_token
from alltown_platform.services.errors import NotFoundError
from alltown_platform.services.staff_service import StaffRegistry

logger = logging.getLogger(__name__)


def _principal_from_header(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    payload = decode_token(auth_header.removeprefix("Bearer "))
    if not payload or "sub" not in payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return str(payload["sub"])


async def get_current_principal_dep(request: Request) -> str:
    """Dependency: principal id from the Bearer token."""
    principal_id = _principal_from_header(request)
    if principal_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid token",
        )
    return principal_id


async def get_optional_principal_dep(request: Request) -> str | None:
    """Dependency: principal id if a token was sent; guests get None."""
    return _principal_from_header(request)


def require_staff_role(*roles: str):
    """Factory: dependency returning the caller's staff record in this tenant.

    With no roles given any staff role passes.
    """

    async def checker(
        principal_id: str = Depends(get_current_principal_dep),
        tenant_id: str = Depends(get_tenant_id),
        db: AsyncSession = Depends(get_db),
    ) -> BusinessStaff:
        try:
            staff = await StaffRegistry(db).get_staff(tenant_id, principal_id)
        except NotFoundError:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not a staff member of this business",
            )
        if roles and staff.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return staff

    return checker
