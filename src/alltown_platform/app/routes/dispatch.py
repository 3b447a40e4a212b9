"""Dispatch monitoring: tenant staff and deliveries (dispatchers and admins)."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from alltown_platform.app.routes.auth import require_staff_role
from alltown_platform.app.tenancy import get_tenant_id
from alltown_platform.domain.enums import DeliveryStatus, StaffRole
from alltown_platform.domain.schemas import DeliveryRequestResponse, StaffResponse
from alltown_platform.infra.database import get_db
from alltown_platform.services.delivery_service import DeliveryLifecycleService
from alltown_platform.services.staff_service import StaffRegistry

router = APIRouter(prefix="/api/dispatch", tags=["dispatch"])

_managers = require_staff_role(StaffRole.ADMIN.value, StaffRole.DISPATCHER.value)


@router.get("/drivers", response_model=list[StaffResponse])
async def list_drivers(
    on_duty: bool | None = Query(None),
    tenant_id: str = Depends(get_tenant_id),
    _staff=Depends(_managers),
    db: AsyncSession = Depends(get_db),
):
    staff = await StaffRegistry(db).list_staff(tenant_id, on_duty=on_duty)
    return [StaffResponse.model_validate(s) for s in staff]


@router.get("/deliveries", response_model=list[DeliveryRequestResponse])
async def list_deliveries(
    status: DeliveryStatus | None = Query(None),
    tenant_id: str = Depends(get_tenant_id),
    _staff=Depends(_managers),
    db: AsyncSession = Depends(get_db),
):
    deliveries = await DeliveryLifecycleService(db).list_for_tenant(tenant_id, status=status)
    return [DeliveryRequestResponse.model_validate(d) for d in deliveries]
