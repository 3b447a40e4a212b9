"""Driver endpoints: available work, claim, progress updates, duty toggle.

The caller's principal id is the driver id; every call is scoped to the
tenant resolved for the request.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from alltown_platform.app.routes.auth import get_current_principal_dep, require_staff_role
from alltown_platform.app.tenancy import get_tenant_id
from alltown_platform.domain.models import BusinessStaff
from alltown_platform.domain.schemas import (
    AdvanceRequest,
    ClaimRequest,
    DeliveryRequestResponse,
    DutyChangeResponse,
    DutyStatusUpdate,
    StaffResponse,
)
from alltown_platform.infra.database import get_db
from alltown_platform.services.delivery_service import DeliveryLifecycleService
from alltown_platform.services.errors import DeliveryCoreError
from alltown_platform.services.staff_service import StaffRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/driver", tags=["driver"])


@router.get("/deliveries/available", response_model=list[DeliveryRequestResponse])
async def available_deliveries(
    tenant_id: str = Depends(get_tenant_id),
    staff: BusinessStaff = Depends(require_staff_role()),
    db: AsyncSession = Depends(get_db),
):
    """Open deliveries. Off-duty staff see an empty board."""
    if not staff.is_on_duty:
        return []
    deliveries = await DeliveryLifecycleService(db).list_available(tenant_id)
    return [DeliveryRequestResponse.model_validate(d) for d in deliveries]


@router.get("/deliveries", response_model=list[DeliveryRequestResponse])
async def my_deliveries(
    tenant_id: str = Depends(get_tenant_id),
    staff: BusinessStaff = Depends(require_staff_role()),
    db: AsyncSession = Depends(get_db),
):
    """The caller's claimed and in-progress deliveries."""
    deliveries = await DeliveryLifecycleService(db).list_for_driver(tenant_id, staff.id)
    return [DeliveryRequestResponse.model_validate(d) for d in deliveries]


@router.post("/deliveries/{delivery_id}/claim", response_model=DeliveryRequestResponse)
async def claim_delivery(
    delivery_id: str,
    body: ClaimRequest | None = None,
    tenant_id: str = Depends(get_tenant_id),
    driver_id: str = Depends(get_current_principal_dep),
    db: AsyncSession = Depends(get_db),
):
    notes = body.driver_notes if body else None
    try:
        delivery = await DeliveryLifecycleService(db).claim(tenant_id, driver_id, delivery_id, notes)
    except DeliveryCoreError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return DeliveryRequestResponse.model_validate(delivery)


@router.patch("/deliveries/{delivery_id}", response_model=DeliveryRequestResponse)
async def update_delivery(
    delivery_id: str,
    body: AdvanceRequest,
    tenant_id: str = Depends(get_tenant_id),
    driver_id: str = Depends(get_current_principal_dep),
    db: AsyncSession = Depends(get_db),
):
    """Start or complete a claimed delivery, or save driver notes."""
    try:
        delivery = await DeliveryLifecycleService(db).advance(
            tenant_id, driver_id, delivery_id, body.status, body.driver_notes
        )
    except DeliveryCoreError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return DeliveryRequestResponse.model_validate(delivery)


@router.patch("/status", response_model=DutyChangeResponse)
async def update_duty_status(
    body: DutyStatusUpdate,
    tenant_id: str = Depends(get_tenant_id),
    driver_id: str = Depends(get_current_principal_dep),
    db: AsyncSession = Depends(get_db),
):
    """Go on or off duty. Going off duty returns claimed, unstarted work to the pool."""
    try:
        change = await StaffRegistry(db).set_on_duty(tenant_id, driver_id, body.is_on_duty)
    except DeliveryCoreError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return DutyChangeResponse(
        staff=StaffResponse.model_validate(change.staff),
        released_deliveries=change.released,
        release_failed=change.release_failed,
    )
