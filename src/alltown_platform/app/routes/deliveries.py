"""Customer-facing endpoints: intake, delivery history, loyalty status."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from alltown_platform.app.routes.auth import (
    get_current_principal_dep,
    get_optional_principal_dep,
)
from alltown_platform.app.tenancy import get_tenant_id
from alltown_platform.domain.enums import StaffRole
from alltown_platform.domain.schemas import (
    DeliveryRequestCreate,
    DeliveryRequestResponse,
    LoyaltyStatusResponse,
)
from alltown_platform.infra.database import get_db
from alltown_platform.services.delivery_service import DeliveryLifecycleService
from alltown_platform.services.errors import DeliveryCoreError, NotFoundError
from alltown_platform.services.loyalty_service import LoyaltyLedger
from alltown_platform.services.staff_service import StaffRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["deliveries"])

MANAGER_ROLES = {StaffRole.ADMIN.value, StaffRole.DISPATCHER.value}


async def _require_self_or_manager(
    db: AsyncSession, tenant_id: str, principal_id: str, customer_id: str
) -> None:
    if principal_id == customer_id:
        return
    try:
        staff = await StaffRegistry(db).get_staff(tenant_id, principal_id)
    except NotFoundError:
        staff = None
    if staff is None or staff.role not in MANAGER_ROLES:
        raise HTTPException(status_code=403, detail="Access denied")


@router.post("/delivery-requests", response_model=DeliveryRequestResponse)
async def create_delivery_request(
    data: DeliveryRequestCreate,
    tenant_id: str = Depends(get_tenant_id),
    principal_id: str | None = Depends(get_optional_principal_dep),
    db: AsyncSession = Depends(get_db),
):
    """Submit a delivery request, as a signed-in customer or as a guest."""
    try:
        delivery = await DeliveryLifecycleService(db).create_request(
            tenant_id, data, customer_id=principal_id
        )
    except DeliveryCoreError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return DeliveryRequestResponse.model_validate(delivery)


@router.get("/customers/{customer_id}/deliveries", response_model=list[DeliveryRequestResponse])
async def customer_deliveries(
    customer_id: str,
    tenant_id: str = Depends(get_tenant_id),
    principal_id: str = Depends(get_current_principal_dep),
    db: AsyncSession = Depends(get_db),
):
    await _require_self_or_manager(db, tenant_id, principal_id, customer_id)
    deliveries = await DeliveryLifecycleService(db).list_for_customer(tenant_id, customer_id)
    return [DeliveryRequestResponse.model_validate(d) for d in deliveries]


@router.get("/loyalty/me", response_model=LoyaltyStatusResponse)
async def my_loyalty(
    tenant_id: str = Depends(get_tenant_id),
    principal_id: str = Depends(get_current_principal_dep),
    db: AsyncSession = Depends(get_db),
):
    status = await LoyaltyLedger(db).status(principal_id, tenant_id)
    return LoyaltyStatusResponse.model_validate(status)


@router.get("/customers/{customer_id}/loyalty", response_model=LoyaltyStatusResponse)
async def customer_loyalty(
    customer_id: str,
    tenant_id: str = Depends(get_tenant_id),
    principal_id: str = Depends(get_current_principal_dep),
    db: AsyncSession = Depends(get_db),
):
    await _require_self_or_manager(db, tenant_id, principal_id, customer_id)
    status = await LoyaltyLedger(db).status(customer_id, tenant_id)
    return LoyaltyStatusResponse.model_validate(status)
