"""Delivery Lifecycle Engine.

Owns every status change of a DeliveryRequest:

    available --claim--> claimed --start--> in_progress --complete--> completed
        ^                   |
        +-- duty-off release (claimed only)

Each mutation is a single conditional UPDATE filtered by tenant, so the
store, not this process, decides races between competing drivers. A
completion and its loyalty accrual commit in the same transaction.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from alltown_platform.domain.enums import DeliveryStatus
from alltown_platform.domain.models import BusinessStaff, DeliveryRequest
from alltown_platform.domain.schemas import DeliveryRequestCreate
from alltown_platform.services.delivery_state_machine import ACTIVE_STATUSES, DeliveryStateMachine
from alltown_platform.services.errors import (
    ClaimConflictError,
    DeliveryValidationError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
)
from alltown_platform.services.loyalty_service import LoyaltyLedger

logger = logging.getLogger(__name__)

S = DeliveryStatus


class DeliveryLifecycleService:
    """Claim / advance / release operations on tenant-scoped delivery requests."""

    def __init__(self, db: AsyncSession, ledger: LoyaltyLedger | None = None):
        self.db = db
        self.ledger = ledger or LoyaltyLedger(db)
        self.state_machine = DeliveryStateMachine()

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    async def create_request(
        self,
        tenant_id: str,
        data: DeliveryRequestCreate,
        customer_id: str | None = None,
    ) -> DeliveryRequest:
        """Persist a new request at status=available.

        Either ``customer_id`` (authenticated) or guest contact fields
        (name and phone) must be present.
        """
        has_guest_contact = bool(
            (data.customer_name or "").strip() and (data.phone or "").strip()
        )
        if not customer_id and not has_guest_contact:
            raise DeliveryValidationError(
                "A delivery request needs a customer account or guest name and phone"
            )
        if data.used_free_delivery:
            if not customer_id:
                raise DeliveryValidationError("Guest requests cannot use a free delivery")
            if not await self.ledger.eligibility(customer_id, tenant_id):
                raise DeliveryValidationError("No free delivery credits available")

        delivery = DeliveryRequest(
            tenant_id=tenant_id,
            customer_id=customer_id,
            business_id=data.business_id,
            customer_name=data.customer_name,
            phone=data.phone,
            email=data.email,
            pickup_address=data.pickup_address,
            delivery_address=data.delivery_address,
            preferred_date=data.preferred_date,
            preferred_time=data.preferred_time,
            payment_method=data.payment_method.value,
            special_instructions=data.special_instructions,
            status=S.AVAILABLE.value,
            used_free_delivery=data.used_free_delivery,
            payment_status=data.payment_status.value,
            square_payment_id=data.square_payment_id,
            total_amount=data.total_amount,
        )
        self.db.add(delivery)
        await self.db.commit()
        await self.db.refresh(delivery)

        logger.info(
            "Delivery request created: id=%s tenant=%s customer=%s",
            delivery.id,
            tenant_id,
            customer_id or "guest",
        )
        return delivery

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, tenant_id: str, delivery_id: str) -> DeliveryRequest:
        """Tenant-scoped fetch. Ids owned by another tenant look missing."""
        result = await self.db.execute(
            select(DeliveryRequest)
            .where(
                DeliveryRequest.id == delivery_id,
                DeliveryRequest.tenant_id == tenant_id,
            )
            .execution_options(populate_existing=True)
        )
        delivery = result.scalar_one_or_none()
        if delivery is None:
            raise NotFoundError(f"Delivery {delivery_id} not found")
        return delivery

    async def list_available(self, tenant_id: str) -> list[DeliveryRequest]:
        result = await self.db.execute(
            select(DeliveryRequest)
            .where(
                DeliveryRequest.tenant_id == tenant_id,
                DeliveryRequest.status == S.AVAILABLE.value,
            )
            .order_by(DeliveryRequest.created_at.asc())
        )
        return list(result.scalars().all())

    async def list_for_driver(self, tenant_id: str, driver_id: str) -> list[DeliveryRequest]:
        """The driver's claimed and in-progress work."""
        result = await self.db.execute(
            select(DeliveryRequest)
            .where(
                DeliveryRequest.tenant_id == tenant_id,
                DeliveryRequest.claimed_by_driver == driver_id,
                DeliveryRequest.status.in_([S.CLAIMED.value, S.IN_PROGRESS.value]),
            )
            .order_by(DeliveryRequest.claimed_at.asc())
        )
        return list(result.scalars().all())

    async def list_for_tenant(
        self, tenant_id: str, status: DeliveryStatus | None = None
    ) -> list[DeliveryRequest]:
        query = select(DeliveryRequest).where(DeliveryRequest.tenant_id == tenant_id)
        if status is not None:
            query = query.where(DeliveryRequest.status == status.value)
        result = await self.db.execute(query.order_by(DeliveryRequest.created_at.desc()))
        return list(result.scalars().all())

    async def list_for_customer(self, tenant_id: str, customer_id: str) -> list[DeliveryRequest]:
        result = await self.db.execute(
            select(DeliveryRequest)
            .where(
                DeliveryRequest.tenant_id == tenant_id,
                DeliveryRequest.customer_id == customer_id,
            )
            .order_by(DeliveryRequest.created_at.desc())
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Claim
    # ------------------------------------------------------------------

    async def claim(
        self,
        tenant_id: str,
        driver_id: str,
        delivery_id: str,
        notes: str | None = None,
    ) -> DeliveryRequest:
        """Take ownership of an available delivery.

        The UPDATE only matches while the row is still available, so of any
        number of concurrent callers exactly one sees a row change.
        """
        delivery = await self.get(tenant_id, delivery_id)
        await self._require_on_duty(tenant_id, driver_id)

        now = datetime.now(timezone.utc)
        result = await self.db.execute(
            update(DeliveryRequest)
            .where(
                DeliveryRequest.id == delivery_id,
                DeliveryRequest.tenant_id == tenant_id,
                DeliveryRequest.status == S.AVAILABLE.value,
            )
            .values(
                status=S.CLAIMED.value,
                claimed_by_driver=driver_id,
                claimed_at=now,
                driver_notes=notes,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            logger.info(
                "Claim lost: delivery=%s driver=%s tenant=%s", delivery_id, driver_id, tenant_id
            )
            raise ClaimConflictError("This delivery was just claimed by someone else")

        await self.db.commit()
        await self.db.refresh(delivery)
        logger.info("Delivery claimed: delivery=%s driver=%s", delivery_id, driver_id)
        return delivery

    # ------------------------------------------------------------------
    # Advance
    # ------------------------------------------------------------------

    async def advance(
        self,
        tenant_id: str,
        driver_id: str,
        delivery_id: str,
        new_status: DeliveryStatus | None = None,
        notes: str | None = None,
    ) -> DeliveryRequest:
        """Move a claimed delivery forward, or re-save its notes.

        Only the claimant may act. Landing on completed clears the claim and
        records exactly one loyalty accrual for the customer, if any.
        """
        delivery = await self.get(tenant_id, delivery_id)
        current = DeliveryStatus(delivery.status)
        target = new_status or current

        if current not in ACTIVE_STATUSES:
            raise InvalidTransitionError(
                current, target, f"Delivery is {current.value} and has no claimant"
            )
        if delivery.claimed_by_driver != driver_id:
            raise ForbiddenError("Delivery is claimed by another driver")

        self.state_machine.validate_advance(current, target)

        now = datetime.now(timezone.utc)
        values = {"status": target.value, "updated_at": now}
        if notes is not None:
            values["driver_notes"] = notes
        if target == S.COMPLETED:
            values.update(
                claimed_by_driver=None,
                claimed_at=None,
                completed_by_driver=driver_id,
                completed_at=now,
            )

        try:
            result = await self.db.execute(
                update(DeliveryRequest)
                .where(
                    DeliveryRequest.id == delivery_id,
                    DeliveryRequest.tenant_id == tenant_id,
                    DeliveryRequest.status == current.value,
                    DeliveryRequest.claimed_by_driver == driver_id,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise ClaimConflictError("Delivery changed while it was being updated")

            if target == S.COMPLETED and delivery.customer_id:
                await self.ledger.accrue(
                    delivery.customer_id, tenant_id, bool(delivery.used_free_delivery)
                )

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(delivery)
        logger.info(
            "Delivery advanced: delivery=%s driver=%s %s -> %s",
            delivery_id,
            driver_id,
            current.value,
            target.value,
        )
        return delivery

    # ------------------------------------------------------------------
    # Duty-off release
    # ------------------------------------------------------------------

    async def release_claimed_for_driver(self, tenant_id: str, driver_id: str) -> int:
        """Return the driver's claimed (not started) deliveries to the pool.

        In-progress work is left with the driver. Returns the number released.
        """
        result = await self.db.execute(
            update(DeliveryRequest)
            .where(
                DeliveryRequest.tenant_id == tenant_id,
                DeliveryRequest.claimed_by_driver == driver_id,
                DeliveryRequest.status == S.CLAIMED.value,
            )
            .values(
                status=S.AVAILABLE.value,
                claimed_by_driver=None,
                claimed_at=None,
                driver_notes=None,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        released = result.rowcount or 0
        if released:
            logger.info(
                "Released %d claimed deliveries: driver=%s tenant=%s", released, driver_id, tenant_id
            )
        return released

    async def _require_on_duty(self, tenant_id: str, driver_id: str) -> BusinessStaff:
        result = await self.db.execute(
            select(BusinessStaff)
            .where(
                BusinessStaff.id == driver_id,
                BusinessStaff.tenant_id == tenant_id,
            )
            .execution_options(populate_existing=True)
        )
        staff = result.scalar_one_or_none()
        if staff is None:
            raise ForbiddenError("Only staff of this business can claim deliveries")
        if not staff.is_on_duty:
            raise ForbiddenError("Go on duty before claiming deliveries")
        return staff
