"""Driver Registry: tenant staff records and the on-duty flag."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from alltown_platform.domain.models import BusinessStaff
from alltown_platform.services.delivery_service import DeliveryLifecycleService
from alltown_platform.services.errors import NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class DutyChange:
    """Outcome of ``StaffRegistry.set_on_duty``."""

    staff: BusinessStaff
    released: int = 0
    release_failed: bool = False


class StaffRegistry:
    """Reads staff records and sequences the duty-off cascade release."""

    def __init__(self, db: AsyncSession, lifecycle: DeliveryLifecycleService | None = None):
        self.db = db
        self.lifecycle = lifecycle or DeliveryLifecycleService(db)

    async def get_staff(self, tenant_id: str, staff_id: str) -> BusinessStaff:
        result = await self.db.execute(
            select(BusinessStaff)
            .where(
                BusinessStaff.id == staff_id,
                BusinessStaff.tenant_id == tenant_id,
            )
            .execution_options(populate_existing=True)
        )
        staff = result.scalar_one_or_none()
        if staff is None:
            raise NotFoundError(f"Staff member {staff_id} not found")
        return staff

    async def list_staff(self, tenant_id: str, on_duty: bool | None = None) -> list[BusinessStaff]:
        query = select(BusinessStaff).where(BusinessStaff.tenant_id == tenant_id)
        if on_duty is not None:
            query = query.where(BusinessStaff.is_on_duty == on_duty)
        result = await self.db.execute(query.order_by(BusinessStaff.name.asc()))
        return list(result.scalars().all())

    async def set_on_duty(self, tenant_id: str, driver_id: str, value: bool) -> DutyChange:
        """Persist the duty flag; going off duty releases claimed deliveries.

        A failed release is logged and reported on the result. It never
        undoes the duty change.
        """
        result = await self.db.execute(
            update(BusinessStaff)
            .where(
                BusinessStaff.id == driver_id,
                BusinessStaff.tenant_id == tenant_id,
            )
            .values(is_on_duty=value, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise NotFoundError(f"Staff member {driver_id} not found")
        await self.db.commit()
        logger.info("Duty status: staff=%s tenant=%s on_duty=%s", driver_id, tenant_id, value)

        staff = await self.get_staff(tenant_id, driver_id)
        # Detach so a rollback of the release below cannot expire the snapshot
        self.db.expunge(staff)
        change = DutyChange(staff=staff)
        if value:
            return change

        try:
            change.released = await self.lifecycle.release_claimed_for_driver(tenant_id, driver_id)
        except Exception:
            logger.exception(
                "Failed to release claimed deliveries: staff=%s tenant=%s", driver_id, tenant_id
            )
            await self.db.rollback()
            change.release_failed = True
        return change
