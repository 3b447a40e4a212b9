"""Loyalty Ledger: per (customer, tenant) points and free-delivery credits.

Every completed paid delivery earns one point. Reaching the tenant's
threshold converts the points into one free-delivery credit. A delivery
that used a free delivery consumes a credit instead of earning a point.
"""

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import case, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from alltown_platform.app.config import get_settings
from alltown_platform.domain.models import BusinessSettings, CustomerLoyaltyAccount

logger = logging.getLogger(__name__)

# Both dialects support ON CONFLICT DO NOTHING on the unique account key
_DIALECT_INSERTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}


@dataclass
class LoyaltyStatus:
    """Read model returned by ``LoyaltyLedger.status``."""

    points: int
    credits: int
    total_deliveries: int
    eligible: bool
    deliveries_until_next_credit: int
    threshold: int


class LoyaltyLedger:
    """Maintains loyalty balances. Writes join the caller's transaction; no commits here."""

    def __init__(self, db: AsyncSession, default_threshold: int | None = None):
        self.db = db
        self.default_threshold = default_threshold or get_settings().loyalty_points_for_free_delivery

    async def threshold_for(self, tenant_id: str) -> int:
        """Points needed for one free-delivery credit at this tenant."""
        result = await self.db.execute(
            select(BusinessSettings.points_for_free_delivery).where(
                BusinessSettings.tenant_id == tenant_id
            )
        )
        configured = result.scalar_one_or_none()
        if configured is None or configured < 1:
            return self.default_threshold
        return configured

    async def get_account(self, customer_id: str, tenant_id: str) -> CustomerLoyaltyAccount | None:
        result = await self.db.execute(
            select(CustomerLoyaltyAccount)
            .where(
                CustomerLoyaltyAccount.customer_id == customer_id,
                CustomerLoyaltyAccount.tenant_id == tenant_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def accrue(
        self, customer_id: str, tenant_id: str, used_free_delivery: bool
    ) -> CustomerLoyaltyAccount:
        """Record one completed delivery for the customer at this tenant.

        Insert-if-absent followed by a single UPDATE whose new values are
        computed from the row's current values, so concurrent accruals for
        the same key never lose an increment.
        """
        await self._ensure_account(customer_id, tenant_id)

        acct = CustomerLoyaltyAccount
        points = acct.loyalty_points
        credits = acct.free_delivery_credits
        values = {
            "total_deliveries": acct.total_deliveries + 1,
            "updated_at": func.now(),
        }

        if used_free_delivery:
            values["free_delivery_credits"] = case((credits > 0, credits - 1), else_=0)
        else:
            threshold = await self.threshold_for(tenant_id)
            earned = points + 1 >= threshold
            values["loyalty_points"] = case((earned, (points + 1) % threshold), else_=points + 1)
            values["free_delivery_credits"] = case((earned, credits + 1), else_=credits)

        await self.db.execute(
            update(acct)
            .where(acct.customer_id == customer_id, acct.tenant_id == tenant_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        account = await self.get_account(customer_id, tenant_id)
        logger.info(
            "Loyalty accrual: customer=%s tenant=%s free=%s -> points=%d credits=%d total=%d",
            customer_id,
            tenant_id,
            used_free_delivery,
            account.loyalty_points,
            account.free_delivery_credits,
            account.total_deliveries,
        )
        return account

    async def eligibility(self, customer_id: str, tenant_id: str) -> bool:
        """True iff the customer holds at least one free-delivery credit here."""
        account = await self.get_account(customer_id, tenant_id)
        return bool(account and account.free_delivery_credits > 0)

    async def status(self, customer_id: str, tenant_id: str) -> LoyaltyStatus:
        threshold = await self.threshold_for(tenant_id)
        account = await self.get_account(customer_id, tenant_id)
        if account is None:
            return LoyaltyStatus(
                points=0,
                credits=0,
                total_deliveries=0,
                eligible=False,
                deliveries_until_next_credit=threshold,
                threshold=threshold,
            )
        return LoyaltyStatus(
            points=account.loyalty_points,
            credits=account.free_delivery_credits,
            total_deliveries=account.total_deliveries,
            eligible=account.free_delivery_credits > 0,
            deliveries_until_next_credit=max(threshold - account.loyalty_points, 1),
            threshold=threshold,
        )

    async def _ensure_account(self, customer_id: str, tenant_id: str) -> None:
        dialect = self.db.get_bind().dialect.name
        insert_fn = _DIALECT_INSERTS.get(dialect)
        if insert_fn is None:
            raise ValueError(f"Unsupported database dialect: {dialect}")
        stmt = (
            insert_fn(CustomerLoyaltyAccount)
            .values(
                id=str(uuid.uuid4()),
                customer_id=customer_id,
                tenant_id=tenant_id,
                loyalty_points=0,
                free_delivery_credits=0,
                total_deliveries=0,
            )
            .on_conflict_do_nothing(index_elements=["customer_id", "tenant_id"])
        )
        await self.db.execute(stmt)
