"""Shared test infrastructure for the AllTown delivery core test suite.

Provides:
- db_session: async SQLite in-memory session with all tables created
- file_session_factory: session factory on a file-backed SQLite DB, for
  tests that need several independent connections
- make_tenant / make_staff / make_delivery / make_loyalty_account: row factories
"""

import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import Base first, then models to register all tables
from alltown_platform.infra.database import Base

import alltown_platform.domain.models  # noqa: F401

from alltown_platform.domain.enums import DeliveryStatus, PaymentMethod, StaffRole
from alltown_platform.domain.models import (
    BusinessSettings,
    BusinessStaff,
    CustomerLoyaltyAccount,
    DeliveryRequest,
    Tenant,
)


# ---------------------------------------------------------------------------
# Database session fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
async def db_session():
    """Async SQLite in-memory session with all tables created.

    Creates a fresh engine + tables for each test, yields a session,
    then rolls back and tears down.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def file_session_factory(tmp_path):
    """Session factory over a WAL-mode SQLite file.

    Every session gets its own connection, so concurrent writers really
    contend for the database write lock.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'delivery.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with engine.begin() as conn:
        await conn.execute(text("PRAGMA journal_mode=WAL"))

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_tenant(db_session):
    """Factory that creates a Tenant, optionally with BusinessSettings.

    Usage:
        tenant = await make_tenant(subdomain="acme", points_for_free_delivery=5)
    """
    async def _factory(
        company_name: str = "Acme Couriers",
        subdomain: str | None = None,
        custom_domain: str | None = None,
        is_active: bool = True,
        points_for_free_delivery: int | None = None,
    ) -> Tenant:
        tenant = Tenant(
            id=str(uuid.uuid4()),
            company_name=company_name,
            subdomain=subdomain,
            custom_domain=custom_domain,
            is_active=is_active,
        )
        db_session.add(tenant)

        if points_for_free_delivery is not None:
            db_session.add(
                BusinessSettings(
                    id=str(uuid.uuid4()),
                    tenant_id=tenant.id,
                    points_for_free_delivery=points_for_free_delivery,
                )
            )

        await db_session.flush()
        return tenant

    return _factory


@pytest.fixture
def make_staff(db_session):
    """Factory that creates a BusinessStaff row (a driver, on duty, by default)."""
    async def _factory(
        tenant_id: str,
        staff_id: str | None = None,
        role: StaffRole = StaffRole.DRIVER,
        name: str = "Test Driver",
        is_on_duty: bool = True,
    ) -> BusinessStaff:
        staff = BusinessStaff(
            id=staff_id or str(uuid.uuid4()),
            tenant_id=tenant_id,
            role=role.value,
            name=name,
            is_on_duty=is_on_duty,
        )
        db_session.add(staff)
        await db_session.flush()
        return staff

    return _factory


@pytest.fixture
def make_delivery(db_session):
    """Factory that creates a DeliveryRequest row directly in any status.

    Usage:
        delivery = await make_delivery(tenant.id, status=DeliveryStatus.CLAIMED,
                                       claimed_by_driver=driver.id)
    """
    async def _factory(
        tenant_id: str,
        customer_id: str | None = None,
        status: DeliveryStatus = DeliveryStatus.AVAILABLE,
        claimed_by_driver: str | None = None,
        used_free_delivery: bool = False,
        customer_name: str | None = "Guest Customer",
        phone: str | None = "+15551234567",
        driver_notes: str | None = None,
    ) -> DeliveryRequest:
        delivery = DeliveryRequest(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            customer_id=customer_id,
            customer_name=customer_name,
            phone=phone,
            pickup_address="100 Main St",
            delivery_address="200 Oak Ave",
            payment_method=PaymentMethod.CASH_ON_DELIVERY.value,
            status=status.value,
            claimed_by_driver=claimed_by_driver,
            driver_notes=driver_notes,
            used_free_delivery=used_free_delivery,
        )
        if claimed_by_driver is not None:
            delivery.claimed_at = datetime.now(timezone.utc)
        db_session.add(delivery)
        await db_session.flush()
        return delivery

    return _factory


@pytest.fixture
def make_loyalty_account(db_session):
    """Factory that creates a CustomerLoyaltyAccount with given balances."""
    async def _factory(
        customer_id: str,
        tenant_id: str,
        loyalty_points: int = 0,
        free_delivery_credits: int = 0,
        total_deliveries: int = 0,
    ) -> CustomerLoyaltyAccount:
        account = CustomerLoyaltyAccount(
            id=str(uuid.uuid4()),
            customer_id=customer_id,
            tenant_id=tenant_id,
            loyalty_points=loyalty_points,
            free_delivery_credits=free_delivery_credits,
            total_deliveries=total_deliveries,
        )
        db_session.add(account)
        await db_session.flush()
        return account

    return _factory
