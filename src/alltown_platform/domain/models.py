"""SQLAlchemy ORM models for the AllTown delivery core.

All models use SQLite-compatible types:
- String(36) for UUID primary keys
- DateTime(timezone=True) for timestamps
"""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from alltown_platform.infra.database import Base


# ---------------------------------------------------------------------------
# Tenancy (owned by the provisioning collaborator, read-only here)
# ---------------------------------------------------------------------------


class Tenant(Base):
    """Isolated business account. Every core record is scoped to exactly one tenant."""

    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    company_name = Column(String(255), nullable=False)
    subdomain = Column(String(100), unique=True, nullable=True)
    custom_domain = Column(String(255), unique=True, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=func.now())


class BusinessSettings(Base):
    """Per-tenant settings. The core only reads the loyalty threshold."""

    __tablename__ = "business_settings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), unique=True, nullable=False)
    points_for_free_delivery = Column(Integer, nullable=False, default=10)
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())


# ---------------------------------------------------------------------------
# Staff / Driver Registry
# ---------------------------------------------------------------------------


class BusinessStaff(Base):
    """Tenant staff entry. ``id`` is the authenticated principal id.

    The same principal may be staff at several tenants, hence the composite key.
    """

    __tablename__ = "business_staff"

    id = Column(String(36), primary_key=True)
    tenant_id = Column(String(36), primary_key=True)
    role = Column(String(20), nullable=False, default="driver")  # StaffRole
    name = Column(String(255), nullable=True)
    is_on_duty = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())


# ---------------------------------------------------------------------------
# Delivery Requests
# ---------------------------------------------------------------------------


class DeliveryRequest(Base):
    """A customer's request to move something from pickup to dropoff.

    claimed_by_driver / claimed_at are set iff status is claimed or in_progress.
    Rows are never deleted.
    """

    __tablename__ = "delivery_requests"
    __table_args__ = (
        Index("ix_delivery_requests_tenant_status", "tenant_id", "status"),
        Index("ix_delivery_requests_tenant_driver", "tenant_id", "claimed_by_driver"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), nullable=False, index=True)

    # Parties
    customer_id = Column(String(36), nullable=True, index=True)  # null for guest requests
    business_id = Column(String(36), nullable=True)
    customer_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    pickup_address = Column(Text, nullable=False)
    delivery_address = Column(Text, nullable=False)
    preferred_date = Column(String(20), nullable=True)
    preferred_time = Column(String(20), nullable=True)
    payment_method = Column(String(30), nullable=False)  # PaymentMethod
    special_instructions = Column(Text, nullable=True)

    # Lifecycle
    status = Column(String(20), nullable=False, default="available")  # DeliveryStatus
    claimed_by_driver = Column(String(36), nullable=True)
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    driver_notes = Column(Text, nullable=True)
    completed_by_driver = Column(String(36), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Loyalty, fixed at creation
    used_free_delivery = Column(Boolean, nullable=False, default=False)

    # Payment metadata (payment collaborator)
    payment_status = Column(String(20), nullable=False, default="pending")  # PaymentStatus
    square_payment_id = Column(String(255), nullable=True)
    square_invoice_id = Column(String(255), nullable=True)
    invoice_url = Column(String(500), nullable=True)
    total_amount = Column(Numeric(10, 2), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())


# ---------------------------------------------------------------------------
# Loyalty
# ---------------------------------------------------------------------------


class CustomerLoyaltyAccount(Base):
    """Per (customer, tenant) loyalty balance. Created on first completed delivery."""

    __tablename__ = "customer_loyalty_accounts"
    __table_args__ = (
        UniqueConstraint("customer_id", "tenant_id", name="uq_loyalty_customer_tenant"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    customer_id = Column(String(36), nullable=False)
    tenant_id = Column(String(36), nullable=False)
    loyalty_points = Column(Integer, nullable=False, default=0)
    free_delivery_credits = Column(Integer, nullable=False, default=0)
    total_deliveries = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())
