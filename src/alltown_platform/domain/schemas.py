"""Pydantic v2 schemas for API request/response validation."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from alltown_platform.domain.enums import DeliveryStatus, PaymentMethod, PaymentStatus, StaffRole


# ---------------------------------------------------------------------------
# Delivery requests
# ---------------------------------------------------------------------------


class DeliveryRequestCreate(BaseModel):
    """Intake payload. Guests must supply customer_name and phone.

    The customer id is never taken from the body; it comes from the bearer token.
    """

    customer_name: str | None = None
    phone: str | None = None
    email: str | None = None
    business_id: str | None = None
    pickup_address: str = Field(min_length=1)
    delivery_address: str = Field(min_length=1)
    preferred_date: str | None = None
    preferred_time: str | None = None
    payment_method: PaymentMethod
    special_instructions: str | None = None
    used_free_delivery: bool = False

    # Pre-paid requests arrive with the payment collaborator's references
    payment_status: PaymentStatus = PaymentStatus.PENDING
    square_payment_id: str | None = None
    total_amount: Decimal | None = None


class DeliveryRequestResponse(BaseModel):
    """Delivery request as seen by customers, drivers and dispatch."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    customer_id: str | None = None
    business_id: str | None = None
    customer_name: str | None = None
    phone: str | None = None
    email: str | None = None
    pickup_address: str
    delivery_address: str
    preferred_date: str | None = None
    preferred_time: str | None = None
    payment_method: str
    special_instructions: str | None = None
    status: DeliveryStatus
    claimed_by_driver: str | None = None
    claimed_at: datetime | None = None
    driver_notes: str | None = None
    completed_by_driver: str | None = None
    completed_at: datetime | None = None
    used_free_delivery: bool
    payment_status: str
    total_amount: Decimal | None = None
    created_at: datetime | None = None


class ClaimRequest(BaseModel):
    """Body of a claim call."""

    driver_notes: str | None = None


class AdvanceRequest(BaseModel):
    """Body of a driver update. Omit status to save notes only."""

    status: DeliveryStatus | None = None
    driver_notes: str | None = None


# ---------------------------------------------------------------------------
# Staff / duty
# ---------------------------------------------------------------------------


class DutyStatusUpdate(BaseModel):
    is_on_duty: bool


class StaffResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    role: StaffRole
    name: str | None = None
    is_on_duty: bool


class DutyChangeResponse(BaseModel):
    """Result of a duty toggle, including the cascade release outcome."""

    staff: StaffResponse
    released_deliveries: int = 0
    release_failed: bool = False


# ---------------------------------------------------------------------------
# Loyalty
# ---------------------------------------------------------------------------


class LoyaltyStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    points: int
    credits: int
    total_deliveries: int
    eligible: bool
    deliveries_until_next_credit: int
    threshold: int


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
    store: bool
