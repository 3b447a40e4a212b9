"""Domain enumerations for the AllTown delivery core.

All enums use the (str, Enum) pattern to ensure JSON serialization compatibility.
"""

from enum import Enum


class DeliveryStatus(str, Enum):
    """Lifecycle status of a delivery request."""

    AVAILABLE = "available"
    CLAIMED = "claimed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class StaffRole(str, Enum):
    """Role of a tenant staff member."""

    ADMIN = "admin"
    DISPATCHER = "dispatcher"
    DRIVER = "driver"


class PaymentStatus(str, Enum):
    """Payment state recorded by the payment collaborator. Opaque to the core."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    """Payment methods offered at intake."""

    CASH_ON_DELIVERY = "cash_on_delivery"
    CARD_ON_DELIVERY = "card_on_delivery"
    ONLINE_PAYMENT = "online_payment"
    SQUARE_INVOICE = "square_invoice"
    BANK_TRANSFER = "bank_transfer"
    VENMO = "venmo"
    PAYPAL = "paypal"
    APPLE_PAY = "apple_pay"
    GOOGLE_PAY = "google_pay"
    ZELLE = "zelle"
