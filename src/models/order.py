"""Order model type definitions for database operations."""

from datetime import datetime
from enum import Enum
from typing import TypedDict


class PaymentStatus(str, Enum):
    """Payment status values. Only ever moves UNPAID -> PAID."""

    UNPAID = "unpaid"
    PAID = "paid"


class OrderStatus(str, Enum):
    """Fulfillment status values."""

    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    """Payment method values."""

    STRIPE = "stripe"
    CASH_ON_DELIVERY = "cash_on_delivery"


class OrderItem(TypedDict):
    """Snapshot of a product at order time.

    Stored as part of the items JSONB array. Later catalog edits do not
    touch these values.
    """

    product: str
    name: str
    image: str
    unit: str
    amount: float
    quantity: int
    price: float


class ShippingAddress(TypedDict):
    """Shipping address stored with the order."""

    street: str
    city: str
    state: str
    zipCode: str
    country: str
    email: str
    phone: str


class Order(TypedDict):
    """Order table row representation.

    Maps directly to the database schema.
    """

    id: str
    user_id: str
    user_email: str
    items: list[OrderItem]
    total_amount: float
    payment_method: str
    payment_status: str
    status: str
    shipping_address: ShippingAddress
    stripe_payment_intent_id: str | None
    created_at: datetime
    updated_at: datetime


class OrderCreate(TypedDict):
    """Data required to insert a new order."""

    user_id: str
    user_email: str
    items: list[OrderItem]
    total_amount: float
    payment_method: str
    payment_status: str
    status: str
    shipping_address: ShippingAddress
