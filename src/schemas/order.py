"""Order Pydantic schemas for API request/response models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.models.order import OrderStatus, PaymentMethod, PaymentStatus


class OrderItemInput(BaseModel):
    """A cart line submitted by the client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    product_id: str = Field(description="Product ID")
    quantity: int = Field(description="Quantity ordered (must be at least 1)")


class ShippingAddressInput(BaseModel):
    """Shipping address as submitted.

    Presence of each field is checked by the order service so the error
    can name the missing field.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    country: str | None = None
    email: str | None = None
    phone: str | None = None


class OrderCreateRequest(BaseModel):
    """Schema for creating an order via POST /orders."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user: str | None = Field(default=None, description="Explicit owner id")
    user_email: str | None = Field(default=None, description="Explicit contact email")
    items: list[OrderItemInput] | None = Field(default=None, description="Cart lines")
    shipping_address: ShippingAddressInput | None = Field(default=None, description="Shipping address")
    payment_method: PaymentMethod | None = Field(default=None, description="stripe or cash_on_delivery")

    @field_validator("payment_method", mode="before")
    @classmethod
    def accept_gateway_alias(cls, value: Any) -> Any:
        """Accept ``gateway`` as a synonym for the Stripe payment method."""
        if value == "gateway":
            return PaymentMethod.STRIPE
        return value


class OrderItemSchema(BaseModel):
    """Schema for a stored order item snapshot."""

    model_config = ConfigDict(from_attributes=True)

    product: str = Field(description="Product ID")
    name: str = Field(description="Product name at order time")
    image: str = Field(default="", description="Product image at order time")
    unit: str = Field(description="Unit of measure at order time")
    amount: float = Field(ge=0, description="Amount per unit at order time")
    quantity: int = Field(ge=1, description="Quantity ordered")
    price: float = Field(ge=0, description="Unit price at order time")


class ShippingAddressSchema(BaseModel):
    """Schema for a stored shipping address."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    street: str
    city: str
    state: str
    zip_code: str
    country: str
    email: str
    phone: str


class OrderResponse(BaseModel):
    """Schema for order API responses."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str = Field(description="Order unique identifier")
    user_id: str = Field(alias="user", description="Owner id or guest sentinel")
    user_email: str = Field(description="Contact email")
    items: list[OrderItemSchema] = Field(description="Order items")
    total_amount: float = Field(description="Total amount fixed at creation")
    payment_method: PaymentMethod = Field(description="Payment method")
    payment_status: PaymentStatus = Field(description="Payment status")
    status: OrderStatus = Field(description="Fulfillment status")
    shipping_address: ShippingAddressSchema = Field(description="Shipping address")
    stripe_payment_intent_id: str | None = Field(default=None, description="Latest Stripe PaymentIntent ID")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")
    updated_at: datetime | None = Field(default=None, description="Last update timestamp")
