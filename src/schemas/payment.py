"""Payment Pydantic schemas for API request/response models."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.models.order import PaymentStatus


class PaymentIntentCreate(BaseModel):
    """Schema for POST /payments/create-intent."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    order_id: str | None = Field(default=None, description="Order to pay for")


class PaymentIntentResponse(BaseModel):
    """Client-usable handles for a created PaymentIntent."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    client_secret: str = Field(description="PaymentIntent client secret for the frontend SDK")
    intent_id: str = Field(description="Stripe PaymentIntent ID")


class PaymentVerificationResponse(BaseModel):
    """Result of polling an order's payment state."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    payment_status: PaymentStatus = Field(description="Stored payment status after reconciliation")
    gateway_status: str | None = Field(default=None, description="Raw PaymentIntent status from Stripe")


class WebhookAck(BaseModel):
    """Acknowledgment returned to Stripe."""

    status: Literal["received", "disabled"] = Field(description="received or disabled")
    message: str | None = Field(default=None, description="Why the event was not processed")
