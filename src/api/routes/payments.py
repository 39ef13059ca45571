"""Payment API routes: intent creation, Stripe webhook, verification poll."""

import logging

from fastapi import APIRouter, Request, status

from src.api.deps import Caller, Gateway, VerifyRateLimit
from src.api.middleware.error_handler import ValidationError
from src.schemas.payment import (
    PaymentIntentCreate,
    PaymentIntentResponse,
    PaymentVerificationResponse,
    WebhookAck,
)
from src.services.payment_service import PaymentService
from src.services.reconciliation_service import ReconciliationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post(
    "/create-intent",
    response_model=PaymentIntentResponse,
    summary="Create payment intent",
    description="Creates a Stripe PaymentIntent for an unpaid order. Works for signed-in and guest users.",
)
async def create_payment_intent(
    data: PaymentIntentCreate,
    caller: Caller,
    gateway: Gateway,
) -> PaymentIntentResponse:
    """Create a PaymentIntent for an order.

    Args:
        data: Body carrying the order ID.
        caller: Caller identity; restricts which orders are reachable.
        gateway: Configured payment gateway.

    Returns:
        PaymentIntentResponse: Client secret and intent ID.

    Raises:
        ValidationError: 400 if orderId is missing.
        NotFoundError: 404 if the order is missing or not the caller's.
        ConflictError: 400 if the order is already paid.
        DependencyError: 502 if Stripe is unreachable or not configured.
    """
    if not data.order_id:
        raise ValidationError("Order ID is required")

    service = PaymentService(gateway=gateway)
    intent = await service.create_payment_intent(data.order_id, caller)

    return PaymentIntentResponse(
        client_secret=intent.client_secret or "",
        intent_id=intent.id,
    )


@router.post(
    "/webhook",
    response_model=WebhookAck,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Handle Stripe webhooks",
    description="Receives Stripe events. Requires the raw body and a valid Stripe-Signature header.",
)
async def stripe_webhook(request: Request, gateway: Gateway) -> WebhookAck:
    """Handle Stripe webhook events.

    Handles:
    - payment_intent.succeeded: marks the order paid and processing (once)
    - payment_intent.payment_failed: logged, order stays unpaid

    Args:
        request: FastAPI request object for reading raw body and headers.
        gateway: Configured payment gateway.

    Returns:
        WebhookAck: Acknowledgment, or the disabled notice when no secret is set.

    Raises:
        WebhookSignatureError: 400 if the signature is missing or invalid.
    """
    # Raw body: signature is computed over the exact bytes
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")

    logger.debug("Webhook payload size: %d bytes", len(payload))

    service = ReconciliationService(gateway=gateway)
    return await service.handle_webhook(payload, sig_header)


@router.get(
    "/verify/{order_id}",
    response_model=PaymentVerificationResponse,
    response_model_exclude_none=True,
    summary="Verify payment status",
    description="Checks the order's PaymentIntent with Stripe and records a successful payment.",
)
async def verify_payment(
    order_id: str,
    caller: Caller,
    gateway: Gateway,
    _: VerifyRateLimit,
) -> PaymentVerificationResponse:
    """Poll the payment state of an order.

    Args:
        order_id: Order to check.
        caller: Caller identity; restricts which orders are reachable.
        gateway: Configured payment gateway.

    Returns:
        PaymentVerificationResponse: Stored payment status and Stripe's status.

    Raises:
        NotFoundError: 404 if the order is missing or not the caller's.
        DependencyError: 502 if Stripe is unreachable.
    """
    service = ReconciliationService(gateway=gateway)
    return await service.verify_payment(order_id, caller)
