"""Payment reconciliation between Stripe and stored orders.

Two entry points drive the same unpaid -> paid transition:

- the Stripe webhook (push), and
- the client's verification poll (pull).

Both funnel into ``apply_payment_success``, which relies on a conditional
update keyed on ``payment_status = 'unpaid'``. Whichever caller wins the
update fires the side effects; every other caller sees a no-op. No
in-process locking is involved.
"""

import logging
from typing import Any

from src.api.middleware.error_handler import NotFoundError, WebhookSignatureError
from src.core.stripe import PaymentGateway, get_payment_gateway
from src.models.order import PaymentStatus
from src.schemas.auth import CallerIdentity
from src.schemas.payment import PaymentVerificationResponse, WebhookAck
from src.services.email_service import EmailService
from src.services.order_service import OrderService

logger = logging.getLogger(__name__)

INTENT_SUCCEEDED = "succeeded"
EVENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
EVENT_INTENT_FAILED = "payment_intent.payment_failed"


class ReconciliationService:
    """Brings stored payment state in line with Stripe."""

    def __init__(
        self,
        gateway: PaymentGateway | None = None,
        order_service: OrderService | None = None,
        email_service: EmailService | None = None,
    ) -> None:
        """Initialize reconciliation service.

        Args:
            gateway: Payment gateway; defaults to the process-wide one.
            order_service: Optional order service for testing.
            email_service: Optional email service for testing.
        """
        self.gateway = gateway or get_payment_gateway()
        self.order_service = order_service or OrderService()
        self.email_service = email_service or EmailService()

    async def apply_payment_success(self, order_id: str, source: str) -> bool:
        """Mark an order paid if it is still unpaid.

        Safe to call any number of times, concurrently, from either entry
        point.

        Args:
            order_id: Order whose payment succeeded.
            source: ``webhook`` or ``verify``, for logs.

        Returns:
            bool: True only for the call that performed the transition.
        """
        order = await self.order_service.mark_paid_if_unpaid(order_id)
        if order is None:
            logger.info("Order %s already paid; %s reconciliation is a no-op", order_id, source)
            return False

        logger.info("Order %s marked as paid via %s; processing started", order_id, source)
        await self.email_service.send_payment_confirmation(order)
        return True

    async def handle_webhook(self, payload: bytes, sig_header: str | None) -> WebhookAck:
        """Verify and process a Stripe webhook delivery.

        Args:
            payload: Raw request body, exactly as received.
            sig_header: Stripe-Signature header value.

        Returns:
            WebhookAck: ``received`` for processed or ignored events,
            ``disabled`` when no webhook secret is configured.

        Raises:
            WebhookSignatureError: If the signature is missing or invalid.
            PersistenceError: If the order update fails (Stripe will retry).
        """
        if not self.gateway.webhook_secret:
            logger.warning("Webhook secret not configured - webhook reconciliation disabled")
            return WebhookAck(
                status="disabled",
                message="Webhook reconciliation disabled - use the verify endpoint instead",
            )

        if not sig_header:
            logger.error("Missing Stripe-Signature header in webhook request")
            raise WebhookSignatureError("Missing Stripe-Signature header")

        event = self.gateway.construct_webhook_event(payload, sig_header)
        event_type = event.get("type", "")
        logger.info("Processing Stripe webhook event %s: %s", event.get("id"), event_type)

        if event_type == EVENT_INTENT_SUCCEEDED:
            await self._handle_intent_succeeded(event)
        elif event_type == EVENT_INTENT_FAILED:
            intent = _event_object(event)
            logger.info(
                "Payment intent %s failed for order %s; order stays unpaid",
                intent.get("id"),
                _metadata(intent).get("order_id"),
            )
        else:
            logger.debug("Unhandled webhook event type: %s", event_type)

        return WebhookAck(status="received")

    async def _handle_intent_succeeded(self, event: dict[str, Any]) -> None:
        intent = _event_object(event)
        intent_id = intent.get("id")
        order_id = _metadata(intent).get("order_id")

        if not order_id:
            logger.warning("Webhook intent %s missing order_id in metadata", intent_id)
            return

        order = await self.order_service.get_order(order_id)
        if not order:
            # Acknowledged, not failed
            logger.warning("Webhook for unknown order %s (intent %s)", order_id, intent_id)
            return

        if order.get("stripe_payment_intent_id") not in (None, intent_id):
            logger.info(
                "Order %s succeeded via intent %s; latest recorded intent is %s",
                order_id,
                intent_id,
                order.get("stripe_payment_intent_id"),
            )

        if order.get("payment_status") == PaymentStatus.PAID.value:
            logger.info("Order %s already paid; webhook is a no-op", order_id)
            return

        await self.apply_payment_success(order_id, source="webhook")

    async def verify_payment(self, order_id: str, caller: CallerIdentity) -> PaymentVerificationResponse:
        """Answer "is my order paid yet?", reconciling with Stripe on the way.

        Args:
            order_id: Order being polled.
            caller: Identity of the caller; must match the order unless anonymous.

        Returns:
            PaymentVerificationResponse: Stored payment status, plus Stripe's
            intent status when Stripe was consulted.

        Raises:
            NotFoundError: If the order is missing or not the caller's.
            DependencyError: If Stripe could not be reached.
        """
        order = await self.order_service.find_order_for_caller(order_id, caller)
        if not order:
            raise NotFoundError("Order not found")

        payment_status = order["payment_status"]
        intent_id = order.get("stripe_payment_intent_id")

        if not intent_id:
            return PaymentVerificationResponse(payment_status=payment_status)

        if not self.gateway.is_configured:
            logger.warning("Stripe not configured; returning stored payment status for order %s", order_id)
            return PaymentVerificationResponse(payment_status=payment_status)

        intent = self.gateway.retrieve_payment_intent(intent_id)

        if intent.status == INTENT_SUCCEEDED and payment_status != PaymentStatus.PAID.value:
            await self.apply_payment_success(order["id"], source="verify")
            # Paid either by this call or by a concurrent one
            payment_status = PaymentStatus.PAID.value

        return PaymentVerificationResponse(payment_status=payment_status, gateway_status=intent.status)


def _event_object(event: dict[str, Any]) -> dict[str, Any]:
    return (event.get("data") or {}).get("object") or {}


def _metadata(intent: dict[str, Any]) -> dict[str, Any]:
    return intent.get("metadata") or {}
