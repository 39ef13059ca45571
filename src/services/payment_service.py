"""Payment intent creation for orders."""

import logging
from decimal import ROUND_HALF_UP, Decimal

from src.api.middleware.error_handler import ConflictError, NotFoundError
from src.core.stripe import PaymentGateway, PaymentIntentResult, get_payment_gateway
from src.models.order import PaymentStatus
from src.schemas.auth import CallerIdentity
from src.services.order_service import OrderService

logger = logging.getLogger(__name__)


def to_minor_units(amount: float) -> int:
    """Convert a major-unit amount to minor units, rounding half up."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentService:
    """Creates Stripe PaymentIntents for unpaid orders."""

    def __init__(
        self,
        gateway: PaymentGateway | None = None,
        order_service: OrderService | None = None,
    ) -> None:
        """Initialize payment service.

        Args:
            gateway: Payment gateway; defaults to the process-wide one.
            order_service: Optional order service for testing.
        """
        self.gateway = gateway or get_payment_gateway()
        self.order_service = order_service or OrderService()

    async def create_payment_intent(self, order_id: str, caller: CallerIdentity) -> PaymentIntentResult:
        """Create a PaymentIntent for an order and record it on the order.

        Args:
            order_id: Order to pay for.
            caller: Identity of the caller; must match the order unless anonymous.

        Returns:
            PaymentIntentResult: Intent id and client secret.

        Raises:
            NotFoundError: If the order is missing or not the caller's.
            ConflictError: If the order is already paid.
            DependencyError: If Stripe is unreachable or not configured.
            PersistenceError: If the intent reference could not be stored.
        """
        order = await self.order_service.find_order_for_caller(order_id, caller)
        if not order:
            raise NotFoundError("Order not found")

        if order["payment_status"] == PaymentStatus.PAID.value:
            raise ConflictError("Order is already paid")

        intent = self.gateway.create_payment_intent(
            amount=to_minor_units(order["total_amount"]),
            metadata={
                "order_id": str(order["id"]),
                "user_id": str(order["user_id"]),
            },
        )

        if not await self.order_service.set_payment_intent(order["id"], intent.id):
            # Paid between the read above and this write
            logger.warning(
                "Order %s was paid while creating intent %s; reference not stored",
                order["id"],
                intent.id,
            )
            raise ConflictError("Order is already paid")

        logger.info("Payment intent %s created for order %s", intent.id, order["id"])
        return intent
