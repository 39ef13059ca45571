"""Email service using Resend for transactional emails."""

import logging
from typing import Any

import resend

from src.core.config import get_settings
from src.models.order import Order

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending transactional emails via Resend."""

    def __init__(self) -> None:
        """Initialize email service with Resend API key."""
        settings = get_settings()
        resend.api_key = settings.resend_api_key
        self.enabled = bool(settings.resend_api_key)
        self.from_email = settings.email_from_address
        self.frontend_url = settings.frontend_url

    async def send_payment_confirmation(self, order: Order) -> dict[str, Any]:
        """Tell the customer their payment arrived and the order is being prepared.

        Best effort: failures are logged and reported in the return value,
        never raised, so they cannot undo a recorded payment.

        Args:
            order: The order that was just marked as paid.

        Returns:
            dict: Outcome with ``success`` and either ``email_id`` or ``error``.
        """
        if not self.enabled:
            logger.debug("Resend not configured; skipping payment confirmation for order %s", order["id"])
            return {"success": False, "error": "email disabled"}

        order_url = f"{self.frontend_url}/orders/{order['id']}"
        lines = "\n".join(
            f"  {item['quantity']} x {item['name']} ({item['amount']} {item['unit']}) @ {item['price']}"
            for item in order.get("items", [])
        )

        html_content = f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Payment received</title>
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <h1 style="color: #2f855a; font-size: 22px;">Payment received</h1>
    <p>We have received your payment of <strong>{order['total_amount']}</strong> and your order is now being processed.</p>
    <pre style="background: #f9fafb; padding: 16px; border-radius: 8px;">{lines}</pre>
    <p><a href="{order_url}" style="color: #2f855a;">Track your order</a></p>
</body>
</html>
"""

        text_content = f"""
Payment received

We have received your payment of {order['total_amount']} and your order is now being processed.

{lines}

Track your order: {order_url}
"""

        try:
            response = resend.Emails.send({
                "from": self.from_email,
                "to": [order["user_email"]],
                "subject": f"Payment received for order {order['id']}",
                "html": html_content,
                "text": text_content,
            })

            logger.info("Payment confirmation sent for order %s, id: %s", order["id"], response.get("id"))
            return {"success": True, "email_id": response.get("id")}

        except Exception as e:
            logger.error("Failed to send payment confirmation for order %s: %s", order["id"], str(e))
            return {"success": False, "error": str(e)}
