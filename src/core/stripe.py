"""Stripe payment gateway adapter.

The gateway is built once from settings and passed into the payment
services. When no secret key is configured an ``UnconfiguredGateway`` is
returned instead, so callers get a clear ``DependencyError`` rather than a
half-initialised SDK.
"""

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import stripe

from src.api.middleware.error_handler import DependencyError, WebhookSignatureError
from src.core.config import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentIntentResult:
    """The parts of a Stripe PaymentIntent this service relies on."""

    id: str
    status: str
    client_secret: str | None = None


class StripeGateway:
    """Stripe-backed payment gateway.

    Every SDK call passes the API key explicitly so nothing depends on
    module-level ``stripe.api_key`` state.
    """

    is_configured = True

    def __init__(self, api_key: str, webhook_secret: str = "", currency: str = "inr") -> None:
        """Initialize gateway with credentials.

        Args:
            api_key: Stripe secret API key.
            webhook_secret: Webhook signing secret (empty disables webhooks).
            currency: ISO currency code used for new intents.
        """
        self._api_key = api_key
        self.webhook_secret = webhook_secret
        self.currency = currency

    def create_payment_intent(self, amount: int, metadata: dict[str, str]) -> PaymentIntentResult:
        """Create a PaymentIntent.

        Args:
            amount: Amount in minor currency units.
            metadata: Correlation metadata stored on the intent.

        Returns:
            PaymentIntentResult: Created intent id, status and client secret.

        Raises:
            DependencyError: If Stripe rejects the request or is unreachable.
        """
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount,
                currency=self.currency,
                metadata=metadata,
                api_key=self._api_key,
            )
        except stripe.StripeError as e:
            logger.error(
                "Stripe error creating payment intent for order %s: %s",
                metadata.get("order_id"),
                str(e),
            )
            raise DependencyError("Failed to create payment intent") from e

        return PaymentIntentResult(
            id=intent.id,
            status=intent.status,
            client_secret=intent.client_secret,
        )

    def retrieve_payment_intent(self, intent_id: str) -> PaymentIntentResult:
        """Fetch the current state of a PaymentIntent.

        Raises:
            DependencyError: If Stripe rejects the request or is unreachable.
        """
        try:
            intent = stripe.PaymentIntent.retrieve(intent_id, api_key=self._api_key)
        except stripe.StripeError as e:
            logger.error("Stripe error retrieving payment intent %s: %s", intent_id, str(e))
            raise DependencyError("Failed to verify payment with provider") from e

        return PaymentIntentResult(id=intent.id, status=intent.status)

    def construct_webhook_event(self, payload: bytes, sig_header: str) -> dict[str, Any]:
        """Verify a webhook signature and parse the event.

        The signature is checked against the raw bytes before anything is
        parsed; the event is returned as a plain dict.

        Args:
            payload: Raw request body.
            sig_header: Stripe-Signature header value.

        Returns:
            dict: The verified event.

        Raises:
            WebhookSignatureError: If the signature or payload is invalid.
        """
        try:
            body = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                body,
                sig_header,
                self.webhook_secret,
                tolerance=stripe.Webhook.DEFAULT_TOLERANCE,
            )
            event = json.loads(body)
        except stripe.SignatureVerificationError as e:
            logger.warning("Invalid webhook signature: %s", str(e))
            raise WebhookSignatureError("Invalid signature") from e
        except ValueError as e:
            # Not UTF-8 or not JSON
            logger.warning("Malformed webhook payload: %s", str(e))
            raise WebhookSignatureError("Invalid payload") from e

        if not isinstance(event, dict):
            raise WebhookSignatureError("Invalid payload")
        return event


class UnconfiguredGateway:
    """Gateway used when no Stripe secret key is configured.

    Every operation fails with ``DependencyError``.
    """

    is_configured = False
    webhook_secret = ""
    currency = ""

    def create_payment_intent(self, amount: int, metadata: dict[str, str]) -> PaymentIntentResult:
        raise DependencyError("Stripe is not configured")

    def retrieve_payment_intent(self, intent_id: str) -> PaymentIntentResult:
        raise DependencyError("Stripe is not configured")

    def construct_webhook_event(self, payload: bytes, sig_header: str) -> dict[str, Any]:
        raise DependencyError("Stripe is not configured")


PaymentGateway = StripeGateway | UnconfiguredGateway


def build_payment_gateway(
    api_key: str,
    webhook_secret: str = "",
    currency: str = "inr",
) -> PaymentGateway:
    """Build the gateway variant matching the available credentials."""
    if not api_key:
        return UnconfiguredGateway()
    return StripeGateway(api_key=api_key, webhook_secret=webhook_secret, currency=currency)


@lru_cache
def get_payment_gateway() -> PaymentGateway:
    """Get the process-wide payment gateway built from settings.

    Returns:
        PaymentGateway: Configured Stripe gateway or the unconfigured variant.
    """
    settings = get_settings()
    gateway = build_payment_gateway(
        api_key=settings.stripe_secret_key,
        webhook_secret=settings.stripe_webhook_secret,
        currency=settings.stripe_currency,
    )
    if not gateway.is_configured:
        logger.warning("Stripe secret key not configured. Payment features will not work.")
        return gateway

    # SDK-wide; failed calls surface as DependencyError and are not retried
    stripe.max_network_retries = 0
    return gateway
