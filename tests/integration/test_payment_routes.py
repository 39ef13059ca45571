"""Integration tests for payment API endpoints."""

from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from src.api.middleware.error_handler import DependencyError, WebhookSignatureError
from src.core.stripe import PaymentIntentResult


def stub_order(mock_supabase_client: MagicMock, order: dict | None) -> None:
    """Make order lookups return the given row."""
    lookup = mock_supabase_client.table.return_value.select.return_value.eq.return_value.maybe_single.return_value
    lookup.execute.return_value = MagicMock(data=order)


def stub_conditional_update(mock_supabase_client: MagicMock, rows: list[dict]) -> MagicMock:
    """Make conditional updates (id + payment_status) return the given rows."""
    update = mock_supabase_client.table.return_value.update
    update.return_value.eq.return_value.eq.return_value.execute.return_value = MagicMock(data=rows)
    return update


class TestCreateIntent:
    """Tests for POST /api/v1/payments/create-intent endpoint."""

    def test_creates_intent(
        self,
        client: TestClient,
        mock_supabase_client: MagicMock,
        mock_gateway: MagicMock,
        sample_order: dict,
    ) -> None:
        """Test that an intent is created and its secret returned."""
        stub_order(mock_supabase_client, sample_order)
        update = stub_conditional_update(mock_supabase_client, [sample_order])
        mock_gateway.create_payment_intent.return_value = PaymentIntentResult(
            id="pi_123",
            status="requires_payment_method",
            client_secret="pi_123_secret_abc",
        )

        response = client.post("/api/v1/payments/create-intent", json={"orderId": sample_order["id"]})

        assert response.status_code == 200
        assert response.json() == {"clientSecret": "pi_123_secret_abc", "intentId": "pi_123"}
        assert mock_gateway.create_payment_intent.call_args.kwargs["amount"] == 3030
        assert update.call_args[0][0]["stripe_payment_intent_id"] == "pi_123"

    def test_missing_order_id(self, client: TestClient, mock_gateway: MagicMock) -> None:
        """Test that a body without orderId is rejected."""
        response = client.post("/api/v1/payments/create-intent", json={})

        assert response.status_code == 400
        assert response.json()["message"] == "Order ID is required"
        mock_gateway.create_payment_intent.assert_not_called()

    def test_already_paid(
        self,
        client: TestClient,
        mock_supabase_client: MagicMock,
        mock_gateway: MagicMock,
        sample_order: dict,
    ) -> None:
        """Test that a paid order cannot get a new intent."""
        stub_order(mock_supabase_client, {**sample_order, "payment_status": "paid"})

        response = client.post("/api/v1/payments/create-intent", json={"orderId": sample_order["id"]})

        assert response.status_code == 400
        assert response.json()["message"] == "Order is already paid"
        mock_gateway.create_payment_intent.assert_not_called()

    def test_foreign_order_is_not_found(
        self,
        client: TestClient,
        mock_supabase_client: MagicMock,
        mock_gateway: MagicMock,
        sample_order: dict,
    ) -> None:
        """Test that a caller cannot pay for someone else's order."""
        stub_order(mock_supabase_client, sample_order)

        response = client.post(
            "/api/v1/payments/create-intent",
            json={"orderId": sample_order["id"]},
            headers={"X-User-Id": "someone-else", "X-User-Email": "other@example.com"},
        )

        assert response.status_code == 404
        mock_gateway.create_payment_intent.assert_not_called()

    def test_gateway_failure_returns_502(
        self,
        client: TestClient,
        mock_supabase_client: MagicMock,
        mock_gateway: MagicMock,
        sample_order: dict,
    ) -> None:
        """Test that Stripe failures surface as 502."""
        stub_order(mock_supabase_client, sample_order)
        mock_gateway.create_payment_intent.side_effect = DependencyError("Failed to create payment intent")

        response = client.post("/api/v1/payments/create-intent", json={"orderId": sample_order["id"]})

        assert response.status_code == 502
        assert response.json()["error"] == "dependency_error"


class TestStripeWebhook:
    """Tests for POST /api/v1/payments/webhook endpoint."""

    def test_succeeded_event_marks_order_paid(
        self,
        client: TestClient,
        mock_supabase_client: MagicMock,
        mock_gateway: MagicMock,
        sample_order: dict,
    ) -> None:
        """Test that payment_intent.succeeded marks the order paid."""
        stub_order(mock_supabase_client, {**sample_order, "stripe_payment_intent_id": "pi_123"})
        update = stub_conditional_update(
            mock_supabase_client,
            [{**sample_order, "payment_status": "paid", "status": "processing"}],
        )
        mock_gateway.construct_webhook_event.return_value = {
            "id": "evt_123",
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_123", "metadata": {"order_id": sample_order["id"]}}},
        }

        response = client.post(
            "/api/v1/payments/webhook",
            content=b'{"test": "payload"}',
            headers={"stripe-signature": "t=1,v1=valid"},
        )

        assert response.status_code == 200
        assert response.json() == {"status": "received"}
        mock_gateway.construct_webhook_event.assert_called_once_with(b'{"test": "payload"}', "t=1,v1=valid")
        assert update.call_args[0][0]["payment_status"] == "paid"

    def test_invalid_signature_returns_400(
        self,
        client: TestClient,
        mock_supabase_client: MagicMock,
        mock_gateway: MagicMock,
    ) -> None:
        """Test that a bad signature is rejected without touching orders."""
        mock_gateway.construct_webhook_event.side_effect = WebhookSignatureError("Invalid signature")

        response = client.post(
            "/api/v1/payments/webhook",
            content=b'{"test": "payload"}',
            headers={"stripe-signature": "t=1,v1=forged"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_signature"
        mock_supabase_client.table.return_value.update.assert_not_called()

    def test_missing_signature_header_returns_400(self, client: TestClient, mock_gateway: MagicMock) -> None:
        """Test that 400 is returned for a missing signature header."""
        response = client.post("/api/v1/payments/webhook", content=b'{"test": "payload"}')

        assert response.status_code == 400
        assert "Missing Stripe-Signature header" in response.json()["message"]
        mock_gateway.construct_webhook_event.assert_not_called()

    def test_disabled_without_secret(self, client: TestClient, mock_gateway: MagicMock) -> None:
        """Test the explicit disabled acknowledgment when no secret is set."""
        mock_gateway.webhook_secret = ""

        response = client.post(
            "/api/v1/payments/webhook",
            content=b'{"test": "payload"}',
            headers={"stripe-signature": "t=1,v1=valid"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "disabled"
        assert response.json()["message"]


class TestVerifyPayment:
    """Tests for GET /api/v1/payments/verify/{order_id} endpoint."""

    def test_reconciles_succeeded_intent(
        self,
        client: TestClient,
        mock_supabase_client: MagicMock,
        mock_gateway: MagicMock,
        sample_order: dict,
    ) -> None:
        """Test that polling after success marks the order paid."""
        stub_order(mock_supabase_client, {**sample_order, "stripe_payment_intent_id": "pi_123"})
        stub_conditional_update(mock_supabase_client, [{**sample_order, "payment_status": "paid"}])
        mock_gateway.retrieve_payment_intent.return_value = PaymentIntentResult(id="pi_123", status="succeeded")

        response = client.get(f"/api/v1/payments/verify/{sample_order['id']}")

        assert response.status_code == 200
        assert response.json() == {"paymentStatus": "paid", "gatewayStatus": "succeeded"}

    def test_order_without_intent(
        self,
        client: TestClient,
        mock_supabase_client: MagicMock,
        mock_gateway: MagicMock,
        sample_order: dict,
    ) -> None:
        """Test that an order without an intent reports its stored status."""
        stub_order(mock_supabase_client, sample_order)

        response = client.get(f"/api/v1/payments/verify/{sample_order['id']}")

        assert response.status_code == 200
        assert response.json() == {"paymentStatus": "unpaid"}
        mock_gateway.retrieve_payment_intent.assert_not_called()

    def test_unknown_order_returns_404(self, client: TestClient, mock_supabase_client: MagicMock) -> None:
        """Test that polling an unknown order is 404."""
        stub_order(mock_supabase_client, None)

        response = client.get("/api/v1/payments/verify/unknown")

        assert response.status_code == 404

    def test_polling_is_rate_limited(
        self,
        client: TestClient,
        mock_supabase_client: MagicMock,
        test_settings: any,
        sample_order: dict,
    ) -> None:
        """Test that excessive polling of one order returns 429."""
        stub_order(mock_supabase_client, sample_order)
        url = f"/api/v1/payments/verify/{sample_order['id']}"

        for _ in range(test_settings.rate_limit_verify_requests):
            assert client.get(url).status_code == 200

        response = client.get(url)

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) > 0
        assert response.json()["error"] == "rate_limit_exceeded"
