"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_stripe_secret_key")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_webhook_secret")

ORDER_ID = "660e8400-e29b-41d4-a716-446655440000"
PRODUCT_ID = "550e8400-e29b-41d4-a716-446655440000"


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    from src.core.config import get_settings

    get_settings.cache_clear()

    settings = get_settings()
    yield settings

    get_settings.cache_clear()


@pytest.fixture
def sample_product() -> dict:
    """A stocked catalog product."""
    return {
        "id": PRODUCT_ID,
        "name": "Organic Basmati Rice",
        "image": "https://cdn.example.com/rice.png",
        "price": 10.10,
        "in_stock": True,
        "unit": "kg",
        "amount": 1,
    }


@pytest.fixture
def sample_order() -> dict:
    """An unpaid order as stored."""
    return {
        "id": ORDER_ID,
        "user_id": "user-123",
        "user_email": "buyer@example.com",
        "items": [
            {
                "product": PRODUCT_ID,
                "name": "Organic Basmati Rice",
                "image": "https://cdn.example.com/rice.png",
                "unit": "kg",
                "amount": 1,
                "quantity": 3,
                "price": 10.10,
            }
        ],
        "total_amount": 30.30,
        "payment_method": "stripe",
        "payment_status": "unpaid",
        "status": "pending",
        "shipping_address": {
            "street": "12 MG Road",
            "city": "Bengaluru",
            "state": "KA",
            "zipCode": "560001",
            "country": "India",
            "email": "buyer@example.com",
            "phone": "+91 98450 00000",
        },
        "stripe_payment_intent_id": None,
        "created_at": "2026-01-15T10:00:00+00:00",
        "updated_at": "2026-01-15T10:00:00+00:00",
    }


@pytest.fixture
def mock_supabase_client() -> Generator[MagicMock, None, None]:
    """Provide a mocked Supabase client shared by all services.

    Yields:
        MagicMock: Mocked Supabase client for testing.
    """
    mock_client = MagicMock()

    mock_response = MagicMock()
    mock_response.data = []
    mock_client.table.return_value.select.return_value.limit.return_value.execute.return_value = (
        mock_response
    )

    with patch("src.core.supabase.get_supabase_client", return_value=mock_client), \
         patch("src.services.order_service.get_supabase_client", return_value=mock_client), \
         patch("src.services.catalog_service.get_supabase_client", return_value=mock_client):
        yield mock_client


@pytest.fixture
def mock_gateway() -> MagicMock:
    """A configured payment gateway double."""
    gateway = MagicMock()
    gateway.is_configured = True
    gateway.webhook_secret = "whsec_test_webhook_secret"
    gateway.currency = "inr"
    return gateway


@pytest.fixture
def client(mock_supabase_client: MagicMock, mock_gateway: MagicMock) -> Generator[TestClient, None, None]:
    """Provide a test client with storage and the payment gateway mocked.

    Args:
        mock_supabase_client: Mocked Supabase client fixture.
        mock_gateway: Payment gateway double.

    Yields:
        TestClient: FastAPI test client.
    """
    from src.core.rate_limiter import get_rate_limiter
    from src.core.stripe import get_payment_gateway
    from src.main import app

    app.dependency_overrides[get_payment_gateway] = lambda: mock_gateway
    get_rate_limiter().reset()

    with patch("src.services.email_service.resend") as mock_resend:
        mock_resend.Emails.send.return_value = {"id": "email_123"}
        with TestClient(app) as test_client:
            yield test_client

    app.dependency_overrides.clear()
