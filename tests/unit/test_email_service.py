"""Unit tests for EmailService."""

from unittest.mock import MagicMock, patch

import pytest

from src.services.email_service import EmailService


def make_service(api_key: str) -> EmailService:
    """Create an EmailService with the given Resend key."""
    with patch("src.services.email_service.get_settings") as mock_settings:
        mock_settings.return_value.resend_api_key = api_key
        mock_settings.return_value.email_from_address = "Shop <orders@example.com>"
        mock_settings.return_value.frontend_url = "https://shop.example.com"
        return EmailService()


class TestSendPaymentConfirmation:
    """Tests for send_payment_confirmation method."""

    @pytest.mark.asyncio
    @patch("src.services.email_service.resend")
    async def test_sends_to_order_email(self, mock_resend: MagicMock, sample_order: dict) -> None:
        """Test the confirmation goes to the order's contact email."""
        mock_resend.Emails.send.return_value = {"id": "email_123"}
        service = make_service("re_test")

        result = await service.send_payment_confirmation(sample_order)

        assert result == {"success": True, "email_id": "email_123"}
        params = mock_resend.Emails.send.call_args[0][0]
        assert params["to"] == ["buyer@example.com"]
        assert sample_order["id"] in params["subject"]
        assert f"https://shop.example.com/orders/{sample_order['id']}" in params["text"]

    @pytest.mark.asyncio
    @patch("src.services.email_service.resend")
    async def test_disabled_without_key(self, mock_resend: MagicMock, sample_order: dict) -> None:
        """Test nothing is sent without a Resend key."""
        service = make_service("")

        result = await service.send_payment_confirmation(sample_order)

        assert result["success"] is False
        mock_resend.Emails.send.assert_not_called()

    @pytest.mark.asyncio
    @patch("src.services.email_service.resend")
    async def test_send_failure_is_reported_not_raised(self, mock_resend: MagicMock, sample_order: dict) -> None:
        """Test a Resend failure does not propagate."""
        mock_resend.Emails.send.side_effect = RuntimeError("resend down")
        service = make_service("re_test")

        result = await service.send_payment_confirmation(sample_order)

        assert result == {"success": False, "error": "resend down"}
