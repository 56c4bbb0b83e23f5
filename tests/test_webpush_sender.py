"""Tests for the web push sender."""

from unittest.mock import MagicMock, patch

import pytest
from pywebpush import WebPushException
from requests import ConnectionError as RequestsConnectionError

from vakit_push.domain.errors import PushNotConfigured
from vakit_push.domain.models import DeliveryStatus, NotificationPayload
from vakit_push.infrastructure.webpush_sender import WebPushSender

from conftest import make_subscription

PAYLOAD = NotificationPayload(title="Tid for Fajr", body="Kl. 05:40 (Europe/Oslo)", tag="Fajr-2024-11-05")


def _error(status_code: int) -> WebPushException:
    response = MagicMock()
    response.status_code = status_code
    return WebPushException(f"Push failed: {status_code}", response=response)


@pytest.fixture
def sender() -> WebPushSender:
    """Configured sender."""
    return WebPushSender("private-key", "mailto:test@example.com", ttl=120, timeout=3.0)


class TestWebPushSender:
    """WebPushSender tests."""

    def test_delivered(self, sender) -> None:
        """Successful push returns DELIVERED with the status code."""
        sub = make_subscription()
        with patch("vakit_push.infrastructure.webpush_sender.webpush") as mock_webpush:
            mock_webpush.return_value = MagicMock(status_code=201)
            result = sender.send(sub, PAYLOAD)

        assert result.status is DeliveryStatus.DELIVERED
        assert result.status_code == 201
        kwargs = mock_webpush.call_args.kwargs
        assert kwargs["subscription_info"] == {"endpoint": sub.endpoint, "keys": sub.keys}
        assert kwargs["data"] == PAYLOAD.to_json()
        assert kwargs["vapid_private_key"] == "private-key"
        assert kwargs["vapid_claims"] == {"sub": "mailto:test@example.com"}
        assert kwargs["ttl"] == 120
        assert kwargs["timeout"] == 3.0

    @pytest.mark.parametrize("status_code", [404, 410])
    def test_gone(self, sender, status_code: int) -> None:
        """Expired endpoints are reported as GONE."""
        with patch(
            "vakit_push.infrastructure.webpush_sender.webpush", side_effect=_error(status_code)
        ):
            result = sender.send(make_subscription(), PAYLOAD)

        assert result.status is DeliveryStatus.GONE
        assert result.status_code == status_code

    @pytest.mark.parametrize("status_code", [400, 429, 500, 503])
    def test_transient_status(self, sender, status_code: int) -> None:
        """Other push service errors are transient."""
        with patch(
            "vakit_push.infrastructure.webpush_sender.webpush", side_effect=_error(status_code)
        ):
            result = sender.send(make_subscription(), PAYLOAD)

        assert result.status is DeliveryStatus.TRANSIENT
        assert not result.delivered

    def test_exception_without_response(self, sender) -> None:
        """A push error without a response is transient."""
        with patch(
            "vakit_push.infrastructure.webpush_sender.webpush",
            side_effect=WebPushException("encryption failed"),
        ):
            result = sender.send(make_subscription(), PAYLOAD)

        assert result.status is DeliveryStatus.TRANSIENT
        assert result.status_code is None

    def test_network_error(self, sender) -> None:
        """Connection failures are transient."""
        with patch(
            "vakit_push.infrastructure.webpush_sender.webpush",
            side_effect=RequestsConnectionError("refused"),
        ):
            result = sender.send(make_subscription(), PAYLOAD)

        assert result.status is DeliveryStatus.TRANSIENT

    @pytest.mark.parametrize(("key", "subject"), [("", "mailto:a@b.c"), ("key", "  ")])
    def test_not_configured(self, key: str, subject: str) -> None:
        """Missing VAPID settings raise before any network call."""
        sender = WebPushSender(key, subject)
        assert not sender.is_configured

        with patch("vakit_push.infrastructure.webpush_sender.webpush") as mock_webpush:
            with pytest.raises(PushNotConfigured):
                sender.send(make_subscription(), PAYLOAD)
        mock_webpush.assert_not_called()
