"""Tests for the notification channel clients and message formatting."""

import smtplib

import requests

from nexus_floor.config import Settings
from nexus_floor.models.notification import AlertContext
from nexus_floor.notifications.channels import (
    HttpNotificationClient,
    MockNotificationClient,
    build_notification_client,
    create_threshold_alert,
    default_alert_message,
    format_whatsapp_alert,
)


def _make_context(severity: str = "critical") -> AlertContext:
    return AlertContext(
        equipment="Centrifuge 01",
        sensor="temp",
        value=88.2,
        threshold=75.0,
        severity=severity,
        unit="°C",
    )


def _make_settings(**overrides) -> Settings:
    values = {
        "whatsapp_phone_id": "123456",
        "whatsapp_access_token": "token-abc",
        "smtp_host": "smtp.example.com",
        "smtp_username": "alerts@example.com",
        "smtp_app_password": "app-pass",
        "request_timeout_seconds": 3.0,
    }
    values.update(overrides)
    return Settings(**values)


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: dict = None):
        self.status_code = status_code
        self._payload = payload or {}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, response: FakeResponse = None, error: Exception = None):
        self.response = response or FakeResponse()
        self.error = error
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None, fail_with=None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.fail_with = fail_with
        self.logged_in = None
        self.sent = []
        self.tls = False
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.tls = True

    def login(self, user, password):
        if self.fail_with:
            raise self.fail_with
        self.logged_in = (user, password)

    def send_message(self, msg):
        self.sent.append(msg)


class TestFormatting:
    def test_default_message(self):
        assert default_alert_message(_make_context()) == (
            "Alert: Centrifuge 01 - temp = 88.2 (threshold: 75.0)"
        )

    def test_whatsapp_format(self):
        text = format_whatsapp_alert(_make_context(), "Check cooling")
        assert text.startswith("🚨 *Manufacturing Alert*")
        assert "*Equipment:* Centrifuge 01" in text
        assert "*Severity:* CRITICAL" in text
        assert "Check cooling" in text
        assert text.endswith("_Sent from Nexus Floor Control_")

    def test_whatsapp_warning_emoji(self):
        assert format_whatsapp_alert(_make_context("warning"), "x").startswith("⚠️")

    def test_threshold_alert(self):
        alert = create_threshold_alert(_make_context())
        assert alert["text"].startswith("NEXUS ALERT - CRITICAL")
        assert "Current Value: 88.2 °C" in alert["text"]
        assert alert["subject"] == "[CRITICAL] Centrifuge 01 - temp Alert"
        assert "#ef4444" in alert["html"]


class TestMockClient:
    def test_records_and_succeeds(self):
        client = MockNotificationClient()
        result = client.send_whatsapp("+1 555 0100", "hello")

        assert result.success is True
        assert result.mock is True
        assert result.message_id.startswith("mock_whatsapp_")
        assert client.sent == [result]

    def test_factory_picks_mock(self):
        client = build_notification_client(_make_settings(notification_mock_mode=True))
        assert isinstance(client, MockNotificationClient)

    def test_factory_picks_http(self):
        client = build_notification_client(_make_settings())
        assert isinstance(client, HttpNotificationClient)


class TestWhatsApp:
    def test_posts_to_graph_api(self):
        session = FakeSession(FakeResponse(payload={"messages": [{"id": "wamid.1"}]}))
        client = HttpNotificationClient(_make_settings(), session=session)

        result = client.send_whatsapp("+1 555 0100", "Pump overheating")

        assert result.success is True
        assert result.message_id == "wamid.1"
        call = session.calls[0]
        assert call["url"] == "https://graph.facebook.com/v18.0/123456/messages"
        assert call["json"]["to"] == "15550100"
        assert call["json"]["text"] == {"body": "Pump overheating"}
        assert call["headers"]["Authorization"] == "Bearer token-abc"
        assert call["timeout"] == 3.0

    def test_missing_credentials(self):
        session = FakeSession()
        client = HttpNotificationClient(
            _make_settings(whatsapp_phone_id=None), session=session
        )
        result = client.send_whatsapp("+15550100", "x")

        assert result.success is False
        assert result.error == "WhatsApp API credentials missing"
        assert session.calls == []

    def test_http_error_returned_not_raised(self):
        session = FakeSession(FakeResponse(status_code=401))
        client = HttpNotificationClient(_make_settings(), session=session)
        result = client.send_whatsapp("+15550100", "x")

        assert result.success is False
        assert "WhatsApp API error" in result.error


class TestWebhook:
    def test_delivers_payload(self):
        session = FakeSession()
        client = HttpNotificationClient(_make_settings(), session=session)
        result = client.send_webhook("https://hooks.example.com/a", {"value": 1})

        assert result.success is True
        assert session.calls[0]["json"] == {"value": 1}

    def test_connection_error(self):
        session = FakeSession(error=requests.ConnectionError("refused"))
        client = HttpNotificationClient(_make_settings(), session=session)
        result = client.send_webhook("https://hooks.example.com/a", {})

        assert result.success is False
        assert result.error.startswith("Webhook error:")


class TestEmail:
    def setup_method(self):
        FakeSMTP.instances = []

    def test_sends_over_starttls(self):
        client = HttpNotificationClient(
            _make_settings(), session=FakeSession(), smtp_factory=FakeSMTP
        )
        result = client.send_email("ops@example.com", "[WARNING] Pump", "body")

        assert result.success is True
        smtp = FakeSMTP.instances[0]
        assert (smtp.host, smtp.port, smtp.timeout) == ("smtp.example.com", 587, 3.0)
        assert smtp.tls is True
        assert smtp.logged_in == ("alerts@example.com", "app-pass")
        msg = smtp.sent[0]
        assert msg["To"] == "ops@example.com"
        assert msg["Subject"] == "[WARNING] Pump"
        assert result.message_id == msg["Message-ID"]

    def test_missing_credentials(self):
        client = HttpNotificationClient(
            _make_settings(smtp_app_password=None),
            session=FakeSession(),
            smtp_factory=FakeSMTP,
        )
        result = client.send_email("ops@example.com", "s", "b")

        assert result.success is False
        assert result.error == "Email SMTP credentials missing"
        assert FakeSMTP.instances == []

    def test_smtp_failure(self):
        def factory(host, port, timeout=None):
            return FakeSMTP(
                host, port, timeout,
                fail_with=smtplib.SMTPAuthenticationError(535, b"bad credentials"),
            )

        client = HttpNotificationClient(
            _make_settings(), session=FakeSession(), smtp_factory=factory
        )
        result = client.send_email("ops@example.com", "s", "b")

        assert result.success is False
        assert result.error.startswith("Failed to send email:")
