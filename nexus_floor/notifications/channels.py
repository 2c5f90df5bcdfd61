"""
Notification channel clients.

Every client method returns a NotificationResult. Missing credentials and
transport failures come back as ``success=False`` with an error message;
nothing is raised to the caller.
"""

import logging
import smtplib
import time
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Callable, List, Optional, Protocol

import requests

from nexus_floor.config import Settings
from nexus_floor.models.notification import AlertContext, NotificationResult

logger = logging.getLogger(__name__)

GRAPH_API_URL = "https://graph.facebook.com/{version}/{phone_id}/messages"


class ChannelConfigError(Exception):
    """Raised when a channel lacks a recipient or credentials."""
    pass


class NotificationClient(Protocol):
    """What the dispatcher needs from a delivery backend."""

    def send_email(self, to: str, subject: str, body: str) -> NotificationResult: ...

    def send_whatsapp(self, phone: str, message: str) -> NotificationResult: ...

    def send_webhook(self, url: str, payload: dict) -> NotificationResult: ...


# --- Message formatting ---

def _severity_label(severity: Optional[str]) -> str:
    return (severity or "alert").upper()


def default_alert_message(context: AlertContext) -> str:
    return (
        f"Alert: {context.equipment} - {context.sensor} = {context.value} "
        f"(threshold: {context.threshold})"
    )


def format_whatsapp_alert(context: AlertContext, message: str) -> str:
    emoji = "🚨" if context.severity == "critical" else "⚠️"
    return (
        f"{emoji} *Manufacturing Alert*\n"
        f"\n"
        f"*Equipment:* {context.equipment}\n"
        f"*Severity:* {_severity_label(context.severity)}\n"
        f"*Sensor:* {context.sensor}\n"
        f"*Value:* {context.value}\n"
        f"*Threshold:* {context.threshold}\n"
        f"\n"
        f"{message}\n"
        f"\n"
        f"_Sent from Nexus Floor Control_"
    )


def create_threshold_alert(context: AlertContext) -> dict:
    """Plain text, HTML and subject for a threshold breach."""
    severity = _severity_label(context.severity)
    unit = f" {context.unit}" if context.unit else ""
    when = context.timestamp.strftime("%Y-%m-%d %H:%M:%S")
    color = "#ef4444" if context.severity == "critical" else "#eab308"

    text = (
        f"NEXUS ALERT - {severity}\n"
        f"\n"
        f"Equipment: {context.equipment}\n"
        f"Sensor: {context.sensor}\n"
        f"Current Value: {context.value}{unit}\n"
        f"Threshold: {context.threshold}{unit}\n"
        f"Time: {when}"
    )
    html = (
        '<div style="font-family: Arial, sans-serif; padding: 20px;">'
        f'<h2 style="color: {color};">NEXUS ALERT - {severity}</h2>'
        "<table>"
        f"<tr><td>Equipment:</td><td>{context.equipment}</td></tr>"
        f"<tr><td>Sensor:</td><td>{context.sensor}</td></tr>"
        f"<tr><td>Current Value:</td><td>{context.value}{unit}</td></tr>"
        f"<tr><td>Threshold:</td><td>{context.threshold}{unit}</td></tr>"
        f"<tr><td>Time:</td><td>{when}</td></tr>"
        "</table>"
        "</div>"
    )
    return {
        "text": text,
        "html": html,
        "subject": f"[{severity}] {context.equipment} - {context.sensor} Alert",
    }


def email_html(body: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; padding: 20px;">'
        '<h2 style="color: #ef4444;">Manufacturing Alert</h2>'
        f'<pre style="white-space: pre-wrap;">{body}</pre>'
        '<p style="color: #64748b; font-size: 12px;">'
        "Sent from Nexus Floor Control System</p>"
        "</div>"
    )


# --- Clients ---

class MockNotificationClient:
    """Logs instead of delivering. Keeps every result for inspection."""

    def __init__(self):
        self.sent: List[NotificationResult] = []

    def _mock(self, channel: str, recipient: str, message: str) -> NotificationResult:
        logger.info("[MOCK %s] To: %s", channel.upper(), recipient)
        logger.info("[MOCK %s] Message: %s", channel.upper(), message[:100])
        result = NotificationResult(
            success=True,
            channel=channel,
            recipient=recipient,
            message_id=f"mock_{channel}_{int(time.time() * 1000)}",
            mock=True,
        )
        self.sent.append(result)
        return result

    def send_email(self, to: str, subject: str, body: str) -> NotificationResult:
        return self._mock("email", to, f"{subject}: {body}")

    def send_whatsapp(self, phone: str, message: str) -> NotificationResult:
        return self._mock("whatsapp", phone, message)

    def send_webhook(self, url: str, payload: dict) -> NotificationResult:
        return self._mock("webhook", url, str(payload))


class HttpNotificationClient:
    """
    Real delivery: SMTP for email, the Meta Graph API for WhatsApp and a JSON
    POST for webhooks.
    """

    def __init__(
        self,
        settings: Settings,
        session: Optional[requests.Session] = None,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP,
    ):
        self.settings = settings
        self.session = session or requests.Session()
        self._smtp_factory = smtp_factory

    def _failure(self, channel: str, recipient: str, error: str) -> NotificationResult:
        logger.error("[%s] Delivery to %s failed: %s", channel.upper(), recipient, error)
        return NotificationResult(
            success=False, channel=channel, recipient=recipient, error=error
        )

    def send_email(self, to: str, subject: str, body: str) -> NotificationResult:
        s = self.settings
        if not (s.smtp_host and s.smtp_username and s.smtp_app_password):
            return self._failure("email", to, "Email SMTP credentials missing")

        msg = EmailMessage()
        msg["From"] = f'"{s.email_from_name}" <{s.smtp_username}>'
        msg["To"] = to
        msg["Subject"] = subject
        msg["Message-ID"] = make_msgid()
        msg.set_content(body)
        msg.add_alternative(email_html(body), subtype="html")

        try:
            with self._smtp_factory(
                s.smtp_host, s.smtp_port, timeout=s.request_timeout_seconds
            ) as smtp:
                smtp.starttls()
                smtp.login(s.smtp_username, s.smtp_app_password.get_secret_value())
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            return self._failure("email", to, f"Failed to send email: {e}")

        logger.info("Email sent to %s: %s", to, msg["Message-ID"])
        return NotificationResult(
            success=True, channel="email", recipient=to, message_id=msg["Message-ID"]
        )

    def send_whatsapp(self, phone: str, message: str) -> NotificationResult:
        s = self.settings
        if not (s.whatsapp_phone_id and s.whatsapp_access_token):
            return self._failure("whatsapp", phone, "WhatsApp API credentials missing")

        clean_phone = phone.replace("+", "").replace(" ", "")
        url = GRAPH_API_URL.format(
            version=s.whatsapp_api_version, phone_id=s.whatsapp_phone_id
        )
        payload = {
            "messaging_product": "whatsapp",
            "to": clean_phone,
            "type": "text",
            "text": {"body": message},
        }
        headers = {
            "Authorization": f"Bearer {s.whatsapp_access_token.get_secret_value()}"
        }

        try:
            response = self.session.post(
                url, json=payload, headers=headers, timeout=s.request_timeout_seconds
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            return self._failure("whatsapp", phone, f"WhatsApp API error: {e}")

        messages = data.get("messages") or [{}]
        message_id = messages[0].get("id")
        logger.info("WhatsApp message sent to %s: %s", clean_phone, message_id)
        return NotificationResult(
            success=True, channel="whatsapp", recipient=phone, message_id=message_id
        )

    def send_webhook(self, url: str, payload: dict) -> NotificationResult:
        try:
            response = self.session.post(
                url, json=payload, timeout=self.settings.request_timeout_seconds
            )
            response.raise_for_status()
        except requests.RequestException as e:
            return self._failure("webhook", url, f"Webhook error: {e}")

        logger.info("Webhook delivered to %s (%s)", url, response.status_code)
        return NotificationResult(success=True, channel="webhook", recipient=url)


def build_notification_client(settings: Settings) -> NotificationClient:
    if settings.notification_mock_mode:
        return MockNotificationClient()
    return HttpNotificationClient(settings)
