"""
Notification Dispatch.

Routes a triggered action node to its channel and reports a structured
outcome. Each dispatch is isolated: a failing or misconfigured channel
produces a failed DispatchResult, never an exception, so the remaining
actions of the tick still run.
"""

import logging
import time
from typing import Callable, Dict, Union

from nexus_floor.models.notification import (
    AlertContext,
    DispatchResult,
    NotificationResult,
)
from nexus_floor.models.workflow import ActionConfig, ActionType
from nexus_floor.notifications.channels import (
    ChannelConfigError,
    NotificationClient,
    default_alert_message,
    format_whatsapp_alert,
)

logger = logging.getLogger(__name__)

SYSTEM_RECIPIENT = "system"

# (config, context) -> (recipient, NotificationResult)
Executor = Callable[[ActionConfig, AlertContext], tuple]


def _recipient(action_type: str, config: ActionConfig) -> str:
    if action_type == ActionType.EMAIL.value:
        return config.email or ""
    if action_type == ActionType.WHATSAPP.value:
        return config.phone_number or ""
    if action_type == ActionType.WEBHOOK.value:
        return config.webhook_url or ""
    if action_type == ActionType.ALERT.value:
        return SYSTEM_RECIPIENT
    return ""


class NotificationDispatcher:
    """
    Holds one executor per action type. Executors for email, WhatsApp and
    webhook delegate to the injected channel client.
    """

    def __init__(self, client: NotificationClient):
        self.client = client
        self._executors: Dict[str, Executor] = {}
        self._register_default_executors()

    def _register_default_executors(self) -> None:
        self._executors[ActionType.EMAIL.value] = self._send_email
        self._executors[ActionType.WHATSAPP.value] = self._send_whatsapp
        self._executors[ActionType.WEBHOOK.value] = self._send_webhook
        self._executors[ActionType.ALERT.value] = self._system_alert

    def register_executor(self, action_type: str, executor: Executor) -> None:
        """Register a custom executor for an action type."""
        self._executors[action_type] = executor

    def dispatch(
        self,
        action_type: Union[ActionType, str],
        config: ActionConfig,
        context: AlertContext,
    ) -> DispatchResult:
        kind = action_type.value if isinstance(action_type, ActionType) else action_type
        executor = self._executors.get(kind)
        if executor is None:
            return DispatchResult(
                type=kind,
                success=False,
                error=f"No executor registered for action type: {kind}",
            )

        start = time.monotonic()
        try:
            recipient, outcome = executor(config, context)
        except ChannelConfigError as e:
            logger.warning("[%s] Not dispatched: %s", kind.upper(), e)
            return DispatchResult(
                type=kind,
                success=False,
                recipient=_recipient(kind, config),
                error=str(e),
                duration=round(time.monotonic() - start, 3),
            )
        except Exception as e:
            logger.exception("[%s] Dispatch failed", kind.upper())
            return DispatchResult(
                type=kind,
                success=False,
                recipient=_recipient(kind, config),
                error=str(e),
                duration=round(time.monotonic() - start, 3),
            )

        elapsed = round(time.monotonic() - start, 3)
        return DispatchResult(
            type=kind,
            success=outcome.success,
            recipient=recipient,
            result=outcome.model_dump(mode="json") if outcome.success else None,
            error=None if outcome.success else outcome.error,
            duration=elapsed,
        )

    # --- Executors ---

    def _message(self, config: ActionConfig, context: AlertContext) -> str:
        return config.message_template or default_alert_message(context)

    def _send_email(self, config: ActionConfig, context: AlertContext) -> tuple:
        if not config.email:
            raise ChannelConfigError("No email address configured")
        subject = f"[{config.severity.value.upper()}] {context.equipment}"
        result = self.client.send_email(config.email, subject, self._message(config, context))
        return config.email, result

    def _send_whatsapp(self, config: ActionConfig, context: AlertContext) -> tuple:
        if not config.phone_number:
            raise ChannelConfigError("No phone number configured")
        text = format_whatsapp_alert(context, self._message(config, context))
        result = self.client.send_whatsapp(config.phone_number, text)
        return config.phone_number, result

    def _send_webhook(self, config: ActionConfig, context: AlertContext) -> tuple:
        if not config.webhook_url:
            raise ChannelConfigError("No webhook URL configured")
        payload = {
            "equipment": context.equipment,
            "sensor": context.sensor,
            "value": context.value,
            "threshold": context.threshold,
            "severity": context.severity,
            "timestamp": context.timestamp.isoformat(),
        }
        result = self.client.send_webhook(config.webhook_url, payload)
        return config.webhook_url, result

    def _system_alert(self, config: ActionConfig, context: AlertContext) -> tuple:
        logger.info(
            "[SYSTEM ALERT] %s - %s=%s", context.equipment, context.sensor, context.value
        )
        result = NotificationResult(
            success=True,
            channel="system",
            recipient=SYSTEM_RECIPIENT,
            message_id="system",
        )
        return SYSTEM_RECIPIENT, result
