# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Alert forwarding to the notification-service.
Fire-and-forget: a slow or failing notifier never reaches the rotation engine.
"""

from typing import Any

import httpx

from rotation_engine.core.config import settings
from rotation_engine.core.logging import get_logger
from rotation_engine.metrics.prometheus import NOTIFICATIONS_SENT
from rotation_engine.models.domain import Alert, AlertPriority

logger = get_logger(__name__)


class NotificationClient:
    """Posts qualifying alerts to `{NOTIFICATION_SERVICE_URL}/api/v1/notify`."""

    def __init__(
        self,
        enabled: bool | None = None,
        min_priority: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.enabled = settings.ALERT_NOTIFICATIONS_ENABLED if enabled is None else enabled
        self.min_priority = AlertPriority(min_priority or settings.ALERT_NOTIFICATION_MIN_PRIORITY)
        self.base_url = (base_url or settings.NOTIFICATION_SERVICE_URL).rstrip("/")
        self.timeout = settings.NOTIFICATION_TIMEOUT if timeout is None else timeout

    def should_forward(self, alert: Alert) -> bool:
        return self.enabled and alert.priority.rank >= self.min_priority.rank

    def send_alert(self, execution_id: str, alert: Alert) -> bool:
        """Returns True only when the notifier accepted the alert."""
        if not self.should_forward(alert):
            return False
        payload = {
            "channel": settings.ALERT_NOTIFICATION_CHANNEL,
            "recipient": settings.ALERT_NOTIFICATION_RECIPIENT,
            "message": alert.message,
            "incident_id": execution_id,
            "severity": alert.priority.value,
            "alert_id": alert.id,
            "alert_type": alert.type.value,
        }
        return self.send(payload, execution_id)

    def send(self, payload: dict[str, Any], execution_id: str) -> bool:
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(f"{self.base_url}/api/v1/notify", json=payload)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning(
                "Alert forwarding failed: %s", exc, extra={"execution_id": execution_id},
            )
            return False

        NOTIFICATIONS_SENT.labels(channel=payload["channel"]).inc()
        logger.info(
            "Alert forwarded: type=%s, recipient=%s, status=%s",
            payload.get("alert_type"), payload["recipient"], response.status_code,
            extra={"execution_id": execution_id},
        )
        return True
