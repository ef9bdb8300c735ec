"""
Expéditeurs de notifications.

- LoggingNotificationSender : journalise seulement (défaut, développement)
- WebhookNotificationSender : POST JSON vers NOTIFICATION_WEBHOOK_URL

Toute erreur de transport est convertie en ExternalCollaboratorError.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import ExternalCollaboratorError

logger = logging.getLogger(__name__)


class LoggingNotificationSender:
    """Expéditeur sans transport : trace l'événement dans les logs."""

    def send(self, event_type: str, tenant_id: Optional[int], payload: Dict[str, Any]) -> None:
        logger.info(f"✉️ Notification {event_type} (tenant {tenant_id}) : {payload}")


class WebhookNotificationSender:
    """Publie les événements vers le service de notification (email, SMS...)."""

    def __init__(self, url: str, timeout: float = 10.0, client: Optional[httpx.Client] = None):
        self.url = url
        self.timeout = timeout
        self.client = client

    def send(self, event_type: str, tenant_id: Optional[int], payload: Dict[str, Any]) -> None:
        body = {"event_type": event_type, "tenant_id": tenant_id, "payload": payload}
        try:
            if self.client is not None:
                response = self.client.post(self.url, json=body, timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(self.url, json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ExternalCollaboratorError(
                f"Service de notification : HTTP {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise ExternalCollaboratorError(f"Service de notification injoignable : {e}") from e


def get_notification_sender():
    """Expéditeur configuré : webhook si NOTIFICATION_WEBHOOK_URL est défini."""
    if settings.notifications_configured:
        return WebhookNotificationSender(
            url=settings.NOTIFICATION_WEBHOOK_URL,
            timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
        )
    return LoggingNotificationSender()
