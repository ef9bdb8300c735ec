"""
Outbox des notifications.

Les services écrivent l'événement dans la même transaction que le
changement d'état ; NotificationDispatcher le livre ensuite, hors
transaction métier, avec ses propres reprises.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ExternalCollaboratorError
from app.models.enums import OutboxStatus
from app.models.mixins import utc_now
from app.models.platform.notification_outbox import NotificationOutbox

logger = logging.getLogger(__name__)


def enqueue_notification(
        db: Session,
        event_type: str,
        tenant_id: Optional[int],
        payload: Optional[Dict[str, Any]] = None,
) -> NotificationOutbox:
    """Ajoute un événement à l'outbox (sans commit : transaction de l'appelant)."""
    message = NotificationOutbox(
        event_type=event_type,
        tenant_id=tenant_id,
        payload=payload or {},
        status=OutboxStatus.PENDING,
        attempts=0,
    )
    db.add(message)
    return message


@dataclass
class DeliveryReport:
    sent: int = 0
    retried: int = 0
    failed: int = 0


class NotificationDispatcher:
    """
    Livre les notifications PENDING par lots.

    Les lignes sont verrouillées avec SKIP LOCKED : plusieurs workers
    peuvent tourner en parallèle sans livrer deux fois le même événement.
    """

    def __init__(self, db: Session, sender, max_attempts: Optional[int] = None):
        self.db = db
        self.sender = sender
        self.max_attempts = max_attempts or settings.NOTIFICATION_MAX_ATTEMPTS

    def deliver_pending(self, batch_size: Optional[int] = None) -> DeliveryReport:
        batch_size = batch_size or settings.NOTIFICATION_BATCH_SIZE
        report = DeliveryReport()

        messages = self.db.execute(
            select(NotificationOutbox)
            .where(NotificationOutbox.status == OutboxStatus.PENDING)
            .order_by(NotificationOutbox.id)
            .limit(batch_size)
            .with_for_update(skip_locked=True)
        ).scalars().all()

        for message in messages:
            message.attempts += 1
            try:
                self.sender.send(message.event_type, message.tenant_id, message.payload)
            except ExternalCollaboratorError as e:
                message.last_error = e.message
                if message.attempts >= self.max_attempts:
                    message.status = OutboxStatus.FAILED
                    report.failed += 1
                    logger.error(
                        f"❌ Notification {message.id} ({message.event_type}) abandonnée "
                        f"après {message.attempts} tentative(s) : {e.message}"
                    )
                else:
                    report.retried += 1
                    logger.warning(
                        f"⚠️ Notification {message.id} ({message.event_type}) en échec, "
                        f"tentative {message.attempts}/{self.max_attempts} : {e.message}"
                    )
                continue

            message.status = OutboxStatus.SENT
            message.sent_at = utc_now()
            message.last_error = None
            report.sent += 1

        self.db.commit()
        if messages:
            logger.info(
                f"📨 Outbox : {report.sent} envoyée(s), {report.retried} à reprendre, {report.failed} abandonnée(s)"
            )
        return report
