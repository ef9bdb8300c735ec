"""
Modèle NotificationOutbox - Événements à notifier, écrits dans la même
transaction que le changement d'état qui les produit.

Un worker séparé les livre ; un échec de livraison ne touche jamais
à l'état métier.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base_class import Base
from app.models.enums import OutboxStatus
from app.models.mixins import utc_now
from app.models.types import JSONPayload


class NotificationOutbox(Base):
    """Notification en attente de livraison."""

    __tablename__ = "notification_outbox"

    id: Mapped[int] = mapped_column(primary_key=True)

    event_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Ex: mandate_order.accepted"
    )
    # Pas de clé étrangère : l'événement survit à la suppression du tenant
    tenant_id: Mapped[Optional[int]] = mapped_column(Integer, index=True)
    payload: Mapped[Dict[str, Any]] = mapped_column(JSONPayload, nullable=False, default=dict)

    status: Mapped[OutboxStatus] = mapped_column(
        Enum(OutboxStatus, name="outbox_status_enum", create_constraint=True),
        default=OutboxStatus.PENDING,
        nullable=False,
        index=True,
    )
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_error: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<NotificationOutbox(id={self.id}, event='{self.event_type}', status={self.status})>"
