# app/models/mandate/mandate_activity.py
"""
Modèle MandateActivity - Journal append-only des mandats.

Chaque transition de commande ou émission de facture y ajoute une ligne.
tenant_id passe à NULL à la suppression du tenant : le journal est conservé.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base_class import Base
from app.models.enums import ActorType, MandateActivityType
from app.models.mixins import utc_now
from app.models.types import JSONPayload


class MandateActivity(Base):
    """Entrée immuable du journal des mandats."""

    __tablename__ = "mandate_activities"
    __table_args__ = {
        "comment": "Journal des transitions de mandats (immuable)"
    }

    id: Mapped[int] = mapped_column(primary_key=True)

    # --- Sur quoi ---
    tenant_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("tenants.id", ondelete="SET NULL"),
        index=True,
    )
    order_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("mandate_orders.id"),
        index=True,
    )
    invoice_id: Mapped[Optional[int]] = mapped_column(ForeignKey("mandate_invoices.id"))

    # --- Quoi ---
    activity_type: Mapped[MandateActivityType] = mapped_column(
        Enum(MandateActivityType, name="mandate_activity_type_enum", create_constraint=True),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    old_value: Mapped[Optional[str]] = mapped_column(String(50))
    new_value: Mapped[Optional[str]] = mapped_column(String(50))
    details: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONPayload)

    # --- Qui ---
    performed_by: Mapped[Optional[str]] = mapped_column(String(100))
    performed_by_type: Mapped[ActorType] = mapped_column(
        Enum(ActorType, name="actor_type_enum", create_constraint=True),
        default=ActorType.SYSTEM,
        nullable=False,
    )

    # --- Quand ---
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<MandateActivity(id={self.id}, type={self.activity_type}, order_id={self.order_id})>"
