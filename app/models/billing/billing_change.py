# app/models/billing/billing_change.py
"""
Modèle BillingChange - Intention de changement de formule ou d'option.

Cycle de vie :
    PENDING --apply()--> APPLIED
    PENDING --cancel()--> CANCELLED

Les montants de prorata sont calculés à la planification et stockés sur la
ligne ; ils ne deviennent des écritures du grand livre qu'à l'application.
Une ligne APPLIED ou CANCELLED n'est plus jamais modifiée.
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base_class import Base
from app.models.enums import (
    BillingChangeStatus,
    BillingChangeType,
    BillingInterval,
    PaymentMethod,
)
from app.models.mixins import TimestampMixin


class BillingChange(Base, TimestampMixin):
    """Changement de facturation planifié pour un tenant."""

    __tablename__ = "tenant_billing_changes"

    # ========================
    # Clé primaire
    # ========================
    id: Mapped[int] = mapped_column(primary_key=True)

    # tenant_id passe à NULL à la suppression du tenant (rétention)
    tenant_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("tenants.id"),
        index=True,
    )

    # ========================
    # Nature et statut
    # ========================
    change_type: Mapped[BillingChangeType] = mapped_column(
        Enum(BillingChangeType, name="billing_change_type_enum", create_constraint=True),
        nullable=False,
    )
    status: Mapped[BillingChangeStatus] = mapped_column(
        Enum(BillingChangeStatus, name="billing_change_status_enum", create_constraint=True),
        default=BillingChangeStatus.PENDING,
        nullable=False,
        index=True,
    )

    # ========================
    # Changement de formule
    # ========================
    from_plan_id: Mapped[Optional[int]] = mapped_column(ForeignKey("subscription_plans.id"))
    to_plan_id: Mapped[Optional[int]] = mapped_column(ForeignKey("subscription_plans.id"))
    from_billing_interval: Mapped[Optional[BillingInterval]] = mapped_column(
        Enum(BillingInterval, name="billing_interval_enum", create_constraint=True)
    )
    to_billing_interval: Mapped[Optional[BillingInterval]] = mapped_column(
        Enum(BillingInterval, name="billing_interval_enum", create_constraint=True)
    )

    # ========================
    # Changement d'option
    # ========================
    addon_id: Mapped[Optional[int]] = mapped_column(ForeignKey("addons.id"))
    from_quantity: Mapped[Optional[int]] = mapped_column(Integer)
    to_quantity: Mapped[Optional[int]] = mapped_column(Integer)

    # ========================
    # Échéance et prorata
    # ========================
    effective_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        index=True,
        comment="Date d'effet"
    )
    prorata_credit_cents: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Part non consommée de la période en cours (centimes)"
    )
    prorata_debit_cents: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Coût proratisé du nouvel état jusqu'à fin de période (centimes)"
    )
    payment_method: Mapped[Optional[PaymentMethod]] = mapped_column(
        Enum(PaymentMethod, name="payment_method_enum", create_constraint=True)
    )

    # ========================
    # Traçabilité
    # ========================
    requested_by: Mapped[Optional[str]] = mapped_column(String(100))
    applied_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    @property
    def is_pending(self) -> bool:
        return self.status == BillingChangeStatus.PENDING

    def __repr__(self) -> str:
        return (
            f"<BillingChange(id={self.id}, type={self.change_type}, "
            f"status={self.status}, effective={self.effective_date})>"
        )
