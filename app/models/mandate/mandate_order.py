# app/models/mandate/mandate_order.py
"""
Modèle MandateOrder - Commande passée par mandat administratif.

Parcours des collectivités publiques sans carte bancaire :
devis (DV) → envoi → bon de commande client → acceptation (BC) → facture (FA).

Invariant : commande_number est renseigné si et seulement si le statut est
ACCEPTED ou INVOICED. Une violation est une erreur de cohérence, jamais
réparée automatiquement.

Une commande supprimée (is_deleted) est conservée pour l'audit mais ne
participe plus aux quotas et n'accepte plus aucune transition.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any, List, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.enums import BillingInterval, MandateOrderStatus
from app.models.mixins import ArchivableMixin, SoftDeleteMixin, TimestampMixin
from app.models.types import JSONSnapshot

if TYPE_CHECKING:
    from app.models.mandate.mandate_invoice import MandateInvoice


# Statuts équivalents à une commande acceptée pour les quotas et fonctionnalités
ACCEPTED_LIKE_STATUSES = (
    MandateOrderStatus.ACCEPTED,
    MandateOrderStatus.PENDING_BC,
    MandateOrderStatus.INVOICED,
)

# Statuts dans lesquels un numéro de commande (BC) doit exister
NUMBERED_STATUSES = (
    MandateOrderStatus.ACCEPTED,
    MandateOrderStatus.INVOICED,
)


class MandateOrder(Base, ArchivableMixin, SoftDeleteMixin, TimestampMixin):
    """Commande sur mandat administratif."""

    __tablename__ = "mandate_orders"

    # ========================
    # Clé primaire
    # ========================
    id: Mapped[int] = mapped_column(primary_key=True)

    # ========================
    # Numérotation
    # ========================
    order_number: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        comment="Numéro de devis (famille DV)"
    )
    order_sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    commande_number: Mapped[Optional[str]] = mapped_column(
        String(50),
        unique=True,
        comment="Numéro de bon de commande (famille BC), attribué à l'acceptation"
    )
    commande_sequence: Mapped[Optional[int]] = mapped_column(Integer)

    # ========================
    # Rattachements
    # ========================
    tenant_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("tenants.id"),
        index=True,
    )
    quote_id: Mapped[Optional[int]] = mapped_column(ForeignKey("quotes.id"))
    plan_id: Mapped[Optional[int]] = mapped_column(ForeignKey("subscription_plans.id"))
    billing_cycle: Mapped[BillingInterval] = mapped_column(
        Enum(BillingInterval, name="billing_interval_enum", create_constraint=True),
        default=BillingInterval.YEARLY,
        nullable=False,
    )

    # ========================
    # Statut
    # ========================
    status: Mapped[MandateOrderStatus] = mapped_column(
        Enum(MandateOrderStatus, name="mandate_order_status_enum", create_constraint=True),
        default=MandateOrderStatus.DRAFT,
        nullable=False,
        index=True,
    )

    # ========================
    # Montants (centimes HT)
    # ========================
    plan_amount_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    addons_amount_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    annual_amount_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    discount_amount_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    final_amount_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    addons_snapshot: Mapped[Optional[List[dict[str, Any]]]] = mapped_column(
        JSONSnapshot,
        comment="Options figées à la commande [{code, quantity, unit_price_cents}]"
    )

    # ========================
    # Client
    # ========================
    client_name: Mapped[Optional[str]] = mapped_column(String(255))
    client_siret: Mapped[Optional[str]] = mapped_column(String(14))
    purchase_order_number: Mapped[Optional[str]] = mapped_column(
        String(100),
        comment="Référence du bon de commande émis par la collectivité"
    )
    engagement_number: Mapped[Optional[str]] = mapped_column(
        String(100),
        comment="Numéro d'engagement comptable"
    )
    signed_document_path: Mapped[Optional[str]] = mapped_column(
        String(500),
        comment="Chemin opaque du document signé (stockage objet)"
    )

    # ========================
    # Transitions
    # ========================
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    validated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    validated_by: Mapped[Optional[str]] = mapped_column(String(100))
    rejected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # ========================
    # Relations
    # ========================
    invoices: Mapped[List["MandateInvoice"]] = relationship(
        "MandateInvoice",
        back_populates="order",
        order_by="MandateInvoice.id",
    )

    def __repr__(self) -> str:
        return f"<MandateOrder(id={self.id}, number='{self.order_number}', status={self.status})>"
