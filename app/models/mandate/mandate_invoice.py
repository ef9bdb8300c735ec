# app/models/mandate/mandate_invoice.py
"""
Modèle MandateInvoice - Facture émise sur une commande acceptée.

Suppression logique uniquement (SoftDeleteMixin, ArchivableMixin) : une facture
n'est jamais supprimée physiquement.
"""

from datetime import date
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Date, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.enums import InvoiceStatus
from app.models.mixins import ArchivableMixin, SoftDeleteMixin, TimestampMixin

if TYPE_CHECKING:
    from app.models.mandate.mandate_order import MandateOrder


class MandateInvoice(Base, ArchivableMixin, SoftDeleteMixin, TimestampMixin):
    """Facture sur mandat administratif (famille FA)."""

    __tablename__ = "mandate_invoices"

    id: Mapped[int] = mapped_column(primary_key=True)

    invoice_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    invoice_sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    order_id: Mapped[int] = mapped_column(
        ForeignKey("mandate_orders.id"),
        nullable=False,
        index=True,
    )
    tenant_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("tenants.id"),
        index=True,
    )

    status: Mapped[InvoiceStatus] = mapped_column(
        Enum(InvoiceStatus, name="invoice_status_enum", create_constraint=True),
        default=InvoiceStatus.DRAFT,
        nullable=False,
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    order: Mapped["MandateOrder"] = relationship("MandateOrder", back_populates="invoices")

    def __repr__(self) -> str:
        return f"<MandateInvoice(id={self.id}, number='{self.invoice_number}')>"
