# app/models/billing/documents.py
"""
Devis et factures du parcours carte bancaire.

Documents financiers : jamais supprimés physiquement. À la suppression du
tenant ils sont archivés et leur clé tenant est mise à NULL.
"""

from datetime import date
from typing import Optional

from sqlalchemy import Date, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base_class import Base
from app.models.enums import InvoiceStatus, QuoteStatus
from app.models.mixins import ArchivableMixin, TimestampMixin


class Quote(Base, ArchivableMixin, TimestampMixin):
    """Devis (famille DV)."""

    __tablename__ = "quotes"

    id: Mapped[int] = mapped_column(primary_key=True)
    quote_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)
    tenant_id: Mapped[Optional[int]] = mapped_column(ForeignKey("tenants.id"), index=True)
    client_name: Mapped[Optional[str]] = mapped_column(String(255))
    status: Mapped[QuoteStatus] = mapped_column(
        Enum(QuoteStatus, name="quote_status_enum", create_constraint=True),
        default=QuoteStatus.DRAFT,
        nullable=False,
    )
    total_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    valid_until: Mapped[Optional[date]] = mapped_column(Date)


class Invoice(Base, ArchivableMixin, TimestampMixin):
    """Facture (famille FA)."""

    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(primary_key=True)
    invoice_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)
    tenant_id: Mapped[Optional[int]] = mapped_column(ForeignKey("tenants.id"), index=True)
    status: Mapped[InvoiceStatus] = mapped_column(
        Enum(InvoiceStatus, name="invoice_status_enum", create_constraint=True),
        default=InvoiceStatus.DRAFT,
        nullable=False,
    )
    total_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    due_date: Mapped[Optional[date]] = mapped_column(Date)
