# app/models/billing/ledger_entry.py
"""
Modèle LedgerEntry - Écriture immuable du grand livre de facturation.

Le solde d'un tenant est la somme signée (CREDIT - DEBIT) des écritures
non encore imputées sur une facture. Une écriture est marquée imputée,
jamais supprimée.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base_class import Base
from app.models.enums import LedgerEntryType
from app.models.mixins import utc_now


class LedgerEntry(Base):
    """Crédit ou débit en attente d'imputation."""

    __tablename__ = "billing_ledger_entries"
    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_ledger_amount_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    tenant_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("tenants.id"),
        index=True,
    )
    entry_type: Mapped[LedgerEntryType] = mapped_column(
        Enum(LedgerEntryType, name="ledger_entry_type_enum", create_constraint=True),
        nullable=False,
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)

    billing_change_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("tenant_billing_changes.id"),
        index=True,
    )

    # --- Imputation (renseignée par le run de facturation externe) ---
    applied_to_invoice: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        index=True,
    )
    invoice_reference: Mapped[Optional[str]] = mapped_column(String(50))
    applied_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    @property
    def signed_amount_cents(self) -> int:
        """Montant signé : positif pour un crédit, négatif pour un débit."""
        if self.entry_type == LedgerEntryType.CREDIT:
            return self.amount_cents
        return -self.amount_cents

    def __repr__(self) -> str:
        return f"<LedgerEntry(id={self.id}, {self.entry_type} {self.amount_cents})>"
