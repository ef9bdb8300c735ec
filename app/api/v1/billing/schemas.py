# app/api/v1/billing/schemas.py
"""
Schemas Pydantic pour le module Billing (changements planifiés et grand livre).

Tous les montants sont en centimes d'euro (entiers).
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, ConfigDict, model_validator

from app.models.enums import (
    BillingChangeStatus,
    BillingChangeType,
    BillingInterval,
    LedgerEntryType,
    PaymentMethod,
)


# =============================================================================
# CHANGEMENTS DE FACTURATION
# =============================================================================

class BillingChangeCreate(BaseModel):
    """
    Demande de changement de formule ou de quantité d'option.

    PLAN_CHANGE : to_plan_id et/ou to_billing_interval
    ADDON_CHANGE : addon_id ou addon_code, et to_quantity
    """

    change_type: BillingChangeType
    effective_date: Optional[date] = Field(
        None,
        description="Date d'effet (défaut : 1er du mois suivant)",
    )

    # PLAN_CHANGE
    to_plan_id: Optional[int] = None
    to_billing_interval: Optional[BillingInterval] = None

    # ADDON_CHANGE
    addon_id: Optional[int] = None
    addon_code: Optional[str] = Field(None, max_length=50, examples=["ASSOCIATIONS"])
    to_quantity: Optional[int] = Field(None, ge=0)

    payment_method: Optional[PaymentMethod] = None

    @model_validator(mode="after")
    def check_target(self):
        """Vérifie qu'une cible est fournie pour le type de changement."""
        if self.change_type == BillingChangeType.PLAN_CHANGE:
            if self.to_plan_id is None and self.to_billing_interval is None:
                raise ValueError("to_plan_id ou to_billing_interval est requis")
        else:
            if self.addon_id is None and not self.addon_code:
                raise ValueError("addon_id ou addon_code est requis")
            if self.to_quantity is None:
                raise ValueError("to_quantity est requis")
        return self


class BillingChangeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: Optional[int] = None
    change_type: BillingChangeType
    status: BillingChangeStatus
    from_plan_id: Optional[int] = None
    to_plan_id: Optional[int] = None
    from_billing_interval: Optional[BillingInterval] = None
    to_billing_interval: Optional[BillingInterval] = None
    addon_id: Optional[int] = None
    from_quantity: Optional[int] = None
    to_quantity: Optional[int] = None
    effective_date: date
    prorata_credit_cents: int
    prorata_debit_cents: int
    payment_method: Optional[PaymentMethod] = None
    requested_by: Optional[str] = None
    applied_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class PaginatedBillingChanges(BaseModel):
    items: List[BillingChangeResponse]
    total: int
    page: int
    size: int


# =============================================================================
# GRAND LIVRE
# =============================================================================

class LedgerEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    entry_type: LedgerEntryType
    amount_cents: int
    description: str
    billing_change_id: Optional[int] = None
    applied_to_invoice: bool
    invoice_reference: Optional[str] = None
    applied_at: Optional[datetime] = None
    created_at: datetime


class LedgerResponse(BaseModel):
    """Écritures du tenant et solde signé des écritures non imputées."""

    tenant_id: int
    balance_cents: int = Field(..., description="Positif : crédit dû au tenant")
    entries: List[LedgerEntryResponse]


class LedgerApplyRequest(BaseModel):
    """Imputation d'écritures sur une facture (run de facturation externe)."""

    entry_ids: List[int] = Field(..., min_length=1)
    invoice_reference: str = Field(..., min_length=1, max_length=50, examples=["FA-2026-00042"])
