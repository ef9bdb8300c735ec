# app/api/v1/mandate/schemas.py
"""
Schemas Pydantic pour les commandes sur mandat administratif.

Les réponses exposent le numéro formaté et la valeur de séquence de
chaque document numéroté (DV, BC, FA).
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ConfigDict

from app.models.enums import (
    ActorType,
    BillingInterval,
    InvoiceStatus,
    MandateActivityType,
    MandateOrderStatus,
)


# =============================================================================
# CRÉATION
# =============================================================================

class AddonLineCreate(BaseModel):
    """Ligne d'option de la commande (prix catalogue si absent)."""

    code: str = Field(..., min_length=1, max_length=50, examples=["ASSOCIATIONS"])
    quantity: int = Field(..., ge=1)
    unit_price_cents: Optional[int] = Field(None, ge=0)


class MandateOrderCreate(BaseModel):
    """Données requises pour créer une commande DRAFT."""

    plan_id: int
    tenant_id: Optional[int] = Field(None, description="Absent pour un prospect")
    billing_cycle: BillingInterval = BillingInterval.YEARLY
    addons: List[AddonLineCreate] = Field(default_factory=list)
    discount_amount_cents: int = Field(0, ge=0)
    client_name: Optional[str] = Field(None, max_length=255)
    client_siret: Optional[str] = Field(None, pattern=r"^\d{14}$")
    quote_id: Optional[int] = None


# =============================================================================
# ACTIONS
# =============================================================================

class PurchaseOrderRequest(BaseModel):
    """Références du bon de commande client."""

    purchase_order_number: str = Field(..., min_length=1, max_length=100)
    engagement_number: Optional[str] = Field(None, max_length=100)
    signed_document_path: Optional[str] = Field(None, max_length=500)


class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class InvoiceRequest(BaseModel):
    """Facturation partielle ou totale (défaut : reste à facturer)."""

    amount_cents: Optional[int] = Field(None, gt=0)
    period_start: Optional[date] = None


# =============================================================================
# RÉPONSES
# =============================================================================

class MandateOrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    order_sequence: int
    commande_number: Optional[str] = None
    commande_sequence: Optional[int] = None
    tenant_id: Optional[int] = None
    quote_id: Optional[int] = None
    plan_id: Optional[int] = None
    billing_cycle: BillingInterval
    status: MandateOrderStatus
    plan_amount_cents: int
    addons_amount_cents: int
    annual_amount_cents: int
    discount_amount_cents: int
    final_amount_cents: int
    addons_snapshot: Optional[List[Dict[str, Any]]] = None
    client_name: Optional[str] = None
    client_siret: Optional[str] = None
    purchase_order_number: Optional[str] = None
    engagement_number: Optional[str] = None
    signed_document_path: Optional[str] = None
    sent_at: Optional[datetime] = None
    validated_at: Optional[datetime] = None
    validated_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[str] = None


class MandateInvoiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_number: str
    invoice_sequence: int
    order_id: int
    tenant_id: Optional[int] = None
    status: InvoiceStatus
    amount_cents: int
    period_start: date
    period_end: date
    due_date: date
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[str] = None


class MandateActivityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: Optional[int] = None
    invoice_id: Optional[int] = None
    activity_type: MandateActivityType
    title: str
    description: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    performed_by: Optional[str] = None
    performed_by_type: ActorType
    created_at: datetime
