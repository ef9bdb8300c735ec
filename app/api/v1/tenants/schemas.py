# app/api/v1/tenants/schemas.py
"""
Schemas Pydantic pour le module Tenants.

Conventions :
- *Create : données requises pour création
- *Request : corps d'une action (suspension, rattachement...)
- *Response : données retournées par l'API
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, ConfigDict

from app.models.enums import (
    BillingInterval,
    LifecycleStatus,
    PaymentMethod,
    ResourceKind,
    TenantType,
)


# =============================================================================
# TENANT SCHEMAS
# =============================================================================

class TenantResponse(BaseModel):
    """Tenant retourné par l'API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    tenant_type: TenantType
    parent_epci_id: Optional[int] = None
    parent_tenant_id: Optional[int] = None
    subscription_plan_id: Optional[int] = None
    billing_interval: BillingInterval
    payment_method: Optional[PaymentMethod] = None
    is_free: bool
    lifecycle_status: LifecycleStatus
    suspended_at: Optional[datetime] = None
    suspension_reason: Optional[str] = None
    archived_at: Optional[datetime] = None
    archive_reason: Optional[str] = None


class LifecycleReasonRequest(BaseModel):
    """Motif obligatoire d'une suspension, réactivation ou archivage."""

    reason: str = Field(..., min_length=1, max_length=1000, examples=["Impayé depuis 3 mois"])


class ParentEpciUpdate(BaseModel):
    """Rattachement (ou détachement si null) d'une commune à un EPCI."""

    epci_id: Optional[int] = Field(None, description="EPCI cible, null pour détacher")


class TenantDeletionResponse(BaseModel):
    """Résultat d'une suppression récursive."""

    tenant_id: int
    deleted_ids: List[int]
    cycle_ids: List[int]
    success: bool


# =============================================================================
# QUOTAS & FEATURES
# =============================================================================

class QuotaResponse(BaseModel):
    """État d'un quota : consommé, autorisé, restant."""

    tenant_id: int
    kind: ResourceKind
    used: int
    allowed: int
    remaining: int


class FeaturesResponse(BaseModel):
    """Fonctionnalités effectives d'un tenant (codes en minuscules)."""

    tenant_id: int
    features: List[str]


# =============================================================================
# SOUS-ORGANISATIONS
# =============================================================================

class AssociationCreate(BaseModel):
    """Données requises pour créer une association."""

    name: str = Field(..., min_length=2, max_length=255, examples=["Comité des fêtes"])
    contact_email: Optional[EmailStr] = None


class AssociationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    name: str
    contact_email: Optional[str] = None
    is_active: bool


class AdminCreate(BaseModel):
    """Données requises pour créer un administrateur du tenant."""

    email: EmailStr
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)


class AdminResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool
