# app/api/v1/webhooks/schemas.py
"""Schemas Pydantic des webhooks du prestataire de paiement."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class PaymentWebhookEvent(BaseModel):
    """
    Événement reçu du prestataire.

    Types traités :
    - billing_change.due : data.billing_change_id
    - subscription.updated : data.tenant_id, data.plan_code,
      data.billing_interval (optionnel), data.effective_date (optionnel)
    """

    id: str = Field(..., min_length=1, max_length=255, examples=["evt_1PXyZ"])
    type: str = Field(..., min_length=1, max_length=100, examples=["billing_change.due"])
    data: Dict[str, Any] = Field(default_factory=dict)


class WebhookAckResponse(BaseModel):
    """Accusé de réception (duplicate, ignored, applied, already_applied, scheduled)."""

    event_id: str
    outcome: str
    billing_change_id: Optional[int] = None
