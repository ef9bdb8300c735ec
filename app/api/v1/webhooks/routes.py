# app/api/v1/webhooks/routes.py
"""
Réception des webhooks du prestataire de paiement.

Un même événement peut être livré plusieurs fois : la réponse est alors
200 avec outcome="duplicate", sans nouvel effet.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.errors import http_error
from app.core.exceptions import BillingCoreError
from app.database.session import get_db
from app.services.webhooks import PaymentWebhookService
from .schemas import PaymentWebhookEvent, WebhookAckResponse

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post(
    "/payments",
    response_model=WebhookAckResponse,
    summary="Webhook du prestataire de paiement",
)
def receive_payment_webhook(
    event: PaymentWebhookEvent,
    db: Session = Depends(get_db),
):
    try:
        outcome = PaymentWebhookService(db).process(event.id, event.type, event.data)
    except BillingCoreError as e:
        raise http_error(e)

    return WebhookAckResponse(
        event_id=outcome.event_id,
        outcome=outcome.outcome,
        billing_change_id=outcome.billing_change_id,
    )
