"""
Adaptateur des webhooks du prestataire de paiement.

Idempotent à deux niveaux :
- chaque identifiant d'événement n'est traité qu'une fois
  (processed_webhook_events, contrainte d'unicité)
- un changement déjà APPLIED n'est jamais réappliqué
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.actor import Actor
from app.core.exceptions import ValidationError
from app.models.enums import ActorType, BillingChangeStatus, BillingChangeType, BillingInterval, PaymentMethod
from app.models.platform.webhook_event import ProcessedWebhookEvent
from app.models.tenants.tenant import Tenant
from app.services.billing.engine import BillingChangeService, ChangeRequest, TenantNotFoundError
from app.services.catalog import get_plan_by_code, resolve_plan

logger = logging.getLogger(__name__)

WEBHOOK_ACTOR = Actor(id="payment-webhook", actor_type=ActorType.SYSTEM)


class InvalidWebhookPayloadError(ValidationError):
    """Charge utile de webhook incomplète ou invalide."""
    pass


@dataclass(frozen=True)
class WebhookOutcome:
    event_id: str
    outcome: str
    billing_change_id: Optional[int] = None


class PaymentWebhookService:
    """Traite les événements du prestataire de paiement."""

    def __init__(self, db: Session, billing: Optional[BillingChangeService] = None):
        self.db = db
        self.billing = billing or BillingChangeService(db)

    def process(
            self,
            event_id: str,
            event_type: str,
            data: Dict[str, Any],
            today: Optional[date] = None,
    ) -> WebhookOutcome:
        already = self.db.execute(
            select(ProcessedWebhookEvent).where(ProcessedWebhookEvent.event_id == event_id)
        ).scalar_one_or_none()
        if already is not None:
            logger.info(f"🔁 Webhook {event_id} déjà traité ({already.outcome})")
            return WebhookOutcome(event_id=event_id, outcome="duplicate")

        if event_type == "billing_change.due":
            result = self._apply_due_change(event_id, data, today)
        elif event_type == "subscription.updated":
            result = self._schedule_plan_change(event_id, data, today)
        else:
            logger.info(f"Webhook {event_id} : type {event_type} ignoré")
            result = WebhookOutcome(event_id=event_id, outcome="ignored")

        self.db.add(ProcessedWebhookEvent(event_id=event_id, event_type=event_type, outcome=result.outcome))
        try:
            self.db.commit()
        except IntegrityError:
            # Livraison concurrente du même événement : l'effet métier est
            # protégé par le statut du changement
            self.db.rollback()
            logger.info(f"🔁 Webhook {event_id} enregistré par une livraison concurrente")
            return WebhookOutcome(event_id=event_id, outcome="duplicate", billing_change_id=result.billing_change_id)

        return result

    @staticmethod
    def _require(data: Dict[str, Any], key: str):
        value = data.get(key)
        if value is None:
            raise InvalidWebhookPayloadError(f"Champ '{key}' manquant dans le webhook")
        return value

    def _require_int(self, data: Dict[str, Any], key: str) -> int:
        try:
            return int(self._require(data, key))
        except (TypeError, ValueError) as e:
            raise InvalidWebhookPayloadError(f"Champ '{key}' invalide dans le webhook") from e

    def _apply_due_change(self, event_id: str, data: Dict[str, Any], today: Optional[date]) -> WebhookOutcome:
        change_id = self._require_int(data, "billing_change_id")
        change = self.billing.get_change(change_id)
        if change.status == BillingChangeStatus.APPLIED:
            return WebhookOutcome(event_id=event_id, outcome="already_applied", billing_change_id=change_id)

        self.billing.apply_change(change_id, actor=WEBHOOK_ACTOR, today=today)
        return WebhookOutcome(event_id=event_id, outcome="applied", billing_change_id=change_id)

    def _schedule_plan_change(self, event_id: str, data: Dict[str, Any], today: Optional[date]) -> WebhookOutcome:
        tenant_id = self._require_int(data, "tenant_id")
        tenant = self.db.get(Tenant, tenant_id)
        if tenant is None:
            raise TenantNotFoundError(f"Tenant {tenant_id} non trouvé")

        plan = get_plan_by_code(self.db, str(self._require(data, "plan_code")).upper())
        if plan is None:
            raise InvalidWebhookPayloadError(f"Formule inconnue : {data.get('plan_code')}")

        try:
            interval = BillingInterval(data.get("billing_interval") or tenant.billing_interval.value)
            effective_date = date.fromisoformat(data["effective_date"]) if data.get("effective_date") else None
        except (TypeError, ValueError) as e:
            raise InvalidWebhookPayloadError(f"Webhook {event_id} : valeur invalide ({e})") from e

        current = resolve_plan(self.db, tenant)
        if current is not None and current.id == plan.id and interval == tenant.billing_interval:
            return WebhookOutcome(event_id=event_id, outcome="ignored")

        change = self.billing.schedule_change(
            tenant_id,
            ChangeRequest(
                change_type=BillingChangeType.PLAN_CHANGE,
                to_plan_id=plan.id,
                to_billing_interval=interval,
                effective_date=effective_date,
                payment_method=PaymentMethod.STRIPE,
            ),
            actor=WEBHOOK_ACTOR,
            today=today,
        )
        return WebhookOutcome(event_id=event_id, outcome="scheduled", billing_change_id=change.id)
