"""
Tests de l'adaptateur des webhooks de paiement.

Couvre :
┌──────────────────────────────┬──────────────────────────────────────────────┐
│ Classe                       │ Ce qui est testé                              │
├──────────────────────────────┼──────────────────────────────────────────────┤
│ TestIdempotency              │ Même event_id traité une seule fois           │
│ TestBillingChangeDue         │ Application, changement déjà appliqué         │
│ TestSubscriptionUpdated      │ Planification d'un changement de formule      │
│ TestInvalidPayload           │ Champs manquants ou invalides                 │
└──────────────────────────────┴──────────────────────────────────────────────┘
"""

from datetime import date

import pytest
from sqlalchemy import func, select

from app.core.exceptions import NotFoundError, ValidationError
from app.models import BillingChange, ProcessedWebhookEvent
from app.models.enums import BillingChangeStatus, BillingChangeType, BillingInterval, PaymentMethod
from app.services.billing import BillingChangeService, ChangeRequest
from app.services.webhooks import PaymentWebhookService
from tests.factories import TODAY

EFFECTIVE = date(2025, 4, 1)


@pytest.fixture
def service(db_session) -> PaymentWebhookService:
    return PaymentWebhookService(db_session)


@pytest.fixture
def pending_change(db_session, mairie, premium_plan) -> BillingChange:
    return BillingChangeService(db_session).schedule_change(
        mairie.id,
        ChangeRequest(change_type=BillingChangeType.PLAN_CHANGE, to_plan_id=premium_plan.id),
        today=TODAY,
    )


def count(db_session, model) -> int:
    return db_session.execute(select(func.count()).select_from(model)).scalar()


class TestIdempotency:

    def test_unknown_event_type_is_ignored(self, db_session, service):
        outcome = service.process("evt_001", "customer.created", {})

        assert outcome.outcome == "ignored"
        recorded = db_session.execute(select(ProcessedWebhookEvent)).scalar_one()
        assert (recorded.event_id, recorded.outcome) == ("evt_001", "ignored")

    def test_replayed_event_is_duplicate(self, db_session, service, mairie, premium_plan):
        data = {"tenant_id": mairie.id, "plan_code": "PREMIUM"}

        first = service.process("evt_002", "subscription.updated", data, today=TODAY)
        second = service.process("evt_002", "subscription.updated", data, today=TODAY)

        assert first.outcome == "scheduled"
        assert second.outcome == "duplicate"
        assert count(db_session, BillingChange) == 1

    def test_failed_event_is_not_recorded(self, db_session, service):
        """Un événement en échec peut être relivré par le prestataire."""
        with pytest.raises(ValidationError):
            service.process("evt_003", "billing_change.due", {})

        assert count(db_session, ProcessedWebhookEvent) == 0


class TestBillingChangeDue:

    def test_due_change_is_applied(self, db_session, service, pending_change, premium_plan, mairie):
        outcome = service.process(
            "evt_010", "billing_change.due", {"billing_change_id": pending_change.id}, today=EFFECTIVE
        )

        db_session.refresh(pending_change)
        db_session.refresh(mairie)
        assert outcome.outcome == "applied"
        assert outcome.billing_change_id == pending_change.id
        assert pending_change.status == BillingChangeStatus.APPLIED
        assert mairie.subscription_plan_id == premium_plan.id

    def test_already_applied_change(self, service, pending_change):
        """Deux événements distincts pour le même changement : une seule application."""
        service.process("evt_011", "billing_change.due", {"billing_change_id": pending_change.id}, today=EFFECTIVE)

        outcome = service.process(
            "evt_012", "billing_change.due", {"billing_change_id": str(pending_change.id)}, today=EFFECTIVE
        )

        assert outcome.outcome == "already_applied"

    def test_unknown_change(self, service):
        with pytest.raises(NotFoundError):
            service.process("evt_013", "billing_change.due", {"billing_change_id": 999}, today=EFFECTIVE)


class TestSubscriptionUpdated:

    def test_plan_change_is_scheduled(self, db_session, service, mairie, premium_plan):
        outcome = service.process(
            "evt_020",
            "subscription.updated",
            {"tenant_id": mairie.id, "plan_code": "premium", "effective_date": "2025-04-01"},
            today=TODAY,
        )

        change = db_session.get(BillingChange, outcome.billing_change_id)
        assert outcome.outcome == "scheduled"
        assert change.status == BillingChangeStatus.PENDING
        assert change.to_plan_id == premium_plan.id
        assert change.effective_date == EFFECTIVE
        assert change.payment_method == PaymentMethod.STRIPE
        assert change.requested_by == "payment-webhook"

    def test_interval_change_is_scheduled(self, db_session, service, mairie):
        outcome = service.process(
            "evt_021",
            "subscription.updated",
            {"tenant_id": mairie.id, "plan_code": "STANDARD", "billing_interval": "YEARLY"},
            today=TODAY,
        )

        change = db_session.get(BillingChange, outcome.billing_change_id)
        assert change.to_billing_interval == BillingInterval.YEARLY

    def test_no_change_is_ignored(self, db_session, service, mairie):
        outcome = service.process(
            "evt_022", "subscription.updated", {"tenant_id": mairie.id, "plan_code": "STANDARD"}, today=TODAY
        )

        assert outcome.outcome == "ignored"
        assert count(db_session, BillingChange) == 0


class TestInvalidPayload:

    @pytest.mark.parametrize("data", [
        {},
        {"billing_change_id": None},
        {"billing_change_id": "abc"},
    ])
    def test_invalid_billing_change_id(self, service, data):
        with pytest.raises(ValidationError):
            service.process("evt_030", "billing_change.due", data)

    def test_unknown_plan_code(self, service, mairie):
        with pytest.raises(ValidationError):
            service.process("evt_031", "subscription.updated", {"tenant_id": mairie.id, "plan_code": "GOLD"})

    @pytest.mark.parametrize("effective_date", ["1er avril", 20250401, ["2025-04-01"]])
    def test_invalid_effective_date(self, db_session, service, mairie, premium_plan, effective_date):
        with pytest.raises(ValidationError):
            service.process(
                "evt_032",
                "subscription.updated",
                {"tenant_id": mairie.id, "plan_code": "PREMIUM", "effective_date": effective_date},
            )

        assert count(db_session, BillingChange) == 0

    def test_invalid_interval(self, service, mairie, premium_plan):
        with pytest.raises(ValidationError):
            service.process(
                "evt_033",
                "subscription.updated",
                {"tenant_id": mairie.id, "plan_code": "PREMIUM", "billing_interval": "WEEKLY"},
            )

    def test_unknown_tenant(self, service, premium_plan):
        with pytest.raises(NotFoundError):
            service.process("evt_034", "subscription.updated", {"tenant_id": 999, "plan_code": "PREMIUM"})
