"""
Tests API pour la réception des webhooks de paiement.

Le prestataire n'envoie pas d'en-têtes X-Actor-* : la route est publique
et l'acteur tracé est le webhook lui-même.
"""

from fastapi import status

from app.models.enums import BillingChangeType
from app.models.mixins import utc_now
from app.services.billing import BillingChangeService, ChangeRequest


class TestPaymentWebhook:

    def test_unknown_event_type_is_acknowledged(self, client):
        response = client.post(
            "/api/v1/webhooks/payments",
            json={"id": "evt_100", "type": "customer.created", "data": {}},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"event_id": "evt_100", "outcome": "ignored", "billing_change_id": None}

    def test_redelivery_is_duplicate(self, client, mairie, premium_plan):
        payload = {
            "id": "evt_101",
            "type": "subscription.updated",
            "data": {"tenant_id": mairie.id, "plan_code": "PREMIUM"},
        }

        first = client.post("/api/v1/webhooks/payments", json=payload)
        second = client.post("/api/v1/webhooks/payments", json=payload)

        assert first.json()["outcome"] == "scheduled"
        assert second.status_code == status.HTTP_200_OK
        assert second.json()["outcome"] == "duplicate"

    def test_due_change_is_applied(self, db_session, client, mairie, premium_plan):
        today = utc_now().date()
        change = BillingChangeService(db_session).schedule_change(
            mairie.id,
            ChangeRequest(change_type=BillingChangeType.PLAN_CHANGE, to_plan_id=premium_plan.id, effective_date=today),
            today=today,
        )

        response = client.post(
            "/api/v1/webhooks/payments",
            json={"id": "evt_102", "type": "billing_change.due", "data": {"billing_change_id": change.id}},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["outcome"] == "applied"
        assert response.json()["billing_change_id"] == change.id

    def test_missing_field_is_bad_request(self, client):
        response = client.post(
            "/api/v1/webhooks/payments",
            json={"id": "evt_103", "type": "billing_change.due", "data": {}},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    def test_event_id_required(self, client):
        response = client.post("/api/v1/webhooks/payments", json={"type": "billing_change.due"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_numeric_effective_date_is_bad_request(self, client, mairie, premium_plan):
        response = client.post(
            "/api/v1/webhooks/payments",
            json={
                "id": "evt_104",
                "type": "subscription.updated",
                "data": {"tenant_id": mairie.id, "plan_code": "PREMIUM", "effective_date": 20250401},
            },
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"
