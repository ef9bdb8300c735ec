"""
Tests API pour le module Billing.

Ce module teste :
- /api/v1/tenants/{id}/billing-changes : planification et liste
- /api/v1/billing-changes/{id}/apply, /cancel : transitions
- /api/v1/tenants/{id}/ledger : grand livre et imputation

================================================================================
TESTS COUVERTS
================================================================================

    Classe                      | Description
    ----------------------------|------------------------------------------------
    TestScheduleBillingChange   | 201, validation, 409 doublon
    TestListBillingChanges      | Filtre par statut, pagination
    TestApplyAndCancel          | Application à échéance, états terminaux
    TestLedger                  | Solde, imputation sur facture

================================================================================
"""

import pytest
from fastapi import status

from app.models.mixins import utc_now


@pytest.fixture
def today():
    """Date du serveur : les routes n'acceptent pas de date injectée."""
    return utc_now().date()


def schedule_premium(client, tenant_id, plan_id, effective_date):
    return client.post(
        f"/api/v1/tenants/{tenant_id}/billing-changes",
        json={
            "change_type": "PLAN_CHANGE",
            "to_plan_id": plan_id,
            "effective_date": effective_date.isoformat(),
        },
    )


# =============================================================================
# TESTS PLANIFICATION
# =============================================================================

class TestScheduleBillingChange:

    def test_schedule_plan_change(self, authenticated_client, mairie, premium_plan, today):
        response = schedule_premium(authenticated_client, mairie.id, premium_plan.id, today)

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["status"] == "PENDING"
        assert data["to_plan_id"] == premium_plan.id
        assert data["requested_by"] == "admin-1"
        assert data["prorata_debit_cents"] >= data["prorata_credit_cents"]

    def test_schedule_addon_change_by_code(self, authenticated_client, mairie, admin_addon):
        response = authenticated_client.post(
            f"/api/v1/tenants/{mairie.id}/billing-changes",
            json={"change_type": "ADDON_CHANGE", "addon_code": "ADMIN", "to_quantity": 2},
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["addon_id"] == admin_addon.id

    def test_negative_quantity_rejected(self, authenticated_client, mairie, admin_addon):
        response = authenticated_client.post(
            f"/api/v1/tenants/{mairie.id}/billing-changes",
            json={"change_type": "ADDON_CHANGE", "addon_code": "ADMIN", "to_quantity": -1},
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_past_effective_date_rejected(self, authenticated_client, mairie, premium_plan):
        response = authenticated_client.post(
            f"/api/v1/tenants/{mairie.id}/billing-changes",
            json={"change_type": "PLAN_CHANGE", "to_plan_id": premium_plan.id, "effective_date": "2020-01-01"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_duplicate_pending_change_is_conflict(self, authenticated_client, mairie, premium_plan, today):
        schedule_premium(authenticated_client, mairie.id, premium_plan.id, today)

        response = schedule_premium(authenticated_client, mairie.id, premium_plan.id, today)

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["detail"]["code"] == "INVALID_STATE"

    def test_unknown_tenant(self, authenticated_client, premium_plan, today):
        response = schedule_premium(authenticated_client, 99999, premium_plan.id, today)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_requires_actor(self, client, mairie, premium_plan, today):
        response = schedule_premium(client, mairie.id, premium_plan.id, today)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


# =============================================================================
# TESTS LISTE
# =============================================================================

class TestListBillingChanges:

    def test_filter_by_status(self, authenticated_client, mairie, premium_plan, admin_addon, today):
        change_id = schedule_premium(authenticated_client, mairie.id, premium_plan.id, today).json()["id"]
        authenticated_client.post(
            f"/api/v1/tenants/{mairie.id}/billing-changes",
            json={"change_type": "ADDON_CHANGE", "addon_code": "ADMIN", "to_quantity": 1},
        )
        authenticated_client.post(f"/api/v1/billing-changes/{change_id}/cancel")

        pending = authenticated_client.get(
            f"/api/v1/tenants/{mairie.id}/billing-changes", params={"status": "PENDING"}
        ).json()
        everything = authenticated_client.get(f"/api/v1/tenants/{mairie.id}/billing-changes").json()

        assert pending["total"] == 1
        assert pending["items"][0]["change_type"] == "ADDON_CHANGE"
        assert everything["total"] == 2

    def test_pagination(self, authenticated_client, mairie, premium_plan, admin_addon, today):
        schedule_premium(authenticated_client, mairie.id, premium_plan.id, today)
        authenticated_client.post(
            f"/api/v1/tenants/{mairie.id}/billing-changes",
            json={"change_type": "ADDON_CHANGE", "addon_code": "ADMIN", "to_quantity": 1},
        )

        data = authenticated_client.get(
            f"/api/v1/tenants/{mairie.id}/billing-changes", params={"page": 2, "size": 1}
        ).json()

        assert data["total"] == 2
        assert len(data["items"]) == 1
        assert data["page"] == 2


# =============================================================================
# TESTS APPLICATION / ANNULATION
# =============================================================================

class TestApplyAndCancel:

    def test_apply_due_change(self, authenticated_client, mairie, premium_plan, today):
        change_id = schedule_premium(authenticated_client, mairie.id, premium_plan.id, today).json()["id"]

        response = authenticated_client.post(f"/api/v1/billing-changes/{change_id}/apply")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "APPLIED"
        tenant = authenticated_client.get(f"/api/v1/tenants/{mairie.id}").json()
        assert tenant["subscription_plan_id"] == premium_plan.id

    def test_apply_twice_is_conflict(self, authenticated_client, mairie, premium_plan, today):
        change_id = schedule_premium(authenticated_client, mairie.id, premium_plan.id, today).json()["id"]
        authenticated_client.post(f"/api/v1/billing-changes/{change_id}/apply")

        response = authenticated_client.post(f"/api/v1/billing-changes/{change_id}/apply")

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_cancel(self, authenticated_client, mairie, premium_plan, today):
        change_id = schedule_premium(authenticated_client, mairie.id, premium_plan.id, today).json()["id"]

        response = authenticated_client.post(f"/api/v1/billing-changes/{change_id}/cancel")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "CANCELLED"

    def test_cancel_unknown_change(self, authenticated_client):
        response = authenticated_client.post("/api/v1/billing-changes/99999/cancel")

        assert response.status_code == status.HTTP_404_NOT_FOUND


# =============================================================================
# TESTS GRAND LIVRE
# =============================================================================

class TestLedger:

    def test_empty_ledger(self, authenticated_client, mairie):
        response = authenticated_client.get(f"/api/v1/tenants/{mairie.id}/ledger")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"tenant_id": mairie.id, "balance_cents": 0, "entries": []}

    def test_ledger_after_upgrade(self, authenticated_client, mairie, premium_plan, today):
        change_id = schedule_premium(authenticated_client, mairie.id, premium_plan.id, today).json()["id"]
        change = authenticated_client.post(f"/api/v1/billing-changes/{change_id}/apply").json()

        data = authenticated_client.get(f"/api/v1/tenants/{mairie.id}/ledger").json()

        assert data["balance_cents"] == change["prorata_credit_cents"] - change["prorata_debit_cents"]
        assert {e["billing_change_id"] for e in data["entries"]} == {change_id}

    def test_apply_entries_to_invoice(self, authenticated_client, mairie, premium_plan, today):
        change_id = schedule_premium(authenticated_client, mairie.id, premium_plan.id, today).json()["id"]
        authenticated_client.post(f"/api/v1/billing-changes/{change_id}/apply")
        entry_ids = [e["id"] for e in authenticated_client.get(f"/api/v1/tenants/{mairie.id}/ledger").json()["entries"]]

        response = authenticated_client.post(
            f"/api/v1/tenants/{mairie.id}/ledger/apply",
            json={"entry_ids": entry_ids, "invoice_reference": "FA-2026-00042"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["balance_cents"] == 0
        unapplied = authenticated_client.get(
            f"/api/v1/tenants/{mairie.id}/ledger", params={"only_unapplied": True}
        ).json()
        assert unapplied["entries"] == []

    def test_apply_requires_entries(self, authenticated_client, mairie):
        response = authenticated_client.post(
            f"/api/v1/tenants/{mairie.id}/ledger/apply",
            json={"entry_ids": [], "invoice_reference": "FA-2026-00042"},
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
