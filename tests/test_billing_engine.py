"""
Tests du moteur de changements de facturation et du grand livre.

Couvre :
┌──────────────────────────────────┬──────────────────────────────────────────────┐
│ Classe                           │ Ce qui est testé                              │
├──────────────────────────────────┼──────────────────────────────────────────────┤
│ TestSchedulePlanChange           │ Planification, prorata, refus                 │
│ TestScheduleAddonChange          │ Options : quantités, réduction sous l'usage   │
│ TestAddonChangeFromOrderSnapshot │ Quantité détenue lue dans la commande mandat  │
│ TestApplyChange                  │ Application, écritures, transitions interdites│
│ TestCancelChange                 │ Annulation et états terminaux                 │
│ TestRefusedChangeTransitions     │ Refus sans écriture (changement, journaux)    │
│ TestApplyDueChanges              │ Ordre par date d'effet, échec par tenant      │
│ TestLedger                       │ Solde signé, imputation sur facture           │
└──────────────────────────────────┴──────────────────────────────────────────────┘
"""

from datetime import date

import pytest
from sqlalchemy import func, select

from app.core.exceptions import (
    InvalidStateError,
    NotFoundError,
    QuotaExceededError,
    ValidationError,
)
from app.models import BillingChange, LedgerEntry, NotificationOutbox, PlatformAuditLog, TenantAddon
from app.models.enums import (
    BillingChangeStatus,
    BillingChangeType,
    BillingInterval,
    LedgerEntryType,
    LifecycleStatus,
    ResourceKind,
)
from app.services.billing import BillingChangeService, ChangeRequest, DowngradeBelowUsageError
from app.services.quota import QuotaResolver
from tests.factories import TODAY, accepted_order, add_admins, add_associations, count_rows, persist, row_state


def plan_change(plan, effective_date=None, interval=None) -> ChangeRequest:
    return ChangeRequest(
        change_type=BillingChangeType.PLAN_CHANGE,
        to_plan_id=plan.id,
        to_billing_interval=interval,
        effective_date=effective_date,
    )


def addon_change(addon, quantity, effective_date=None) -> ChangeRequest:
    return ChangeRequest(
        change_type=BillingChangeType.ADDON_CHANGE,
        addon_code=addon.code,
        to_quantity=quantity,
        effective_date=effective_date,
    )


def ledger_count(db_session) -> int:
    return db_session.execute(select(func.count(LedgerEntry.id))).scalar()


class TestSchedulePlanChange:

    def test_defaults_to_first_day_of_next_month(self, db_session, mairie, premium_plan):
        change = BillingChangeService(db_session).schedule_change(
            mairie.id, plan_change(premium_plan), today=TODAY
        )

        assert change.status == BillingChangeStatus.PENDING
        assert change.effective_date == date(2025, 4, 1)
        assert change.from_plan_id == mairie.subscription_plan_id
        assert change.to_plan_id == premium_plan.id

    def test_proration_is_stored_not_booked(self, db_session, mairie, premium_plan):
        change = BillingChangeService(db_session).schedule_change(
            mairie.id, plan_change(premium_plan), today=TODAY
        )

        assert change.prorata_credit_cents == 3100
        assert change.prorata_debit_cents == 6200
        assert ledger_count(db_session) == 0

    def test_mid_month_proration(self, db_session, mairie, premium_plan):
        change = BillingChangeService(db_session).schedule_change(
            mairie.id, plan_change(premium_plan, effective_date=date(2025, 3, 16)), today=TODAY
        )

        assert change.prorata_credit_cents == 1600
        assert change.prorata_debit_cents == 3200

    def test_past_effective_date_rejected(self, db_session, mairie, premium_plan):
        with pytest.raises(ValidationError):
            BillingChangeService(db_session).schedule_change(
                mairie.id, plan_change(premium_plan, effective_date=date(2025, 3, 1)), today=TODAY
            )

    def test_noop_change_rejected(self, db_session, mairie, standard_plan):
        with pytest.raises(ValidationError):
            BillingChangeService(db_session).schedule_change(
                mairie.id, plan_change(standard_plan), today=TODAY
            )

    def test_interval_only_change(self, db_session, mairie, standard_plan):
        change = BillingChangeService(db_session).schedule_change(
            mairie.id, plan_change(standard_plan, interval=BillingInterval.YEARLY), today=TODAY
        )

        assert change.to_billing_interval == BillingInterval.YEARLY
        assert change.prorata_credit_cents == change.prorata_debit_cents

    def test_second_pending_plan_change_rejected(self, db_session, mairie, premium_plan, free_plan):
        service = BillingChangeService(db_session)
        service.schedule_change(mairie.id, plan_change(premium_plan), today=TODAY)

        with pytest.raises(InvalidStateError):
            service.schedule_change(mairie.id, plan_change(free_plan), today=TODAY)

    def test_downgrade_below_usage_rejected(self, db_session, mairie, free_plan):
        add_associations(db_session, mairie, 3)

        with pytest.raises(QuotaExceededError):
            BillingChangeService(db_session).schedule_change(mairie.id, plan_change(free_plan), today=TODAY)

    def test_unknown_plan(self, db_session, mairie):
        request = ChangeRequest(change_type=BillingChangeType.PLAN_CHANGE, to_plan_id=999)

        with pytest.raises(NotFoundError):
            BillingChangeService(db_session).schedule_change(mairie.id, request, today=TODAY)

    def test_unknown_tenant(self, db_session, premium_plan):
        with pytest.raises(NotFoundError):
            BillingChangeService(db_session).schedule_change(999, plan_change(premium_plan), today=TODAY)

    def test_archived_tenant_rejected(self, db_session, mairie, premium_plan):
        mairie.lifecycle_status = LifecycleStatus.ARCHIVED
        db_session.commit()

        with pytest.raises(InvalidStateError):
            BillingChangeService(db_session).schedule_change(mairie.id, plan_change(premium_plan), today=TODAY)

    def test_free_tenant_has_no_proration(self, db_session, mairie, premium_plan):
        mairie.is_free = True
        db_session.commit()

        change = BillingChangeService(db_session).schedule_change(
            mairie.id, plan_change(premium_plan), today=TODAY
        )

        assert (change.prorata_credit_cents, change.prorata_debit_cents) == (0, 0)


class TestScheduleAddonChange:

    def test_add_addon_units(self, db_session, mairie, admin_addon):
        change = BillingChangeService(db_session).schedule_change(
            mairie.id, addon_change(admin_addon, 3), today=TODAY
        )

        assert change.from_quantity == 0
        assert change.to_quantity == 3
        assert change.prorata_credit_cents == 0
        assert change.prorata_debit_cents == 2700

    def test_addon_row_created_only_at_apply(self, db_session, mairie, admin_addon):
        BillingChangeService(db_session).schedule_change(mairie.id, addon_change(admin_addon, 3), today=TODAY)

        assert db_session.execute(select(TenantAddon)).scalars().all() == []

    def test_existing_row_gets_pending_quantity(self, db_session, mairie, admin_addon):
        tenant_addon = persist(db_session, TenantAddon(tenant_id=mairie.id, addon_id=admin_addon.id, quantity=1))

        BillingChangeService(db_session).schedule_change(mairie.id, addon_change(admin_addon, 4), today=TODAY)
        db_session.refresh(tenant_addon)

        assert tenant_addon.quantity == 1
        assert tenant_addon.pending_quantity == 4
        assert tenant_addon.pending_effective_date == date(2025, 4, 1)

    def test_negative_quantity_rejected(self, db_session, mairie, admin_addon):
        with pytest.raises(ValidationError):
            BillingChangeService(db_session).schedule_change(
                mairie.id, addon_change(admin_addon, -1), today=TODAY
            )

    def test_same_quantity_rejected(self, db_session, mairie, admin_addon):
        with pytest.raises(ValidationError):
            BillingChangeService(db_session).schedule_change(
                mairie.id, addon_change(admin_addon, 0), today=TODAY
            )

    def test_reduction_below_usage_rejected(self, db_session, mairie, admin_addon):
        """2 inclus + 3 options, 5 admins : descendre à 1 option est refusé."""
        persist(db_session, TenantAddon(tenant_id=mairie.id, addon_id=admin_addon.id, quantity=3))
        add_admins(db_session, mairie, 5)

        with pytest.raises(DowngradeBelowUsageError):
            BillingChangeService(db_session).schedule_change(
                mairie.id, addon_change(admin_addon, 1), today=TODAY
            )

    def test_reduction_within_usage_allowed(self, db_session, mairie, admin_addon):
        persist(db_session, TenantAddon(tenant_id=mairie.id, addon_id=admin_addon.id, quantity=3))
        add_admins(db_session, mairie, 3)

        change = BillingChangeService(db_session).schedule_change(
            mairie.id, addon_change(admin_addon, 1), today=TODAY
        )

        assert change.prorata_credit_cents == 2700
        assert change.prorata_debit_cents == 900

    def test_unknown_addon(self, db_session, mairie):
        request = ChangeRequest(change_type=BillingChangeType.ADDON_CHANGE, addon_code="SMS", to_quantity=2)

        with pytest.raises(NotFoundError):
            BillingChangeService(db_session).schedule_change(mairie.id, request, today=TODAY)


class TestAddonChangeFromOrderSnapshot:
    """Tenant mandat sans ligne TenantAddon : la quantité de départ vient de la commande."""

    @pytest.fixture
    def mandate_tenant(self, db_session, mairie, standard_plan, admin_addon):
        mairie.subscription_plan_id = None
        db_session.commit()
        accepted_order(db_session, mairie, standard_plan, [
            {"addon_id": admin_addon.id, "code": "ADMIN", "quantity": 2, "unit_price_cents": 9000, "total_cents": 18000},
        ])
        return mairie

    def test_increase_prorates_only_the_delta(self, db_session, mandate_tenant, admin_addon):
        change = BillingChangeService(db_session).schedule_change(
            mandate_tenant.id, addon_change(admin_addon, 3), today=TODAY
        )

        assert change.from_quantity == 2
        assert change.prorata_credit_cents == 1800
        assert change.prorata_debit_cents == 2700
        assert change.prorata_debit_cents - change.prorata_credit_cents == 900

    def test_reduction_to_zero_is_a_change(self, db_session, mandate_tenant, admin_addon):
        change = BillingChangeService(db_session).schedule_change(
            mandate_tenant.id, addon_change(admin_addon, 0), today=TODAY
        )

        assert change.from_quantity == 2
        assert change.prorata_credit_cents == 1800
        assert change.prorata_debit_cents == 0

    def test_same_quantity_as_snapshot_rejected(self, db_session, mandate_tenant, admin_addon):
        with pytest.raises(ValidationError):
            BillingChangeService(db_session).schedule_change(
                mandate_tenant.id, addon_change(admin_addon, 2), today=TODAY
            )

    def test_apply_creates_row_from_snapshot_quantity(self, db_session, mandate_tenant, admin_addon):
        service = BillingChangeService(db_session)
        change = service.schedule_change(mandate_tenant.id, addon_change(admin_addon, 3), today=TODAY)

        applied = service.apply_change(change.id, today=date(2025, 4, 1))
        tenant_addon = db_session.execute(select(TenantAddon)).scalar_one()

        assert applied.status == BillingChangeStatus.APPLIED
        assert tenant_addon.quantity == 3
        assert QuotaResolver(db_session).resolve(mandate_tenant.id, ResourceKind.ADMINS).allowed == 5


class TestApplyChange:

    def test_apply_plan_change(self, db_session, mairie, premium_plan):
        service = BillingChangeService(db_session)
        change = service.schedule_change(mairie.id, plan_change(premium_plan), today=TODAY)

        applied = service.apply_change(change.id, today=date(2025, 4, 1))
        db_session.refresh(mairie)

        assert applied.status == BillingChangeStatus.APPLIED
        assert applied.applied_at is not None
        assert mairie.subscription_plan_id == premium_plan.id

    def test_apply_books_ledger_entries(self, db_session, mairie, premium_plan):
        service = BillingChangeService(db_session)
        change = service.schedule_change(mairie.id, plan_change(premium_plan), today=TODAY)
        service.apply_change(change.id, today=date(2025, 4, 1))

        entries = service.list_ledger_entries(mairie.id)

        assert {(e.entry_type, e.amount_cents) for e in entries} == {
            (LedgerEntryType.CREDIT, 3100),
            (LedgerEntryType.DEBIT, 6200),
        }
        assert all(e.billing_change_id == change.id for e in entries)

    def test_apply_interval_change(self, db_session, mairie, standard_plan):
        service = BillingChangeService(db_session)
        change = service.schedule_change(
            mairie.id, plan_change(standard_plan, interval=BillingInterval.YEARLY), today=TODAY
        )
        service.apply_change(change.id, today=date(2025, 4, 1))
        db_session.refresh(mairie)

        assert mairie.billing_interval == BillingInterval.YEARLY

    def test_apply_addon_change_raises_quota(self, db_session, mairie, admin_addon):
        service = BillingChangeService(db_session)
        change = service.schedule_change(mairie.id, addon_change(admin_addon, 3), today=TODAY)
        service.apply_change(change.id, today=date(2025, 4, 1))

        status = QuotaResolver(db_session).resolve(mairie.id, ResourceKind.ADMINS)

        assert status.allowed == 5

    def test_addon_to_zero_keeps_row(self, db_session, mairie, admin_addon):
        tenant_addon = persist(db_session, TenantAddon(tenant_id=mairie.id, addon_id=admin_addon.id, quantity=2))
        service = BillingChangeService(db_session)
        change = service.schedule_change(mairie.id, addon_change(admin_addon, 0), today=TODAY)
        service.apply_change(change.id, today=date(2025, 4, 1))
        db_session.refresh(tenant_addon)

        assert tenant_addon.quantity == 0
        assert tenant_addon.pending_quantity is None

    def test_apply_before_effective_date_leaves_state(self, db_session, mairie, premium_plan, standard_plan):
        service = BillingChangeService(db_session)
        change = service.schedule_change(mairie.id, plan_change(premium_plan), today=TODAY)

        with pytest.raises(ValidationError):
            service.apply_change(change.id, today=TODAY)

        db_session.refresh(mairie)
        assert service.get_change(change.id).status == BillingChangeStatus.PENDING
        assert mairie.subscription_plan_id == standard_plan.id
        assert ledger_count(db_session) == 0

    def test_apply_twice_rejected(self, db_session, mairie, premium_plan):
        service = BillingChangeService(db_session)
        change = service.schedule_change(mairie.id, plan_change(premium_plan), today=TODAY)
        service.apply_change(change.id, today=date(2025, 4, 1))

        with pytest.raises(InvalidStateError):
            service.apply_change(change.id, today=date(2025, 4, 2))

        assert ledger_count(db_session) == 2

    def test_later_change_waits_for_earlier(self, db_session, mairie, premium_plan, admin_addon):
        service = BillingChangeService(db_session)
        service.schedule_change(mairie.id, addon_change(admin_addon, 1, date(2025, 4, 1)), today=TODAY)
        later = service.schedule_change(mairie.id, plan_change(premium_plan, date(2025, 4, 10)), today=TODAY)

        with pytest.raises(InvalidStateError):
            service.apply_change(later.id, today=date(2025, 4, 15))

    def test_plan_changed_since_scheduling(self, db_session, mairie, premium_plan, free_plan):
        service = BillingChangeService(db_session)
        change = service.schedule_change(mairie.id, plan_change(premium_plan), today=TODAY)
        mairie.subscription_plan_id = free_plan.id
        db_session.commit()

        with pytest.raises(InvalidStateError):
            service.apply_change(change.id, today=date(2025, 4, 1))

    def test_unknown_change(self, db_session):
        with pytest.raises(NotFoundError):
            BillingChangeService(db_session).apply_change(999, today=TODAY)


class TestCancelChange:

    def test_cancel_pending(self, db_session, mairie, premium_plan):
        service = BillingChangeService(db_session)
        change = service.schedule_change(mairie.id, plan_change(premium_plan), today=TODAY)

        cancelled = service.cancel_change(change.id)

        assert cancelled.status == BillingChangeStatus.CANCELLED
        assert cancelled.cancelled_at is not None

    def test_cancel_clears_pending_quantity(self, db_session, mairie, admin_addon):
        tenant_addon = persist(db_session, TenantAddon(tenant_id=mairie.id, addon_id=admin_addon.id, quantity=1))
        service = BillingChangeService(db_session)
        change = service.schedule_change(mairie.id, addon_change(admin_addon, 2), today=TODAY)

        service.cancel_change(change.id)
        db_session.refresh(tenant_addon)

        assert tenant_addon.pending_quantity is None

    def test_cancelled_change_cannot_be_applied(self, db_session, mairie, premium_plan):
        service = BillingChangeService(db_session)
        change = service.schedule_change(mairie.id, plan_change(premium_plan), today=TODAY)
        service.cancel_change(change.id)

        with pytest.raises(InvalidStateError):
            service.apply_change(change.id, today=date(2025, 4, 1))

    def test_applied_change_cannot_be_cancelled(self, db_session, mairie, premium_plan):
        service = BillingChangeService(db_session)
        change = service.schedule_change(mairie.id, plan_change(premium_plan), today=TODAY)
        service.apply_change(change.id, today=date(2025, 4, 1))

        with pytest.raises(InvalidStateError):
            service.cancel_change(change.id)

        assert service.get_change(change.id).status == BillingChangeStatus.APPLIED

    def test_cancel_allows_new_schedule(self, db_session, mairie, premium_plan):
        service = BillingChangeService(db_session)
        first = service.schedule_change(mairie.id, plan_change(premium_plan), today=TODAY)
        service.cancel_change(first.id)

        second = service.schedule_change(mairie.id, plan_change(premium_plan), today=TODAY)

        assert second.id != first.id


def written_rows(db_session) -> dict:
    return {
        "ledger": count_rows(db_session, LedgerEntry),
        "audit": count_rows(db_session, PlatformAuditLog),
        "outbox": count_rows(db_session, NotificationOutbox),
    }


class TestRefusedChangeTransitions:
    """Une transition refusée laisse le changement, le tenant et les journaux intacts."""

    def test_cancel_cancelled_change(self, db_session, mairie, premium_plan):
        service = BillingChangeService(db_session)
        change = service.schedule_change(mairie.id, plan_change(premium_plan), today=TODAY)
        service.cancel_change(change.id)
        change_before = row_state(db_session, change)
        tenant_before = row_state(db_session, mairie)
        rows_before = written_rows(db_session)

        with pytest.raises(InvalidStateError):
            service.cancel_change(change.id)

        assert row_state(db_session, change) == change_before
        assert change_before["status"] == BillingChangeStatus.CANCELLED
        assert row_state(db_session, mairie) == tenant_before
        assert written_rows(db_session) == rows_before

    def test_apply_cancelled_change(self, db_session, mairie, premium_plan, standard_plan):
        service = BillingChangeService(db_session)
        change = service.schedule_change(mairie.id, plan_change(premium_plan), today=TODAY)
        service.cancel_change(change.id)
        change_before = row_state(db_session, change)
        tenant_before = row_state(db_session, mairie)
        rows_before = written_rows(db_session)

        with pytest.raises(InvalidStateError):
            service.apply_change(change.id, today=date(2025, 4, 1))

        assert row_state(db_session, change) == change_before
        assert row_state(db_session, mairie) == tenant_before
        assert tenant_before["subscription_plan_id"] == standard_plan.id
        assert written_rows(db_session) == rows_before
        assert rows_before["ledger"] == 0

    def test_apply_applied_change(self, db_session, mairie, premium_plan):
        service = BillingChangeService(db_session)
        change = service.schedule_change(mairie.id, plan_change(premium_plan), today=TODAY)
        service.apply_change(change.id, today=date(2025, 4, 1))
        change_before = row_state(db_session, change)
        tenant_before = row_state(db_session, mairie)
        rows_before = written_rows(db_session)

        with pytest.raises(InvalidStateError):
            service.apply_change(change.id, today=date(2025, 4, 2))

        assert row_state(db_session, change) == change_before
        assert row_state(db_session, mairie) == tenant_before
        assert written_rows(db_session) == rows_before

    def test_cancel_applied_addon_change(self, db_session, mairie, admin_addon):
        tenant_addon = persist(db_session, TenantAddon(tenant_id=mairie.id, addon_id=admin_addon.id, quantity=1))
        service = BillingChangeService(db_session)
        change = service.schedule_change(mairie.id, addon_change(admin_addon, 2), today=TODAY)
        service.apply_change(change.id, today=date(2025, 4, 1))
        change_before = row_state(db_session, change)
        addon_before = row_state(db_session, tenant_addon)
        rows_before = written_rows(db_session)

        with pytest.raises(ValidationError):
            service.cancel_change(change.id)

        assert row_state(db_session, change) == change_before
        assert row_state(db_session, tenant_addon) == addon_before
        assert addon_before["quantity"] == 2
        assert written_rows(db_session) == rows_before


class TestApplyDueChanges:

    def test_applies_in_effective_date_order(self, db_session, mairie, premium_plan, admin_addon):
        service = BillingChangeService(db_session)
        later = service.schedule_change(mairie.id, plan_change(premium_plan, date(2025, 4, 10)), today=TODAY)
        earlier = service.schedule_change(mairie.id, addon_change(admin_addon, 2, date(2025, 4, 1)), today=TODAY)

        report = service.apply_due_changes(today=date(2025, 5, 1))

        assert report.applied == [earlier.id, later.id]
        assert report.failed == {}

    def test_future_changes_are_left_pending(self, db_session, mairie, premium_plan):
        service = BillingChangeService(db_session)
        change = service.schedule_change(mairie.id, plan_change(premium_plan, date(2025, 6, 1)), today=TODAY)

        report = service.apply_due_changes(today=date(2025, 5, 1))

        assert report.applied == []
        assert service.get_change(change.id).status == BillingChangeStatus.PENDING

    def test_failure_blocks_only_its_tenant(
            self, db_session, mairie, epci, premium_plan, free_plan, admin_addon, communes_addon
    ):
        service = BillingChangeService(db_session)
        broken = service.schedule_change(mairie.id, plan_change(premium_plan, date(2025, 4, 1)), today=TODAY)
        blocked = service.schedule_change(mairie.id, addon_change(admin_addon, 1, date(2025, 4, 2)), today=TODAY)
        other = service.schedule_change(epci.id, addon_change(communes_addon, 2, date(2025, 4, 1)), today=TODAY)

        # La formule de départ ne correspond plus : l'application échouera
        mairie.subscription_plan_id = free_plan.id
        db_session.commit()

        report = service.apply_due_changes(today=date(2025, 5, 1))

        assert report.failed == {broken.id: "INVALID_STATE"}
        assert report.skipped == [blocked.id]
        assert report.applied == [other.id]
        assert service.get_change(blocked.id).status == BillingChangeStatus.PENDING


class TestLedger:

    @pytest.fixture
    def applied_change(self, db_session, mairie, premium_plan):
        service = BillingChangeService(db_session)
        change = service.schedule_change(mairie.id, plan_change(premium_plan), today=TODAY)
        return service.apply_change(change.id, today=date(2025, 4, 1))

    def test_balance_is_signed(self, db_session, mairie, applied_change):
        assert BillingChangeService(db_session).ledger_balance(mairie.id) == -3100

    def test_balance_of_empty_ledger(self, db_session, mairie):
        assert BillingChangeService(db_session).ledger_balance(mairie.id) == 0

    def test_mark_entries_applied(self, db_session, mairie, applied_change):
        service = BillingChangeService(db_session)
        entry_ids = [e.id for e in service.list_ledger_entries(mairie.id)]

        entries = service.mark_entries_applied(mairie.id, entry_ids, "FA-2025-00012")

        assert all(e.applied_to_invoice and e.invoice_reference == "FA-2025-00012" for e in entries)
        assert service.ledger_balance(mairie.id) == 0
        assert service.list_ledger_entries(mairie.id, only_unapplied=True) == []

    def test_entries_cannot_be_applied_twice(self, db_session, mairie, applied_change):
        service = BillingChangeService(db_session)
        entry_ids = [e.id for e in service.list_ledger_entries(mairie.id)]
        service.mark_entries_applied(mairie.id, entry_ids, "FA-2025-00012")

        with pytest.raises(InvalidStateError):
            service.mark_entries_applied(mairie.id, entry_ids[:1], "FA-2025-00013")

    def test_foreign_entries_rejected(self, db_session, mairie, epci, applied_change):
        service = BillingChangeService(db_session)
        entry_ids = [e.id for e in service.list_ledger_entries(mairie.id)]

        with pytest.raises(ValidationError):
            service.mark_entries_applied(epci.id, entry_ids, "FA-2025-00012")

    def test_missing_entries(self, db_session, mairie):
        with pytest.raises(NotFoundError):
            BillingChangeService(db_session).mark_entries_applied(mairie.id, [12345], "FA-2025-00012")

    def test_list_changes_by_status(self, db_session, mairie, applied_change, admin_addon):
        service = BillingChangeService(db_session)
        service.schedule_change(mairie.id, addon_change(admin_addon, 1), today=TODAY)

        pending = service.list_changes(mairie.id, BillingChangeStatus.PENDING)
        every = service.list_changes(mairie.id)

        assert [c.change_type for c in pending] == [BillingChangeType.ADDON_CHANGE]
        assert len(every) == 2
        assert isinstance(every[0], BillingChange)
