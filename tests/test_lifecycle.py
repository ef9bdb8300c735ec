"""
Tests du cycle de vie des tenants.

Couvre :
┌──────────────────────────────┬──────────────────────────────────────────────┐
│ Classe                       │ Ce qui est testé                              │
├──────────────────────────────┼──────────────────────────────────────────────┤
│ TestSuspendUnsuspend         │ ACTIVE ⇄ SUSPENDED, motif, audit              │
│ TestArchive                  │ ARCHIVED définitif                            │
│ TestSetParentEpci            │ Rattachement, cycle, quota COMMUNES de l'EPCI │
│ TestDeleteArchivedTenant     │ Cascade, archivage, détachement               │
│ TestDeletionCycleSafety      │ Boucle parent_tenant_id : branche ignorée     │
└──────────────────────────────┴──────────────────────────────────────────────┘
"""

import pytest
from sqlalchemy import select

from app.core.actor import Actor
from app.core.exceptions import (
    CycleDetectedError,
    InvalidStateError,
    NotFoundError,
    QuotaExceededError,
    ValidationError,
)
from app.models import (
    Invoice,
    LedgerEntry,
    MandateOrder,
    Meeting,
    MeetingRegistration,
    PlatformAuditLog,
    Quote,
    Tenant,
    TenantDomain,
    User,
)
from app.models.enums import (
    BillingInterval,
    InvoiceStatus,
    LedgerEntryType,
    LifecycleStatus,
    MandateOrderStatus,
    ResourceKind,
    TenantType,
)
from app.services.lifecycle import TenantLifecycleService
from app.services.quota import QuotaResolver
from tests.factories import add_admins, add_associations, make_communes, persist

OPERATOR = Actor(id="operateur-3")


@pytest.fixture
def service(db_session) -> TenantLifecycleService:
    return TenantLifecycleService(db_session)


@pytest.fixture
def archived_mairie(db_session, mairie) -> Tenant:
    mairie.lifecycle_status = LifecycleStatus.ARCHIVED
    db_session.commit()
    return mairie


def audit_actions(db_session) -> list[str]:
    return list(db_session.execute(
        select(PlatformAuditLog.action).order_by(PlatformAuditLog.id)
    ).scalars().all())


class TestSuspendUnsuspend:

    def test_suspend(self, db_session, service, mairie):
        tenant = service.suspend(mairie.id, "Impayé depuis 3 mois", actor=OPERATOR)

        assert tenant.lifecycle_status == LifecycleStatus.SUSPENDED
        assert tenant.suspension_reason == "Impayé depuis 3 mois"
        assert tenant.suspended_by == OPERATOR.id
        assert tenant.suspended_at is not None
        assert audit_actions(db_session) == ["TENANT_SUSPENDED"]

    def test_suspend_requires_reason(self, service, mairie):
        with pytest.raises(ValidationError):
            service.suspend(mairie.id, "  ")

    def test_suspend_twice_rejected(self, service, mairie):
        service.suspend(mairie.id, "Impayé")

        with pytest.raises(InvalidStateError):
            service.suspend(mairie.id, "Impayé")

    def test_unsuspend(self, service, mairie):
        service.suspend(mairie.id, "Impayé")

        tenant = service.unsuspend(mairie.id, "Règlement reçu", actor=OPERATOR)

        assert tenant.lifecycle_status == LifecycleStatus.ACTIVE
        assert tenant.reactivation_reason == "Règlement reçu"
        assert tenant.reactivated_by == OPERATOR.id

    def test_unsuspend_active_rejected(self, service, mairie):
        with pytest.raises(InvalidStateError):
            service.unsuspend(mairie.id, "Règlement reçu")

    def test_suspension_does_not_cascade(self, service, epci, commune):
        service.suspend(epci.id, "Impayé")

        assert service.get_tenant(commune.id).lifecycle_status == LifecycleStatus.ACTIVE

    def test_unknown_tenant(self, service):
        with pytest.raises(NotFoundError):
            service.suspend(999, "Impayé")


class TestArchive:

    def test_archive_from_suspended(self, db_session, service, mairie):
        service.suspend(mairie.id, "Impayé")

        tenant = service.archive(mairie.id, "Fin de contrat", actor=OPERATOR)

        assert tenant.lifecycle_status == LifecycleStatus.ARCHIVED
        assert tenant.archive_reason == "Fin de contrat"
        assert audit_actions(db_session) == ["TENANT_SUSPENDED", "TENANT_ARCHIVED"]

    def test_archive_is_final(self, service, archived_mairie):
        with pytest.raises(InvalidStateError):
            service.unsuspend(archived_mairie.id, "Erreur")
        with pytest.raises(InvalidStateError):
            service.archive(archived_mairie.id, "Encore")

    def test_archive_requires_reason(self, service, mairie):
        with pytest.raises(ValidationError):
            service.archive(mairie.id, "")


class TestSetParentEpci:

    def test_attach_commune(self, service, epci, mairie):
        tenant = service.set_parent_epci(mairie.id, epci.id, actor=OPERATOR)

        assert tenant.parent_epci_id == epci.id

    def test_detach_commune(self, service, commune):
        assert service.set_parent_epci(commune.id, None).parent_epci_id is None

    def test_target_must_be_epci(self, service, mairie, commune):
        with pytest.raises(ValidationError):
            service.set_parent_epci(commune.id, mairie.id)

    def test_self_reference_is_a_cycle(self, service, epci):
        with pytest.raises(CycleDetectedError):
            service.set_parent_epci(epci.id, epci.id)

    def test_indirect_cycle(self, db_session, service, epci, epci_plan):
        """EPCI B rattaché à A : rattacher A à B fermerait la boucle."""
        other = persist(db_session, Tenant(
            code="CA-VILLEFRANCHE",
            name="Agglo de Villefranche",
            tenant_type=TenantType.EPCI,
            subscription_plan_id=epci_plan.id,
            parent_epci_id=epci.id,
        ))

        with pytest.raises(CycleDetectedError) as exc_info:
            service.set_parent_epci(epci.id, other.id)

        assert exc_info.value.tenant_id == epci.id

    def test_archived_epci_rejected(self, db_session, service, epci, mairie):
        epci.lifecycle_status = LifecycleStatus.ARCHIVED
        db_session.commit()

        with pytest.raises(InvalidStateError):
            service.set_parent_epci(mairie.id, epci.id)

    def test_full_epci_refuses_another_commune(self, db_session, service, epci, mairie):
        """10 communes incluses, 10 rattachées : la 11e est refusée."""
        make_communes(db_session, epci, 10)

        with pytest.raises(QuotaExceededError):
            service.set_parent_epci(mairie.id, epci.id)

        db_session.refresh(mairie)
        assert mairie.parent_epci_id is None
        assert QuotaResolver(db_session).resolve(epci.id, ResourceKind.COMMUNES).used == 10

    def test_last_slot_can_be_used(self, db_session, service, epci, mairie):
        make_communes(db_session, epci, 9)

        service.set_parent_epci(mairie.id, epci.id)

        assert QuotaResolver(db_session).resolve(epci.id, ResourceKind.COMMUNES).remaining == 0

    def test_reattaching_same_epci_needs_no_slot(self, db_session, service, epci):
        communes = make_communes(db_session, epci, 10)

        tenant = service.set_parent_epci(communes[0].id, epci.id)

        assert tenant.parent_epci_id == epci.id


class TestDeleteArchivedTenant:

    def test_only_archived_tenant_can_be_deleted(self, service, mairie):
        with pytest.raises(InvalidStateError):
            service.delete_archived_tenant(mairie.id)

    def test_operational_data_deleted(self, db_session, service, archived_mairie):
        add_admins(db_session, archived_mairie, 2)
        add_associations(db_session, archived_mairie, 3)
        persist(db_session, TenantDomain(tenant_id=archived_mairie.id, code="voirie", label="Voirie"))
        meeting = persist(db_session, Meeting(tenant_id=archived_mairie.id, title="Conseil municipal"))
        persist(db_session, MeetingRegistration(meeting_id=meeting.id, attendee_name="Jeanne Martin"))

        result = service.delete_archived_tenant(archived_mairie.id, actor=OPERATOR)

        assert result.success is True
        assert result.deleted_ids == [archived_mairie.id]
        assert db_session.get(Tenant, archived_mairie.id) is None
        assert db_session.execute(select(User)).first() is None
        assert db_session.execute(select(MeetingRegistration)).first() is None
        assert db_session.execute(select(TenantDomain)).first() is None

    def test_financial_documents_are_archived(self, db_session, service, archived_mairie, standard_plan):
        quote = persist(db_session, Quote(quote_number="DV-2025-00001", sequence_number=1, tenant_id=archived_mairie.id))
        invoice = persist(db_session, Invoice(
            invoice_number="FA-2025-00001",
            sequence_number=1,
            tenant_id=archived_mairie.id,
            status=InvoiceStatus.PAID,
            total_cents=3100,
        ))
        order = persist(db_session, MandateOrder(
            order_number="DV-2025-00002",
            order_sequence=2,
            tenant_id=archived_mairie.id,
            plan_id=standard_plan.id,
            billing_cycle=BillingInterval.YEARLY,
            status=MandateOrderStatus.DRAFT,
        ))

        service.delete_archived_tenant(archived_mairie.id)

        for document in (quote, invoice, order):
            db_session.refresh(document)
            assert document.is_archived is True
            assert document.archived_at is not None
            assert document.tenant_id is None

    def test_records_are_detached(self, db_session, service, mairie):
        service.suspend(mairie.id, "Impayé")
        service.archive(mairie.id, "Fin de contrat")
        entry = persist(db_session, LedgerEntry(
            tenant_id=mairie.id,
            entry_type=LedgerEntryType.CREDIT,
            amount_cents=1500,
            description="Avoir prorata",
        ))

        service.delete_archived_tenant(mairie.id)

        db_session.refresh(entry)
        assert entry.tenant_id is None
        logs = db_session.execute(select(PlatformAuditLog).order_by(PlatformAuditLog.id)).scalars().all()
        assert [log.target_tenant_id for log in logs] == [None, None, None]
        assert logs[-1].action == "TENANT_DELETED"
        assert logs[-1].target_id == mairie.id

    def test_epci_deletion_removes_communes(self, db_session, service, epci):
        """Les communes sont supprimées quel que soit leur statut."""
        communes = make_communes(db_session, epci, 2)
        add_associations(db_session, communes[1], 2)
        epci.lifecycle_status = LifecycleStatus.ARCHIVED
        db_session.commit()

        result = service.delete_archived_tenant(epci.id)

        assert result.success is True
        assert sorted(result.deleted_ids) == sorted([epci.id, communes[0].id, communes[1].id])
        assert result.deleted_ids[-1] == epci.id
        assert db_session.execute(select(Tenant)).first() is None

    def test_deleting_commune_leaves_epci(self, db_session, service, epci, commune):
        commune.lifecycle_status = LifecycleStatus.ARCHIVED
        db_session.commit()

        service.delete_archived_tenant(commune.id)

        assert db_session.get(Tenant, epci.id) is not None


class TestDeletionCycleSafety:

    def test_parent_tenant_loop_is_skipped(self, db_session, service, archived_mairie):
        """A → B → A via parent_tenant_id : B est supprimé, la boucle est signalée."""
        child = persist(db_session, Tenant(
            code="ANNEXE-VILLEFRANCHE",
            name="Annexe de Villefranche",
            tenant_type=TenantType.MAIRIE,
            parent_tenant_id=archived_mairie.id,
        ))
        archived_mairie.parent_tenant_id = child.id
        db_session.commit()

        result = service.delete_archived_tenant(archived_mairie.id)

        assert result.success is False
        assert result.cycle_ids == [archived_mairie.id]
        assert result.deleted_ids == [child.id, archived_mairie.id]
        assert db_session.execute(select(Tenant)).first() is None

    def test_loop_does_not_block_siblings(self, db_session, service, epci):
        communes = make_communes(db_session, epci, 2)
        communes[0].parent_tenant_id = communes[0].id
        epci.lifecycle_status = LifecycleStatus.ARCHIVED
        db_session.commit()

        result = service.delete_archived_tenant(epci.id)

        assert result.success is False
        assert communes[1].id in result.deleted_ids
        assert result.cycle_ids == [communes[0].id]
