"""
Moteur des changements de facturation et du grand livre.

Cycle de vie d'un BillingChange :
    PENDING --apply_change()--> APPLIED
    PENDING --cancel_change()--> CANCELLED

Le prorata est calculé à la planification et stocké sur la ligne ; il ne
devient des écritures CREDIT/DEBIT qu'à l'application, dans la même
transaction que la mutation de la formule ou de l'option.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.orm import Session

from app.core.actor import SYSTEM_ACTOR, Actor
from app.core.exceptions import (
    BillingCoreError,
    InvalidStateError,
    NotFoundError,
    QuotaExceededError,
    ValidationError,
)
from app.models.billing.billing_change import BillingChange
from app.models.billing.ledger_entry import LedgerEntry
from app.models.catalog.addon import Addon
from app.models.catalog.subscription_plan import SubscriptionPlan
from app.models.enums import (
    BillingChangeStatus,
    BillingChangeType,
    BillingInterval,
    LedgerEntryType,
    PaymentMethod,
    ResourceKind,
)
from app.models.mixins import utc_now
from app.models.platform.platform_audit_log import AuditAction, log_tenant_action
from app.models.tenants.tenant import Tenant
from app.models.tenants.tenant_addon import TenantAddon
from app.services.billing.proration import compute_proration, first_day_of_next_month
from app.services.catalog import (
    addon_unit_price,
    get_addon_by_code,
    is_addon_available,
    resolve_plan,
    snapshot_addon_quantity,
)
from app.services.quota import QuotaResolver, resource_kind_for_addon
from app.services.transactions import retry_on_conflict

logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================

class TenantNotFoundError(NotFoundError):
    """Tenant non trouvé."""
    pass


class BillingChangeNotFoundError(NotFoundError):
    """Changement de facturation non trouvé."""
    pass


class CatalogItemNotFoundError(NotFoundError):
    """Formule ou option inconnue."""
    pass


class InvalidBillingChangeError(ValidationError):
    """Demande de changement impossible (date passée, quantité négative, no-op...)."""
    pass


class BillingChangeStateError(InvalidStateError):
    """Opération interdite dans le statut courant du changement ou du tenant."""
    pass


class DowngradeBelowUsageError(QuotaExceededError):
    """La réduction laisserait la consommation au-dessus de l'allocation."""
    pass


# =============================================================================
# TYPES
# =============================================================================

@dataclass
class ChangeRequest:
    """Demande de changement (formule ou quantité d'option)."""
    change_type: BillingChangeType
    effective_date: Optional[date] = None
    to_plan_id: Optional[int] = None
    to_billing_interval: Optional[BillingInterval] = None
    addon_id: Optional[int] = None
    addon_code: Optional[str] = None
    to_quantity: Optional[int] = None
    payment_method: Optional[PaymentMethod] = None


@dataclass
class DueChangesReport:
    """Bilan d'un passage du planificateur."""
    applied: List[int] = field(default_factory=list)
    failed: Dict[int, str] = field(default_factory=dict)
    skipped: List[int] = field(default_factory=list)


# =============================================================================
# SERVICE
# =============================================================================

class BillingChangeService:
    """Planification, application et annulation des changements de facturation."""

    def __init__(self, db: Session, resolver: Optional[QuotaResolver] = None):
        self.db = db
        self.resolver = resolver or QuotaResolver(db)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _get_tenant(self, tenant_id: int, lock: bool = False) -> Tenant:
        query = select(Tenant).where(Tenant.id == tenant_id)
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        tenant = self.db.execute(query).scalar_one_or_none()
        if not tenant:
            raise TenantNotFoundError(f"Tenant {tenant_id} non trouvé")
        return tenant

    def get_change(self, change_id: int, lock: bool = False) -> BillingChange:
        query = select(BillingChange).where(BillingChange.id == change_id)
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        change = self.db.execute(query).scalar_one_or_none()
        if not change:
            raise BillingChangeNotFoundError(f"Changement de facturation {change_id} non trouvé")
        return change

    def _get_tenant_addon(self, tenant_id: int, addon_id: int) -> Optional[TenantAddon]:
        return self.db.execute(
            select(TenantAddon).where(
                TenantAddon.tenant_id == tenant_id,
                TenantAddon.addon_id == addon_id,
            )
        ).scalar_one_or_none()

    def _current_addon_quantity(self, tenant: Tenant, addon: Addon, tenant_addon: Optional[TenantAddon]) -> int:
        """Quantité détenue : la ligne TenantAddon, sinon le snapshot de la dernière commande acceptée."""
        if tenant_addon is not None:
            return tenant_addon.quantity
        return snapshot_addon_quantity(self.db, tenant.id, (addon.code,))

    def _resolve_addon(self, request: ChangeRequest) -> Addon:
        addon = None
        if request.addon_id is not None:
            addon = self.db.get(Addon, request.addon_id)
        elif request.addon_code:
            addon = get_addon_by_code(self.db, request.addon_code.upper())
        if addon is None:
            raise CatalogItemNotFoundError("Option inconnue")
        return addon

    def _pending_duplicate_exists(self, tenant_id: int, change_type: BillingChangeType, addon_id=None) -> bool:
        query = select(BillingChange.id).where(
            BillingChange.tenant_id == tenant_id,
            BillingChange.change_type == change_type,
            BillingChange.status == BillingChangeStatus.PENDING,
        )
        if addon_id is not None:
            query = query.where(BillingChange.addon_id == addon_id)
        return self.db.execute(query.limit(1)).first() is not None

    def _plan_cost(self, tenant: Tenant, plan: Optional[SubscriptionPlan], interval: BillingInterval) -> int:
        if tenant.is_free or plan is None or plan.is_free:
            return 0
        return plan.price_for(interval)

    def _addon_cost(
            self,
            tenant: Tenant,
            plan: Optional[SubscriptionPlan],
            addon: Addon,
            quantity: int,
            interval: BillingInterval,
    ) -> int:
        if tenant.is_free or quantity == 0:
            return 0
        return addon_unit_price(self.db, plan, addon, interval) * quantity

    # =========================================================================
    # PLANIFICATION
    # =========================================================================

    @retry_on_conflict
    def schedule_change(
            self,
            tenant_id: int,
            request: ChangeRequest,
            actor: Actor = SYSTEM_ACTOR,
            today: Optional[date] = None,
    ) -> BillingChange:
        """
        Enregistre un changement PENDING avec son prorata.

        La date d'effet par défaut est le premier jour du mois suivant.
        Aucune écriture du grand livre n'est créée à ce stade.
        """
        today = today or utc_now().date()
        tenant = self._get_tenant(tenant_id)

        if tenant.is_archived:
            raise BillingChangeStateError(f"Le tenant {tenant_id} est archivé")

        effective_date = request.effective_date or first_day_of_next_month(today)
        if effective_date < today:
            raise InvalidBillingChangeError(
                f"La date d'effet {effective_date.isoformat()} est dans le passé"
            )

        current_plan = resolve_plan(self.db, tenant)
        interval = tenant.billing_interval or BillingInterval.MONTHLY

        if request.change_type == BillingChangeType.PLAN_CHANGE:
            change = self._build_plan_change(tenant, current_plan, interval, request, effective_date)
        elif request.change_type == BillingChangeType.ADDON_CHANGE:
            change = self._build_addon_change(tenant, current_plan, interval, request, effective_date)
        else:
            raise InvalidBillingChangeError(f"Type de changement inconnu : {request.change_type}")

        change.tenant_id = tenant.id
        change.status = BillingChangeStatus.PENDING
        change.payment_method = request.payment_method or tenant.payment_method
        change.requested_by = actor.id
        self.db.add(change)
        self.db.flush()

        log_tenant_action(
            self.db,
            action=AuditAction.BILLING_CHANGE_SCHEDULED,
            tenant_id=tenant.id,
            actor_id=actor.id,
            actor_type=actor.actor_type.value,
            target_table="tenant_billing_changes",
            target_id=change.id,
            details={
                "change_type": change.change_type.value,
                "effective_date": change.effective_date.isoformat(),
                "prorata_credit_cents": change.prorata_credit_cents,
                "prorata_debit_cents": change.prorata_debit_cents,
            },
        )
        self.db.commit()
        self.db.refresh(change)

        logger.info(
            f"📅 Changement {change.id} planifié pour le tenant {tenant.id} "
            f"({change.change_type.value}, effet {change.effective_date})"
        )
        return change

    def _build_plan_change(
            self,
            tenant: Tenant,
            current_plan: Optional[SubscriptionPlan],
            interval: BillingInterval,
            request: ChangeRequest,
            effective_date: date,
    ) -> BillingChange:
        if request.to_plan_id is None:
            raise InvalidBillingChangeError("La formule cible est obligatoire")

        new_plan = self.db.get(SubscriptionPlan, request.to_plan_id)
        if new_plan is None:
            raise CatalogItemNotFoundError(f"Formule {request.to_plan_id} non trouvée")
        if not new_plan.is_active:
            raise InvalidBillingChangeError(f"La formule {new_plan.code} n'est plus commercialisée")

        to_interval = request.to_billing_interval or interval
        current_plan_id = current_plan.id if current_plan else None
        if new_plan.id == current_plan_id and to_interval == interval:
            raise InvalidBillingChangeError("Le changement ne modifie ni la formule ni la périodicité")

        if self._pending_duplicate_exists(tenant.id, BillingChangeType.PLAN_CHANGE):
            raise BillingChangeStateError("Un changement de formule est déjà planifié pour ce tenant")

        if tenant.parent_epci_id is None:
            for kind in (ResourceKind.ASSOCIATIONS, ResourceKind.ADMINS, ResourceKind.COMMUNES):
                projected = self.resolver.project_allowance(tenant, kind, plan=new_plan)
                if projected.allowed < projected.used:
                    current = self.resolver.project_allowance(tenant, kind)
                    if projected.allowed < current.allowed:
                        raise DowngradeBelowUsageError(
                            f"La formule {new_plan.code} n'autorise que {projected.allowed} "
                            f"{kind.value} pour {projected.used} utilisé(s)"
                        )

        # Prorata calculé sur la période courante ; la nouvelle périodicité
        # ne prend effet qu'à l'application.
        proration = compute_proration(
            old_cost_cents=self._plan_cost(tenant, current_plan, interval),
            new_cost_cents=self._plan_cost(tenant, new_plan, interval),
            effective_date=effective_date,
            interval=interval,
        )

        return BillingChange(
            change_type=BillingChangeType.PLAN_CHANGE,
            from_plan_id=current_plan_id,
            to_plan_id=new_plan.id,
            from_billing_interval=interval,
            to_billing_interval=to_interval,
            effective_date=effective_date,
            prorata_credit_cents=proration.credit_cents,
            prorata_debit_cents=proration.debit_cents,
        )

    def _build_addon_change(
            self,
            tenant: Tenant,
            current_plan: Optional[SubscriptionPlan],
            interval: BillingInterval,
            request: ChangeRequest,
            effective_date: date,
    ) -> BillingChange:
        if request.to_quantity is None or request.to_quantity < 0:
            raise InvalidBillingChangeError("La quantité cible doit être positive ou nulle")

        addon = self._resolve_addon(request)
        if not is_addon_available(self.db, current_plan, addon):
            raise InvalidBillingChangeError(f"L'option {addon.code} n'est pas disponible pour cette formule")

        tenant_addon = self._get_tenant_addon(tenant.id, addon.id)
        from_quantity = self._current_addon_quantity(tenant, addon, tenant_addon)
        if request.to_quantity == from_quantity:
            raise InvalidBillingChangeError(f"La quantité de {addon.code} est déjà {from_quantity}")

        if self._pending_duplicate_exists(tenant.id, BillingChangeType.ADDON_CHANGE, addon.id):
            raise BillingChangeStateError(f"Un changement de l'option {addon.code} est déjà planifié")

        kind = resource_kind_for_addon(addon.code)
        if kind is not None and request.to_quantity < from_quantity and tenant.parent_epci_id is None:
            projected = self.resolver.project_allowance(
                tenant, kind, addon_id=addon.id, addon_quantity=request.to_quantity
            )
            if projected.allowed < projected.used:
                raise DowngradeBelowUsageError(
                    f"Réduire {addon.code} à {request.to_quantity} laisserait {projected.used} "
                    f"{kind.value} pour {projected.allowed} autorisé(s)"
                )

        proration = compute_proration(
            old_cost_cents=self._addon_cost(tenant, current_plan, addon, from_quantity, interval),
            new_cost_cents=self._addon_cost(tenant, current_plan, addon, request.to_quantity, interval),
            effective_date=effective_date,
            interval=interval,
        )

        # Sans ligne existante, la ligne n'est créée qu'à l'application
        if tenant_addon is not None:
            tenant_addon.pending_quantity = request.to_quantity
            tenant_addon.pending_effective_date = effective_date

        return BillingChange(
            change_type=BillingChangeType.ADDON_CHANGE,
            addon_id=addon.id,
            from_quantity=from_quantity,
            to_quantity=request.to_quantity,
            effective_date=effective_date,
            prorata_credit_cents=proration.credit_cents,
            prorata_debit_cents=proration.debit_cents,
        )

    # =========================================================================
    # APPLICATION
    # =========================================================================

    @retry_on_conflict
    def apply_change(
            self,
            change_id: int,
            actor: Actor = SYSTEM_ACTOR,
            today: Optional[date] = None,
    ) -> BillingChange:
        """
        Applique un changement arrivé à échéance.

        La ligne du tenant est verrouillée : deux applications concurrentes
        pour un même tenant sont sérialisées, et les changements d'un tenant
        s'appliquent par date d'effet croissante.
        """
        today = today or utc_now().date()
        change = self.get_change(change_id)
        if change.tenant_id is None:
            raise BillingChangeStateError(f"Le changement {change_id} n'est plus rattaché à un tenant")

        tenant = self._get_tenant(change.tenant_id, lock=True)
        change = self.get_change(change_id, lock=True)

        if not change.is_pending:
            raise BillingChangeStateError(
                f"Le changement {change_id} est {change.status.value}, seul un changement PENDING peut être appliqué"
            )
        if tenant.is_archived:
            raise BillingChangeStateError(f"Le tenant {tenant.id} est archivé")
        if change.effective_date > today:
            raise InvalidBillingChangeError(
                f"Le changement {change_id} prend effet le {change.effective_date.isoformat()}"
            )

        earlier = self.db.execute(
            select(BillingChange.id)
            .where(
                BillingChange.tenant_id == tenant.id,
                BillingChange.status == BillingChangeStatus.PENDING,
                BillingChange.id != change.id,
                or_(
                    BillingChange.effective_date < change.effective_date,
                    and_(BillingChange.effective_date == change.effective_date, BillingChange.id < change.id),
                ),
            )
            .limit(1)
        ).scalar_one_or_none()
        if earlier is not None:
            raise BillingChangeStateError(
                f"Le changement {earlier} doit être appliqué avant le changement {change_id}"
            )

        if change.change_type == BillingChangeType.PLAN_CHANGE:
            self._apply_plan_change(tenant, change)
        else:
            self._apply_addon_change(tenant, change)

        now = utc_now()
        change.status = BillingChangeStatus.APPLIED
        change.applied_at = now

        for entry_type, amount in (
                (LedgerEntryType.CREDIT, change.prorata_credit_cents),
                (LedgerEntryType.DEBIT, change.prorata_debit_cents),
        ):
            if amount > 0:
                self.db.add(LedgerEntry(
                    tenant_id=tenant.id,
                    entry_type=entry_type,
                    amount_cents=amount,
                    description=self._ledger_description(change, entry_type),
                    billing_change_id=change.id,
                    created_at=now,
                ))

        log_tenant_action(
            self.db,
            action=AuditAction.BILLING_CHANGE_APPLIED,
            tenant_id=tenant.id,
            actor_id=actor.id,
            actor_type=actor.actor_type.value,
            target_table="tenant_billing_changes",
            target_id=change.id,
            details={
                "change_type": change.change_type.value,
                "prorata_credit_cents": change.prorata_credit_cents,
                "prorata_debit_cents": change.prorata_debit_cents,
            },
        )
        self.db.commit()
        self.db.refresh(change)
        self.resolver.invalidate(tenant.id)

        logger.info(f"✅ Changement {change.id} appliqué pour le tenant {tenant.id}")
        return change

    def _apply_plan_change(self, tenant: Tenant, change: BillingChange) -> None:
        if tenant.subscription_plan_id != change.from_plan_id:
            # La formule de départ n'est pas celle du tenant : sans formule en propre,
            # la formule résolue (commande sur mandat) fait foi.
            resolved = resolve_plan(self.db, tenant)
            if resolved is None or resolved.id != change.from_plan_id or tenant.subscription_plan_id is not None:
                raise BillingChangeStateError(
                    f"La formule du tenant {tenant.id} a changé depuis la planification du changement {change.id}"
                )
        tenant.subscription_plan_id = change.to_plan_id
        if change.to_billing_interval is not None:
            tenant.billing_interval = change.to_billing_interval

    def _apply_addon_change(self, tenant: Tenant, change: BillingChange) -> None:
        tenant_addon = self._get_tenant_addon(tenant.id, change.addon_id)
        current = self._current_addon_quantity(tenant, self.db.get(Addon, change.addon_id), tenant_addon)
        if current != change.from_quantity:
            raise BillingChangeStateError(
                f"La quantité de l'option a changé depuis la planification du changement {change.id}"
            )
        if tenant_addon is None:
            tenant_addon = TenantAddon(tenant_id=tenant.id, addon_id=change.addon_id)
            self.db.add(tenant_addon)
        # Une quantité nulle conserve la ligne (historique des options)
        tenant_addon.quantity = change.to_quantity
        tenant_addon.pending_quantity = None
        tenant_addon.pending_effective_date = None

    @staticmethod
    def _ledger_description(change: BillingChange, entry_type: LedgerEntryType) -> str:
        if change.change_type == BillingChangeType.PLAN_CHANGE:
            subject = f"changement de formule {change.from_plan_id} → {change.to_plan_id}"
        else:
            subject = f"option {change.addon_id} : {change.from_quantity} → {change.to_quantity}"
        label = "Crédit prorata" if entry_type == LedgerEntryType.CREDIT else "Débit prorata"
        return f"{label} - {subject} (effet {change.effective_date.isoformat()})"

    def apply_due_changes(self, today: Optional[date] = None, actor: Actor = SYSTEM_ACTOR) -> DueChangesReport:
        """
        Applique tous les changements échus, tenant par tenant, par date d'effet croissante.

        Un échec sur un tenant suspend ses changements suivants (l'état de
        départ des suivants dépend du précédent) sans bloquer les autres tenants.
        """
        today = today or utc_now().date()
        report = DueChangesReport()

        due = self.db.execute(
            select(BillingChange.id, BillingChange.tenant_id)
            .where(
                BillingChange.status == BillingChangeStatus.PENDING,
                BillingChange.effective_date <= today,
                BillingChange.tenant_id.is_not(None),
            )
            .order_by(BillingChange.tenant_id, BillingChange.effective_date, BillingChange.id)
        ).all()

        blocked_tenants = set()
        for change_id, tenant_id in due:
            if tenant_id in blocked_tenants:
                report.skipped.append(change_id)
                continue
            try:
                self.apply_change(change_id, actor=actor, today=today)
                report.applied.append(change_id)
            except BillingCoreError as e:
                self.db.rollback()
                logger.warning(f"⚠️ Changement {change_id} non appliqué (tenant {tenant_id}) : {e.message}")
                report.failed[change_id] = e.code
                blocked_tenants.add(tenant_id)

        logger.info(
            f"Planificateur : {len(report.applied)} appliqué(s), "
            f"{len(report.failed)} en échec, {len(report.skipped)} reporté(s)"
        )
        return report

    # =========================================================================
    # ANNULATION
    # =========================================================================

    @retry_on_conflict
    def cancel_change(self, change_id: int, actor: Actor = SYSTEM_ACTOR) -> BillingChange:
        """Annule un changement PENDING. Un changement déjà terminé est refusé explicitement."""
        change = self.get_change(change_id, lock=True)
        if not change.is_pending:
            raise BillingChangeStateError(
                f"Le changement {change_id} est {change.status.value}, seul un changement PENDING peut être annulé"
            )

        change.status = BillingChangeStatus.CANCELLED
        change.cancelled_at = utc_now()

        if change.change_type == BillingChangeType.ADDON_CHANGE and change.tenant_id is not None:
            tenant_addon = self._get_tenant_addon(change.tenant_id, change.addon_id)
            if tenant_addon is not None and tenant_addon.pending_quantity == change.to_quantity:
                tenant_addon.pending_quantity = None
                tenant_addon.pending_effective_date = None

        log_tenant_action(
            self.db,
            action=AuditAction.BILLING_CHANGE_CANCELLED,
            tenant_id=change.tenant_id,
            actor_id=actor.id,
            actor_type=actor.actor_type.value,
            target_table="tenant_billing_changes",
            target_id=change.id,
        )
        self.db.commit()
        self.db.refresh(change)

        logger.info(f"🚫 Changement {change.id} annulé")
        return change

    def list_changes(self, tenant_id: int, status: Optional[BillingChangeStatus] = None) -> List[BillingChange]:
        self._get_tenant(tenant_id)
        query = select(BillingChange).where(BillingChange.tenant_id == tenant_id)
        if status is not None:
            query = query.where(BillingChange.status == status)
        query = query.order_by(BillingChange.effective_date, BillingChange.id)
        return list(self.db.execute(query).scalars().all())

    # =========================================================================
    # GRAND LIVRE
    # =========================================================================

    def ledger_balance(self, tenant_id: int) -> int:
        """
        Somme signée des écritures non imputées.

        Positif : crédit dû au tenant. Négatif : montant dû par le tenant.
        """
        signed = case(
            (LedgerEntry.entry_type == LedgerEntryType.CREDIT, LedgerEntry.amount_cents),
            else_=-LedgerEntry.amount_cents,
        )
        return self.db.execute(
            select(func.coalesce(func.sum(signed), 0)).where(
                LedgerEntry.tenant_id == tenant_id,
                LedgerEntry.applied_to_invoice.is_(False),
            )
        ).scalar() or 0

    def list_ledger_entries(self, tenant_id: int, only_unapplied: bool = False) -> List[LedgerEntry]:
        self._get_tenant(tenant_id)
        query = select(LedgerEntry).where(LedgerEntry.tenant_id == tenant_id)
        if only_unapplied:
            query = query.where(LedgerEntry.applied_to_invoice.is_(False))
        return list(self.db.execute(query.order_by(LedgerEntry.id)).scalars().all())

    @retry_on_conflict
    def mark_entries_applied(
            self,
            tenant_id: int,
            entry_ids: List[int],
            invoice_reference: str,
            actor: Actor = SYSTEM_ACTOR,
    ) -> List[LedgerEntry]:
        """
        Marque des écritures comme imputées sur une facture (run de facturation externe).

        Toutes les écritures doivent appartenir au tenant et être encore non imputées.
        """
        if not entry_ids:
            raise InvalidBillingChangeError("Aucune écriture à imputer")

        entries = list(self.db.execute(
            select(LedgerEntry)
            .where(LedgerEntry.id.in_(entry_ids))
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars().all())

        found = {entry.id for entry in entries}
        missing = set(entry_ids) - found
        if missing:
            raise NotFoundError(f"Écritures introuvables : {sorted(missing)}")

        for entry in entries:
            if entry.tenant_id != tenant_id:
                raise InvalidBillingChangeError(f"L'écriture {entry.id} n'appartient pas au tenant {tenant_id}")
            if entry.applied_to_invoice:
                raise BillingChangeStateError(
                    f"L'écriture {entry.id} est déjà imputée ({entry.invoice_reference})"
                )

        now = utc_now()
        for entry in entries:
            entry.applied_to_invoice = True
            entry.invoice_reference = invoice_reference
            entry.applied_at = now

        log_tenant_action(
            self.db,
            action=AuditAction.LEDGER_ENTRIES_APPLIED,
            tenant_id=tenant_id,
            actor_id=actor.id,
            actor_type=actor.actor_type.value,
            target_table="billing_ledger_entries",
            details={"entry_ids": sorted(found), "invoice_reference": invoice_reference},
        )
        self.db.commit()
        return entries
