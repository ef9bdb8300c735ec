"""
Cycle de vie des tenants.

    ACTIVE ⇄ SUSPENDED          (réversible, motif + acteur tracés)
    ACTIVE | SUSPENDED → ARCHIVED (définitif)
    ARCHIVED → supprimé          (delete_archived_tenant)

La suppression descend récursivement dans les tenants enfants
(parent_epci_id et parent_tenant_id). Les liens parent sont des données
éditables par l'opérateur : le parcours garde un ensemble de tenants
visités et refuse toute seconde visite (branche en échec, pas de boucle).

Pour chaque tenant supprimé, dans cet ordre et dans une seule transaction :
1. archivage des documents financiers (devis, factures, commandes et
   factures sur mandat) : is_archived, archived_at, tenant_id = NULL
2. détachement des journaux (activités mandat, changements de facturation,
   grand livre, audit) : tenant_id = NULL
3. suppression des données opérationnelles, enfants avant parents
4. suppression du tenant
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Set

from sqlalchemy import delete, or_, select, update
from sqlalchemy.orm import Session

from app.core.actor import SYSTEM_ACTOR, Actor
from app.core.exceptions import (
    CycleDetectedError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from app.models.billing.billing_change import BillingChange
from app.models.billing.documents import Invoice, Quote
from app.models.billing.ledger_entry import LedgerEntry
from app.models.content.meeting import Meeting, MeetingRegistration
from app.models.enums import LifecycleStatus, ResourceKind, TenantType
from app.models.mandate.mandate_activity import MandateActivity
from app.models.mandate.mandate_invoice import MandateInvoice
from app.models.mandate.mandate_order import MandateOrder
from app.models.mixins import utc_now
from app.models.organization.association import Association
from app.models.organization.domain import TenantDomain
from app.models.platform.platform_audit_log import AuditAction, PlatformAuditLog, log_tenant_action
from app.models.tenants.feature_override import TenantFeatureOverride
from app.models.tenants.tenant import Tenant
from app.models.tenants.tenant_addon import TenantAddon
from app.models.user.user import User
from app.services.quota import QuotaResolver
from app.services.transactions import retry_on_conflict

logger = logging.getLogger(__name__)

# Documents financiers : archivés, jamais supprimés
FINANCIAL_DOCUMENTS = (Quote, Invoice, MandateOrder, MandateInvoice)

# Journaux conservés, détachés du tenant : (modèle, colonne tenant)
DETACHED_RECORDS = (
    (MandateActivity, "tenant_id"),
    (BillingChange, "tenant_id"),
    (LedgerEntry, "tenant_id"),
    (PlatformAuditLog, "target_tenant_id"),
)


# =============================================================================
# EXCEPTIONS
# =============================================================================

class TenantNotFoundError(NotFoundError):
    """Tenant non trouvé."""
    pass


class TenantStateError(InvalidStateError):
    """Transition de cycle de vie interdite dans l'état courant."""
    pass


class InvalidLifecycleRequestError(ValidationError):
    """Demande invalide (motif manquant, parent non EPCI...)."""
    pass


@dataclass
class TenantDeletionResult:
    """Bilan d'une suppression : success est False si une branche cyclique a été ignorée."""
    tenant_id: int
    deleted_ids: List[int] = field(default_factory=list)
    cycle_ids: List[int] = field(default_factory=list)
    success: bool = True


# =============================================================================
# SERVICE
# =============================================================================

class TenantLifecycleService:
    """Suspension, réactivation, archivage et suppression des tenants."""

    def __init__(self, db: Session, resolver: Optional[QuotaResolver] = None):
        self.db = db
        self.resolver = resolver or QuotaResolver(db)

    def get_tenant(self, tenant_id: int, lock: bool = False) -> Tenant:
        query = select(Tenant).where(Tenant.id == tenant_id)
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        tenant = self.db.execute(query).scalar_one_or_none()
        if not tenant:
            raise TenantNotFoundError(f"Tenant {tenant_id} non trouvé")
        return tenant

    @staticmethod
    def _require_reason(reason: Optional[str]) -> str:
        if not reason or not reason.strip():
            raise InvalidLifecycleRequestError("Le motif est obligatoire")
        return reason.strip()

    # =========================================================================
    # SUSPENSION / RÉACTIVATION / ARCHIVAGE
    # =========================================================================

    @retry_on_conflict
    def suspend(self, tenant_id: int, reason: str, actor: Actor = SYSTEM_ACTOR) -> Tenant:
        """ACTIVE → SUSPENDED. Aucune cascade."""
        reason = self._require_reason(reason)
        tenant = self.get_tenant(tenant_id, lock=True)
        if tenant.lifecycle_status != LifecycleStatus.ACTIVE:
            raise TenantStateError(
                f"Seul un tenant ACTIVE peut être suspendu (statut : {tenant.lifecycle_status.value})"
            )

        tenant.lifecycle_status = LifecycleStatus.SUSPENDED
        tenant.suspended_at = utc_now()
        tenant.suspension_reason = reason
        tenant.suspended_by = actor.id
        self._audit(tenant, AuditAction.TENANT_SUSPENDED, actor, reason, LifecycleStatus.ACTIVE)
        self.db.commit()

        logger.info(f"⏸️ Tenant {tenant.code} suspendu par {actor.id} : {reason}")
        return tenant

    @retry_on_conflict
    def unsuspend(self, tenant_id: int, reason: str, actor: Actor = SYSTEM_ACTOR) -> Tenant:
        """SUSPENDED → ACTIVE."""
        reason = self._require_reason(reason)
        tenant = self.get_tenant(tenant_id, lock=True)
        if tenant.lifecycle_status != LifecycleStatus.SUSPENDED:
            raise TenantStateError(
                f"Seul un tenant SUSPENDED peut être réactivé (statut : {tenant.lifecycle_status.value})"
            )

        tenant.lifecycle_status = LifecycleStatus.ACTIVE
        tenant.reactivated_at = utc_now()
        tenant.reactivation_reason = reason
        tenant.reactivated_by = actor.id
        self._audit(tenant, AuditAction.TENANT_UNSUSPENDED, actor, reason, LifecycleStatus.SUSPENDED)
        self.db.commit()

        logger.info(f"▶️ Tenant {tenant.code} réactivé par {actor.id}")
        return tenant

    @retry_on_conflict
    def archive(self, tenant_id: int, reason: str, actor: Actor = SYSTEM_ACTOR) -> Tenant:
        """
        ACTIVE | SUSPENDED → ARCHIVED (définitif).

        Les tenants enfants ne sont pas archivés implicitement.
        """
        reason = self._require_reason(reason)
        tenant = self.get_tenant(tenant_id, lock=True)
        if tenant.is_archived:
            raise TenantStateError(f"Le tenant {tenant.code} est déjà archivé")

        previous = tenant.lifecycle_status
        tenant.lifecycle_status = LifecycleStatus.ARCHIVED
        tenant.archived_at = utc_now()
        tenant.archive_reason = reason
        tenant.archived_by = actor.id
        self._audit(tenant, AuditAction.TENANT_ARCHIVED, actor, reason, previous)
        self.db.commit()

        logger.info(f"📦 Tenant {tenant.code} archivé par {actor.id}")
        return tenant

    def _audit(
            self,
            tenant: Tenant,
            action: AuditAction,
            actor: Actor,
            reason: str,
            previous: LifecycleStatus,
    ) -> None:
        log_tenant_action(
            self.db,
            action=action,
            tenant_id=tenant.id,
            actor_id=actor.id,
            actor_type=actor.actor_type.value,
            details={
                "reason": reason,
                "old_status": previous.value,
                "new_status": tenant.lifecycle_status.value,
            },
        )

    # =========================================================================
    # RATTACHEMENT EPCI
    # =========================================================================

    def _ancestor_ids(self, tenant_id: int) -> Set[int]:
        """Ancêtres via les deux liens parent ; s'arrête sur un cycle existant."""
        seen: Set[int] = set()
        frontier = [tenant_id]
        while frontier:
            current = self.db.get(Tenant, frontier.pop())
            if current is None:
                continue
            for parent_id in (current.parent_epci_id, current.parent_tenant_id):
                if parent_id is not None and parent_id not in seen:
                    seen.add(parent_id)
                    frontier.append(parent_id)
        return seen

    @retry_on_conflict
    def set_parent_epci(self, tenant_id: int, epci_id: Optional[int], actor: Actor = SYSTEM_ACTOR) -> Tenant:
        """Rattache (ou détache, epci_id=None) une commune à un EPCI."""
        tenant = self.get_tenant(tenant_id, lock=True)
        previous_parent = tenant.parent_epci_id

        if epci_id is not None:
            epci = self.get_tenant(epci_id)
            if epci.tenant_type != TenantType.EPCI:
                raise InvalidLifecycleRequestError(f"Le tenant {epci.code} n'est pas un EPCI")
            if epci_id == tenant_id or tenant_id in self._ancestor_ids(epci_id):
                raise CycleDetectedError(tenant_id)
            if epci.is_archived:
                raise TenantStateError(f"L'EPCI {epci.code} est archivé")
            if epci_id != previous_parent:
                # Verrou sur la ligne de l'EPCI jusqu'au commit
                self.resolver.ensure_capacity(epci_id, ResourceKind.COMMUNES)

        tenant.parent_epci_id = epci_id
        log_tenant_action(
            self.db,
            action=AuditAction.TENANT_PARENT_CHANGED,
            tenant_id=tenant.id,
            actor_id=actor.id,
            actor_type=actor.actor_type.value,
            details={"old_parent_epci_id": previous_parent, "new_parent_epci_id": epci_id},
        )
        self.db.commit()

        for owner_id in {previous_parent, epci_id, tenant.id} - {None}:
            self.resolver.invalidate(owner_id)

        logger.info(f"🔗 Tenant {tenant.code} : EPCI {previous_parent} → {epci_id}")
        return tenant

    # =========================================================================
    # SUPPRESSION
    # =========================================================================

    def delete_archived_tenant(self, tenant_id: int, actor: Actor = SYSTEM_ACTOR) -> TenantDeletionResult:
        """
        Supprime un tenant ARCHIVED et ses descendants, en une transaction.

        Seul le tenant demandé doit être ARCHIVED ; ses descendants sont
        supprimés quel que soit leur statut. Une branche cyclique est
        ignorée (warning) et rend success = False sans interrompre le reste.
        """
        tenant = self.get_tenant(tenant_id, lock=True)
        if not tenant.is_archived:
            raise TenantStateError(
                f"Seul un tenant ARCHIVED peut être supprimé (statut : {tenant.lifecycle_status.value})"
            )

        former_epci_id = tenant.parent_epci_id
        tenant_code = tenant.code
        result = TenantDeletionResult(tenant_id=tenant_id)
        result.success = self._delete_recursive(tenant_id, set(), result, utc_now())

        log_tenant_action(
            self.db,
            action=AuditAction.TENANT_DELETED,
            tenant_id=None,
            actor_id=actor.id,
            actor_type=actor.actor_type.value,
            target_id=tenant_id,
            details={
                "tenant_id": tenant_id,
                "tenant_code": tenant_code,
                "deleted_ids": result.deleted_ids,
                "cycle_ids": result.cycle_ids,
            },
        )
        self.db.commit()

        if former_epci_id is not None:
            self.resolver.invalidate(former_epci_id)

        if result.success:
            logger.info(f"🗑️ Tenant {tenant_code} supprimé ({len(result.deleted_ids)} tenant(s))")
        else:
            logger.warning(
                f"⚠️ Tenant {tenant_code} supprimé avec branche(s) cyclique(s) ignorée(s) : {result.cycle_ids}"
            )
        return result

    def _delete_recursive(
            self,
            tenant_id: int,
            visited: Set[int],
            result: TenantDeletionResult,
            now: datetime,
    ) -> bool:
        if tenant_id in visited:
            logger.warning(f"⚠️ Cycle détecté sur le tenant {tenant_id} : branche ignorée")
            result.cycle_ids.append(tenant_id)
            return False
        visited.add(tenant_id)

        success = True
        child_ids = self.db.execute(
            select(Tenant.id)
            .where(or_(Tenant.parent_epci_id == tenant_id, Tenant.parent_tenant_id == tenant_id))
            .order_by(Tenant.id)
        ).scalars().all()
        for child_id in child_ids:
            if not self._delete_recursive(child_id, visited, result, now):
                success = False

        self._archive_financial_documents(tenant_id, now)
        self._detach_records(tenant_id)
        self._delete_operational_data(tenant_id)

        # Enfants restants (branche cyclique) : on coupe le lien vers ce tenant
        for column in (Tenant.parent_epci_id, Tenant.parent_tenant_id):
            self.db.execute(
                update(Tenant)
                .where(column == tenant_id)
                .values({column.key: None})
                .execution_options(synchronize_session="fetch")
            )

        self.db.execute(
            delete(Tenant)
            .where(Tenant.id == tenant_id)
            .execution_options(synchronize_session="fetch")
        )
        result.deleted_ids.append(tenant_id)
        logger.debug(f"Tenant {tenant_id} supprimé")
        return success

    def _archive_financial_documents(self, tenant_id: int, now: datetime) -> None:
        for model in FINANCIAL_DOCUMENTS:
            self.db.execute(
                update(model)
                .where(model.tenant_id == tenant_id)
                .values(is_archived=True, archived_at=now, tenant_id=None)
                .execution_options(synchronize_session="fetch")
            )

    def _detach_records(self, tenant_id: int) -> None:
        for model, column_name in DETACHED_RECORDS:
            column = getattr(model, column_name)
            self.db.execute(
                update(model)
                .where(column == tenant_id)
                .values({column_name: None})
                .execution_options(synchronize_session="fetch")
            )

    def _delete_operational_data(self, tenant_id: int) -> None:
        """Données opérationnelles, dans l'ordre imposé par les clés étrangères."""
        meeting_ids = select(Meeting.id).where(Meeting.tenant_id == tenant_id)
        association_ids = select(Association.id).where(Association.tenant_id == tenant_id)

        statements = (
            delete(MeetingRegistration).where(MeetingRegistration.meeting_id.in_(meeting_ids)),
            delete(Meeting).where(Meeting.tenant_id == tenant_id),
            delete(User).where(or_(User.tenant_id == tenant_id, User.association_id.in_(association_ids))),
            delete(Association).where(Association.tenant_id == tenant_id),
            delete(TenantDomain).where(TenantDomain.tenant_id == tenant_id),
            delete(TenantAddon).where(TenantAddon.tenant_id == tenant_id),
            delete(TenantFeatureOverride).where(TenantFeatureOverride.tenant_id == tenant_id),
        )
        for statement in statements:
            self.db.execute(statement.execution_options(synchronize_session="fetch"))
