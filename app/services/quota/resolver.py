"""
Résolution des quotas (utilisé / autorisé / restant) par ressource.

Base de calcul explicite :
- Standalone(tenant) : le tenant porte sa propre formule et ses options
- InheritsFrom(parent_id, tenant) : commune rattachée à un EPCI ; l'allocation
  est entièrement celle de l'EPCI et la consommation est la somme de l'EPCI
  et de toutes ses communes (pool mutualisé)

remaining = max(0, allowed - used), jamais négatif.
"""
import json
import logging
from dataclasses import asdict, dataclass
from typing import List, Optional, Union

import redis
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import NotFoundError, QuotaExceededError
from app.core.redis_client import get_redis
from app.models.catalog.addon import Addon
from app.models.catalog.subscription_plan import SubscriptionPlan
from app.models.enums import ResourceKind
from app.models.tenants.tenant import Tenant
from app.models.tenants.tenant_addon import TenantAddon
from app.services.catalog import resolve_plan, snapshot_addon_quantity
from app.services.quota.resource_kinds import ResourceKindSpec, get_resource_spec

logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================

class TenantNotFoundError(NotFoundError):
    """Tenant non trouvé."""
    pass


class QuotaLimitReachedError(QuotaExceededError):
    """Plus de place disponible pour la ressource demandée."""

    def __init__(self, kind: ResourceKind, used: int, allowed: int, requested: int = 1):
        self.kind = kind
        self.used = used
        self.allowed = allowed
        super().__init__(
            f"Quota {kind.value} atteint : {used}/{allowed} utilisé(s), {requested} demandé(s)"
        )


# =============================================================================
# TYPES
# =============================================================================

@dataclass(frozen=True)
class Standalone:
    """Le tenant calcule son quota à partir de sa propre formule."""
    tenant: Tenant


@dataclass(frozen=True)
class InheritsFrom:
    """Le tenant hérite du quota de son EPCI."""
    parent_id: int
    tenant: Tenant


QuotaBasis = Union[Standalone, InheritsFrom]


@dataclass(frozen=True)
class QuotaStatus:
    used: int
    allowed: int
    remaining: int

    @classmethod
    def build(cls, used: int, allowed: int) -> "QuotaStatus":
        return cls(used=used, allowed=allowed, remaining=max(0, allowed - used))


# Sentinelle : "formule courante du tenant" (None signifie "aucune formule")
_CURRENT_PLAN = object()


def quota_basis(tenant: Tenant) -> QuotaBasis:
    if tenant.parent_epci_id is not None:
        return InheritsFrom(parent_id=tenant.parent_epci_id, tenant=tenant)
    return Standalone(tenant=tenant)


def _cache_key(owner_id: int, kind: ResourceKind) -> str:
    return f"quota:{owner_id}:{kind.value}"


# =============================================================================
# RÉSOLVEUR
# =============================================================================

class QuotaResolver:
    """Calcule les quotas d'un tenant en tenant compte de la mutualisation EPCI."""

    def __init__(self, db: Session):
        self.db = db

    # --- Base de calcul ---

    def _get_tenant(self, tenant_id: int) -> Tenant:
        tenant = self.db.get(Tenant, tenant_id)
        if not tenant:
            raise TenantNotFoundError(f"Tenant {tenant_id} non trouvé")
        return tenant

    def quota_owner(self, tenant: Tenant) -> Tenant:
        """Tenant dont la formule et les options déterminent l'allocation."""
        basis = quota_basis(tenant)
        if isinstance(basis, Standalone):
            return basis.tenant

        parent = self.db.get(Tenant, basis.parent_id)
        if parent is None:
            logger.warning(
                f"⚠️ Tenant {tenant.id} : EPCI parent {basis.parent_id} introuvable, quota calculé en propre"
            )
            return tenant
        return parent

    def pool_tenant_ids(self, owner: Tenant) -> List[int]:
        """Tenants dont la consommation est mutualisée : l'EPCI et ses communes."""
        if not owner.is_epci:
            return [owner.id]
        commune_ids = self.db.execute(
            select(Tenant.id).where(Tenant.parent_epci_id == owner.id)
        ).scalars().all()
        return [owner.id, *commune_ids]

    # --- Allocation ---

    def _addon_quantity(
            self,
            owner: Tenant,
            spec: ResourceKindSpec,
            addon_id: Optional[int] = None,
            addon_quantity: Optional[int] = None,
    ) -> int:
        """
        Quantité d'options achetées pour la ressource.

        Les lignes TenantAddon priment ; sans ligne, on lit le snapshot de la
        dernière commande sur mandat acceptée (tenants mandat non synchronisés).
        """
        rows = self.db.execute(
            select(TenantAddon.addon_id, TenantAddon.quantity)
            .join(Addon, Addon.id == TenantAddon.addon_id)
            .where(
                TenantAddon.tenant_id == owner.id,
                Addon.code.in_(spec.addon_codes),
            )
        ).all()
        quantities = {row.addon_id: row.quantity for row in rows}
        if addon_id is not None:
            quantities[addon_id] = addon_quantity or 0
        if quantities:
            return sum(quantities.values())

        return snapshot_addon_quantity(self.db, owner.id, spec.addon_codes)

    def _allowed(
            self,
            owner: Tenant,
            spec: ResourceKindSpec,
            plan=_CURRENT_PLAN,
            addon_id: Optional[int] = None,
            addon_quantity: Optional[int] = None,
    ) -> int:
        if plan is _CURRENT_PLAN:
            plan = resolve_plan(self.db, owner)
        plan_included = spec.plan_included(plan) if plan is not None else 0
        return (
            plan_included
            + self._addon_quantity(owner, spec, addon_id, addon_quantity)
            + spec.direct_purchase(owner)
        )

    # --- API publique ---

    def resolve(self, tenant_id: int, kind: ResourceKind) -> QuotaStatus:
        """Quota courant (lecture seule, sans verrou)."""
        tenant = self._get_tenant(tenant_id)
        return self._resolve_for_owner(self.quota_owner(tenant), get_resource_spec(kind))

    def _resolve_for_owner(self, owner: Tenant, spec: ResourceKindSpec) -> QuotaStatus:
        used = spec.count_usage(self.db, self.pool_tenant_ids(owner))
        allowed = self._allowed(owner, spec)
        return QuotaStatus.build(used=used, allowed=allowed)

    def resolve_for_display(self, tenant_id: int, kind: ResourceKind) -> QuotaStatus:
        """
        Quota affiché, éventuellement servi depuis Redis.

        Une légère obsolescence est acceptable ici ; aucune décision
        de capacité ne doit passer par cette méthode.
        """
        kind = ResourceKind(kind)
        tenant = self._get_tenant(tenant_id)
        owner = self.quota_owner(tenant)
        client = get_redis()
        key = _cache_key(owner.id, kind)

        if client is not None:
            try:
                cached = client.get(key)
                if cached:
                    return QuotaStatus(**json.loads(cached))
            except redis.RedisError as e:
                logger.warning(f"Cache quota indisponible ({key}) : {e}")

        status = self._resolve_for_owner(owner, get_resource_spec(kind))

        if client is not None:
            try:
                client.setex(key, settings.QUOTA_CACHE_TTL_SECONDS, json.dumps(asdict(status)))
            except redis.RedisError as e:
                logger.warning(f"Cache quota indisponible ({key}) : {e}")

        return status

    def invalidate(self, tenant_id: int) -> None:
        """Supprime les quotas en cache du pool auquel appartient le tenant."""
        client = get_redis()
        if client is None:
            return
        tenant = self.db.get(Tenant, tenant_id)
        owner_id = self.quota_owner(tenant).id if tenant is not None else tenant_id
        try:
            client.delete(*[_cache_key(owner_id, kind) for kind in ResourceKind])
        except redis.RedisError as e:
            logger.warning(f"Invalidation du cache quota impossible (tenant {owner_id}) : {e}")

    def ensure_capacity(self, tenant_id: int, kind: ResourceKind, requested: int = 1) -> QuotaStatus:
        """
        Vérifie qu'il reste de la place, dans la transaction de l'appelant.

        La ligne du tenant propriétaire du quota est verrouillée (FOR UPDATE)
        jusqu'au commit : deux créations concurrentes sur le même pool sont
        sérialisées et ne peuvent pas valider toutes deux un quota périmé.
        """
        tenant = self._get_tenant(tenant_id)
        owner = self.quota_owner(tenant)
        self.db.execute(
            select(Tenant)
            .where(Tenant.id == owner.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one()

        spec = get_resource_spec(kind)
        status = self._resolve_for_owner(owner, spec)
        if status.used + requested > status.allowed:
            logger.info(f"⛔ Quota {spec.kind.value} atteint pour le tenant {tenant_id} ({status.used}/{status.allowed})")
            raise QuotaLimitReachedError(spec.kind, status.used, status.allowed, requested)
        return status

    def project_allowance(
            self,
            tenant: Tenant,
            kind: ResourceKind,
            plan: Optional[SubscriptionPlan] = _CURRENT_PLAN,
            addon_id: Optional[int] = None,
            addon_quantity: Optional[int] = None,
    ) -> QuotaStatus:
        """
        Quota du tenant sous une formule ou une quantité d'option hypothétique.

        Sert à refuser une réduction qui laisserait la consommation
        au-dessus de l'allocation.
        """
        owner = self.quota_owner(tenant)
        spec = get_resource_spec(kind)
        used = spec.count_usage(self.db, self.pool_tenant_ids(owner))
        allowed = self._allowed(owner, spec, plan, addon_id, addon_quantity)
        return QuotaStatus.build(used=used, allowed=allowed)
