"""
Table de correspondance des ressources soumises à quota.

Ajouter une ressource = ajouter une entrée dans RESOURCE_KINDS ; la logique
d'héritage EPCI du résolveur n'a pas à changer.
"""
from dataclasses import dataclass
from typing import Callable, Dict, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models.catalog.subscription_plan import SubscriptionPlan
from app.models.enums import LifecycleStatus, ResourceKind
from app.models.organization.association import Association
from app.models.tenants.tenant import Tenant
from app.models.user.user import User


@dataclass(frozen=True)
class ResourceKindSpec:
    """
    Règles d'une ressource :
    - plan_included : quantité incluse dans la formule
    - addon_codes : codes d'options qui augmentent le quota
    - direct_purchase : colonne d'achat direct historique du tenant
    - count_usage : consommation sur un ensemble de tenants
    """
    kind: ResourceKind
    plan_included: Callable[[SubscriptionPlan], int]
    addon_codes: Tuple[str, ...]
    direct_purchase: Callable[[Tenant], int]
    count_usage: Callable[[Session, Sequence[int]], int]


def _count_active_associations(db: Session, tenant_ids: Sequence[int]) -> int:
    return db.execute(
        select(func.count(Association.id)).where(
            Association.tenant_id.in_(tenant_ids),
            Association.is_active.is_(True),
        )
    ).scalar() or 0


def _count_admin_seats(db: Session, tenant_ids: Sequence[int]) -> int:
    # Les membres d'association n'occupent pas de siège admin
    return db.execute(
        select(func.count(User.id)).where(
            User.tenant_id.in_(tenant_ids),
            User.association_id.is_(None),
            User.is_active.is_(True),
        )
    ).scalar() or 0


def _count_attached_communes(db: Session, tenant_ids: Sequence[int]) -> int:
    return db.execute(
        select(func.count(Tenant.id)).where(
            Tenant.parent_epci_id.in_(tenant_ids),
            Tenant.lifecycle_status != LifecycleStatus.ARCHIVED,
        )
    ).scalar() or 0


RESOURCE_KINDS: Dict[ResourceKind, ResourceKindSpec] = {
    ResourceKind.ASSOCIATIONS: ResourceKindSpec(
        kind=ResourceKind.ASSOCIATIONS,
        plan_included=lambda plan: plan.associations_included or 0,
        addon_codes=("ASSOCIATIONS",),
        direct_purchase=lambda tenant: tenant.purchased_associations or 0,
        count_usage=_count_active_associations,
    ),
    ResourceKind.ADMINS: ResourceKindSpec(
        kind=ResourceKind.ADMINS,
        plan_included=lambda plan: plan.max_admins or 0,
        addon_codes=("ADMIN", "ADMINS"),
        direct_purchase=lambda tenant: tenant.purchased_admins or 0,
        count_usage=_count_admin_seats,
    ),
    ResourceKind.COMMUNES: ResourceKindSpec(
        kind=ResourceKind.COMMUNES,
        plan_included=lambda plan: plan.communes_included or 0,
        addon_codes=("COMMUNES",),
        direct_purchase=lambda tenant: tenant.purchased_communes or 0,
        count_usage=_count_attached_communes,
    ),
}


def get_resource_spec(kind: ResourceKind) -> ResourceKindSpec:
    return RESOURCE_KINDS[ResourceKind(kind)]


def resource_kind_for_addon(addon_code: str):
    """Ressource augmentée par une option (None si l'option n'est liée à aucun quota)."""
    for spec in RESOURCE_KINDS.values():
        if addon_code in spec.addon_codes:
            return spec.kind
    return None
