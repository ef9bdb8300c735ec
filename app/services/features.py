"""
Fonctionnalités effectives d'un tenant.

Unifie les drapeaux historiques de la formule (has_ideas, has_incidents,
has_meetings) et le catalogue de fonctionnalités (PlanFeatureAssignment),
puis applique les forçages du tenant. Les appelants ne voient qu'un
ensemble de codes.
"""
from typing import FrozenSet

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.models.catalog.feature import Feature, PlanFeatureAssignment
from app.models.enums import FeatureOverrideMode
from app.models.tenants.feature_override import TenantFeatureOverride
from app.models.tenants.tenant import Tenant
from app.services.catalog import resolve_plan

# Code de fonctionnalité → drapeau historique de SubscriptionPlan
LEGACY_FLAG_FEATURES = {
    "ideas": "has_ideas",
    "incidents": "has_incidents",
    "meetings": "has_meetings",
}


def effective_features(db: Session, tenant_id: int) -> FrozenSet[str]:
    tenant = db.get(Tenant, tenant_id)
    if tenant is None:
        raise NotFoundError(f"Tenant {tenant_id} non trouvé")

    codes = set()
    plan = resolve_plan(db, tenant)
    if plan is not None:
        codes.update(code for code, flag in LEGACY_FLAG_FEATURES.items() if getattr(plan, flag))
        assigned = db.execute(
            select(Feature.code)
            .join(PlanFeatureAssignment, PlanFeatureAssignment.feature_id == Feature.id)
            .where(
                PlanFeatureAssignment.plan_id == plan.id,
                Feature.is_active.is_(True),
            )
        ).scalars().all()
        codes.update(code.lower() for code in assigned)

    overrides = db.execute(
        select(TenantFeatureOverride).where(TenantFeatureOverride.tenant_id == tenant_id)
    ).scalars().all()
    for override in overrides:
        code = override.feature_code.lower()
        if override.mode == FeatureOverrideMode.ENABLE:
            codes.add(code)
        else:
            codes.discard(code)

    return frozenset(codes)


def has_feature(db: Session, tenant_id: int, feature_code: str) -> bool:
    return feature_code.lower() in effective_features(db, tenant_id)
