"""
Lecture du catalogue (formules, options) et de la formule effective d'un tenant.

Le catalogue est global et en lecture seule pour le moteur de facturation.
"""
import logging
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.catalog.addon import Addon, PlanAddonAccess
from app.models.catalog.subscription_plan import SubscriptionPlan
from app.models.enums import BillingInterval
from app.models.mandate.mandate_order import ACCEPTED_LIKE_STATUSES, MandateOrder
from app.models.tenants.tenant import Tenant
from app.services.mandate.snapshot import is_valid_snapshot_item

logger = logging.getLogger(__name__)


def get_plan(db: Session, plan_id: int) -> Optional[SubscriptionPlan]:
    return db.get(SubscriptionPlan, plan_id)


def get_plan_by_code(db: Session, code: str) -> Optional[SubscriptionPlan]:
    return db.execute(
        select(SubscriptionPlan).where(SubscriptionPlan.code == code)
    ).scalar_one_or_none()


def get_addon_by_code(db: Session, code: str) -> Optional[Addon]:
    return db.execute(
        select(Addon).where(Addon.code == code)
    ).scalar_one_or_none()


def get_plan_addon_access(db: Session, plan_id: int, addon_id: int) -> Optional[PlanAddonAccess]:
    return db.execute(
        select(PlanAddonAccess).where(
            PlanAddonAccess.plan_id == plan_id,
            PlanAddonAccess.addon_id == addon_id,
        )
    ).scalar_one_or_none()


def is_addon_available(db: Session, plan: Optional[SubscriptionPlan], addon: Addon) -> bool:
    """Une option est disponible sauf si la formule la désactive explicitement."""
    if not addon.is_active:
        return False
    if plan is None:
        return True
    access = get_plan_addon_access(db, plan.id, addon.id)
    return access is None or access.is_enabled


def addon_unit_price(
        db: Session,
        plan: Optional[SubscriptionPlan],
        addon: Addon,
        interval: BillingInterval,
) -> int:
    """
    Prix unitaire (centimes) d'une option pour une formule.

    La surcharge PlanAddonAccess l'emporte sur le prix par défaut de l'option.
    """
    if plan is not None:
        access = get_plan_addon_access(db, plan.id, addon.id)
        if access is not None:
            override = access.price_override_for(interval)
            if override is not None:
                return override
    return addon.default_price_for(interval)


def latest_accepted_order(db: Session, tenant_id: int) -> Optional[MandateOrder]:
    """Dernière commande sur mandat acceptée et non supprimée (PENDING_BC et INVOICED inclus)."""
    return db.execute(
        select(MandateOrder)
        .where(
            MandateOrder.tenant_id == tenant_id,
            MandateOrder.status.in_(ACCEPTED_LIKE_STATUSES),
            MandateOrder.is_deleted.is_(False),
        )
        .order_by(MandateOrder.id.desc())
        .limit(1)
    ).scalar_one_or_none()


def resolve_plan(db: Session, tenant: Tenant) -> Optional[SubscriptionPlan]:
    """
    Formule effective d'un tenant.

    Ordre : formule du tenant, puis formule de la dernière commande sur
    mandat acceptée (tenants mandat pas encore synchronisés), sinon aucune.
    """
    if tenant.subscription_plan_id is not None:
        return get_plan(db, tenant.subscription_plan_id)

    order = latest_accepted_order(db, tenant.id)
    if order is not None and order.plan_id is not None:
        logger.debug(f"Tenant {tenant.id} : formule issue de la commande {order.order_number}")
        return get_plan(db, order.plan_id)

    return None


def snapshot_addon_quantity(db: Session, tenant_id: int, addon_codes: Sequence[str]) -> int:
    """
    Quantité d'options lue dans le snapshot de la dernière commande acceptée.

    Repli des tenants mandat sans ligne TenantAddon : quotas et prorata
    partent de la même quantité. Les éléments non conformes sont ignorés.
    """
    order = latest_accepted_order(db, tenant_id)
    if order is None or not order.addons_snapshot:
        return 0

    total = 0
    for item in order.addons_snapshot:
        if not is_valid_snapshot_item(item):
            logger.warning(f"Commande {order.order_number} : élément de snapshot ignoré ({item!r})")
            continue
        if item["code"] in addon_codes:
            total += item["quantity"]
    return total
