"""
Helpers de création d'objets de test (hors fixtures).
"""

from datetime import date

from sqlalchemy import func, inspect, select
from sqlalchemy.orm import Session

from app.models import Association, MandateOrder, Tenant, User
from app.models.enums import BillingInterval, MandateOrderStatus, TenantType


# Date de référence des tests (mi-mois, hors année bissextile)
TODAY = date(2025, 3, 15)


def persist(db_session: Session, obj):
    """Enregistre un objet de test (commit du SAVEPOINT courant)."""
    db_session.add(obj)
    db_session.commit()
    db_session.refresh(obj)
    return obj


def make_communes(db_session: Session, epci: Tenant, count: int, start: int = 0) -> list[Tenant]:
    """Crée `count` communes rattachées à l'EPCI."""
    return [
        persist(db_session, Tenant(
            code=f"COMMUNE-{start + i:03d}",
            name=f"Commune {start + i}",
            tenant_type=TenantType.MAIRIE,
            parent_epci_id=epci.id,
        ))
        for i in range(count)
    ]


def add_associations(db_session: Session, tenant: Tenant, count: int, active: bool = True) -> None:
    for i in range(count):
        db_session.add(Association(tenant_id=tenant.id, name=f"Asso {tenant.id}-{i}", is_active=active))
    db_session.commit()


def add_admins(db_session: Session, tenant: Tenant, count: int) -> None:
    for i in range(count):
        db_session.add(User(tenant_id=tenant.id, email=f"admin{i}@{tenant.code.lower()}.fr"))
    db_session.commit()


def accepted_order(db_session: Session, tenant: Tenant, plan, addons_snapshot: list, sequence: int = 1) -> MandateOrder:
    """Commande sur mandat ACCEPTED déjà numérotée (DV et BC)."""
    return persist(db_session, MandateOrder(
        order_number=f"DV-2025-{sequence:05d}",
        order_sequence=sequence,
        commande_number=f"BC-2025-{sequence:05d}",
        commande_sequence=sequence,
        tenant_id=tenant.id,
        plan_id=plan.id,
        billing_cycle=BillingInterval.YEARLY,
        status=MandateOrderStatus.ACCEPTED,
        addons_snapshot=addons_snapshot,
    ))


def count_rows(db_session: Session, model) -> int:
    return db_session.execute(select(func.count()).select_from(model)).scalar()


def row_state(db_session: Session, obj) -> dict:
    """Valeurs de colonnes relues en base, pour comparer un objet avant et après un refus."""
    db_session.refresh(obj)
    return {attr.key: getattr(obj, attr.key) for attr in inspect(obj).mapper.column_attrs}
