# app/models/tenants/tenant.py
"""
Modèle Tenant - Représente une collectivité cliente de la plateforme CivicLink.
Un tenant peut être une mairie, un EPCI (qui mutualise les quotas de ses
communes) ou une association cliente en direct.
"""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.enums import BillingInterval, LifecycleStatus, PaymentMethod, TenantType
from app.models.mixins import TimestampMixin

# Imports conditionnels pour éviter les imports circulaires
if TYPE_CHECKING:
    from app.models.catalog.subscription_plan import SubscriptionPlan
    from app.models.tenants.tenant_addon import TenantAddon


class Tenant(Base, TimestampMixin):
    """
    Représente un client de CivicLink (locataire).

    Un tenant correspond à l'entité facturée. Deux liens parent coexistent :
    - parent_epci_id : commune rattachée à un EPCI (héritage de quota uniquement)
    - parent_tenant_id : rattachement générique (association d'une commune, etc.)

    Les liens parent sont éditables par l'opérateur : les parcours récursifs
    ne doivent jamais supposer l'absence de cycle.
    """

    __tablename__ = "tenants"

    # ========================
    # Clé primaire
    # ========================
    id: Mapped[int] = mapped_column(primary_key=True)

    # ========================
    # Identification
    # ========================
    code: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        comment="Code unique du tenant (ex: MAIRIE-LYON)"
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Nom de la collectivité"
    )
    siret: Mapped[Optional[str]] = mapped_column(
        String(14),
        comment="Numéro SIRET"
    )
    contact_email: Mapped[Optional[str]] = mapped_column(
        String(255),
        comment="Email du contact principal"
    )

    # ========================
    # Type et hiérarchie
    # ========================
    tenant_type: Mapped[TenantType] = mapped_column(
        Enum(TenantType, name="tenant_type_enum", create_constraint=True),
        nullable=False,
        comment="MAIRIE, EPCI ou ASSOCIATION"
    )
    parent_epci_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("tenants.id"),
        index=True,
        comment="EPCI de rattachement (mutualisation des quotas)"
    )
    parent_tenant_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("tenants.id"),
        index=True,
        comment="Tenant parent générique"
    )

    # ========================
    # Abonnement
    # ========================
    subscription_plan_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("subscription_plans.id"),
        comment="Formule d'abonnement en vigueur"
    )
    billing_interval: Mapped[BillingInterval] = mapped_column(
        Enum(BillingInterval, name="billing_interval_enum", create_constraint=True),
        default=BillingInterval.MONTHLY,
        nullable=False,
        comment="Périodicité de facturation"
    )
    payment_method: Mapped[Optional[PaymentMethod]] = mapped_column(
        Enum(PaymentMethod, name="payment_method_enum", create_constraint=True),
        comment="Moyen de paiement (STRIPE, mandat administratif...)"
    )
    is_free: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="Tenant gratuit (non facturé)"
    )

    # ========================
    # Achats directs (héritage : antérieurs aux options)
    # ========================
    purchased_associations: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Associations achetées hors options"
    )
    purchased_admins: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Sièges admin achetés hors options"
    )
    purchased_communes: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Communes achetées hors options (EPCI)"
    )

    # ========================
    # Cycle de vie
    # ========================
    lifecycle_status: Mapped[LifecycleStatus] = mapped_column(
        Enum(LifecycleStatus, name="lifecycle_status_enum", create_constraint=True),
        default=LifecycleStatus.ACTIVE,
        nullable=False,
        index=True,
        comment="ACTIVE, SUSPENDED ou ARCHIVED"
    )
    suspended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    suspension_reason: Mapped[Optional[str]] = mapped_column(Text)
    suspended_by: Mapped[Optional[str]] = mapped_column(String(100))
    reactivated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    reactivation_reason: Mapped[Optional[str]] = mapped_column(Text)
    reactivated_by: Mapped[Optional[str]] = mapped_column(String(100))
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    archive_reason: Mapped[Optional[str]] = mapped_column(Text)
    archived_by: Mapped[Optional[str]] = mapped_column(String(100))

    # ========================
    # Relations
    # ========================
    subscription_plan: Mapped[Optional["SubscriptionPlan"]] = relationship("SubscriptionPlan")
    addons: Mapped[List["TenantAddon"]] = relationship(
        "TenantAddon",
        back_populates="tenant",
    )

    # ========================
    # Propriétés
    # ========================

    @property
    def is_active(self) -> bool:
        """Vérifie si le tenant est actif."""
        return self.lifecycle_status == LifecycleStatus.ACTIVE

    @property
    def is_archived(self) -> bool:
        """Vérifie si le tenant est archivé (seul état supprimable)."""
        return self.lifecycle_status == LifecycleStatus.ARCHIVED

    @property
    def is_epci(self) -> bool:
        return self.tenant_type == TenantType.EPCI

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, code='{self.code}', status={self.lifecycle_status})>"
