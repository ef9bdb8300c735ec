# app/models/catalog/addon.py
"""
Modèles Addon et PlanAddonAccess - Options achetables du catalogue.

Une option est une unité incrémentale d'une ressource sous quota
(ex: un siège administrateur supplémentaire). Son prix par défaut peut être
surchargé pour une formule donnée via PlanAddonAccess.
"""

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.catalog.subscription_plan import SubscriptionPlan
from app.models.enums import BillingInterval
from app.models.mixins import TimestampMixin


class Addon(Base, TimestampMixin):
    """Option du catalogue (ADMIN, ASSOCIATIONS, COMMUNES...)."""

    __tablename__ = "addons"

    id: Mapped[int] = mapped_column(primary_key=True)

    code: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        comment="Code de l'option (ex: ADMIN)"
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    default_monthly_price_cents: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Prix unitaire mensuel par défaut (centimes)"
    )
    default_yearly_price_cents: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Prix unitaire annuel par défaut (centimes)"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def default_price_for(self, interval: BillingInterval) -> int:
        if interval == BillingInterval.YEARLY:
            return self.default_yearly_price_cents
        return self.default_monthly_price_cents

    def __repr__(self) -> str:
        return f"<Addon(id={self.id}, code='{self.code}')>"


class PlanAddonAccess(Base, TimestampMixin):
    """
    Accès d'une formule à une option, avec prix éventuellement surchargés.

    Sans ligne pour le couple (formule, option), l'option est accessible
    au prix par défaut.
    """

    __tablename__ = "plan_addon_access"
    __table_args__ = (
        UniqueConstraint("plan_id", "addon_id", name="uq_plan_addon_access"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    plan_id: Mapped[int] = mapped_column(
        ForeignKey("subscription_plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    addon_id: Mapped[int] = mapped_column(
        ForeignKey("addons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    monthly_price_cents: Mapped[Optional[int]] = mapped_column(
        Integer,
        comment="Surcharge du prix mensuel (NULL = prix par défaut)"
    )
    yearly_price_cents: Mapped[Optional[int]] = mapped_column(
        Integer,
        comment="Surcharge du prix annuel (NULL = prix par défaut)"
    )

    plan: Mapped[SubscriptionPlan] = relationship("SubscriptionPlan")
    addon: Mapped[Addon] = relationship("Addon")

    def price_override_for(self, interval: BillingInterval) -> Optional[int]:
        if interval == BillingInterval.YEARLY:
            return self.yearly_price_cents
        return self.monthly_price_cents
