# app/models/catalog/subscription_plan.py
"""
Modèle SubscriptionPlan - Formule d'abonnement du catalogue.

Catalogue global (pas de tenant_id), propriété de l'opérateur de la plateforme.
Les quantités incluses alimentent le résolveur de quotas.
"""

from typing import TYPE_CHECKING, List

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.enums import BillingInterval
from app.models.mixins import TimestampMixin

if TYPE_CHECKING:
    from app.models.catalog.feature import PlanFeatureAssignment


class SubscriptionPlan(Base, TimestampMixin):
    """
    Formule d'abonnement (ex: Essentiel, Premium).

    Prix en centimes d'euro HT.
    """

    __tablename__ = "subscription_plans"

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
        comment="Code unique de la formule"
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    # ========================
    # Tarification
    # ========================
    monthly_price_cents: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Prix mensuel HT en centimes"
    )
    yearly_price_cents: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Prix annuel HT en centimes"
    )

    # ========================
    # Quantités incluses
    # ========================
    max_admins: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False,
        comment="Sièges administrateurs inclus"
    )
    associations_included: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Associations incluses"
    )
    communes_included: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Communes incluses (formules EPCI)"
    )

    # ========================
    # Fonctionnalités historiques (booléens)
    # ========================
    has_ideas: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    has_incidents: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    has_meetings: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # ========================
    # Statut
    # ========================
    is_free: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # ========================
    # Relations
    # ========================
    feature_assignments: Mapped[List["PlanFeatureAssignment"]] = relationship(
        "PlanFeatureAssignment",
        back_populates="plan",
        cascade="all, delete-orphan",
    )

    def price_for(self, interval: BillingInterval) -> int:
        """Prix récurrent (centimes) pour la périodicité donnée."""
        if interval == BillingInterval.YEARLY:
            return self.yearly_price_cents
        return self.monthly_price_cents

    def __repr__(self) -> str:
        return f"<SubscriptionPlan(id={self.id}, code='{self.code}')>"
