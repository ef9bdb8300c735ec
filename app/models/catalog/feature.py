# app/models/catalog/feature.py
"""
Catalogue des fonctionnalités et affectations aux formules.

Coexiste avec les booléens historiques de SubscriptionPlan (has_ideas...) ;
la lecture unifiée passe par app.services.features.effective_features.
"""

from sqlalchemy import Boolean, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.catalog.subscription_plan import SubscriptionPlan
from app.models.mixins import TimestampMixin


class Feature(Base, TimestampMixin):
    """Fonctionnalité activable (code stable, ex: 'events')."""

    __tablename__ = "features"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class PlanFeatureAssignment(Base, TimestampMixin):
    """Fonctionnalité incluse dans une formule."""

    __tablename__ = "plan_feature_assignments"
    __table_args__ = (
        UniqueConstraint("plan_id", "feature_id", name="uq_plan_feature"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    plan_id: Mapped[int] = mapped_column(
        ForeignKey("subscription_plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    feature_id: Mapped[int] = mapped_column(
        ForeignKey("features.id", ondelete="CASCADE"),
        nullable=False,
    )

    plan: Mapped[SubscriptionPlan] = relationship("SubscriptionPlan", back_populates="feature_assignments")
    feature: Mapped[Feature] = relationship("Feature", lazy="joined")
