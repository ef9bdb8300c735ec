# app/models/tenants/feature_override.py
"""Forçage d'une fonctionnalité (activation ou retrait) pour un tenant."""

from sqlalchemy import Enum, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base_class import Base
from app.models.enums import FeatureOverrideMode
from app.models.mixins import TimestampMixin


class TenantFeatureOverride(Base, TimestampMixin):
    """Surcharge appliquée après les fonctionnalités de la formule."""

    __tablename__ = "tenant_feature_overrides"
    __table_args__ = (
        UniqueConstraint("tenant_id", "feature_code", name="uq_tenant_feature_override"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id"),
        nullable=False,
        index=True,
    )
    feature_code: Mapped[str] = mapped_column(String(50), nullable=False)
    mode: Mapped[FeatureOverrideMode] = mapped_column(
        Enum(FeatureOverrideMode, name="feature_override_mode_enum", create_constraint=True),
        nullable=False,
    )
