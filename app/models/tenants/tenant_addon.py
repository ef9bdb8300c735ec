# app/models/tenants/tenant_addon.py
"""
Modèle TenantAddon - Quantité d'option active pour un tenant.

La quantité en vigueur ne change qu'à l'application d'un BillingChange ;
pending_quantity / pending_effective_date exposent le changement planifié.
"""

from datetime import date
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Date, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.catalog.addon import Addon
from app.models.mixins import TimestampMixin

if TYPE_CHECKING:
    from app.models.tenants.tenant import Tenant


class TenantAddon(Base, TimestampMixin):
    """Option souscrite par un tenant. Une ligne par couple (tenant, option)."""

    __tablename__ = "tenant_addons"
    __table_args__ = (
        UniqueConstraint("tenant_id", "addon_id", name="uq_tenant_addon"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id"),
        nullable=False,
        index=True,
    )
    addon_id: Mapped[int] = mapped_column(
        ForeignKey("addons.id"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Quantité en vigueur"
    )
    pending_quantity: Mapped[Optional[int]] = mapped_column(
        Integer,
        comment="Quantité planifiée (changement en attente)"
    )
    pending_effective_date: Mapped[Optional[date]] = mapped_column(
        Date,
        comment="Date d'effet du changement planifié"
    )

    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="addons")
    addon: Mapped[Addon] = relationship("Addon", lazy="joined")

    def __repr__(self) -> str:
        return f"<TenantAddon(tenant_id={self.tenant_id}, addon_id={self.addon_id}, quantity={self.quantity})>"
