# app/models/organization/association.py
"""
Modèle Association - Sous-organisation rattachée à un tenant.

Chaque association active consomme une unité du quota ASSOCIATIONS
(mutualisé à l'échelle de l'EPCI pour les communes rattachées).
"""

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.mixins import TimestampMixin

if TYPE_CHECKING:
    from app.models.user.user import User


class Association(Base, TimestampMixin):
    """Association gérée par une collectivité."""

    __tablename__ = "associations"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    members: Mapped[List["User"]] = relationship("User", back_populates="association")

    def __repr__(self) -> str:
        return f"<Association(id={self.id}, name='{self.name}', tenant_id={self.tenant_id})>"
