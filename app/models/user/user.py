# app/models/user/user.py
"""
Modèle User - Administrateur d'un tenant.

Chaque utilisateur actif d'un tenant occupe un siège du quota ADMINS.
Les comptes d'association (association_id renseigné) sont supprimés avec
leur association.
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.mixins import TimestampMixin

if TYPE_CHECKING:
    from app.models.organization.association import Association


class User(Base, TimestampMixin):
    """Compte utilisateur rattaché à un tenant."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id"),
        nullable=False,
        index=True,
    )
    association_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("associations.id"),
        index=True,
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[Optional[str]] = mapped_column(String(100))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    association: Mapped[Optional["Association"]] = relationship("Association", back_populates="members")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', tenant_id={self.tenant_id})>"
