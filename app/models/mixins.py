"""
Mixins réutilisables pour les modèles SQLAlchemy.

Ce module définit des mixins qui ajoutent des fonctionnalités communes
à plusieurs modèles (timestamps, archivage des documents financiers,
suppression logique des pièces sur mandat).
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column


def utc_now() -> datetime:
    """Horodatage UTC courant (valeur par défaut des colonnes temporelles)."""
    return datetime.now(timezone.utc)


class TimestampMixin:
    """
    Mixin ajoutant les colonnes created_at et updated_at.

    - created_at : auto-rempli à la création
    - updated_at : auto-mis à jour à chaque modification

    Usage:
        class MyModel(TimestampMixin, Base):
            __tablename__ = "my_table"
            id: Mapped[int] = mapped_column(primary_key=True)
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        doc="Date et heure de création",
        info={"description": "Timestamp de création", "auto_generated": True}
    )

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        default=None,
        onupdate=utc_now,
        doc="Date et heure de dernière modification",
        info={"description": "Timestamp de mise à jour", "auto_generated": True}
    )


class ArchivableMixin:
    """
    Mixin des documents financiers conservés après suppression du tenant.

    Un document archivé n'est jamais supprimé physiquement : à la suppression
    de son tenant, is_archived passe à True et la clé tenant est mise à NULL.

    Usage:
        class Invoice(ArchivableMixin, TimestampMixin, Base):
            __tablename__ = "invoices"
    """

    is_archived: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        doc="Document archivé (rétention légale)",
        info={"description": "True après suppression du tenant propriétaire"}
    )

    archived_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        default=None,
        doc="Date d'archivage du document",
    )


class SoftDeleteMixin:
    """
    Mixin de suppression logique des pièces sur mandat.

    Une pièce supprimée reste en base pour l'audit : elle sort des listes,
    des montants facturés et de la résolution des quotas.
    """

    is_deleted: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        doc="Pièce supprimée logiquement",
    )

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        default=None,
        doc="Date de suppression",
    )

    deleted_by: Mapped[str | None] = mapped_column(
        String(100),
        default=None,
        doc="Identifiant de l'acteur ayant supprimé la pièce",
    )
