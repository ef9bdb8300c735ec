"""
Modèle PlatformAuditLog - Logs d'audit des actions d'administration.

Ce module définit la table `platform_audit_logs` qui trace les actions de
cycle de vie des tenants et de facturation.

IMPORTANT :
- Logs immuables (pas de UPDATE/DELETE)
- target_tenant_id passe à NULL quand le tenant est supprimé ; l'identifiant
  d'origine reste lisible dans details
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from sqlalchemy import String, Integer, ForeignKey, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base_class import Base
from app.models.types import JSONBCompatible


class AuditAction(str, Enum):
    """
    Types d'actions auditées.

    Catégories :
    - TENANT : Cycle de vie des tenants
    - BILLING : Changements de facturation et grand livre
    """
    # Cycle de vie des tenants
    TENANT_SUSPENDED = "TENANT_SUSPENDED"
    TENANT_UNSUSPENDED = "TENANT_UNSUSPENDED"
    TENANT_ARCHIVED = "TENANT_ARCHIVED"
    TENANT_DELETED = "TENANT_DELETED"
    TENANT_PARENT_CHANGED = "TENANT_PARENT_CHANGED"

    # Facturation
    BILLING_CHANGE_SCHEDULED = "BILLING_CHANGE_SCHEDULED"
    BILLING_CHANGE_APPLIED = "BILLING_CHANGE_APPLIED"
    BILLING_CHANGE_CANCELLED = "BILLING_CHANGE_CANCELLED"
    LEDGER_ENTRIES_APPLIED = "LEDGER_ENTRIES_APPLIED"

    # Divers
    OTHER = "OTHER"


class PlatformAuditLog(Base):
    """
    Log d'audit d'une action d'administration.

    Attributes:
        id: Identifiant unique
        actor_id: Identifiant de l'acteur (fourni par la passerelle d'authentification)
        actor_type: SUPER_ADMIN, TENANT_ADMIN ou SYSTEM
        action: Type d'action (AuditAction)
        target_tenant_id: Tenant concerné (si applicable)
        target_table: Table concernée
        target_id: ID de l'enregistrement concerné
        details: Détails JSON de l'action (motif, ancien/nouveau statut...)
        created_at: Horodatage de l'action

    Example:
        log = PlatformAuditLog.create_log(
            actor_id="admin-42",
            action=AuditAction.TENANT_SUSPENDED,
            target_tenant_id=5,
            details={"reason": "Impayé"},
        )
    """

    __tablename__ = "platform_audit_logs"
    __table_args__ = {
        "comment": "Logs d'audit des actions d'administration (immuables)"
    }

    # === Colonnes ===

    id: Mapped[int] = mapped_column(
        primary_key=True,
        doc="Identifiant unique du log"
    )

    # --- Qui ---

    actor_id: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        index=True,
        doc="Acteur ayant effectué l'action"
    )

    actor_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="SYSTEM",
        doc="Origine de l'action"
    )

    # --- Quoi ---

    action: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
        doc="Type d'action effectuée"
    )

    # --- Sur quoi ---

    target_tenant_id: Mapped[int | None] = mapped_column(
        ForeignKey("tenants.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        doc="Tenant concerné par l'action (si applicable)"
    )

    target_table: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        doc="Table concernée"
    )

    target_id: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        doc="ID de l'enregistrement concerné"
    )

    # --- Détails ---

    details: Mapped[Dict[str, Any] | None] = mapped_column(
        JSONBCompatible,
        nullable=True,
        doc="Détails JSON de l'action"
    )

    # --- Horodatage ---

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
        doc="Horodatage de l'action"
    )

    # === Méthodes ===

    def __repr__(self) -> str:
        return f"<PlatformAuditLog(id={self.id}, action='{self.action}', actor_id={self.actor_id})>"

    @classmethod
    def create_log(
            cls,
            action: AuditAction,
            actor_id: str | None = None,
            actor_type: str = "SYSTEM",
            target_tenant_id: int | None = None,
            target_table: str | None = None,
            target_id: int | None = None,
            details: Dict[str, Any] | None = None,
    ) -> "PlatformAuditLog":
        """
        Factory method pour créer un log d'audit.

        Returns:
            Instance de PlatformAuditLog (non ajoutée à la session)
        """
        return cls(
            actor_id=actor_id,
            actor_type=actor_type,
            action=action.value if isinstance(action, AuditAction) else action,
            target_tenant_id=target_tenant_id,
            target_table=target_table,
            target_id=target_id,
            details=details or {},
        )


# === Fonctions utilitaires ===

def log_tenant_action(
        db_session,
        action: AuditAction,
        tenant_id: int | None,
        actor_id: str | None = None,
        actor_type: str = "SYSTEM",
        details: Dict[str, Any] | None = None,
        target_table: str = "tenants",
        target_id: int | None = None,
) -> PlatformAuditLog:
    """
    Crée et enregistre un log d'action sur un tenant.

    Usage:
        log_tenant_action(
            db,
            action=AuditAction.TENANT_SUSPENDED,
            tenant_id=5,
            actor_id="admin-1",
            details={"reason": "Non-paiement"}
        )
    """
    log = PlatformAuditLog.create_log(
        action=action,
        actor_id=actor_id,
        actor_type=actor_type,
        target_tenant_id=tenant_id,
        target_table=target_table,
        target_id=target_id if target_id is not None else tenant_id,
        details=details,
    )
    db_session.add(log)
    return log
