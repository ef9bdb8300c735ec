"""
Création des ressources soumises à quota (associations, sièges admin).

Le quota est revérifié dans la transaction qui crée la ressource, sous
verrou du tenant propriétaire du quota.
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.actor import SYSTEM_ACTOR, Actor
from app.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from app.models.enums import ResourceKind
from app.models.organization.association import Association
from app.models.tenants.tenant import Tenant
from app.models.user.user import User
from app.services.quota import QuotaResolver
from app.services.transactions import retry_on_conflict

logger = logging.getLogger(__name__)


class TenantInactiveError(InvalidStateError):
    """Le tenant n'accepte pas de nouvelles ressources."""
    pass


class EmailAlreadyUsedError(ValidationError):
    """Email déjà utilisé par un autre compte."""
    pass


class OrganizationService:
    """Associations et administrateurs d'un tenant."""

    def __init__(self, db: Session, resolver: Optional[QuotaResolver] = None):
        self.db = db
        self.resolver = resolver or QuotaResolver(db)

    def _get_active_tenant(self, tenant_id: int) -> Tenant:
        tenant = self.db.get(Tenant, tenant_id)
        if tenant is None:
            raise NotFoundError(f"Tenant {tenant_id} non trouvé")
        if not tenant.is_active:
            raise TenantInactiveError(
                f"Le tenant {tenant.code} est {tenant.lifecycle_status.value}"
            )
        return tenant

    @retry_on_conflict
    def create_association(
            self,
            tenant_id: int,
            name: str,
            contact_email: Optional[str] = None,
            actor: Actor = SYSTEM_ACTOR,
    ) -> Association:
        self._get_active_tenant(tenant_id)
        self.resolver.ensure_capacity(tenant_id, ResourceKind.ASSOCIATIONS)

        association = Association(tenant_id=tenant_id, name=name, contact_email=contact_email)
        self.db.add(association)
        self.db.commit()
        self.db.refresh(association)
        self.resolver.invalidate(tenant_id)

        logger.info(f"➕ Association '{name}' créée pour le tenant {tenant_id} par {actor.id}")
        return association

    @retry_on_conflict
    def create_admin(
            self,
            tenant_id: int,
            email: str,
            first_name: Optional[str] = None,
            last_name: Optional[str] = None,
            actor: Actor = SYSTEM_ACTOR,
    ) -> User:
        self._get_active_tenant(tenant_id)
        email = email.lower()
        existing = self.db.execute(select(User.id).where(User.email == email)).first()
        if existing is not None:
            raise EmailAlreadyUsedError(f"L'email {email} est déjà utilisé")

        self.resolver.ensure_capacity(tenant_id, ResourceKind.ADMINS)

        user = User(tenant_id=tenant_id, email=email, first_name=first_name, last_name=last_name)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        self.resolver.invalidate(tenant_id)

        logger.info(f"➕ Administrateur {email} créé pour le tenant {tenant_id} par {actor.id}")
        return user
