# app/api/v1/dependencies.py
"""
Dépendances générales de l'API v1.

Ce module contient les utilitaires partagés par tous les modules :
- PaginationParams : Paramètres de pagination standardisés
- get_current_actor : Acteur transmis par la passerelle d'authentification

L'authentification elle-même est assurée en amont : la passerelle
transmet un identifiant opaque (X-Actor-Id) et un type (X-Actor-Type),
tracés tels quels dans les journaux d'audit.
"""

from typing import Annotated, Optional
from fastapi import Query, Depends, Header, HTTPException, status

from app.core.actor import Actor
from app.models.enums import ActorType


class PaginationParams:
    """
    Paramètres de pagination standardisés pour toutes les routes de liste.

    Usage:
        @router.get("/tenants/{tenant_id}/billing-changes")
        async def list_changes(pagination: PaginationParams = Depends()):
            # pagination.page, pagination.size, pagination.offset
            ...
    """

    def __init__(
            self,
            page: Annotated[int, Query(ge=1, description="Numéro de page (commence à 1)")] = 1,
            size: Annotated[int, Query(ge=1, le=100, description="Nombre d'éléments par page")] = 20,
    ):
        self.page = page
        self.size = size

    @property
    def offset(self) -> int:
        """Calcule l'offset pour la découpe de la liste."""
        return (self.page - 1) * self.size

    @property
    def limit(self) -> int:
        """Alias pour size (compatibilité SQL)."""
        return self.size

    def slice(self, items: list) -> list:
        """Retourne la page demandée d'une liste déjà triée."""
        return items[self.offset:self.offset + self.size]


async def get_current_actor(
        x_actor_id: Annotated[Optional[str], Header(description="Identifiant de l'acteur")] = None,
        x_actor_type: Annotated[Optional[str], Header(description="SUPER_ADMIN, TENANT_ADMIN ou SYSTEM")] = None,
) -> Actor:
    """
    Construit l'acteur courant depuis les en-têtes de la passerelle.

    Raises:
        HTTPException 401: En-tête X-Actor-Id absent
        HTTPException 400: Type d'acteur inconnu
    """
    if not x_actor_id or not x_actor_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="En-tête X-Actor-Id manquant",
        )

    try:
        actor_type = ActorType(x_actor_type) if x_actor_type else ActorType.SUPER_ADMIN
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Type d'acteur inconnu : {x_actor_type}",
        )

    return Actor(id=x_actor_id.strip(), actor_type=actor_type)


# =============================================================================
# TYPE ALIASES
# =============================================================================

Pagination = Annotated[PaginationParams, Depends()]
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
