"""
Acteur d'une opération (fourni par la passerelle d'authentification).

Le moteur de facturation ne gère pas l'authentification : il reçoit
seulement un identifiant opaque et un type d'acteur, tracés dans les
journaux d'audit.
"""
from dataclasses import dataclass

from app.models.enums import ActorType


@dataclass(frozen=True)
class Actor:
    id: str
    actor_type: ActorType = ActorType.SUPER_ADMIN


SYSTEM_ACTOR = Actor(id="system", actor_type=ActorType.SYSTEM)
