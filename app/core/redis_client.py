"""Client Redis singleton pour l'application."""

import redis
from typing import Optional
from app.core.config import settings


class RedisClient:
    """Client Redis singleton avec pool de connexions."""

    _instance: Optional[redis.Redis] = None

    @classmethod
    def get_client(cls) -> redis.Redis:
        """Retourne l'instance singleton du client Redis (construit depuis settings.redis_url)."""
        if cls._instance is None:
            cls._instance = redis.Redis.from_url(
                settings.redis_url,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                decode_responses=True,  # Décoder automatiquement en string
                socket_keepalive=True,
                socket_connect_timeout=2,
                retry_on_timeout=True
            )
        return cls._instance

    @classmethod
    def close(cls):
        """Ferme la connexion Redis (appelé par le lifespan de l'application à l'arrêt)."""
        if cls._instance:
            cls._instance.close()
            cls._instance = None


def get_redis() -> Optional[redis.Redis]:
    """
    Retourne le client Redis si le cache des quotas est activé.

    Le cache est purement décoratif (quotas affichés) : sans TTL configuré,
    aucun client n'est créé.
    """
    if not settings.quota_cache_enabled:
        return None
    return RedisClient.get_client()
