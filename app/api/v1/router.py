"""
Router principal API v1.

Agrège tous les routers des différents modules métier.

Usage dans main.py:
    from app.api.v1.router import api_router

    app = FastAPI(title="CivicLink Billing")
    app.include_router(api_router)
"""
from fastapi import APIRouter

from app.core.config import settings

from .tenants import router as tenants_router
from .billing import router as billing_router
from .mandate import router as mandate_router
from .webhooks import router as webhooks_router


# =============================================================================
# ROUTER PRINCIPAL
# =============================================================================

api_router = APIRouter(prefix="/api/v1")


api_router.include_router(tenants_router)
api_router.include_router(billing_router)
api_router.include_router(mandate_router)
api_router.include_router(webhooks_router)


# =============================================================================
# HEALTH CHECK
# =============================================================================

@api_router.get(
    "/health",
    tags=["System"],
    summary="Health check",
    description="Vérifie que l'API est opérationnelle.",
)
async def health_check():
    """
    Endpoint de santé pour les load balancers et le monitoring.

    Returns:
        Statut de l'API
    """
    return {
        "status": "healthy",
        "service": "civiclink-billing",
        "version": settings.APP_VERSION,
        "api_version": "v1",
    }
