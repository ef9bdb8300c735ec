# app/api/v1/webhooks/__init__.py
"""
Module API Webhooks - Événements du prestataire de paiement.

Usage:
    from app.api.v1.webhooks import router as webhooks_router
    api_router.include_router(webhooks_router)
"""

from .routes import router

__all__ = ["router"]
