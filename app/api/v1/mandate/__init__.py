# app/api/v1/mandate/__init__.py
"""
Module API Mandate - Commandes sur mandat administratif.

Usage:
    from app.api.v1.mandate import router as mandate_router
    api_router.include_router(mandate_router)
"""

from .routes import router

__all__ = ["router"]
