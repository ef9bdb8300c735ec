# app/api/v1/billing/__init__.py
"""
Module API Billing - Changements de facturation et grand livre.

Usage:
    from app.api.v1.billing import router as billing_router
    api_router.include_router(billing_router)
"""

from .routes import router

__all__ = ["router"]
