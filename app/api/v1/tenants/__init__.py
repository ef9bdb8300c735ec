# app/api/v1/tenants/__init__.py
"""
Module API Tenants - Collectivités clientes de CivicLink.

Ce module fournit les endpoints pour :
- Cycle de vie (suspension, réactivation, archivage, suppression)
- Rattachement des communes à un EPCI
- Consultation des quotas et des fonctionnalités effectives
- Création de sous-organisations soumises à quota

Usage:
    from app.api.v1.tenants import router as tenants_router
    api_router.include_router(tenants_router)
"""

from .routes import router

__all__ = ["router"]
