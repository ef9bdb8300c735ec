# app/models/tenants/__init__.py
"""
Module Tenants - Collectivités clientes de CivicLink.

Classes exportées:
    - Tenant: Collectivité cliente (mairie, EPCI, association)
    - TenantAddon: Options souscrites et changements planifiés
    - TenantFeatureOverride: Forçage de fonctionnalités
"""

from app.models.tenants.tenant import Tenant
from app.models.tenants.tenant_addon import TenantAddon
from app.models.tenants.feature_override import TenantFeatureOverride

__all__ = [
    "Tenant",
    "TenantAddon",
    "TenantFeatureOverride",
]
