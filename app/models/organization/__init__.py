"""
Module Organization - Sous-organisations et domaines des tenants.
"""

from app.models.organization.association import Association
from app.models.organization.domain import TenantDomain

__all__ = [
    "Association",
    "TenantDomain",
]
