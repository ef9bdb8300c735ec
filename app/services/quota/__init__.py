from app.services.quota.resolver import (
    InheritsFrom,
    QuotaBasis,
    QuotaLimitReachedError,
    QuotaResolver,
    QuotaStatus,
    Standalone,
    TenantNotFoundError,
    quota_basis,
)
from app.services.quota.resource_kinds import RESOURCE_KINDS, ResourceKindSpec, resource_kind_for_addon

__all__ = [
    "InheritsFrom",
    "QuotaBasis",
    "QuotaLimitReachedError",
    "QuotaResolver",
    "QuotaStatus",
    "RESOURCE_KINDS",
    "ResourceKindSpec",
    "Standalone",
    "TenantNotFoundError",
    "quota_basis",
    "resource_kind_for_addon",
]
