from app.services.lifecycle.manager import (
    InvalidLifecycleRequestError,
    TenantDeletionResult,
    TenantLifecycleService,
    TenantNotFoundError,
    TenantStateError,
)

__all__ = [
    "InvalidLifecycleRequestError",
    "TenantDeletionResult",
    "TenantLifecycleService",
    "TenantNotFoundError",
    "TenantStateError",
]
