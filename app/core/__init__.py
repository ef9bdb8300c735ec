from app.core.exceptions import (
    BillingCoreError,
    ValidationError,
    InvalidStateError,
    QuotaExceededError,
    NotFoundError,
    ConcurrencyConflictError,
    ConsistencyViolationError,
    CycleDetectedError,
    ExternalCollaboratorError,
)

__all__ = [
    "BillingCoreError",
    "ValidationError",
    "InvalidStateError",
    "QuotaExceededError",
    "NotFoundError",
    "ConcurrencyConflictError",
    "ConsistencyViolationError",
    "CycleDetectedError",
    "ExternalCollaboratorError",
]
