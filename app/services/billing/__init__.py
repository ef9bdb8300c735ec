from app.services.billing.engine import (
    BillingChangeNotFoundError,
    BillingChangeService,
    BillingChangeStateError,
    CatalogItemNotFoundError,
    ChangeRequest,
    DowngradeBelowUsageError,
    DueChangesReport,
    InvalidBillingChangeError,
)
from app.services.billing.proration import (
    Proration,
    billing_period_bounds,
    compute_proration,
    first_day_of_next_month,
    remaining_ratio,
)

__all__ = [
    "BillingChangeNotFoundError",
    "BillingChangeService",
    "BillingChangeStateError",
    "CatalogItemNotFoundError",
    "ChangeRequest",
    "DowngradeBelowUsageError",
    "DueChangesReport",
    "InvalidBillingChangeError",
    "Proration",
    "billing_period_bounds",
    "compute_proration",
    "first_day_of_next_month",
    "remaining_ratio",
]
