"""
Module Mandate - Parcours de paiement par mandat administratif.
"""

from app.models.mandate.mandate_order import (
    MandateOrder,
    ACCEPTED_LIKE_STATUSES,
    NUMBERED_STATUSES,
)
from app.models.mandate.mandate_invoice import MandateInvoice
from app.models.mandate.mandate_activity import MandateActivity

__all__ = [
    "MandateOrder",
    "MandateInvoice",
    "MandateActivity",
    "ACCEPTED_LIKE_STATUSES",
    "NUMBERED_STATUSES",
]
