"""
Module Billing - Changements de facturation, grand livre et numérotation.
"""

from app.models.billing.billing_change import BillingChange
from app.models.billing.ledger_entry import LedgerEntry
from app.models.billing.document_sequence import DocumentSequence, DocumentNumberFormat
from app.models.billing.documents import Quote, Invoice

__all__ = [
    "BillingChange",
    "LedgerEntry",
    "DocumentSequence",
    "DocumentNumberFormat",
    "Quote",
    "Invoice",
]
