"""
CivicLink Models - Export centralisé de tous les modèles SQLAlchemy.

Ce fichier permet d'importer tous les modèles depuis un seul endroit :
    from app.models import Tenant, SubscriptionPlan, BillingChange, MandateOrder, ...

Structure des sous-dossiers :
    tenants/        - Collectivités (Tenant, TenantAddon, TenantFeatureOverride)
    catalog/        - Catalogue global (SubscriptionPlan, Addon, PlanAddonAccess, Feature)
    billing/        - Facturation (BillingChange, LedgerEntry, DocumentSequence, Quote, Invoice)
    mandate/        - Mandats administratifs (MandateOrder, MandateInvoice, MandateActivity)
    organization/   - Sous-organisations (Association, TenantDomain)
    user/           - Administrateurs des tenants (User)
    content/        - Contenus opérationnels (Meeting, MeetingRegistration)
    platform/       - Audit, outbox, webhooks
"""

# === Enums ===
from app.models.enums import (
    TenantType,
    LifecycleStatus,
    BillingInterval,
    PaymentMethod,
    ResourceKind,
    BillingChangeType,
    BillingChangeStatus,
    LedgerEntryType,
    DocumentFamily,
    QuoteStatus,
    InvoiceStatus,
    MandateOrderStatus,
    MandateActivityType,
    ActorType,
    OutboxStatus,
    FeatureOverrideMode,
)

# === Catalogue ===
from app.models.catalog import (
    SubscriptionPlan,
    Addon,
    PlanAddonAccess,
    Feature,
    PlanFeatureAssignment,
)

# === Tenants ===
from app.models.tenants import Tenant, TenantAddon, TenantFeatureOverride

# === Opérationnel ===
from app.models.organization import Association, TenantDomain
from app.models.user import User
from app.models.content import Meeting, MeetingRegistration

# === Facturation ===
from app.models.billing import (
    BillingChange,
    LedgerEntry,
    DocumentSequence,
    DocumentNumberFormat,
    Quote,
    Invoice,
)

# === Mandats ===
from app.models.mandate import MandateOrder, MandateInvoice, MandateActivity

# === Plateforme ===
from app.models.platform import (
    PlatformAuditLog,
    AuditAction,
    NotificationOutbox,
    ProcessedWebhookEvent,
)

__all__ = [
    # Enums
    "TenantType",
    "LifecycleStatus",
    "BillingInterval",
    "PaymentMethod",
    "ResourceKind",
    "BillingChangeType",
    "BillingChangeStatus",
    "LedgerEntryType",
    "DocumentFamily",
    "QuoteStatus",
    "InvoiceStatus",
    "MandateOrderStatus",
    "MandateActivityType",
    "ActorType",
    "OutboxStatus",
    "FeatureOverrideMode",
    # Catalogue
    "SubscriptionPlan",
    "Addon",
    "PlanAddonAccess",
    "Feature",
    "PlanFeatureAssignment",
    # Tenants
    "Tenant",
    "TenantAddon",
    "TenantFeatureOverride",
    # Opérationnel
    "Association",
    "TenantDomain",
    "User",
    "Meeting",
    "MeetingRegistration",
    # Facturation
    "BillingChange",
    "LedgerEntry",
    "DocumentSequence",
    "DocumentNumberFormat",
    "Quote",
    "Invoice",
    # Mandats
    "MandateOrder",
    "MandateInvoice",
    "MandateActivity",
    # Plateforme
    "PlatformAuditLog",
    "AuditAction",
    "NotificationOutbox",
    "ProcessedWebhookEvent",
]
