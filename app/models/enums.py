"""
Enums partagés par les modèles CivicLink.

Les valeurs sont stockées telles quelles en base (str, Enum) : ne jamais
renommer une valeur existante sans migration.
"""

from enum import Enum


# =============================================================================
# ENUMS POUR LE MODULE TENANTS
# =============================================================================

class TenantType(str, Enum):
    """Types de collectivité cliente."""
    MAIRIE = "MAIRIE"              # Commune
    EPCI = "EPCI"                  # Intercommunalité (mutualise les quotas)
    ASSOCIATION = "ASSOCIATION"    # Association cliente en direct


class LifecycleStatus(str, Enum):
    """Cycle de vie d'un tenant. La suppression n'est possible qu'après archivage."""
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    ARCHIVED = "ARCHIVED"


class BillingInterval(str, Enum):
    """Périodicité de facturation."""
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class PaymentMethod(str, Enum):
    """Moyens de paiement acceptés."""
    STRIPE = "STRIPE"
    BANK_TRANSFER = "BANK_TRANSFER"
    CHECK = "CHECK"
    ADMINISTRATIVE_MANDATE = "ADMINISTRATIVE_MANDATE"


class ResourceKind(str, Enum):
    """Ressources soumises à quota."""
    ASSOCIATIONS = "ASSOCIATIONS"  # Sous-organisations
    ADMINS = "ADMINS"              # Sièges administrateurs
    COMMUNES = "COMMUNES"          # Communes rattachées à un EPCI


# =============================================================================
# ENUMS POUR LE MODULE BILLING
# =============================================================================

class BillingChangeType(str, Enum):
    """Nature d'un changement de facturation."""
    PLAN_CHANGE = "PLAN_CHANGE"
    ADDON_CHANGE = "ADDON_CHANGE"


class BillingChangeStatus(str, Enum):
    """PENDING → APPLIED | CANCELLED. Les états terminaux sont immuables."""
    PENDING = "PENDING"
    APPLIED = "APPLIED"
    CANCELLED = "CANCELLED"


class LedgerEntryType(str, Enum):
    """Sens d'une écriture du grand livre."""
    CREDIT = "CREDIT"    # Dû au tenant
    DEBIT = "DEBIT"      # Dû par le tenant


class DocumentFamily(str, Enum):
    """
    Famille de document légal. La valeur est la clé de séquence
    (préfixe technique), indépendante du format d'affichage.
    """
    QUOTE = "DV"           # Devis
    ORDER = "BC"           # Bon de commande
    INVOICE = "FA"         # Facture
    CREDIT_NOTE = "AV"     # Avoir


class QuoteStatus(str, Enum):
    """Statuts d'un devis."""
    DRAFT = "DRAFT"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class InvoiceStatus(str, Enum):
    """Statuts d'une facture (parcours carte et mandat)."""
    DRAFT = "DRAFT"
    SENT = "SENT"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


# =============================================================================
# ENUMS POUR LE MODULE MANDATE
# =============================================================================

class MandateOrderStatus(str, Enum):
    """
    DRAFT → SENT → (ACCEPTED | REJECTED), PENDING_BC entre SENT et ACCEPTED.

    INVOICED est conservé pour les commandes issues de l'ancien circuit ;
    la facturation courante laisse la commande en ACCEPTED.
    """
    DRAFT = "DRAFT"
    SENT = "SENT"
    PENDING_BC = "PENDING_BC"      # Acceptée par le client, bon de commande attendu
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    INVOICED = "INVOICED"
    CANCELLED = "CANCELLED"


class MandateActivityType(str, Enum):
    """Types d'entrées du journal des mandats."""
    ORDER_CREATED = "ORDER_CREATED"
    ORDER_SENT = "ORDER_SENT"
    PURCHASE_ORDER_PENDING = "PURCHASE_ORDER_PENDING"
    PURCHASE_ORDER_RECEIVED = "PURCHASE_ORDER_RECEIVED"
    ORDER_VALIDATED = "ORDER_VALIDATED"
    ORDER_REJECTED = "ORDER_REJECTED"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    ORDER_DELETED = "ORDER_DELETED"
    INVOICE_GENERATED = "INVOICE_GENERATED"
    INVOICE_DELETED = "INVOICE_DELETED"


class ActorType(str, Enum):
    """Origine d'une action."""
    SUPER_ADMIN = "SUPER_ADMIN"
    TENANT_ADMIN = "TENANT_ADMIN"
    SYSTEM = "SYSTEM"


# =============================================================================
# ENUMS POUR LE MODULE PLATFORM
# =============================================================================

class OutboxStatus(str, Enum):
    """Statut de livraison d'une notification."""
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class FeatureOverrideMode(str, Enum):
    """Forçage d'une fonctionnalité pour un tenant."""
    ENABLE = "ENABLE"
    DISABLE = "DISABLE"
