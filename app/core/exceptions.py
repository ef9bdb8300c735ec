"""
Taxonomie des erreurs du moteur de facturation CivicLink.

Chaque module de service déclare ses propres sous-classes (ex:
TenantNotFoundError, BillingChangeStateError) ; les routes les convertissent
en HTTPException avec un code stable qui distingue :
- "non autorisé dans l'état courant" (INVALID_STATE, 409)
- "transitoire, réessayez" (RETRYABLE_CONFLICT, 503)
"""


class BillingCoreError(Exception):
    """Erreur de base du moteur de facturation."""

    code = "BILLING_CORE_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =============================================================================
# ERREURS APPELANT (pas de retry)
# =============================================================================

class ValidationError(BillingCoreError):
    """Requête impossible (date passée, quantité négative, etc.)."""

    code = "VALIDATION_ERROR"


class InvalidStateError(ValidationError):
    """Transition non autorisée dans l'état courant."""

    code = "INVALID_STATE"


class QuotaExceededError(ValidationError):
    """Le quota de la ressource est atteint."""

    code = "QUOTA_EXCEEDED"


class NotFoundError(BillingCoreError):
    """Ressource introuvable."""

    code = "NOT_FOUND"


# =============================================================================
# ERREURS DE CONCURRENCE ET D'INTÉGRITÉ
# =============================================================================

class ConcurrencyConflictError(BillingCoreError):
    """Contention (verrou, deadlock, sérialisation) après épuisement des tentatives."""

    code = "RETRYABLE_CONFLICT"


class ConsistencyViolationError(BillingCoreError):
    """Invariant violé au niveau des données. Jamais réparé automatiquement."""

    code = "CONSISTENCY_VIOLATION"


class CycleDetectedError(BillingCoreError):
    """Boucle dans les liens parent entre tenants."""

    code = "CYCLE_DETECTED"

    def __init__(self, tenant_id: int):
        self.tenant_id = tenant_id
        super().__init__(f"Cycle détecté sur le tenant {tenant_id}")


class ExternalCollaboratorError(BillingCoreError):
    """Échec d'un collaborateur externe (notification, stockage)."""

    code = "EXTERNAL_COLLABORATOR_FAILURE"
